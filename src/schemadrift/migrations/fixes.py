"""Repair planning for classified migrations.

| status         | action        |
|----------------|---------------|
| BOGUS_RECORD   | delete record |
| ORPHAN_RECORD  | delete record |
| LOST_RECORD    | insert record |
| MISSING_FILE   | report only   |
| OK / NEW       | none          |

Planning is pure. Applying runs every delete and insert in one ledger
transaction; inserted records share the next batch number.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

import structlog

from schemadrift.core.logging import run_scope
from schemadrift.migrations.bookkeeping import BookkeepingStore
from schemadrift.migrations.models import MigrationState, MigrationStatus

log = structlog.get_logger(__name__)


class FixKind(Enum):
    DELETE_RECORD = "delete_record"
    INSERT_RECORD = "insert_record"
    REPORT_ONLY = "report_only"


_FIX_FOR_STATUS: dict[MigrationStatus, FixKind] = {
    MigrationStatus.BOGUS_RECORD: FixKind.DELETE_RECORD,
    MigrationStatus.ORPHAN_RECORD: FixKind.DELETE_RECORD,
    MigrationStatus.LOST_RECORD: FixKind.INSERT_RECORD,
    MigrationStatus.MISSING_FILE: FixKind.REPORT_ONLY,
}


@dataclass(frozen=True, slots=True)
class FixAction:
    """One planned repair for one migration."""

    name: str
    status: MigrationStatus
    action: FixKind
    table: str | None = None


@dataclass(frozen=True, slots=True)
class FixSummary:
    """Counts of what ``apply_fixes`` changed."""

    deleted: int = 0
    inserted: int = 0
    reported: int = 0
    batch: int | None = None  # batch used for inserts, if any


def plan_fixes(states: Iterable[MigrationState]) -> list[FixAction]:
    """Map classified states to repair actions, skipping consistent ones."""
    actions: list[FixAction] = []
    for state in states:
        kind = _FIX_FOR_STATUS.get(state.status)
        if kind is None:
            continue
        actions.append(FixAction(state.name, state.status, kind, state.table))
    return actions


def apply_fixes(store: BookkeepingStore, actions: Sequence[FixAction]) -> FixSummary:
    """Apply deletes and inserts in one transaction; report-only actions are counted.

    Raises:
        MigrationError: If the ledger update fails. Nothing is committed.
    """
    to_delete = [a.name for a in actions if a.action is FixKind.DELETE_RECORD]
    to_insert = [a.name for a in actions if a.action is FixKind.INSERT_RECORD]
    reported = sum(1 for a in actions if a.action is FixKind.REPORT_ONLY)

    if not to_delete and not to_insert:
        return FixSummary(reported=reported)

    with run_scope("apply_fixes"):
        batch: int | None = None
        with store.transaction() as conn:
            deleted = store.delete(to_delete, conn=conn)
            inserted = 0
            if to_insert:
                batch = store.next_batch(conn=conn)
                inserted = store.insert(to_insert, batch, conn=conn)

        log.info(
            "fixes_applied",
            deleted=deleted,
            inserted=inserted,
            reported=reported,
            batch=batch,
        )
    return FixSummary(deleted=deleted, inserted=inserted, reported=reported, batch=batch)
