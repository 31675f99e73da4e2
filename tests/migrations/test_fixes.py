"""Tests for repair planning and application."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine

from schemadrift.migrations.bookkeeping import BookkeepingStore
from schemadrift.migrations.fixes import (
    FixAction,
    FixKind,
    FixSummary,
    apply_fixes,
    plan_fixes,
)
from schemadrift.migrations.models import MigrationState, MigrationStatus


@pytest.fixture
def store(tmp_path: Path) -> BookkeepingStore:
    store = BookkeepingStore(create_engine(f"sqlite:///{tmp_path / 'ledger.db'}"))
    store.ensure_table()
    return store


def _states() -> list[MigrationState]:
    return [
        MigrationState("0001_ok", MigrationStatus.OK, table="users"),
        MigrationState("0002_bogus", MigrationStatus.BOGUS_RECORD, table="posts"),
        MigrationState("0003_orphan", MigrationStatus.ORPHAN_RECORD),
        MigrationState("0004_lost", MigrationStatus.LOST_RECORD, table="tags"),
        MigrationState("0005_missing", MigrationStatus.MISSING_FILE, table="users"),
        MigrationState("0006_new", MigrationStatus.NEW_MIGRATION, table="comments"),
    ]


class TestPlanFixes:
    def test_maps_statuses_to_actions(self) -> None:
        actions = plan_fixes(_states())

        assert actions == [
            FixAction("0002_bogus", MigrationStatus.BOGUS_RECORD, FixKind.DELETE_RECORD, "posts"),
            FixAction("0003_orphan", MigrationStatus.ORPHAN_RECORD, FixKind.DELETE_RECORD),
            FixAction("0004_lost", MigrationStatus.LOST_RECORD, FixKind.INSERT_RECORD, "tags"),
            FixAction(
                "0005_missing", MigrationStatus.MISSING_FILE, FixKind.REPORT_ONLY, "users"
            ),
        ]

    def test_consistent_states_need_nothing(self) -> None:
        states = [
            MigrationState("a", MigrationStatus.OK),
            MigrationState("b", MigrationStatus.NEW_MIGRATION),
        ]
        assert plan_fixes(states) == []


class TestApplyFixes:
    """Ledger mutations in one transaction."""

    def test_applies_deletes_and_inserts(self, store: BookkeepingStore) -> None:
        # given: a ledger holding good, bogus, orphan and missing-file records
        store.insert(["0001_ok", "0002_bogus", "0003_orphan", "0005_missing"], batch=1)

        # when
        summary = apply_fixes(store, plan_fixes(_states()))

        # then
        assert summary == FixSummary(deleted=2, inserted=1, reported=1, batch=2)
        assert store.names() == ["0001_ok", "0005_missing", "0004_lost"]

    def test_deletes_only_do_not_allocate_batch(self, store: BookkeepingStore) -> None:
        store.insert(["0003_orphan"], batch=1)
        actions = [FixAction("0003_orphan", MigrationStatus.ORPHAN_RECORD, FixKind.DELETE_RECORD)]

        summary = apply_fixes(store, actions)

        assert summary == FixSummary(deleted=1)
        assert store.names() == []

    def test_report_only_leaves_ledger_untouched(self, store: BookkeepingStore) -> None:
        store.insert(["0005_missing"], batch=1)
        actions = [FixAction("0005_missing", MigrationStatus.MISSING_FILE, FixKind.REPORT_ONLY)]

        summary = apply_fixes(store, actions)

        assert summary == FixSummary(reported=1)
        assert store.names() == ["0005_missing"]

    def test_no_actions(self, store: BookkeepingStore) -> None:
        assert apply_fixes(store, []) == FixSummary()
