"""Rollback-safety and hygiene checks over migration definitions.

Per-migration checks look at the reverse side: a missing or empty down
section, foreign keys or indexes an alter adds without the down side
dropping them, and conditional or data-manipulating bodies. The
cross-migration check flags tables touched by enough migrations to be
worth consolidating.

Checks read only ``MigrationDefinition`` facts and never touch a database.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

import structlog

from schemadrift.core.logging import run_scope
from schemadrift.migrations.models import MigrationDefinition, OperationType

log = structlog.get_logger(__name__)

REDUNDANT_THRESHOLD = 3

_FOREIGN_DROPS = ("dropForeign", "dropConstrainedForeignId")
_INDEX_DROPS = ("dropIndex", "dropUnique", "dropPrimary", "dropSpatialIndex", "dropFullText")
_TABLE_DROPS = ("drop(", "dropIfExists(", "Schema::drop")


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class IssueType(Enum):
    MISSING_DOWN = "missing_down"
    EMPTY_DOWN = "empty_down"
    MISSING_FK_DROP = "missing_fk_drop"
    MISSING_INDEX_DROP = "missing_index_drop"
    CONDITIONAL_LOGIC = "conditional_logic"
    DATA_MANIPULATION = "data_manipulation"
    REDUNDANT_MIGRATIONS = "redundant_migrations"


@dataclass(frozen=True, slots=True)
class QualityIssue:
    """One finding. ``migration`` lists every involved name for cross-migration issues."""

    type: IssueType
    severity: Severity
    message: str
    migration: str


def check_down(defn: MigrationDefinition) -> list[QualityIssue]:
    if not defn.has_down:
        return [
            QualityIssue(
                IssueType.MISSING_DOWN,
                Severity.WARNING,
                "Migration has no down section; rollback will fail.",
                defn.name,
            )
        ]
    if defn.down_is_empty:
        return [
            QualityIssue(
                IssueType.EMPTY_DOWN,
                Severity.WARNING,
                "Migration has an empty down section; rollback will be a no-op.",
                defn.name,
            )
        ]
    return []


def check_foreign_key_drops(defn: MigrationDefinition) -> list[QualityIssue]:
    """Foreign keys an alter adds must be dropped again on rollback.

    Create migrations are exempt: dropping the table drops its constraints.
    """
    if not _reverse_side_checkable(defn, defn.added_foreign_keys):
        return []
    if _down_starts_with(defn, _FOREIGN_DROPS) or _down_drops_table(defn):
        return []
    return [
        QualityIssue(
            IssueType.MISSING_FK_DROP,
            Severity.ERROR,
            "Foreign keys added on the up side are not dropped on the down side; "
            "rollback may fail with a constraint violation.",
            defn.name,
        )
    ]


def check_index_drops(defn: MigrationDefinition) -> list[QualityIssue]:
    if not _reverse_side_checkable(defn, defn.added_indexes):
        return []
    if _down_starts_with(defn, _INDEX_DROPS) or _down_drops_table(defn):
        return []
    return [
        QualityIssue(
            IssueType.MISSING_INDEX_DROP,
            Severity.WARNING,
            "Indexes added on the up side are not explicitly dropped on the down side.",
            defn.name,
        )
    ]


def check_conditional_logic(defn: MigrationDefinition) -> list[QualityIssue]:
    if not defn.has_conditional_logic:
        return []
    return [
        QualityIssue(
            IssueType.CONDITIONAL_LOGIC,
            Severity.INFO,
            "Migration contains conditional logic and may behave differently "
            "across environments.",
            defn.name,
        )
    ]


def check_data_manipulation(defn: MigrationDefinition) -> list[QualityIssue]:
    if not defn.has_data_manipulation:
        return []
    return [
        QualityIssue(
            IssueType.DATA_MANIPULATION,
            Severity.INFO,
            "Migration manipulates data and cannot be safely consolidated.",
            defn.name,
        )
    ]


def detect_redundant_migrations(
    definitions: Iterable[MigrationDefinition],
    threshold: int = REDUNDANT_THRESHOLD,
) -> list[QualityIssue]:
    """Tables with at least ``threshold`` migrations, in first-seen order."""
    by_table: dict[str, list[str]] = defaultdict(list)
    for defn in definitions:
        if defn.primary_table is not None:
            by_table[defn.primary_table].append(defn.name)

    return [
        QualityIssue(
            IssueType.REDUNDANT_MIGRATIONS,
            Severity.INFO,
            f"Table '{table}' has {len(names)} migrations; consider consolidating.",
            ", ".join(names),
        )
        for table, names in by_table.items()
        if len(names) >= threshold
    ]


def analyze_definition(defn: MigrationDefinition) -> list[QualityIssue]:
    """All per-migration issues for one definition, in check order."""
    return [
        *check_down(defn),
        *check_foreign_key_drops(defn),
        *check_index_drops(defn),
        *check_conditional_logic(defn),
        *check_data_manipulation(defn),
    ]


def analyze_definitions(
    definitions: Sequence[MigrationDefinition],
    threshold: int = REDUNDANT_THRESHOLD,
) -> list[QualityIssue]:
    """Per-migration issues in input order, then cross-migration issues."""
    with run_scope("quality"):
        issues = [issue for defn in definitions for issue in analyze_definition(defn)]
        issues.extend(detect_redundant_migrations(definitions, threshold))

        log.info(
            "quality_checked",
            migrations=len(definitions),
            errors=sum(1 for i in issues if i.severity is Severity.ERROR),
            warnings=sum(1 for i in issues if i.severity is Severity.WARNING),
            infos=sum(1 for i in issues if i.severity is Severity.INFO),
        )
    return issues


def _reverse_side_checkable(defn: MigrationDefinition, added: Sequence[object]) -> bool:
    return bool(added) and defn.has_down and defn.operation_type is not OperationType.CREATE


def _down_starts_with(defn: MigrationDefinition, prefixes: tuple[str, ...]) -> bool:
    return any(op.lstrip().startswith(prefixes) for op in defn.down_operations)


def _down_drops_table(defn: MigrationDefinition) -> bool:
    return _down_starts_with(defn, _TABLE_DROPS)
