"""Migration fact records and derived analysis results.

``MigrationDefinition`` is produced once per migration by an extractor
(or by ``schemadrift.migrations.loader``) and is read-only afterwards.
Everything else in this module is derived on every analysis run and never
persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class OperationType(Enum):
    """Which schema-management call the migration's forward side makes."""

    CREATE = "create"
    ALTER = "alter"
    DROP = "drop"
    UNKNOWN = "unknown"


class MigrationStatus(Enum):
    """Consistency state of one migration."""

    OK = "ok"  # record + file + schema agree
    BOGUS_RECORD = "bogus_record"  # record + file, schema says it never ran
    MISSING_FILE = "missing_file"  # record + schema evidence, file gone
    ORPHAN_RECORD = "orphan_record"  # record only, no schema evidence
    LOST_RECORD = "lost_record"  # file + schema evidence, no record
    NEW_MIGRATION = "new_migration"  # file only, not yet run


class Applied(Enum):
    """Tri-state answer to "is this migration reflected in the schema?"."""

    TRUE = "true"
    FALSE = "false"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True, slots=True)
class ApplyEvidence:
    """Schema evidence verdict with a human-readable reason."""

    verdict: Applied
    reason: str | None = None

    @classmethod
    def applied(cls, reason: str | None = None) -> ApplyEvidence:
        return cls(Applied.TRUE, reason)

    @classmethod
    def not_applied(cls, reason: str | None = None) -> ApplyEvidence:
        return cls(Applied.FALSE, reason)

    @classmethod
    def indeterminate(cls, reason: str | None = None) -> ApplyEvidence:
        return cls(Applied.INDETERMINATE, reason)


@dataclass(frozen=True, slots=True)
class IndexSpec:
    """An index added by a migration's forward side."""

    type: str  # primary | unique | index | fulltext | spatialIndex
    columns: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ForeignKeySpec:
    """A foreign key added by a migration's forward side.

    ``column`` is None when the extractor saw a constraint it could not
    attribute; such a spec cannot be verified against a schema.
    """

    column: str | None
    references_column: str | None = None
    references_table: str | None = None


@dataclass(frozen=True, slots=True)
class MigrationDefinition:
    """Structured facts about one migration file."""

    name: str
    primary_table: str | None
    operation_type: OperationType = OperationType.UNKNOWN
    touched_tables: frozenset[str] = frozenset()
    added_columns: tuple[str, ...] = ()
    added_column_kinds: Mapping[str, str] = field(default_factory=dict)
    added_indexes: tuple[IndexSpec, ...] = ()
    added_foreign_keys: tuple[ForeignKeySpec, ...] = ()
    has_down: bool = False
    down_is_empty: bool = True
    down_operations: tuple[str, ...] = ()
    has_conditional_logic: bool = False
    has_data_manipulation: bool = False
    is_multi_table: bool = False

    @property
    def has_checkable_evidence(self) -> bool:
        return bool(self.added_columns or self.added_indexes or self.added_foreign_keys)


@dataclass(frozen=True, slots=True)
class MigrationState:
    """Classification of one migration for one analysis run."""

    name: str
    status: MigrationStatus
    definition: MigrationDefinition | None = None
    table: str | None = None
    partial_analysis: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ConsolidationResult:
    """Outcome of consolidating one table's migrations."""

    table: str
    generated_artifact_path: str
    consolidated_names: tuple[str, ...]
    skipped_names: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
