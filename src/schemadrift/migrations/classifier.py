"""Migration state classification.

Cross-references three independent evidence sources:

- migration files on disk (and the definitions extracted from them)
- bookkeeping records
- a live schema snapshot

and assigns one of six ``MigrationStatus`` values per migration name.

| record | file | schema evidence          | status        |
|--------|------|--------------------------|---------------|
| yes    | yes  | extraction failed        | OK (warn)     |
| yes    | yes  | TRUE / INDETERMINATE     | OK            |
| yes    | yes  | FALSE                    | BOGUS_RECORD  |
| yes    | no   | inferred table exists    | MISSING_FILE  |
| yes    | no   | otherwise                | ORPHAN_RECORD |
| no     | yes  | extraction failed        | NEW_MIGRATION |
| no     | yes  | TRUE                     | LOST_RECORD   |
| no     | yes  | FALSE / INDETERMINATE    | NEW_MIGRATION |

Indeterminate evidence never invents state: an existing record is trusted
and a missing one is left for the migration runner.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

import structlog

from schemadrift.core.logging import run_scope
from schemadrift.migrations.inference import (
    DEFAULT_MATCHERS,
    TableNameMatcher,
    infer_table_name,
)
from schemadrift.migrations.loader import DEFAULT_PATTERN, load_definitions
from schemadrift.migrations.models import (
    Applied,
    ApplyEvidence,
    ForeignKeySpec,
    MigrationDefinition,
    MigrationState,
    MigrationStatus,
    OperationType,
)
from schemadrift.schema.models import ForeignKeyInfo, SchemaSnapshot

log = structlog.get_logger(__name__)

PARSE_FAILURE_WARNING = "Could not parse migration file"
DATA_MANIPULATION_WARNING = "Contains data manipulation — schema check is partial"
CONDITIONAL_LOGIC_WARNING = "Contains conditional logic — schema check is partial"


def is_applied_to_schema(defn: MigrationDefinition, schema: SchemaSnapshot) -> ApplyEvidence:
    """Decide whether a definition's forward side is reflected in the schema."""
    table = defn.primary_table
    if table is None:
        return ApplyEvidence.indeterminate("no primary table")

    exists = schema.has_table(table)

    if defn.operation_type is OperationType.CREATE:
        if exists:
            return ApplyEvidence.applied(f"table '{table}' exists")
        return ApplyEvidence.not_applied(f"table '{table}' is absent")

    if defn.operation_type is OperationType.ALTER:
        return _alter_evidence(defn, table, exists, schema)

    if defn.operation_type is OperationType.DROP:
        return _drop_evidence(defn, table, exists, schema)

    return ApplyEvidence.indeterminate("unknown operation type")


def _alter_evidence(
    defn: MigrationDefinition,
    table: str,
    exists: bool,
    schema: SchemaSnapshot,
) -> ApplyEvidence:
    if not exists:
        return ApplyEvidence.not_applied(f"table '{table}' is absent")

    if not defn.has_checkable_evidence:
        return ApplyEvidence.indeterminate("no added columns, indexes or foreign keys")

    present = set(schema.column_names(table))
    for column in defn.added_columns:
        if column not in present:
            return ApplyEvidence.not_applied(f"column '{column}' is absent")

    index_sets = [sorted(idx.columns) for idx in schema.indexes_for(table)]
    for index in defn.added_indexes:
        if index.columns and sorted(index.columns) not in index_sets:
            return ApplyEvidence.not_applied(f"index on {list(index.columns)} is absent")

    schema_fks = schema.foreign_keys_for(table)
    for fk in defn.added_foreign_keys:
        if not _foreign_key_present(fk, schema_fks):
            return ApplyEvidence.not_applied(f"foreign key on '{fk.column}' is absent")

    return ApplyEvidence.applied("all added structure present")


def _drop_evidence(
    defn: MigrationDefinition,
    table: str,
    exists: bool,
    schema: SchemaSnapshot,
) -> ApplyEvidence:
    if not defn.added_columns:
        # whole-table drop
        if exists:
            return ApplyEvidence.not_applied(f"table '{table}' still exists")
        return ApplyEvidence.applied(f"table '{table}' is absent")

    if not exists:
        return ApplyEvidence.applied(f"table '{table}' is absent")

    present = set(schema.column_names(table))
    remaining = [c for c in defn.added_columns if c in present]
    if remaining:
        return ApplyEvidence.not_applied(f"dropped columns still present: {remaining}")
    return ApplyEvidence.applied("dropped columns are absent")


def _foreign_key_present(fk: ForeignKeySpec, schema_fks: Iterable[ForeignKeyInfo]) -> bool:
    if fk.column is None:
        # unattributed constraint; nothing to verify
        return True

    for candidate in schema_fks:
        if fk.column not in candidate.columns:
            continue
        if fk.references_table is not None and candidate.foreign_table != fk.references_table:
            continue
        if (
            fk.references_column is not None
            and fk.references_column not in candidate.foreign_columns
        ):
            continue
        return True

    return False


class MigrationStateClassifier:
    """Assigns a ``MigrationStatus`` to every known migration name."""

    def __init__(self, matchers: Sequence[TableNameMatcher] = DEFAULT_MATCHERS) -> None:
        self.matchers = tuple(matchers)

    def classify(
        self,
        file_names: Iterable[str],
        record_names: Iterable[str],
        definitions: Mapping[str, MigrationDefinition | None],
        schema: SchemaSnapshot,
    ) -> list[MigrationState]:
        """Classify every name present in either the file set or the record set.

        Records are reported first, then files without a record, each in
        sorted order. A file missing from ``definitions`` counts as an
        extraction failure.

        Returns:
            One MigrationState per distinct name.
        """
        with run_scope("classify"):
            files = set(file_names)
            records = set(record_names)
            states: list[MigrationState] = []

            for name in sorted(records):
                if name in files:
                    state = self._classify_record_and_file(name, definitions.get(name), schema)
                else:
                    state = self._classify_record_only(name, schema)
                states.append(state)

            for name in sorted(files - records):
                states.append(self._classify_file_only(name, definitions.get(name), schema))

            for state in states:
                log.debug(
                    "migration_classified",
                    migration=state.name,
                    status=state.status.value,
                    table=state.table,
                    partial=state.partial_analysis,
                )
            return states

    def analyze(
        self,
        migrations_dir: Path,
        record_names: Iterable[str],
        schema: SchemaSnapshot,
        pattern: str = DEFAULT_PATTERN,
    ) -> list[MigrationState]:
        """Load fact records from a directory and classify them against records and schema."""
        with run_scope("analyze"):
            definitions = load_definitions(migrations_dir, pattern)
            return self.classify(definitions.keys(), record_names, definitions, schema)

    def _classify_record_and_file(
        self,
        name: str,
        defn: MigrationDefinition | None,
        schema: SchemaSnapshot,
    ) -> MigrationState:
        if defn is None:
            return MigrationState(
                name=name,
                status=MigrationStatus.OK,
                warnings=(PARSE_FAILURE_WARNING,),
            )

        evidence = is_applied_to_schema(defn, schema)
        partial, warnings = _confidence(defn)
        status = (
            MigrationStatus.BOGUS_RECORD
            if evidence.verdict is Applied.FALSE
            else MigrationStatus.OK
        )
        return MigrationState(
            name=name,
            status=status,
            definition=defn,
            table=defn.primary_table,
            partial_analysis=partial,
            warnings=warnings,
        )

    def _classify_record_only(self, name: str, schema: SchemaSnapshot) -> MigrationState:
        table = infer_table_name(name, self.matchers)
        if table is not None and schema.has_table(table):
            status = MigrationStatus.MISSING_FILE
        else:
            status = MigrationStatus.ORPHAN_RECORD
        return MigrationState(name=name, status=status, table=table)

    def _classify_file_only(
        self,
        name: str,
        defn: MigrationDefinition | None,
        schema: SchemaSnapshot,
    ) -> MigrationState:
        if defn is None:
            return MigrationState(
                name=name,
                status=MigrationStatus.NEW_MIGRATION,
                warnings=(PARSE_FAILURE_WARNING,),
            )

        evidence = is_applied_to_schema(defn, schema)
        partial, warnings = _confidence(defn)
        status = (
            MigrationStatus.LOST_RECORD
            if evidence.verdict is Applied.TRUE
            else MigrationStatus.NEW_MIGRATION
        )
        return MigrationState(
            name=name,
            status=status,
            definition=defn,
            table=defn.primary_table,
            partial_analysis=partial,
            warnings=warnings,
        )


def _confidence(defn: MigrationDefinition) -> tuple[bool, tuple[str, ...]]:
    """Partial-analysis flag and warnings; never affects the status itself."""
    warnings: list[str] = []
    if defn.has_data_manipulation:
        warnings.append(DATA_MANIPULATION_WARNING)
    if defn.has_conditional_logic:
        warnings.append(CONDITIONAL_LOGIC_WARNING)
    return bool(warnings), tuple(warnings)
