"""Consolidation of redundant per-table migrations.

Replay is a left fold over the ordered definitions of one table:

    state = ReplayState()
    for defn in definitions:
        state = state.apply(defn, mapper)

Each step returns a new ``ReplayState``. A table-level drop resets the
state; a column added by one migration and dropped by a later one cancels
out (net-zero), which is detected through the reverse descriptors of the
dropping migration (``addColumn('x')`` on the down side means the up side
dropped ``x``).

Input order is significant and must be file order.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace

import structlog

from schemadrift.core.errors import ConsolidationError
from schemadrift.core.logging import run_scope
from schemadrift.migrations.generator import MigrationGenerator
from schemadrift.migrations.models import (
    ConsolidationResult,
    ForeignKeySpec,
    IndexSpec,
    MigrationDefinition,
    OperationType,
)
from schemadrift.schema.models import ColumnInfo, ForeignKeyInfo, IndexInfo
from schemadrift.schema.types import TypeMapper

log = structlog.get_logger(__name__)

MIN_DEFINITIONS = 2

_DESCRIPTOR = re.compile(r"^\s*([a-zA-Z]+)\((.*)\)\s*$", re.DOTALL)
_QUOTED_NAME = re.compile(r"""[a-zA-Z]+\(['"]([^'"]+)['"]""")

_IndexKey = tuple[tuple[str, ...], str]
_AUTO_INCREMENT_KINDS = frozenset({"id", "increments", "bigIncrements"})


# =============================================================================
# Candidate selection
# =============================================================================


def skip_reason(defn: MigrationDefinition) -> str | None:
    """First reason a definition cannot be consolidated, or None."""
    if defn.has_conditional_logic:
        return "contains conditional logic"
    if defn.is_multi_table:
        return "touches multiple tables"
    if defn.has_data_manipulation:
        return "contains data manipulation"
    if defn.operation_type is OperationType.UNKNOWN:
        return "unknown operation type"
    return None


def is_consolidatable(defn: MigrationDefinition) -> bool:
    return skip_reason(defn) is None


@dataclass(frozen=True, slots=True)
class Candidate:
    """One table's definitions, split by consolidatability in file order."""

    consolidatable: tuple[MigrationDefinition, ...]
    skipped: tuple[MigrationDefinition, ...] = ()


def _partition(
    definitions: Iterable[MigrationDefinition],
) -> tuple[list[MigrationDefinition], list[MigrationDefinition]]:
    consolidatable: list[MigrationDefinition] = []
    skipped: list[MigrationDefinition] = []
    for defn in definitions:
        (consolidatable if is_consolidatable(defn) else skipped).append(defn)
    return consolidatable, skipped


def find_candidates(
    definitions: Iterable[MigrationDefinition],
    min_definitions: int = MIN_DEFINITIONS,
) -> dict[str, Candidate]:
    """Tables whose migrations can be merged.

    A table qualifies when it has at least ``min_definitions`` definitions
    in total and at least ``min_definitions`` of them are individually
    consolidatable. Definitions without a primary table are ignored.
    """
    min_definitions = max(min_definitions, MIN_DEFINITIONS)

    by_table: dict[str, list[MigrationDefinition]] = defaultdict(list)
    for defn in definitions:
        if defn.primary_table is not None:
            by_table[defn.primary_table].append(defn)

    candidates: dict[str, Candidate] = {}
    for table, defs in by_table.items():
        if len(defs) < min_definitions:
            continue
        consolidatable, skipped = _partition(defs)
        if len(consolidatable) >= min_definitions:
            candidates[table] = Candidate(tuple(consolidatable), tuple(skipped))

    log.debug("consolidation_candidates_found", tables=sorted(candidates))
    return candidates


# =============================================================================
# Replay
# =============================================================================


def descriptor_name(op: str) -> str | None:
    """Argument of a reverse descriptor such as ``addColumn('email')``."""
    if m := _QUOTED_NAME.search(op):
        return m.group(1)
    if m := _DESCRIPTOR.match(op):
        name = m.group(2).strip("'\" ")
        return name or None
    return None


def descriptor_columns(op: str) -> tuple[str, ...]:
    """Columns named by a descriptor, either ``index('a')`` or ``index(['a', 'b'])``."""
    m = _DESCRIPTOR.match(op)
    if m and m.group(2).lstrip().startswith("["):
        body = m.group(2).strip()[1:].split("]", 1)[0]
        return tuple(c for c in (part.strip("'\" ") for part in body.split(",")) if c)
    name = descriptor_name(op)
    return (name,) if name else ()


def _descriptor_verb(op: str) -> str | None:
    m = _DESCRIPTOR.match(op)
    return m.group(1) if m else None


@dataclass(frozen=True, slots=True)
class ReplayResult:
    """Net structure of a replayed table."""

    columns: tuple[ColumnInfo, ...] = ()
    indexes: tuple[IndexInfo, ...] = ()
    foreign_keys: tuple[ForeignKeyInfo, ...] = ()
    has_approximated_types: bool = False


@dataclass(frozen=True, slots=True)
class ReplayState:
    """Running net structure; every transition returns a new state."""

    columns: Mapping[str, ColumnInfo] = field(default_factory=dict)
    indexes: Mapping[_IndexKey, IndexInfo] = field(default_factory=dict)
    foreign_keys: Mapping[str, ForeignKeyInfo] = field(default_factory=dict)
    has_approximated_types: bool = False

    def apply(self, defn: MigrationDefinition, mapper: TypeMapper) -> ReplayState:
        if defn.operation_type is OperationType.DROP:
            # a table drop erases everything before it; the flag survives
            return ReplayState(has_approximated_types=self.has_approximated_types)

        return (
            self._with_columns(defn, mapper)
            ._with_indexes(defn.added_indexes)
            ._with_foreign_keys(defn.added_foreign_keys)
            ._without_reversed(defn.down_operations)
        )

    def result(self) -> ReplayResult:
        return ReplayResult(
            columns=tuple(self.columns.values()),
            indexes=tuple(self.indexes.values()),
            foreign_keys=tuple(self.foreign_keys.values()),
            has_approximated_types=self.has_approximated_types,
        )

    def _with_columns(self, defn: MigrationDefinition, mapper: TypeMapper) -> ReplayState:
        if not defn.added_columns:
            return self
        columns = dict(self.columns)
        approximated = self.has_approximated_types
        for name in defn.added_columns:
            kind = defn.added_column_kinds.get(name)
            sql_type = mapper.from_declaration(kind)
            approximated = approximated or sql_type.approximated
            # overwrite keeps the original position
            columns[name] = ColumnInfo(
                name=name,
                raw_type=sql_type.raw_type,
                type_name=sql_type.type_name,
                nullable=False,
                auto_increment=kind in _AUTO_INCREMENT_KINDS,
            )
        return replace(self, columns=columns, has_approximated_types=approximated)

    def _with_indexes(self, specs: Sequence[IndexSpec]) -> ReplayState:
        if not specs:
            return self
        indexes = dict(self.indexes)
        for spec in specs:
            if not spec.columns:
                continue
            key = (tuple(sorted(spec.columns)), spec.type)
            indexes[key] = IndexInfo(
                columns=tuple(spec.columns),
                unique=spec.type in ("unique", "primary"),
                primary=spec.type == "primary",
            )
        return replace(self, indexes=indexes)

    def _with_foreign_keys(self, specs: Sequence[ForeignKeySpec]) -> ReplayState:
        if not specs:
            return self
        foreign_keys = dict(self.foreign_keys)
        for spec in specs:
            if spec.column is None:
                continue
            foreign_keys[spec.column] = ForeignKeyInfo(
                columns=(spec.column,),
                foreign_table=spec.references_table or "",
                foreign_columns=(spec.references_column or "id",),
            )
        return replace(self, foreign_keys=foreign_keys)

    def _without_reversed(self, down_operations: Sequence[str]) -> ReplayState:
        state = self
        for op in down_operations:
            verb = _descriptor_verb(op)
            if verb in ("addIndex", "index"):
                state = state._without_index(descriptor_columns(op))
                continue

            name = descriptor_name(op)
            if verb is None or name is None:
                continue

            if verb == "addColumn" and name in state.columns:
                columns = {k: v for k, v in state.columns.items() if k != name}
                state = replace(state, columns=columns)
            elif verb == "addForeign" and name in state.foreign_keys:
                foreign_keys = {k: v for k, v in state.foreign_keys.items() if k != name}
                state = replace(state, foreign_keys=foreign_keys)
            # dropColumn and everything else: the up side added it, already applied
        return state

    def _without_index(self, columns: tuple[str, ...]) -> ReplayState:
        if not columns:
            return self
        target = sorted(columns)
        # a lone argument may also be an explicit index name
        name = columns[0] if len(columns) == 1 else None
        indexes = {
            k: v
            for k, v in self.indexes.items()
            if sorted(v.columns) != target and (name is None or v.name != name)
        }
        return replace(self, indexes=indexes)


def replay(
    definitions: Iterable[MigrationDefinition],
    mapper: TypeMapper | None = None,
) -> ReplayResult:
    """Fold ordered definitions into the net columns, indexes and foreign keys."""
    mapper = mapper or TypeMapper()
    state = ReplayState()
    for defn in definitions:
        state = state.apply(defn, mapper)
    return state.result()


# =============================================================================
# Consolidation
# =============================================================================


def approximated_types_warning(table: str) -> str:
    return (
        f"Column types for '{table}' are approximated as varchar(255). "
        "Run a schema comparison after consolidation to verify."
    )


def unresolved_foreign_keys_warning(table: str, columns: Sequence[str]) -> str:
    return (
        f"Foreign keys on '{table}' ({', '.join(columns)}) have no referenced table. "
        "Add the missing .on(...) call to the generated artifact."
    )


class Consolidator:
    """Merges one table's migrations into a single generated artifact."""

    def __init__(
        self,
        generator: MigrationGenerator,
        type_mapper: TypeMapper | None = None,
    ) -> None:
        self.generator = generator
        self.type_mapper = type_mapper or TypeMapper()

    def consolidate(
        self,
        definitions: Sequence[MigrationDefinition],
        table: str,
    ) -> ConsolidationResult:
        """Replay the consolidatable definitions and write one artifact.

        Args:
            definitions: One table's definitions in file order.
            table: The table they create or alter.

        Returns:
            ConsolidationResult naming the consolidated and skipped migrations.

        Raises:
            ConsolidationError: If ``table`` is empty or nothing is consolidatable.
        """
        if not table:
            raise ConsolidationError.missing_table()

        consolidatable, skipped = _partition(definitions)
        warnings = [f"Skipped '{d.name}': {skip_reason(d)}" for d in skipped]
        if not consolidatable:
            raise ConsolidationError.nothing_to_consolidate(table)

        with run_scope("consolidate"):
            result = replay(consolidatable, self.type_mapper)
            path = self.generator.generate_create_table(
                table,
                result.columns,
                result.indexes,
                result.foreign_keys,
                description=f"consolidate_{table}_table",
            )

            if result.has_approximated_types:
                warnings.append(approximated_types_warning(table))
                log.warning("consolidation_types_approximated", table=table)

            unresolved = [fk.columns[0] for fk in result.foreign_keys if not fk.foreign_table]
            if unresolved:
                warnings.append(unresolved_foreign_keys_warning(table, unresolved))
                log.warning("consolidation_foreign_tables_unknown", table=table, columns=unresolved)

            log.info(
                "consolidation_replayed",
                table=table,
                consolidated=len(consolidatable),
                skipped=len(skipped),
                columns=len(result.columns),
                indexes=len(result.indexes),
                foreign_keys=len(result.foreign_keys),
            )

        return ConsolidationResult(
            table=table,
            generated_artifact_path=path,
            consolidated_names=tuple(d.name for d in consolidatable),
            skipped_names=tuple(d.name for d in skipped),
            warnings=tuple(warnings),
        )
