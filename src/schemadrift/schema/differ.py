"""Pure structural schema diff.

Compares an *expected* snapshot (what the migrations should produce)
against an *actual* one (what the database holds). No database access,
purely functional.

Difference types:
- missing / extra tables
- missing / extra columns, by name
- type mismatch: same column, different normalized type
- nullable mismatch: same column, different nullability
- default mismatch: same column, different normalized default
- missing / extra indexes and foreign keys, by structural identity
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from typing import TypeVar

import structlog

from schemadrift.schema.models import (
    ColumnDiff,
    ColumnInfo,
    ForeignKeyDiff,
    ForeignKeyInfo,
    IndexDiff,
    IndexInfo,
    Mismatch,
    SchemaDiff,
    SchemaSnapshot,
)
from schemadrift.schema.normalize import normalize_default

log = structlog.get_logger(__name__)

_T = TypeVar("_T", IndexInfo, ForeignKeyInfo)


def diff_schemas(expected: SchemaSnapshot, actual: SchemaSnapshot) -> SchemaDiff:
    """Compute the structural diff between two snapshots.

    Args:
        expected: snapshot the migrations should produce
        actual: snapshot of the live database

    Returns:
        SchemaDiff where ``missing`` means expected-but-absent and
        ``extra`` means present-but-unexpected.
    """
    missing_tables = tuple(sorted(expected.tables - actual.tables))
    extra_tables = tuple(sorted(actual.tables - expected.tables))

    column_diffs: dict[str, ColumnDiff] = {}
    index_diffs: dict[str, IndexDiff] = {}
    fk_diffs: dict[str, ForeignKeyDiff] = {}

    for table in sorted(expected.tables & actual.tables):
        col_diff = _diff_columns(expected.columns_for(table), actual.columns_for(table))
        if not col_diff.is_empty:
            column_diffs[table] = col_diff

        idx_missing, idx_extra = _diff_by_identity(
            expected.indexes_for(table), actual.indexes_for(table)
        )
        if idx_missing or idx_extra:
            index_diffs[table] = IndexDiff(missing=idx_missing, extra=idx_extra)

        fk_missing, fk_extra = _diff_by_identity(
            expected.foreign_keys_for(table), actual.foreign_keys_for(table)
        )
        if fk_missing or fk_extra:
            fk_diffs[table] = ForeignKeyDiff(missing=fk_missing, extra=fk_extra)

    diff = SchemaDiff(
        missing_tables=missing_tables,
        extra_tables=extra_tables,
        column_diffs=column_diffs,
        index_diffs=index_diffs,
        fk_diffs=fk_diffs,
    )
    log.debug(
        "schema_diff_computed",
        missing_tables=len(missing_tables),
        extra_tables=len(extra_tables),
        tables_with_column_diffs=len(column_diffs),
        tables_with_index_diffs=len(index_diffs),
        tables_with_fk_diffs=len(fk_diffs),
    )
    return diff


def has_differences(diff: SchemaDiff) -> bool:
    """True iff any field anywhere in the diff is non-empty."""
    if diff.missing_tables or diff.extra_tables:
        return True
    if any(not d.is_empty for d in diff.column_diffs.values()):
        return True
    if any(not d.is_empty for d in diff.index_diffs.values()):
        return True
    return any(not d.is_empty for d in diff.fk_diffs.values())


def _diff_columns(
    expected_cols: Iterable[ColumnInfo],
    actual_cols: Iterable[ColumnInfo],
) -> ColumnDiff:
    expected = {c.name: c for c in expected_cols}
    actual = {c.name: c for c in actual_cols}

    missing = tuple(name for name in expected if name not in actual)
    extra = tuple(name for name in actual if name not in expected)

    type_mismatches: list[Mismatch] = []
    nullable_mismatches: list[Mismatch] = []
    default_mismatches: list[Mismatch] = []

    for name, exp in expected.items():
        cur = actual.get(name)
        if cur is None:
            continue

        if cur.normalized_type != exp.normalized_type:
            type_mismatches.append(Mismatch(name, cur.raw_type, exp.raw_type))

        if cur.nullable != exp.nullable:
            nullable_mismatches.append(
                Mismatch(name, _nullability(cur.nullable), _nullability(exp.nullable))
            )

        if normalize_default(cur.default) != normalize_default(exp.default):
            default_mismatches.append(Mismatch(name, cur.default, exp.default))

    return ColumnDiff(
        missing=missing,
        extra=extra,
        type_mismatches=tuple(type_mismatches),
        nullable_mismatches=tuple(nullable_mismatches),
        default_mismatches=tuple(default_mismatches),
    )


def _nullability(flag: bool) -> str:
    return "nullable" if flag else "not null"


def _signatures(items: Iterable[_T]) -> dict[Hashable, _T]:
    """Map structural identity -> item. Later duplicates win."""
    return {item.identity: item for item in items}


def _diff_by_identity(
    expected_items: Iterable[_T],
    actual_items: Iterable[_T],
) -> tuple[tuple[_T, ...], tuple[_T, ...]]:
    expected = _signatures(expected_items)
    actual = _signatures(actual_items)
    missing = tuple(item for key, item in expected.items() if key not in actual)
    extra = tuple(item for key, item in actual.items() if key not in expected)
    return missing, extra
