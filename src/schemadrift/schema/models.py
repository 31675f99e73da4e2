"""Data models for schema snapshots and schema diffs.

All models are frozen dataclasses with no database coupling. A snapshot is
captured once (by the introspector, by replay, or from a fixture) and read
many times by the differ, the classifier and the dependency resolver.

Identity rules:
- columns are matched by name (unique within a table)
- indexes are matched by ``(sorted column set, primary|unique|index)``
- foreign keys are matched by ``(sorted columns, foreign table, sorted
  foreign columns)``

Index and foreign-key names never take part in identity since generated
and hand-written names legitimately differ.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from schemadrift.core.errors import SchemaError
from schemadrift.schema.normalize import normalize_type

_IndexKey = tuple[tuple[str, ...], str]
_ForeignKeyKey = tuple[tuple[str, ...], str, tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """One column of one table."""

    name: str
    raw_type: str
    type_name: str | None = None
    nullable: bool = False
    default: Any = None
    auto_increment: bool = False

    @property
    def normalized_type(self) -> str:
        return normalize_type(self.raw_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.raw_type,
            "type_name": self.type_name,
            "nullable": self.nullable,
            "default": self.default,
            "auto_increment": self.auto_increment,
        }


@dataclass(frozen=True, slots=True)
class IndexInfo:
    """One index of one table."""

    columns: tuple[str, ...]
    unique: bool = False
    primary: bool = False
    name: str | None = None

    @property
    def kind(self) -> str:
        if self.primary:
            return "primary"
        if self.unique:
            return "unique"
        return "index"

    @property
    def identity(self) -> _IndexKey:
        return tuple(sorted(self.columns)), self.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "unique": self.unique,
            "primary": self.primary,
        }


@dataclass(frozen=True, slots=True)
class ForeignKeyInfo:
    """One foreign-key constraint of one table."""

    columns: tuple[str, ...]
    foreign_table: str
    foreign_columns: tuple[str, ...] = ("id",)
    on_update: str = "NO ACTION"
    on_delete: str = "NO ACTION"
    name: str | None = None

    @property
    def identity(self) -> _ForeignKeyKey:
        return tuple(sorted(self.columns)), self.foreign_table, tuple(sorted(self.foreign_columns))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "foreign_table": self.foreign_table,
            "foreign_columns": list(self.foreign_columns),
            "on_update": self.on_update,
            "on_delete": self.on_delete,
        }


@dataclass(frozen=True, slots=True)
class SchemaSnapshot:
    """Point-in-time structure of one connection.

    The bookkeeping table is never part of a snapshot. Tables listed in
    ``tables`` may have no entry in the per-table maps; lookups default to
    empty tuples.
    """

    tables: frozenset[str] = frozenset()
    columns: Mapping[str, tuple[ColumnInfo, ...]] = field(default_factory=dict)
    indexes: Mapping[str, tuple[IndexInfo, ...]] = field(default_factory=dict)
    foreign_keys: Mapping[str, tuple[ForeignKeyInfo, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for table, cols in self.columns.items():
            seen: set[str] = set()
            for col in cols:
                if col.name in seen:
                    raise SchemaError.duplicate_column(table, col.name)
                seen.add(col.name)

    @classmethod
    def build(
        cls,
        tables: Iterable[str],
        columns: Mapping[str, Iterable[ColumnInfo]] | None = None,
        indexes: Mapping[str, Iterable[IndexInfo]] | None = None,
        foreign_keys: Mapping[str, Iterable[ForeignKeyInfo]] | None = None,
    ) -> SchemaSnapshot:
        """Build a snapshot from any iterables, freezing them into tuples."""
        return cls(
            tables=frozenset(tables),
            columns={t: tuple(c) for t, c in (columns or {}).items()},
            indexes={t: tuple(i) for t, i in (indexes or {}).items()},
            foreign_keys={t: tuple(f) for t, f in (foreign_keys or {}).items()},
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaSnapshot:
        """Build a snapshot from the plain mapping shape used in reports and fixtures.

        Shape::

            {"tables": [...],
             "columns": {table: [{"name", "type", "nullable", "default", ...}]},
             "indexes": {table: [{"name", "columns", "unique", "primary"}]},
             "foreign_keys": {table: [{"columns", "foreign_table", ...}]}}
        """
        columns = {
            table: [
                ColumnInfo(
                    name=str(c["name"]),
                    raw_type=str(c.get("type", "")),
                    type_name=c.get("type_name"),
                    nullable=bool(c.get("nullable", False)),
                    default=c.get("default"),
                    auto_increment=bool(c.get("auto_increment", False)),
                )
                for c in cols
            ]
            for table, cols in (data.get("columns") or {}).items()
        }
        indexes = {
            table: [
                IndexInfo(
                    columns=tuple(i.get("columns") or ()),
                    unique=bool(i.get("unique", False)),
                    primary=bool(i.get("primary", False)),
                    name=i.get("name"),
                )
                for i in idxs
            ]
            for table, idxs in (data.get("indexes") or {}).items()
        }
        foreign_keys = {
            table: [
                ForeignKeyInfo(
                    columns=tuple(f.get("columns") or ()),
                    foreign_table=str(f.get("foreign_table") or ""),
                    foreign_columns=tuple(f.get("foreign_columns") or ()),
                    on_update=str(f.get("on_update") or "NO ACTION"),
                    on_delete=str(f.get("on_delete") or "NO ACTION"),
                    name=f.get("name"),
                )
                for f in fks
            ]
            for table, fks in (data.get("foreign_keys") or {}).items()
        }
        return cls.build(data.get("tables") or (), columns, indexes, foreign_keys)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": sorted(self.tables),
            "columns": {t: [c.to_dict() for c in cols] for t, cols in self.columns.items()},
            "indexes": {t: [i.to_dict() for i in idxs] for t, idxs in self.indexes.items()},
            "foreign_keys": {
                t: [f.to_dict() for f in fks] for t, fks in self.foreign_keys.items()
            },
        }

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def columns_for(self, table: str) -> tuple[ColumnInfo, ...]:
        return tuple(self.columns.get(table, ()))

    def column_names(self, table: str) -> list[str]:
        return [c.name for c in self.columns.get(table, ())]

    def indexes_for(self, table: str) -> tuple[IndexInfo, ...]:
        return tuple(self.indexes.get(table, ()))

    def foreign_keys_for(self, table: str) -> tuple[ForeignKeyInfo, ...]:
        return tuple(self.foreign_keys.get(table, ()))


# =============================================================================
# Diff results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Mismatch:
    """A column present on both sides whose attribute differs."""

    column: str
    current: Any
    expected: Any


@dataclass(frozen=True, slots=True)
class ColumnDiff:
    """Column-level differences for one table."""

    missing: tuple[str, ...] = ()
    extra: tuple[str, ...] = ()
    type_mismatches: tuple[Mismatch, ...] = ()
    nullable_mismatches: tuple[Mismatch, ...] = ()
    default_mismatches: tuple[Mismatch, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.missing
            or self.extra
            or self.type_mismatches
            or self.nullable_mismatches
            or self.default_mismatches
        )


@dataclass(frozen=True, slots=True)
class IndexDiff:
    missing: tuple[IndexInfo, ...] = ()
    extra: tuple[IndexInfo, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.missing or self.extra)


@dataclass(frozen=True, slots=True)
class ForeignKeyDiff:
    missing: tuple[ForeignKeyInfo, ...] = ()
    extra: tuple[ForeignKeyInfo, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.missing or self.extra)


@dataclass(frozen=True, slots=True)
class SchemaDiff:
    """Result of comparing an expected snapshot against an actual one.

    ``missing_*`` means present in expected, absent in actual. A table has
    an entry in a per-table map only when that entry is non-empty.
    """

    missing_tables: tuple[str, ...] = ()
    extra_tables: tuple[str, ...] = ()
    column_diffs: Mapping[str, ColumnDiff] = field(default_factory=dict)
    index_diffs: Mapping[str, IndexDiff] = field(default_factory=dict)
    fk_diffs: Mapping[str, ForeignKeyDiff] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        def _mm(items: tuple[Mismatch, ...]) -> list[dict[str, Any]]:
            return [
                {"column": m.column, "current": m.current, "expected": m.expected}
                for m in items
            ]

        return {
            "missing_tables": list(self.missing_tables),
            "extra_tables": list(self.extra_tables),
            "column_diffs": {
                table: {
                    "missing": list(d.missing),
                    "extra": list(d.extra),
                    "type_mismatches": _mm(d.type_mismatches),
                    "nullable_mismatches": _mm(d.nullable_mismatches),
                    "default_mismatches": _mm(d.default_mismatches),
                }
                for table, d in self.column_diffs.items()
            },
            "index_diffs": {
                table: {
                    "missing": [i.to_dict() for i in d.missing],
                    "extra": [i.to_dict() for i in d.extra],
                }
                for table, d in self.index_diffs.items()
            },
            "fk_diffs": {
                table: {
                    "missing": [f.to_dict() for f in d.missing],
                    "extra": [f.to_dict() for f in d.extra],
                }
                for table, d in self.fk_diffs.items()
            },
        }
