"""Live schema capture through the SQLAlchemy inspector.

Produces a ``SchemaSnapshot`` for any SQLAlchemy engine or connection. The
bookkeeping table is excluded so a snapshot only ever describes user tables.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import inspect
from sqlalchemy.exc import CompileError

from schemadrift.schema.models import ColumnInfo, ForeignKeyInfo, IndexInfo, SchemaSnapshot

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine
    from sqlalchemy.engine.reflection import Inspector

log = structlog.get_logger(__name__)


def introspect_schema(
    bind: Engine | Connection,
    bookkeeping_table: str = "migrations",
    schema: str | None = None,
) -> SchemaSnapshot:
    """Capture tables, columns, indexes and foreign keys.

    Args:
        bind: engine or connection to inspect
        bookkeeping_table: ledger table to leave out of the snapshot
        schema: optional database schema name (driver default when None)
    """
    inspector: Inspector = inspect(bind)
    tables = sorted(t for t in inspector.get_table_names(schema=schema) if t != bookkeeping_table)

    columns: dict[str, list[ColumnInfo]] = {}
    indexes: dict[str, list[IndexInfo]] = {}
    foreign_keys: dict[str, list[ForeignKeyInfo]] = {}

    for table in tables:
        pk = inspector.get_pk_constraint(table, schema=schema)
        pk_columns = tuple(pk.get("constrained_columns") or ())

        columns[table] = [
            _column_info(col, pk_columns) for col in inspector.get_columns(table, schema=schema)
        ]

        table_indexes = [
            IndexInfo(
                columns=tuple(c for c in idx.get("column_names") or () if c is not None),
                unique=bool(idx.get("unique", False)),
                name=idx.get("name"),
            )
            for idx in inspector.get_indexes(table, schema=schema)
        ]
        # SQLite reports UNIQUE constraints only here; other dialects repeat them as indexes
        known = {idx.identity for idx in table_indexes}
        for uc in inspector.get_unique_constraints(table, schema=schema):
            unique = IndexInfo(
                columns=tuple(uc.get("column_names") or ()), unique=True, name=uc.get("name")
            )
            if unique.identity not in known:
                known.add(unique.identity)
                table_indexes.append(unique)
        if pk_columns:
            table_indexes.insert(
                0,
                IndexInfo(columns=pk_columns, unique=True, primary=True, name=pk.get("name")),
            )
        indexes[table] = table_indexes

        foreign_keys[table] = [
            _foreign_key_info(fk) for fk in inspector.get_foreign_keys(table, schema=schema)
        ]

    log.debug("schema_introspected", tables=len(tables), excluded=bookkeeping_table)
    return SchemaSnapshot.build(tables, columns, indexes, foreign_keys)


def _column_info(col: dict[str, Any], pk_columns: tuple[str, ...]) -> ColumnInfo:
    sql_type = col["type"]
    try:
        raw_type = str(sql_type.compile())
    except CompileError:
        # dialect-specific types without a generic compiler
        raw_type = type(sql_type).__name__.upper()

    type_name = raw_type.split("(", 1)[0].strip().lower()

    autoincrement = col.get("autoincrement")
    is_auto = autoincrement is True or (
        autoincrement in (None, "auto")
        and pk_columns == (col["name"],)
        and type_name in ("integer", "int", "bigint", "smallint")
    )

    return ColumnInfo(
        name=col["name"],
        raw_type=raw_type,
        type_name=type_name,
        nullable=bool(col.get("nullable", True)),
        default=col.get("default"),
        auto_increment=is_auto,
    )


def _foreign_key_info(fk: dict[str, Any]) -> ForeignKeyInfo:
    options = fk.get("options") or {}
    return ForeignKeyInfo(
        columns=tuple(fk.get("constrained_columns") or ()),
        foreign_table=fk.get("referred_table") or "",
        foreign_columns=tuple(fk.get("referred_columns") or ()),
        on_update=str(options.get("onupdate") or "NO ACTION").upper(),
        on_delete=str(options.get("ondelete") or "NO ACTION").upper(),
        name=fk.get("name"),
    )
