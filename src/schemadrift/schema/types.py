"""Bidirectional mapping between SQL column metadata and column declarations.

Forward (``to_declaration``): a captured column such as
``ColumnInfo(name="title", raw_type="varchar(100)")`` becomes the fluent
declaration ``string('title', 100)``.

Reverse (``from_declaration``): a declaration-kind tag such as ``string`` or
``foreignId`` maps back to a raw SQL type. The reverse table is lossy (it
knows the tag, not its arguments), which is why replayed types may be
flagged as approximated.

Neither direction raises on unknown input: unresolved types fall back to a
raw ``addColumn`` declaration, unknown tags to ``varchar(255)``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from schemadrift.schema.models import ColumnInfo, ForeignKeyInfo, IndexInfo


@dataclass(frozen=True, slots=True)
class SqlType:
    """Raw SQL type resolved from a declaration tag."""

    raw_type: str
    type_name: str
    approximated: bool = False


@dataclass(frozen=True, slots=True)
class ColumnDeclaration:
    """A fluent column declaration, e.g. ``string('email').nullable()``."""

    kind: str
    name: str
    args: tuple[str, ...] = ()
    nullable: bool = False
    default: str | None = None  # already formatted
    unresolved: bool = False

    def render(self) -> str:
        if self.unresolved:
            call = f"{self.kind}({self.args[0]}, {_quote(self.name)})"
        elif self.kind == "id" and self.name == "id":
            call = "id()"
        else:
            call = f"{self.kind}({', '.join((_quote(self.name), *self.args))})"

        if self.nullable:
            call += ".nullable()"
        if self.default is not None:
            call += f".default({self.default})"
        return call


# Declaration tag -> (raw SQL type, type name)
DECLARATION_TO_SQL: dict[str, tuple[str, str]] = {
    "id": ("bigint", "bigint"),
    "increments": ("integer", "integer"),
    "bigIncrements": ("bigint", "bigint"),
    "uuid": ("char(36)", "uuid"),
    "ulid": ("char(26)", "ulid"),
    "string": ("varchar(255)", "varchar"),
    "text": ("text", "text"),
    "mediumText": ("mediumtext", "mediumtext"),
    "longText": ("longtext", "longtext"),
    "tinyText": ("tinytext", "tinytext"),
    "integer": ("integer", "integer"),
    "bigInteger": ("bigint", "bigint"),
    "smallInteger": ("smallint", "smallint"),
    "tinyInteger": ("tinyint", "tinyint"),
    "mediumInteger": ("mediumint", "mediumint"),
    "unsignedBigInteger": ("bigint", "bigint"),
    "unsignedInteger": ("integer", "integer"),
    "unsignedSmallInteger": ("smallint", "smallint"),
    "unsignedTinyInteger": ("tinyint", "tinyint"),
    "unsignedMediumInteger": ("mediumint", "mediumint"),
    "float": ("float", "float"),
    "double": ("double", "double"),
    "decimal": ("decimal(8,2)", "decimal"),
    "boolean": ("boolean", "boolean"),
    "date": ("date", "date"),
    "dateTime": ("datetime", "datetime"),
    "dateTimeTz": ("datetime", "datetimetz"),
    "time": ("time", "time"),
    "timeTz": ("time", "timetz"),
    "timestamp": ("timestamp", "timestamp"),
    "timestampTz": ("timestamp", "timestamptz"),
    "timestamps": ("timestamp", "timestamp"),
    "timestampsTz": ("timestamp", "timestamptz"),
    "softDeletes": ("timestamp", "timestamp"),
    "softDeletesTz": ("timestamp", "timestamptz"),
    "json": ("json", "json"),
    "jsonb": ("jsonb", "jsonb"),
    "binary": ("blob", "binary"),
    "enum": ("enum", "enum"),
    "set": ("set", "set"),
    "char": ("char(255)", "char"),
    "year": ("year", "year"),
    "foreignId": ("bigint", "bigint"),
    "foreignUuid": ("char(36)", "uuid"),
    "foreignUlid": ("char(26)", "ulid"),
    "rememberToken": ("varchar(100)", "varchar"),
    "ipAddress": ("varchar(45)", "varchar"),
    "macAddress": ("varchar(17)", "varchar"),
    "morphs": ("varchar(255)", "varchar"),
    "nullableMorphs": ("varchar(255)", "varchar"),
    "uuidMorphs": ("char(36)", "uuid"),
    "nullableUuidMorphs": ("char(36)", "uuid"),
    "geometry": ("geometry", "geometry"),
    "point": ("point", "point"),
    "lineString": ("linestring", "linestring"),
    "polygon": ("polygon", "polygon"),
    "multiPoint": ("multipoint", "multipoint"),
    "multiLineString": ("multilinestring", "multilinestring"),
    "multiPolygon": ("multipolygon", "multipolygon"),
    "geometryCollection": ("geometrycollection", "geometrycollection"),
}

FALLBACK_SQL_TYPE = SqlType(raw_type="varchar(255)", type_name="varchar", approximated=True)

# Simple type name -> declaration kind
_SIMPLE_KINDS: dict[str, str] = {
    "bigint": "bigInteger",
    "integer": "integer",
    "int": "integer",
    "smallint": "smallInteger",
    "tinyint": "tinyInteger",
    "mediumint": "mediumInteger",
    "boolean": "boolean",
    "bool": "boolean",
    "text": "text",
    "mediumtext": "mediumText",
    "longtext": "longText",
    "tinytext": "tinyText",
    "varchar": "string",
    "string": "string",
    "json": "json",
    "jsonb": "jsonb",
    "binary": "binary",
    "blob": "binary",
    "date": "date",
    "datetime": "dateTime",
    "datetimetz": "dateTimeTz",
    "timestamp": "timestamp",
    "timestamptz": "timestampTz",
    "time": "time",
    "timetz": "timeTz",
    "year": "year",
    "float": "float",
    "double": "double",
    "double precision": "double",
    "real": "float",
    "decimal": "decimal",
    "numeric": "decimal",
    "character varying": "string",
    "uuid": "uuid",
    "ulid": "ulid",
    "ipaddress": "ipAddress",
    "macaddress": "macAddress",
    "point": "point",
    "geometry": "geometry",
    "linestring": "lineString",
    "polygon": "polygon",
    "multipoint": "multiPoint",
    "multilinestring": "multiLineString",
    "multipolygon": "multiPolygon",
    "geometrycollection": "geometryCollection",
}

_VARCHAR = re.compile(r"^(?:varchar|character varying)\((\d+)\)$")
_CHAR = re.compile(r"^char\((\d+)\)$")
_DECIMAL = re.compile(r"^(?:decimal|numeric)\((\d+),\s*(\d+)\)$")
_FLOAT = re.compile(r"^(float|double)\((\d+),\s*(\d+)\)$")
_ENUM = re.compile(r"^enum\((.+)\)$", re.IGNORECASE)
_SET = re.compile(r"^set\((.+)\)$", re.IGNORECASE)
_NUMERIC = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_BIG_INTEGER_NAMES = frozenset({"bigint", "biginteger"})
_INTEGER_NAMES = frozenset({"int", "integer"})
_PASSIVE_REFERENTIAL_ACTIONS = frozenset({"NO ACTION", "RESTRICT"})


class TypeMapper:
    """Maps captured columns to declarations and declaration tags to SQL types."""

    def to_declaration(self, column: ColumnInfo) -> ColumnDeclaration:
        raw = column.raw_type.strip().lower()
        type_name = (column.type_name or raw.split("(", 1)[0]).strip().lower()

        if column.auto_increment and type_name in _BIG_INTEGER_NAMES:
            return ColumnDeclaration(kind="id", name=column.name)
        if column.auto_increment and type_name in _INTEGER_NAMES:
            return ColumnDeclaration(kind="increments", name=column.name)

        declaration = self._map_type(column.name, raw, type_name, column.raw_type.strip())
        if column.auto_increment:
            return declaration

        default = format_default(column.default) if column.default is not None else None
        return ColumnDeclaration(
            kind=declaration.kind,
            name=declaration.name,
            args=declaration.args,
            nullable=column.nullable,
            default=default,
            unresolved=declaration.unresolved,
        )

    def to_column_definition(self, column: ColumnInfo) -> str:
        return self.to_declaration(column).render()

    def to_index_definition(self, index: IndexInfo) -> str:
        return f"{index.kind}({_format_columns(index.columns)})"

    def to_foreign_key_definition(self, fk: ForeignKeyInfo) -> str:
        line = (
            f"foreign({_format_columns(fk.columns)})"
            f".references({_format_columns(fk.foreign_columns)})"
        )
        if fk.foreign_table:
            line += f".on({_quote(fk.foreign_table)})"
        if fk.on_delete.upper() not in _PASSIVE_REFERENTIAL_ACTIONS:
            line += f".onDelete({_quote(fk.on_delete.lower())})"
        if fk.on_update.upper() not in _PASSIVE_REFERENTIAL_ACTIONS:
            line += f".onUpdate({_quote(fk.on_update.lower())})"
        return line

    def from_declaration(self, kind: str | None) -> SqlType:
        """Resolve a declaration tag to its SQL type; unknown tags are approximated."""
        if kind is None or kind not in DECLARATION_TO_SQL:
            return FALLBACK_SQL_TYPE
        raw_type, type_name = DECLARATION_TO_SQL[kind]
        return SqlType(raw_type=raw_type, type_name=type_name)

    def _map_type(
        self, name: str, raw: str, type_name: str, original: str
    ) -> ColumnDeclaration:
        # enum/set value lists keep their original case
        if m := _VARCHAR.match(raw):
            length = int(m.group(1))
            args = () if length == 255 else (str(length),)
            return ColumnDeclaration(kind="string", name=name, args=args)

        if m := _CHAR.match(raw):
            length = int(m.group(1))
            if length == 36:
                return ColumnDeclaration(kind="uuid", name=name)
            if length == 26:
                return ColumnDeclaration(kind="ulid", name=name)
            return ColumnDeclaration(kind="char", name=name, args=(str(length),))

        if m := _DECIMAL.match(raw):
            return ColumnDeclaration(kind="decimal", name=name, args=(m.group(1), m.group(2)))

        if m := _FLOAT.match(raw):
            return ColumnDeclaration(kind=m.group(1), name=name, args=(m.group(2), m.group(3)))

        if m := _ENUM.match(original):
            return ColumnDeclaration(kind="enum", name=name, args=(f"[{m.group(1)}]",))

        if m := _SET.match(original):
            return ColumnDeclaration(kind="set", name=name, args=(f"[{m.group(1)}]",))

        kind = _SIMPLE_KINDS.get(type_name) or _SIMPLE_KINDS.get(raw)
        if kind is not None:
            return ColumnDeclaration(kind=kind, name=name)

        return ColumnDeclaration(
            kind="addColumn", name=name, args=(_quote(raw),), unresolved=True
        )


def format_default(value: Any) -> str:
    """Render a default value as a declaration argument."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)

    text = str(value)
    if _NUMERIC.match(text.strip()):
        return text.strip()

    upper = text.upper()
    if "CURRENT_TIMESTAMP" in upper or "NOW()" in upper or upper.startswith("NEXTVAL"):
        return f"raw({_quote(text)})"
    return _quote(text)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _quote(value: str) -> str:
    return f"'{_escape(value)}'"


def _format_columns(columns: tuple[str, ...]) -> str:
    if len(columns) == 1:
        return _quote(columns[0])
    return "[" + ", ".join(_quote(c) for c in columns) + "]"
