"""Migration artifact generation.

``MigrationGenerator`` is the contract the consolidation engine writes
through. ``YamlMigrationGenerator`` is the bundled implementation: every
artifact is one YAML document with an ``up`` and a ``down`` section whose
entries are rendered column, index and foreign-key declarations.

Artifact files are ``<YYYY_MM_DD>_<NNNNNN>_<description>.migration.yaml``.
The six-digit sequence continues from the highest one already present in the
output directory for that day, so artifacts never overwrite one another and
keep their relative order. The ``.migration.yaml`` suffix keeps artifacts out
of the definition loader when both share a directory.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from datetime import date
from pathlib import Path
from typing import Any, Protocol

import structlog
import yaml

from schemadrift.core.errors import MigrationError, SchemaError
from schemadrift.schema.models import ColumnInfo, ForeignKeyInfo, IndexInfo
from schemadrift.schema.types import TypeMapper

log = structlog.get_logger(__name__)

ARTIFACT_HEADER = """\
# Generated by schemadrift. Review before running.
"""

ARTIFACT_SUFFIX = ".migration.yaml"

_SAFE_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_SEQUENCE = re.compile(r"^\d{4}_\d{2}_\d{2}_(\d{6})_")


class MigrationGenerator(Protocol):
    """Protocol for writers of forward + reverse migration artifacts."""

    def generate_create_table(
        self,
        table: str,
        columns: Sequence[ColumnInfo],
        indexes: Sequence[IndexInfo],
        foreign_keys: Sequence[ForeignKeyInfo],
        *,
        description: str | None = None,
    ) -> str:
        """Write a create-table artifact.

        Args:
            table: Table to create.
            columns: Columns in declaration order.
            indexes: Indexes. A single-column primary index on an
                auto-increment column is implied by that column; every
                other primary index is rendered.
            foreign_keys: Foreign keys, dropped first on the reverse side.
            description: Name slug; defaults to ``create_<table>_table``.

        Returns:
            Path of the written artifact.

        Raises:
            SchemaError: If an identifier is unsafe for generation.
        """
        ...


def assert_safe_identifier(value: str, context: str) -> None:
    """Reject identifiers that cannot be emitted into an artifact verbatim."""
    if not _SAFE_IDENTIFIER.match(value):
        raise SchemaError.unsafe_identifier(value, context)


def _implied_primary(index: IndexInfo, auto_increment: set[str]) -> bool:
    """True when an ``id()``/``increments()`` column already declares the key."""
    return index.primary and len(index.columns) == 1 and index.columns[0] in auto_increment


class YamlMigrationGenerator:
    """Writes YAML migration artifacts into one directory."""

    def __init__(
        self,
        output_dir: Path,
        type_mapper: TypeMapper | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.output_dir = output_dir
        self.type_mapper = type_mapper or TypeMapper()
        self._today = today
        self._counter = 0

    def generate_create_table(
        self,
        table: str,
        columns: Sequence[ColumnInfo],
        indexes: Sequence[IndexInfo],
        foreign_keys: Sequence[ForeignKeyInfo],
        *,
        description: str | None = None,
    ) -> str:
        assert_safe_identifier(table, "table name")
        up = [self._create_step(table, columns, indexes, foreign_keys)]
        down = [*self._drop_foreign_steps(table, foreign_keys), {"drop_table": table}]
        return self._write(description or f"create_{table}_table", up, down)

    def generate_drop_table(
        self,
        table: str,
        columns: Sequence[ColumnInfo],
        indexes: Sequence[IndexInfo],
        foreign_keys: Sequence[ForeignKeyInfo],
    ) -> str:
        """Write a drop-table artifact whose reverse side recreates the table."""
        assert_safe_identifier(table, "table name")
        up = [*self._drop_foreign_steps(table, foreign_keys), {"drop_table": table}]
        down = [self._create_step(table, columns, indexes, foreign_keys)]
        return self._write(f"drop_{table}_table", up, down)

    def generate_add_column(self, table: str, column: ColumnInfo) -> str:
        assert_safe_identifier(table, "table name")
        assert_safe_identifier(column.name, "column name")
        up = [{"alter_table": table, "add": [self.type_mapper.to_column_definition(column)]}]
        down = [{"alter_table": table, "drop_columns": [column.name]}]
        return self._write(f"add_{column.name}_to_{table}_table", up, down)

    def generate_drop_column(
        self,
        table: str,
        column: str,
        column_info: ColumnInfo | None = None,
    ) -> str:
        """Write a drop-column artifact.

        Without ``column_info`` the reverse side cannot recreate the column
        and is written as an ``irreversible`` marker.
        """
        assert_safe_identifier(table, "table name")
        assert_safe_identifier(column, "column name")
        up = [{"alter_table": table, "drop_columns": [column]}]
        if column_info is not None:
            down: list[dict[str, Any]] = [
                {"alter_table": table, "add": [self.type_mapper.to_column_definition(column_info)]}
            ]
        else:
            down = [{"irreversible": f"cannot recreate column {column} on {table}"}]
        return self._write(f"drop_{column}_from_{table}_table", up, down)

    def generate_add_index(self, table: str, index: IndexInfo) -> str:
        assert_safe_identifier(table, "table name")
        for column in index.columns:
            assert_safe_identifier(column, "column name")
        suffix = "unique" if index.unique else "index"
        drop_key = "drop_unique" if index.unique else "drop_index"
        up = [{"alter_table": table, "add": [self.type_mapper.to_index_definition(index)]}]
        down = [{"alter_table": table, drop_key: [list(index.columns)]}]
        slug = "_".join(index.columns)
        return self._write(f"add_{slug}_{suffix}_to_{table}_table", up, down)

    def generate_add_foreign_key(self, table: str, fk: ForeignKeyInfo) -> str:
        assert_safe_identifier(table, "table name")
        for column in fk.columns:
            assert_safe_identifier(column, "column name")
        up = [{"alter_table": table, "add": [self.type_mapper.to_foreign_key_definition(fk)]}]
        down = [{"alter_table": table, "drop_foreign": [list(fk.columns)]}]
        slug = "_".join(fk.columns)
        return self._write(f"add_{slug}_fk_to_{table}_table", up, down)

    # =========================================================================
    # Internals
    # =========================================================================

    def _create_step(
        self,
        table: str,
        columns: Sequence[ColumnInfo],
        indexes: Sequence[IndexInfo],
        foreign_keys: Sequence[ForeignKeyInfo],
    ) -> dict[str, Any]:
        mapper = self.type_mapper
        auto_increment = {c.name for c in columns if c.auto_increment}
        return {
            "create_table": table,
            "columns": [mapper.to_column_definition(c) for c in columns],
            "indexes": [
                mapper.to_index_definition(i)
                for i in indexes
                if not _implied_primary(i, auto_increment)
            ],
            "foreign_keys": [mapper.to_foreign_key_definition(fk) for fk in foreign_keys],
        }

    def _drop_foreign_steps(
        self, table: str, foreign_keys: Sequence[ForeignKeyInfo]
    ) -> list[dict[str, Any]]:
        if not foreign_keys:
            return []
        return [{"alter_table": table, "drop_foreign": [list(fk.columns) for fk in foreign_keys]}]

    def _next_name(self, description: str) -> str:
        stamp = self._today().strftime("%Y_%m_%d")
        self._counter = max(self._counter, self._highest_sequence(stamp)) + 1
        return f"{stamp}_{self._counter:06d}_{description}"

    def _highest_sequence(self, stamp: str) -> int:
        if not self.output_dir.is_dir():
            return 0
        highest = 0
        for path in self.output_dir.glob(f"{stamp}_*"):
            match = _SEQUENCE.match(path.name)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def _write(
        self,
        description: str,
        up: list[dict[str, Any]],
        down: list[dict[str, Any]],
    ) -> str:
        name = self._next_name(description)
        path = self.output_dir / f"{name}{ARTIFACT_SUFFIX}"
        document = {"migration": name, "up": up, "down": down}

        self.output_dir.mkdir(parents=True, exist_ok=True)
        content = ARTIFACT_HEADER + yaml.dump(
            document, default_flow_style=False, sort_keys=False
        )
        try:
            with open(path, "x", encoding="utf-8") as fh:
                fh.write(content)
        except FileExistsError as exc:
            raise MigrationError.artifact_exists(str(path)) from exc

        log.info("migration_artifact_written", path=str(path), migration=name)
        return str(path)
