"""Fact-record loading and migration name discovery.

A fact record is the extractor's output for one migration, serialized as
YAML or JSON next to (or instead of) the migration itself:

    table: users
    operation: alter
    columns:
      - {name: email, kind: string}
      - nickname
    indexes:
      - {type: unique, columns: [email]}
    foreign_keys:
      - {column: team_id, references: id, table: teams}
    down:
      operations: ["dropColumn('email')", "dropColumn('nickname')"]
    data_manipulation: false
    conditional_logic: false

An unreadable or invalid record is an extraction failure: ``load_definition``
logs it and returns None, and the classifier degrades conservatively.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from schemadrift.core.errors import MigrationError
from schemadrift.migrations.generator import ARTIFACT_SUFFIX
from schemadrift.migrations.models import (
    ForeignKeySpec,
    IndexSpec,
    MigrationDefinition,
    OperationType,
)

log = structlog.get_logger(__name__)

DEFAULT_PATTERN = "*.yaml"


class ColumnFact(BaseModel):
    """A column added by the forward side, with its declaration tag."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: str | None = None


class IndexFact(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["primary", "unique", "index", "fulltext", "spatialIndex"] = "index"
    columns: list[str] = Field(default_factory=list)

    @field_validator("columns", mode="before")
    @classmethod
    def coerce_single_column(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v


class ForeignKeyFact(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column: str | None = None
    references: str | None = None
    table: str | None = None


class DownFact(BaseModel):
    model_config = ConfigDict(extra="forbid")

    operations: list[str] = Field(default_factory=list)


class FactRecord(BaseModel):
    """Serialized extractor output for one migration."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    table: str | None = None
    operation: Literal["create", "alter", "drop", "unknown"] = "unknown"
    touched_tables: list[str] = Field(default_factory=list)
    columns: list[ColumnFact] = Field(default_factory=list)
    indexes: list[IndexFact] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyFact] = Field(default_factory=list)
    down: DownFact | None = None
    conditional_logic: bool = False
    data_manipulation: bool = False
    multi_table: bool | None = None

    @field_validator("columns", mode="before")
    @classmethod
    def coerce_bare_column_names(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    def to_definition(self, default_name: str) -> MigrationDefinition:
        touched = set(self.touched_tables)
        if self.table is not None:
            touched.add(self.table)

        multi_table = self.multi_table if self.multi_table is not None else len(touched) > 1
        down_operations = tuple(self.down.operations) if self.down is not None else ()

        return MigrationDefinition(
            name=self.name or default_name,
            primary_table=self.table,
            operation_type=OperationType(self.operation),
            touched_tables=frozenset(touched),
            added_columns=tuple(c.name for c in self.columns),
            added_column_kinds={c.name: c.kind for c in self.columns if c.kind is not None},
            added_indexes=tuple(
                IndexSpec(type=i.type, columns=tuple(i.columns)) for i in self.indexes
            ),
            added_foreign_keys=tuple(
                ForeignKeySpec(
                    column=fk.column,
                    references_column=fk.references,
                    references_table=fk.table,
                )
                for fk in self.foreign_keys
            ),
            has_down=self.down is not None,
            down_is_empty=not down_operations,
            down_operations=down_operations,
            has_conditional_logic=self.conditional_logic,
            has_data_manipulation=self.data_manipulation,
            is_multi_table=multi_table,
        )


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_definition(path: Path) -> MigrationDefinition | None:
    """Load one fact record, or None when it cannot be read or validated."""
    try:
        data = _read_document(path)
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")
        record = FactRecord.model_validate(data)
    except (OSError, UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError, TypeError) as e:
        log.warning("definition_extraction_failed", path=str(path), error=str(e))
        return None
    except ValidationError as e:
        log.warning(
            "definition_extraction_failed",
            path=str(path),
            error=f"{e.error_count()} validation error(s)",
        )
        return None

    return record.to_definition(default_name=path.stem)


def _migration_files(migrations_dir: Path, pattern: str) -> list[Path]:
    """Fact-record files matching ``pattern``, excluding generated artifacts."""
    if not migrations_dir.is_dir():
        raise MigrationError.path_not_found(str(migrations_dir))
    files = (
        p
        for p in migrations_dir.glob(pattern)
        if p.is_file() and not p.name.endswith(ARTIFACT_SUFFIX)
    )
    return sorted(files, key=lambda p: p.name)


def get_migration_names(migrations_dir: Path, pattern: str = DEFAULT_PATTERN) -> list[str]:
    """Sorted migration names (file stems) found in a directory.

    Raises:
        MigrationError: If the directory does not exist.
    """
    return [p.stem for p in _migration_files(migrations_dir, pattern)]


def load_definitions(
    migrations_dir: Path,
    pattern: str = DEFAULT_PATTERN,
) -> dict[str, MigrationDefinition | None]:
    """Load every fact record in a directory, keyed by file stem in file order.

    Failed records map to None so callers still see the file exists.
    """
    definitions: dict[str, MigrationDefinition | None] = {}
    for path in _migration_files(migrations_dir, pattern):
        definitions[path.stem] = load_definition(path)

    failed = sum(1 for d in definitions.values() if d is None)
    log.debug(
        "definitions_loaded",
        path=str(migrations_dir),
        count=len(definitions),
        failed=failed,
    )
    return definitions


@dataclass(frozen=True, slots=True)
class RecordDiff:
    """Name-level comparison of migration files and bookkeeping records."""

    stale: tuple[str, ...]  # record without a file
    missing: tuple[str, ...]  # file without a record
    matched: tuple[str, ...]

    @property
    def in_sync(self) -> bool:
        return not self.stale and not self.missing


def compute_record_diff(file_names: Iterable[str], record_names: Iterable[str]) -> RecordDiff:
    """Reconcile migration names on disk against bookkeeping records."""
    files = set(file_names)
    records = set(record_names)
    return RecordDiff(
        stale=tuple(sorted(records - files)),
        missing=tuple(sorted(files - records)),
        matched=tuple(sorted(files & records)),
    )
