"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SCHEMADRIFT__SECTION__KEY)
3. Project YAML (.schemadrift/config.yaml)
4. Global YAML (~/.config/schemadrift/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SCHEMADRIFT__<SECTION>__<KEY>=<VALUE>

Examples:
    SCHEMADRIFT__LOGGING__LEVEL=DEBUG
    SCHEMADRIFT__MIGRATIONS__BOOKKEEPING_TABLE=schema_migrations
    SCHEMADRIFT__DATABASE__URL=sqlite:///app.db
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SCHEMADRIFT__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG traces every classification decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class MigrationsConfig(BaseModel):
    """Migration discovery and bookkeeping configuration.

    Env vars:
        SCHEMADRIFT__MIGRATIONS__PATH: Directory holding migration fact records
        SCHEMADRIFT__MIGRATIONS__DEFINITIONS_GLOB: Glob for fact record files
        SCHEMADRIFT__MIGRATIONS__BOOKKEEPING_TABLE: Ledger table name
    """

    path: str = Field(
        default="database/migrations",
        description="Migrations directory, relative to the project root unless absolute.",
    )
    definitions_glob: str = Field(
        default="*.yaml",
        description="Glob matching extracted fact records inside the migrations directory.",
    )
    bookkeeping_table: str = Field(
        default="migrations",
        description="Table recording which migrations ran. Excluded from schema snapshots.",
    )

    @field_validator("bookkeeping_table")
    @classmethod
    def validate_bookkeeping_table(cls, v: str) -> str:
        if not _IDENTIFIER.match(v):
            raise ValueError(f"Bookkeeping table must be a plain identifier, got {v!r}")
        return v


class ConsolidationConfig(BaseModel):
    """Consolidation configuration.

    Env vars:
        SCHEMADRIFT__CONSOLIDATION__OUTPUT_PATH: Where generated artifacts go
        SCHEMADRIFT__CONSOLIDATION__MIN_DEFINITIONS: Consolidatable migrations per table
    """

    output_path: str | None = Field(
        default=None,
        description="Directory for generated artifacts. Default: the migrations directory.",
    )
    min_definitions: int = Field(
        default=2,
        description="Minimum consolidatable migrations before a table is a candidate.",
    )

    @field_validator("min_definitions")
    @classmethod
    def validate_min_definitions(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"Consolidation needs at least 2 migrations, got {v}")
        return v


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        SCHEMADRIFT__DATABASE__URL: SQLAlchemy URL of the live database
    """

    url: str | None = Field(
        default=None,
        description="SQLAlchemy URL (e.g. postgresql+psycopg://user@host/db).",
    )


class SchemaDriftConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
    consolidation: ConsolidationConfig = Field(default_factory=ConsolidationConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
