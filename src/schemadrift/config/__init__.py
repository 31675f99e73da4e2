"""Config module exports."""

from schemadrift.config.loader import (
    load_config,
    resolve_migrations_path,
    resolve_output_path,
)
from schemadrift.config.models import (
    ConsolidationConfig,
    DatabaseConfig,
    LoggingConfig,
    LogOutputConfig,
    MigrationsConfig,
    SchemaDriftConfig,
)

__all__ = [
    "load_config",
    "resolve_migrations_path",
    "resolve_output_path",
    "ConsolidationConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "MigrationsConfig",
    "SchemaDriftConfig",
]
