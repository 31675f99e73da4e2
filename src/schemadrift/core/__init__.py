"""Core module exports."""

from schemadrift.core.errors import (
    ConfigError,
    ConsolidationError,
    ErrorCode,
    InternalError,
    MigrationError,
    SchemaDriftError,
    SchemaError,
)
from schemadrift.core.logging import (
    clear_run_id,
    configure_logging,
    get_run_id,
    run_scope,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ConsolidationError",
    "ErrorCode",
    "InternalError",
    "MigrationError",
    "SchemaDriftError",
    "SchemaError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_run_id",
    "run_scope",
    "set_run_id",
]
