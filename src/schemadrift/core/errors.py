"""schemadrift error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Schema
- 4xxx: Migration / bookkeeping
- 5xxx: Consolidation
- 9xxx: Internal

Heuristic outcomes (extraction failure, indeterminate schema evidence,
foreign-key cycles, unmapped column types) are reported as data, never
raised. These errors cover configuration problems and broken preconditions.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Schema (3xxx)
    SCHEMA_DUPLICATE_COLUMN = 3001
    SCHEMA_UNSAFE_IDENTIFIER = 3002

    # Migration (4xxx)
    MIGRATION_PATH_NOT_FOUND = 4001
    MIGRATION_BOOKKEEPING_FAILED = 4002
    MIGRATION_ARTIFACT_EXISTS = 4003

    # Consolidation (5xxx)
    CONSOLIDATION_MISSING_TABLE = 5001
    CONSOLIDATION_NOTHING_TO_MERGE = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class SchemaDriftError(Exception):
    """Base error with structured context for reports."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reports."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SchemaDriftError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class SchemaError(SchemaDriftError):
    """Invalid schema snapshots or identifiers."""

    @classmethod
    def duplicate_column(cls, table: str, column: str) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_DUPLICATE_COLUMN,
            message=f"Column '{column}' appears more than once in table '{table}'",
            details={"table": table, "column": column},
        )

    @classmethod
    def unsafe_identifier(cls, value: str, context: str) -> "SchemaError":
        return cls(
            code=ErrorCode.SCHEMA_UNSAFE_IDENTIFIER,
            message=f"Unsafe {context} for code generation: '{value}'",
            details={"value": value, "context": context},
        )


class MigrationError(SchemaDriftError):
    """Migration discovery and bookkeeping errors."""

    @classmethod
    def path_not_found(cls, path: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_PATH_NOT_FOUND,
            message=f"Migrations path does not exist: {path}",
            details={"path": path},
        )

    @classmethod
    def bookkeeping_failed(cls, table: str, reason: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_BOOKKEEPING_FAILED,
            message=f"Bookkeeping update on '{table}' failed: {reason}",
            retryable=True,
            details={"table": table, "reason": reason},
        )

    @classmethod
    def artifact_exists(cls, path: str) -> "MigrationError":
        return cls(
            code=ErrorCode.MIGRATION_ARTIFACT_EXISTS,
            message=f"Refusing to overwrite existing migration artifact: {path}",
            details={"path": path},
        )


class ConsolidationError(SchemaDriftError):
    """Broken preconditions for consolidation."""

    @classmethod
    def missing_table(cls) -> "ConsolidationError":
        return cls(
            code=ErrorCode.CONSOLIDATION_MISSING_TABLE,
            message="Consolidation requires a primary table name",
        )

    @classmethod
    def nothing_to_consolidate(cls, table: str) -> "ConsolidationError":
        return cls(
            code=ErrorCode.CONSOLIDATION_NOTHING_TO_MERGE,
            message=f"No consolidatable migrations for table '{table}'",
            details={"table": table},
        )


class InternalError(SchemaDriftError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
