"""Tests for error types and codes."""

import pytest

from schemadrift.core.errors import (
    ConfigError,
    ConsolidationError,
    ErrorCode,
    InternalError,
    MigrationError,
    SchemaDriftError,
    SchemaError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_FILE_NOT_FOUND, 2000),
            (ErrorCode.SCHEMA_DUPLICATE_COLUMN, 3000),
            (ErrorCode.MIGRATION_BOOKKEEPING_FAILED, 4000),
            (ErrorCode.CONSOLIDATION_NOTHING_TO_MERGE, 5000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestSchemaDriftError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = SchemaDriftError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_includes_code_and_name(self) -> None:
        error = SchemaDriftError(code=ErrorCode.INTERNAL_ERROR, message="boom")
        assert str(error) == "[9001] INTERNAL_ERROR: boom"

    def test_given_error_when_raised_then_catchable_as_exception(self) -> None:
        with pytest.raises(SchemaDriftError):
            raise MigrationError.path_not_found("/nope")


class TestFactories:
    """Factory methods produce the right code, message and details."""

    def test_config_parse_error(self) -> None:
        error = ConfigError.parse_error("/cfg.yaml", "bad indent")

        assert error.code == ErrorCode.CONFIG_PARSE_ERROR
        assert "/cfg.yaml" in error.message
        assert error.details == {"path": "/cfg.yaml", "reason": "bad indent"}

    def test_config_invalid_value_stringifies_value(self) -> None:
        error = ConfigError.invalid_value("consolidation.min_definitions", 1, "too small")

        assert error.code == ErrorCode.CONFIG_INVALID_VALUE
        assert error.details["value"] == "1"

    def test_schema_duplicate_column(self) -> None:
        error = SchemaError.duplicate_column("users", "id")
        assert error.message == "Column 'id' appears more than once in table 'users'"

    def test_bookkeeping_failure_is_retryable(self) -> None:
        error = MigrationError.bookkeeping_failed("migrations", "locked")

        assert error.retryable is True
        assert error.details == {"table": "migrations", "reason": "locked"}

    def test_artifact_exists_is_not_retryable(self) -> None:
        error = MigrationError.artifact_exists("/out/x.migration.yaml")

        assert error.code == ErrorCode.MIGRATION_ARTIFACT_EXISTS
        assert error.retryable is False
        assert error.details == {"path": "/out/x.migration.yaml"}

    def test_consolidation_errors(self) -> None:
        assert ConsolidationError.missing_table().code == ErrorCode.CONSOLIDATION_MISSING_TABLE
        nothing = ConsolidationError.nothing_to_consolidate("users")
        assert nothing.details == {"table": "users"}

    def test_internal_error_carries_details(self) -> None:
        error = InternalError.unexpected("state mismatch", table="users")

        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.details == {"table": "users"}
        assert error.retryable is False
