"""Tests for migration quality checks."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from schemadrift.migrations.models import (
    ForeignKeySpec,
    IndexSpec,
    MigrationDefinition,
    OperationType,
)
from schemadrift.migrations.quality import (
    IssueType,
    QualityIssue,
    Severity,
    analyze_definition,
    analyze_definitions,
    check_down,
    check_foreign_key_drops,
    check_index_drops,
    detect_redundant_migrations,
)

MakeDefinition = Callable[..., MigrationDefinition]


def _alter(make: MakeDefinition, down: tuple[str, ...], **kwargs) -> MigrationDefinition:
    return make(
        "0002_alter_posts_table",
        primary_table="posts",
        operation_type=OperationType.ALTER,
        has_down=True,
        down_is_empty=not down,
        down_operations=down,
        **kwargs,
    )


class TestCheckDown:
    """Missing and empty reverse sides."""

    def test_missing_down(self, make_definition: MakeDefinition) -> None:
        (issue,) = check_down(make_definition(has_down=False))

        assert issue.type is IssueType.MISSING_DOWN
        assert issue.severity is Severity.WARNING
        assert issue.migration == "2024_01_01_000000_create_users_table"

    def test_empty_down(self, make_definition: MakeDefinition) -> None:
        (issue,) = check_down(make_definition(has_down=True, down_is_empty=True))
        assert issue.type is IssueType.EMPTY_DOWN

    def test_populated_down(self, make_definition: MakeDefinition) -> None:
        defn = make_definition(
            has_down=True, down_is_empty=False, down_operations=("drop('users')",)
        )
        assert check_down(defn) == []


class TestCheckForeignKeyDrops:
    """Foreign keys an alter adds must be dropped on rollback."""

    def test_missing_drop_is_error(self, make_definition: MakeDefinition) -> None:
        defn = _alter(
            make_definition,
            ("dropColumn('user_id')",),
            added_foreign_keys=(ForeignKeySpec("user_id", "id", "users"),),
        )

        (issue,) = check_foreign_key_drops(defn)

        assert issue.type is IssueType.MISSING_FK_DROP
        assert issue.severity is Severity.ERROR

    @pytest.mark.parametrize(
        "down",
        [
            ("dropForeign(['user_id'])", "dropColumn('user_id')"),
            ("dropConstrainedForeignId('user_id')",),
            ("dropIfExists('posts')",),
        ],
    )
    def test_dropped_foreign_key_passes(
        self, make_definition: MakeDefinition, down: tuple[str, ...]
    ) -> None:
        defn = _alter(
            make_definition, down, added_foreign_keys=(ForeignKeySpec("user_id", "id", "users"),)
        )
        assert check_foreign_key_drops(defn) == []

    def test_create_is_exempt(self, make_definition: MakeDefinition) -> None:
        """Dropping a created table drops its constraints with it."""
        defn = make_definition(
            has_down=True,
            down_is_empty=False,
            down_operations=("dropColumn('user_id')",),
            added_foreign_keys=(ForeignKeySpec("user_id"),),
        )
        assert check_foreign_key_drops(defn) == []

    def test_without_down_reported_once(self, make_definition: MakeDefinition) -> None:
        """A missing down section is check_down's finding, not a missing drop."""
        defn = make_definition(
            operation_type=OperationType.ALTER,
            added_foreign_keys=(ForeignKeySpec("user_id"),),
        )

        issues = analyze_definition(defn)

        assert [i.type for i in issues] == [IssueType.MISSING_DOWN]


class TestCheckIndexDrops:
    def test_missing_drop_is_warning(self, make_definition: MakeDefinition) -> None:
        defn = _alter(
            make_definition,
            ("dropColumn('slug')",),
            added_indexes=(IndexSpec("unique", ("slug",)),),
        )

        (issue,) = check_index_drops(defn)

        assert issue.type is IssueType.MISSING_INDEX_DROP
        assert issue.severity is Severity.WARNING

    @pytest.mark.parametrize(
        "op",
        [
            "dropIndex(['user_id', 'title'])",
            "dropUnique('slug')",
            "dropPrimary()",
            "dropSpatialIndex('location')",
            "dropFullText('body')",
        ],
    )
    def test_any_index_drop_passes(self, make_definition: MakeDefinition, op: str) -> None:
        defn = _alter(make_definition, (op,), added_indexes=(IndexSpec("index", ("slug",)),))
        assert check_index_drops(defn) == []


class TestAnalyzeDefinition:
    def test_issues_in_check_order(self, make_definition: MakeDefinition) -> None:
        defn = make_definition(has_conditional_logic=True, has_data_manipulation=True)

        issues = analyze_definition(defn)

        assert [(i.type, i.severity) for i in issues] == [
            (IssueType.MISSING_DOWN, Severity.WARNING),
            (IssueType.CONDITIONAL_LOGIC, Severity.INFO),
            (IssueType.DATA_MANIPULATION, Severity.INFO),
        ]


class TestDetectRedundantMigrations:
    """Cross-migration consolidation hints."""

    def test_three_migrations_flagged(self, make_definition: MakeDefinition) -> None:
        defs = [
            make_definition("0001_create_users_table"),
            make_definition("0002_add_email_to_users_table"),
            make_definition("0003_add_name_to_users_table"),
            make_definition("0004_create_posts_table", primary_table="posts"),
        ]

        assert detect_redundant_migrations(defs) == [
            QualityIssue(
                IssueType.REDUNDANT_MIGRATIONS,
                Severity.INFO,
                "Table 'users' has 3 migrations; consider consolidating.",
                "0001_create_users_table, 0002_add_email_to_users_table, "
                "0003_add_name_to_users_table",
            )
        ]

    def test_two_migrations_not_flagged(self, make_definition: MakeDefinition) -> None:
        defs = [make_definition("0001_a"), make_definition("0002_b")]
        assert detect_redundant_migrations(defs) == []

    def test_tableless_definitions_ignored(self, make_definition: MakeDefinition) -> None:
        defs = [make_definition(f"000{i}_x", primary_table=None) for i in range(4)]
        assert detect_redundant_migrations(defs) == []


class TestAnalyzeDefinitions:
    def test_cross_migration_issues_come_last(self, make_definition: MakeDefinition) -> None:
        defs = [
            make_definition(
                f"000{i}_x", has_down=True, down_is_empty=False, down_operations=("x()",)
            )
            for i in range(3)
        ]
        defs.append(make_definition("0009_seed_users", has_down=False))

        issues = analyze_definitions(defs)

        assert [i.type for i in issues] == [
            IssueType.MISSING_DOWN,
            IssueType.REDUNDANT_MIGRATIONS,
        ]
        assert issues[1].message == "Table 'users' has 4 migrations; consider consolidating."
