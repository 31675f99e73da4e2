"""Tests for the structural schema differ."""

from __future__ import annotations

from schemadrift.schema.differ import diff_schemas, has_differences
from schemadrift.schema.models import (
    ColumnDiff,
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    Mismatch,
    SchemaDiff,
    SchemaSnapshot,
)


def _single_table(*columns: ColumnInfo, indexes=(), fks=()) -> SchemaSnapshot:
    return SchemaSnapshot.build(
        ["users"],
        columns={"users": columns},
        indexes={"users": indexes},
        foreign_keys={"users": fks},
    )


class TestReflexivity:
    """A snapshot never differs from itself."""

    def test_given_snapshot_when_diffed_with_itself_then_no_differences(
        self, blog_schema: SchemaSnapshot
    ) -> None:
        """diff(S, S) is empty."""
        # When
        diff = diff_schemas(blog_schema, blog_schema)

        # Then
        assert has_differences(diff) is False
        assert diff == SchemaDiff()

    def test_empty_snapshots(self) -> None:
        assert has_differences(diff_schemas(SchemaSnapshot(), SchemaSnapshot())) is False


class TestTables:
    """Missing and extra tables."""

    def test_missing_and_extra_tables_are_sorted(self) -> None:
        expected = SchemaSnapshot.build(["users", "posts", "audits"])
        actual = SchemaSnapshot.build(["users", "zebras", "logs"])

        diff = diff_schemas(expected, actual)

        assert diff.missing_tables == ("audits", "posts")
        assert diff.extra_tables == ("logs", "zebras")
        assert has_differences(diff)

    def test_missing_table_is_not_column_diffed(self) -> None:
        expected = SchemaSnapshot.build(
            ["users"], columns={"users": [ColumnInfo("id", "bigint")]}
        )
        diff = diff_schemas(expected, SchemaSnapshot())

        assert diff.missing_tables == ("users",)
        assert diff.column_diffs == {}


class TestColumns:
    """Column-level comparison."""

    def test_missing_and_extra_columns(self) -> None:
        expected = _single_table(ColumnInfo("id", "bigint"), ColumnInfo("email", "varchar(255)"))
        actual = _single_table(ColumnInfo("id", "bigint"), ColumnInfo("nick", "varchar(255)"))

        diff = diff_schemas(expected, actual)

        assert diff.column_diffs["users"].missing == ("email",)
        assert diff.column_diffs["users"].extra == ("nick",)

    def test_type_mismatch_uses_normalized_types(self) -> None:
        """int(11) and integer are equal; integer and text are not."""
        expected = _single_table(ColumnInfo("age", "integer"), ColumnInfo("bio", "integer"))
        actual = _single_table(ColumnInfo("age", "INT(11)"), ColumnInfo("bio", "text"))

        diff = diff_schemas(expected, actual)

        assert diff.column_diffs["users"].type_mismatches == (
            Mismatch("bio", current="text", expected="integer"),
        )

    def test_nullable_mismatch_rendered_as_words(self) -> None:
        expected = _single_table(ColumnInfo("name", "text", nullable=True))
        actual = _single_table(ColumnInfo("name", "text", nullable=False))

        diff = diff_schemas(expected, actual)

        assert diff.column_diffs["users"].nullable_mismatches == (
            Mismatch("name", current="not null", expected="nullable"),
        )

    def test_boolean_equivalent_defaults_are_equal(self) -> None:
        expected = _single_table(ColumnInfo("active", "boolean", default=True))
        actual = _single_table(ColumnInfo("active", "tinyint(1)", default="'1'"))

        assert has_differences(diff_schemas(expected, actual)) is False

    def test_default_mismatch_keeps_raw_values(self) -> None:
        expected = _single_table(ColumnInfo("status", "varchar(20)", default="draft"))
        actual = _single_table(ColumnInfo("status", "varchar(20)", default=None))

        diff = diff_schemas(expected, actual)

        assert diff.column_diffs["users"].default_mismatches == (
            Mismatch("status", current=None, expected="draft"),
        )

    def test_table_without_column_changes_is_absent_from_map(self) -> None:
        expected = _single_table(ColumnInfo("id", "bigint"), indexes=[IndexInfo(("id",))])
        actual = _single_table(ColumnInfo("id", "bigint"))

        diff = diff_schemas(expected, actual)

        assert "users" not in diff.column_diffs
        assert "users" in diff.index_diffs


class TestIndexesAndForeignKeys:
    """Identity-by-structure comparison."""

    def test_index_names_and_column_order_are_ignored(self) -> None:
        expected = _single_table(indexes=[IndexInfo(("a", "b"), name="one")])
        actual = _single_table(indexes=[IndexInfo(("b", "a"), name="two")])

        assert has_differences(diff_schemas(expected, actual)) is False

    def test_unique_and_plain_index_differ(self) -> None:
        plain = IndexInfo(("email",))
        unique = IndexInfo(("email",), unique=True)

        diff = diff_schemas(_single_table(indexes=[unique]), _single_table(indexes=[plain]))

        assert diff.index_diffs["users"].missing == (unique,)
        assert diff.index_diffs["users"].extra == (plain,)

    def test_foreign_key_identity_ignores_name_and_actions(self) -> None:
        expected = _single_table(fks=[ForeignKeyInfo(("team_id",), "teams", name="a")])
        actual = _single_table(
            fks=[ForeignKeyInfo(("team_id",), "teams", on_delete="CASCADE", name="b")]
        )

        assert has_differences(diff_schemas(expected, actual)) is False

    def test_foreign_key_to_different_table_differs(self) -> None:
        expected_fk = ForeignKeyInfo(("owner_id",), "users")
        actual_fk = ForeignKeyInfo(("owner_id",), "teams")

        diff = diff_schemas(_single_table(fks=[expected_fk]), _single_table(fks=[actual_fk]))

        assert diff.fk_diffs["users"].missing == (expected_fk,)
        assert diff.fk_diffs["users"].extra == (actual_fk,)


class TestHasDifferences:
    """has_differences is a pure predicate over the diff value."""

    def test_empty_sub_diff_does_not_count(self) -> None:
        diff = SchemaDiff(column_diffs={"users": ColumnDiff()})
        assert has_differences(diff) is False

    def test_any_mismatch_counts(self) -> None:
        diff = SchemaDiff(
            column_diffs={"users": ColumnDiff(default_mismatches=(Mismatch("a", "1", "2"),))}
        )
        assert has_differences(diff) is True

    def test_to_dict_serializes_nested_structures(self) -> None:
        expected = _single_table(ColumnInfo("id", "bigint"), ColumnInfo("email", "text"))
        actual = _single_table(ColumnInfo("id", "text"))

        data = diff_schemas(expected, actual).to_dict()

        assert data["missing_tables"] == []
        assert data["column_diffs"]["users"]["missing"] == ["email"]
        assert data["column_diffs"]["users"]["type_mismatches"] == [
            {"column": "id", "current": "text", "expected": "bigint"}
        ]
