"""Tests for SQLAlchemy schema introspection against SQLite."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine, text

from schemadrift.schema.differ import diff_schemas, has_differences
from schemadrift.schema.introspect import introspect_schema

DDL = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email VARCHAR(255) NOT NULL,
        nickname VARCHAR(50),
        active BOOLEAN NOT NULL DEFAULT 1,
        CONSTRAINT users_email_unique UNIQUE (email)
    )
    """,
    """
    CREATE TABLE posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        title VARCHAR(200) NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX posts_user_id_title_index ON posts (user_id, title)",
    """
    CREATE TABLE migrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        migration VARCHAR(255) NOT NULL,
        batch INTEGER NOT NULL
    )
    """,
]


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    eng = create_engine(f"sqlite:///{tmp_path / 'app.db'}")
    with eng.begin() as conn:
        for statement in DDL:
            conn.execute(text(statement))
    yield eng
    eng.dispose()


class TestIntrospectSchema:
    """Snapshot capture."""

    def test_excludes_bookkeeping_table(self, engine: Engine) -> None:
        snapshot = introspect_schema(engine)
        assert snapshot.tables == frozenset({"users", "posts"})

    def test_custom_bookkeeping_table_name(self, engine: Engine) -> None:
        snapshot = introspect_schema(engine, bookkeeping_table="users")
        assert snapshot.tables == frozenset({"posts", "migrations"})

    def test_columns_in_declaration_order(self, engine: Engine) -> None:
        snapshot = introspect_schema(engine)
        assert snapshot.column_names("users") == ["id", "email", "nickname", "active"]

    def test_column_attributes(self, engine: Engine) -> None:
        columns = {c.name: c for c in introspect_schema(engine).columns_for("users")}

        assert columns["id"].auto_increment is True
        assert columns["email"].nullable is False
        assert columns["email"].normalized_type == "varchar(255)"
        assert columns["nickname"].nullable is True
        assert columns["active"].auto_increment is False
        assert columns["active"].default is not None

    def test_primary_key_reported_first(self, engine: Engine) -> None:
        indexes = introspect_schema(engine).indexes_for("users")

        assert indexes[0].primary is True
        assert indexes[0].columns == ("id",)

    def test_unique_constraint_reported_once(self, engine: Engine) -> None:
        indexes = introspect_schema(engine).indexes_for("users")
        unique_email = [i for i in indexes if i.columns == ("email",) and i.unique]
        assert len(unique_email) == 1

    def test_composite_index(self, engine: Engine) -> None:
        indexes = introspect_schema(engine).indexes_for("posts")
        assert any(i.columns == ("user_id", "title") and not i.unique for i in indexes)

    def test_foreign_keys(self, engine: Engine) -> None:
        (fk,) = introspect_schema(engine).foreign_keys_for("posts")

        assert fk.columns == ("user_id",)
        assert fk.foreign_table == "users"
        assert fk.foreign_columns == ("id",)
        assert fk.on_delete == "CASCADE"
        assert fk.on_update == "NO ACTION"

    def test_snapshot_of_same_database_has_no_differences(self, engine: Engine) -> None:
        first = introspect_schema(engine)
        second = introspect_schema(engine)
        assert has_differences(diff_schemas(first, second)) is False

    def test_works_with_connection(self, engine: Engine) -> None:
        with engine.connect() as conn:
            snapshot = introspect_schema(conn)
        assert snapshot.has_table("posts")
