"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides shared schema and definition builders.
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local schemadrift package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of schemadrift modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("schemadrift"):
        del sys.modules[module_name]

from schemadrift.migrations.models import MigrationDefinition, OperationType  # noqa: E402
from schemadrift.schema.models import (  # noqa: E402
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    SchemaSnapshot,
)


@pytest.fixture
def blog_schema() -> SchemaSnapshot:
    """users <- posts <- comments, plus a post_tag pivot."""
    return SchemaSnapshot.build(
        ["users", "posts", "comments", "tags", "post_tag"],
        columns={
            "users": [
                ColumnInfo("id", "bigint", "bigint", auto_increment=True),
                ColumnInfo("email", "varchar(255)", "varchar"),
                ColumnInfo("name", "varchar(100)", "varchar", nullable=True),
            ],
            "posts": [
                ColumnInfo("id", "bigint", "bigint", auto_increment=True),
                ColumnInfo("user_id", "bigint", "bigint"),
                ColumnInfo("title", "varchar(255)", "varchar"),
                ColumnInfo("published", "tinyint(1)", "tinyint", default="0"),
            ],
            "comments": [
                ColumnInfo("id", "bigint", "bigint", auto_increment=True),
                ColumnInfo("post_id", "bigint", "bigint"),
                ColumnInfo("body", "text", "text"),
            ],
            "tags": [ColumnInfo("id", "bigint", "bigint", auto_increment=True)],
            "post_tag": [
                ColumnInfo("post_id", "bigint", "bigint"),
                ColumnInfo("tag_id", "bigint", "bigint"),
            ],
        },
        indexes={
            "users": [
                IndexInfo(("id",), unique=True, primary=True),
                IndexInfo(("email",), unique=True, name="users_email_unique"),
            ],
            "posts": [
                IndexInfo(("id",), unique=True, primary=True),
                IndexInfo(("user_id", "title"), name="posts_user_id_title_index"),
            ],
        },
        foreign_keys={
            "posts": [ForeignKeyInfo(("user_id",), "users", ("id",), on_delete="CASCADE")],
            "comments": [ForeignKeyInfo(("post_id",), "posts")],
            "post_tag": [
                ForeignKeyInfo(("post_id",), "posts"),
                ForeignKeyInfo(("tag_id",), "tags"),
            ],
        },
    )


@pytest.fixture
def make_definition() -> Callable[..., MigrationDefinition]:
    """Factory for MigrationDefinition with sensible defaults."""

    def _make(name: str = "2024_01_01_000000_create_users_table", **kwargs: Any):
        kwargs.setdefault("primary_table", "users")
        kwargs.setdefault("operation_type", OperationType.CREATE)
        return MigrationDefinition(name=name, **kwargs)

    return _make
