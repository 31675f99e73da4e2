"""Schema snapshots, structural diff, type mapping and FK ordering.

Public API re-exports for the schema subpackage.
"""

from schemadrift.schema.dependencies import (
    detect_circular_dependencies,
    detect_pivot_tables,
    get_creation_order,
    get_drop_order,
    topological_sort,
)
from schemadrift.schema.differ import diff_schemas, has_differences
from schemadrift.schema.introspect import introspect_schema
from schemadrift.schema.models import (
    ColumnDiff,
    ColumnInfo,
    ForeignKeyDiff,
    ForeignKeyInfo,
    IndexDiff,
    IndexInfo,
    Mismatch,
    SchemaDiff,
    SchemaSnapshot,
)
from schemadrift.schema.normalize import normalize_default, normalize_type
from schemadrift.schema.types import ColumnDeclaration, SqlType, TypeMapper

__all__ = [
    "ColumnDeclaration",
    "ColumnDiff",
    "ColumnInfo",
    "ForeignKeyDiff",
    "ForeignKeyInfo",
    "IndexDiff",
    "IndexInfo",
    "Mismatch",
    "SchemaDiff",
    "SchemaSnapshot",
    "SqlType",
    "TypeMapper",
    "detect_circular_dependencies",
    "detect_pivot_tables",
    "diff_schemas",
    "get_creation_order",
    "get_drop_order",
    "has_differences",
    "introspect_schema",
    "normalize_default",
    "normalize_type",
    "topological_sort",
]
