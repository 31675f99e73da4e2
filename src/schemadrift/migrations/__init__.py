"""Migration facts, classification, repair and consolidation.

Public API re-exports for the migrations subpackage.
"""

from schemadrift.migrations.bookkeeping import BookkeepingStore
from schemadrift.migrations.classifier import MigrationStateClassifier, is_applied_to_schema
from schemadrift.migrations.consolidation import (
    Candidate,
    Consolidator,
    ReplayResult,
    ReplayState,
    find_candidates,
    is_consolidatable,
    replay,
    skip_reason,
)
from schemadrift.migrations.fixes import FixAction, FixKind, FixSummary, apply_fixes, plan_fixes
from schemadrift.migrations.generator import MigrationGenerator, YamlMigrationGenerator
from schemadrift.migrations.inference import (
    DEFAULT_MATCHERS,
    TableNameMatcher,
    infer_table_name,
    strip_prefix,
)
from schemadrift.migrations.loader import (
    RecordDiff,
    compute_record_diff,
    get_migration_names,
    load_definition,
    load_definitions,
)
from schemadrift.migrations.models import (
    Applied,
    ApplyEvidence,
    ConsolidationResult,
    ForeignKeySpec,
    IndexSpec,
    MigrationDefinition,
    MigrationState,
    MigrationStatus,
    OperationType,
)
from schemadrift.migrations.quality import (
    IssueType,
    QualityIssue,
    Severity,
    analyze_definitions,
)

__all__ = [
    "DEFAULT_MATCHERS",
    "Applied",
    "ApplyEvidence",
    "BookkeepingStore",
    "Candidate",
    "ConsolidationResult",
    "Consolidator",
    "FixAction",
    "FixKind",
    "FixSummary",
    "ForeignKeySpec",
    "IndexSpec",
    "IssueType",
    "MigrationDefinition",
    "MigrationGenerator",
    "MigrationState",
    "MigrationStateClassifier",
    "MigrationStatus",
    "OperationType",
    "QualityIssue",
    "RecordDiff",
    "ReplayResult",
    "ReplayState",
    "Severity",
    "TableNameMatcher",
    "YamlMigrationGenerator",
    "analyze_definitions",
    "apply_fixes",
    "compute_record_diff",
    "find_candidates",
    "get_migration_names",
    "infer_table_name",
    "is_applied_to_schema",
    "is_consolidatable",
    "load_definition",
    "load_definitions",
    "plan_fixes",
    "replay",
    "skip_reason",
    "strip_prefix",
]
