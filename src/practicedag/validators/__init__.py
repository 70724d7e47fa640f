"""Validation of practice catalog documents.

Field, dependency and metadata validators, composed by the schema
orchestrator into one report per document.
"""

from __future__ import annotations

from practicedag.validators.base import (
    BUCKET_ORDER,
    CycleIssue,
    ErrorBucket,
    FieldResult,
    IssueKind,
    SchemaReport,
    ValidationIssue,
    ValidationRules,
)
from practicedag.validators.dependencies import (
    find_duplicate_dependencies,
    validate_dependencies,
    validate_dependency,
    validate_dependency_references,
)
from practicedag.validators.fields import validate_practice, validate_practices
from practicedag.validators.metadata import (
    compare_versions,
    validate_metadata,
    validate_metadata_with_constraints,
)
from practicedag.validators.orchestrator import (
    SchemaOrchestrator,
    format_report,
    summarize,
    validate_schema,
)

__all__ = [
    # Base types
    "BUCKET_ORDER",
    "CycleIssue",
    "ErrorBucket",
    "FieldResult",
    "IssueKind",
    "SchemaReport",
    "ValidationIssue",
    "ValidationRules",
    # Validators
    "compare_versions",
    "find_duplicate_dependencies",
    "validate_dependencies",
    "validate_dependency",
    "validate_dependency_references",
    "validate_metadata",
    "validate_metadata_with_constraints",
    "validate_practice",
    "validate_practices",
    # Orchestrator
    "SchemaOrchestrator",
    "format_report",
    "summarize",
    "validate_schema",
]
