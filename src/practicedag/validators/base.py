"""Base validation models for practice catalog documents.

Validators are total: they never raise on malformed input and report
problems as ValidationIssue values instead. The orchestrator collects the
issues into error buckets keyed by the part of the document they concern.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from practicedag.models import DEFAULT_CATEGORIES, ROOT_CATEGORY

IssueKind = Literal[
    "structure",
    "field",
    "duplicate_id",
    "missing_root",
    "multiple_roots",
    "wrong_root_category",
    "root_has_dependents",
    "self_reference",
    "dangling_reference",
    "duplicate_dependency",
    "circular_dependency",
    "metadata_format",
]

ErrorBucket = Literal[
    "structure",
    "practices",
    "duplicatePractices",
    "rootPractice",
    "dependencies",
    "circularDependencies",
    "metadata",
]

# Report order of the error buckets (matches pipeline stage order)
BUCKET_ORDER: tuple[ErrorBucket, ...] = (
    "structure",
    "practices",
    "duplicatePractices",
    "rootPractice",
    "dependencies",
    "circularDependencies",
    "metadata",
)


@dataclass
class ValidationIssue:
    """A single validation issue.

    Attributes:
        kind: Machine-readable issue kind (e.g., "self_reference").
        bucket: Error bucket the issue is reported under.
        message: Human-readable description of the issue.
        subject: Practice id or dependency label the issue concerns.
        field: Offending field name, when the issue is about one field.
    """

    kind: IssueKind
    bucket: ErrorBucket
    message: str
    subject: str | None = None
    field: str | None = None


@dataclass
class CycleIssue(ValidationIssue):
    """A circular dependency, carrying the closed node sequence.

    Attributes:
        cycle: Node ids of the cycle, first id repeated at the end
            (e.g., ["a", "b", "c", "a"]).
    """

    cycle: list[str] = field(default_factory=list)


@dataclass
class FieldResult:
    """Outcome of validating one record: field name -> error message."""

    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ValidationRules:
    """Domain rules the validators check against.

    Attributes:
        categories: Allowed practice categories.
        root_category: Category the root practice must have.
        today: Reference date for the "not in the future" check.
            None means the current local date.
    """

    categories: tuple[str, ...] = DEFAULT_CATEGORIES
    root_category: str = ROOT_CATEGORY
    today: date | None = None


@dataclass
class SchemaReport:
    """Result of a full document validation.

    Attributes:
        errors: Issues per error bucket; buckets without issues are absent.
        warnings: Non-blocking observations (e.g., no dependencies defined).
    """

    errors: dict[str, list[ValidationIssue]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def issues(self) -> list[ValidationIssue]:
        """All issues, flattened in bucket order."""
        return [issue for bucket in self.errors.values() for issue in bucket]

    def add(self, issue: ValidationIssue) -> None:
        self.errors.setdefault(issue.bucket, []).append(issue)

    def messages(self, bucket: str) -> list[str]:
        return [issue.message for issue in self.errors.get(bucket, [])]

    def of_kind(self, kind: IssueKind) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire form: {isValid, errors: {bucket: [msg]}, warnings}."""
        return {
            "isValid": self.is_valid,
            "errors": {bucket: self.messages(bucket) for bucket in self.errors},
            "warnings": list(self.warnings),
        }
