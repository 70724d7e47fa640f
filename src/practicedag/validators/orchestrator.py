"""Schema orchestrator: whole-document validation in one pass.

Runs every check over a catalog document and collects the issues into one
SchemaReport. Stages run in a fixed order and never short-circuit, so a
single run surfaces every defect; stages after a structural failure simply
see empty collections for the malformed parts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from practicedag.graph.cycles import find_cycles
from practicedag.graph.snapshot import GraphSnapshot
from practicedag.graph.traversal import bfs_levels
from practicedag.validators.base import (
    BUCKET_ORDER,
    CycleIssue,
    SchemaReport,
    ValidationIssue,
    ValidationRules,
)
from practicedag.validators.dependencies import (
    dependency_edges,
    validate_dependencies,
    validate_dependency_references,
)
from practicedag.validators.fields import validate_practices
from practicedag.validators.metadata import metadata_issues

logger = logging.getLogger(__name__)

NO_DEPENDENCIES_WARNING = "Schema has no dependencies defined"


@dataclass
class SchemaParts:
    """The three top-level collections, emptied where malformed.

    Attributes:
        practices: Practice entries, or [] if "practices" is not a list.
        dependencies: Dependency entries, or [] if not a list.
        metadata: Metadata mapping, or None if not an object.
    """

    practices: list[Any] = field(default_factory=list)
    dependencies: list[Any] = field(default_factory=list)
    metadata: Mapping[str, Any] | None = None

    @classmethod
    def from_document(cls, document: Any) -> SchemaParts:
        if not isinstance(document, Mapping):
            return cls()
        practices = document.get("practices")
        dependencies = document.get("dependencies")
        metadata = document.get("metadata")
        return cls(
            practices=list(practices) if isinstance(practices, list) else [],
            dependencies=list(dependencies) if isinstance(dependencies, list) else [],
            metadata=metadata if isinstance(metadata, Mapping) else None,
        )

    def practice_ids(self) -> list[str]:
        """Distinct string ids of the practices, first occurrence order."""
        ids: dict[str, None] = {}
        for practice in self.practices:
            if isinstance(practice, Mapping) and isinstance(practice.get("id"), str):
                ids.setdefault(practice["id"], None)
        return list(ids)

    def roots(self) -> list[Mapping[str, Any]]:
        return [
            practice
            for practice in self.practices
            if isinstance(practice, Mapping) and practice.get("type") == "root"
        ]


def _structure_issue(field_name: str, message: str) -> ValidationIssue:
    return ValidationIssue(kind="structure", bucket="structure", message=message, field=field_name)


def check_structure(document: Any) -> list[ValidationIssue]:
    """Check the top-level shape: practices, dependencies and metadata."""
    if not isinstance(document, Mapping):
        return [_structure_issue("schema", "Schema must be an object")]

    issues: list[ValidationIssue] = []

    if "practices" not in document:
        issues.append(_structure_issue("practices", 'Field "practices" is required'))
    elif not isinstance(document["practices"], list):
        issues.append(_structure_issue("practices", 'Field "practices" must be an array'))
    elif not document["practices"]:
        issues.append(
            _structure_issue(
                "practices", 'Field "practices" must contain at least one practice'
            )
        )

    if "dependencies" not in document:
        issues.append(_structure_issue("dependencies", 'Field "dependencies" is required'))
    elif not isinstance(document["dependencies"], list):
        issues.append(_structure_issue("dependencies", 'Field "dependencies" must be an array'))

    if "metadata" not in document:
        issues.append(_structure_issue("metadata", 'Field "metadata" is required'))
    elif not isinstance(document["metadata"], Mapping):
        issues.append(_structure_issue("metadata", 'Field "metadata" must be an object'))

    return issues


def find_duplicate_practice_ids(practices: Iterable[Any]) -> dict[str, list[int]]:
    """Practice ids used more than once, with the indices of every use."""
    positions: dict[str, list[int]] = {}
    for index, practice in enumerate(practices):
        if isinstance(practice, Mapping) and isinstance(practice.get("id"), str):
            positions.setdefault(practice["id"], []).append(index)
    return {practice_id: indices for practice_id, indices in positions.items() if len(indices) > 1}


def check_unique_ids(parts: SchemaParts) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            kind="duplicate_id",
            bucket="duplicatePractices",
            message=(
                f'Duplicate practice ID "{practice_id}" found at indices: '
                f"{', '.join(str(i) for i in indices)}"
            ),
            subject=practice_id,
        )
        for practice_id, indices in find_duplicate_practice_ids(parts.practices).items()
    ]


def check_root_practice(parts: SchemaParts, root_category: str) -> list[ValidationIssue]:
    """Exactly one root, in the root category, that nothing depends on.

    Args:
        parts: Document collections.
        root_category: Category the root practice must have.

    Returns:
        Issues for the "rootPractice" bucket.
    """
    roots = parts.roots()
    if not roots:
        return [
            ValidationIssue(
                kind="missing_root",
                bucket="rootPractice",
                message='Schema must contain exactly one root practice (type: "root")',
            )
        ]
    if len(roots) > 1:
        ids = ", ".join(str(root.get("id")) for root in roots)
        return [
            ValidationIssue(
                kind="multiple_roots",
                bucket="rootPractice",
                message=f"Schema must contain exactly one root practice, found {len(roots)}: {ids}",
            )
        ]

    root = roots[0]
    root_id = root.get("id")
    issues: list[ValidationIssue] = []

    if root.get("category") != root_category:
        issues.append(
            ValidationIssue(
                kind="wrong_root_category",
                bucket="rootPractice",
                message=(
                    f'Root practice "{root_id}" must have category "{root_category}", '
                    f'but has "{root.get("category")}"'
                ),
                subject=root_id if isinstance(root_id, str) else None,
                field="category",
            )
        )

    dependents = sorted(
        {source for source, target in dependency_edges(parts.dependencies) if target == root_id}
    )
    if dependents:
        issues.append(
            ValidationIssue(
                kind="root_has_dependents",
                bucket="rootPractice",
                message=(
                    f'Root practice "{root_id}" must not be a dependency of other practices, '
                    f"but is required by: {', '.join(dependents)}"
                ),
                subject=root_id,
            )
        )

    return issues


def find_circular_dependencies(dependencies: Iterable[Any]) -> list[list[str]]:
    """Cycles among well-formed dependency entries.

    Self-loops are included and come back as two-element cycles (`[a, a]`).
    """
    return find_cycles(GraphSnapshot.build(dependency_edges(dependencies)))


def check_cycles(parts: SchemaParts) -> list[ValidationIssue]:
    return [
        CycleIssue(
            kind="circular_dependency",
            bucket="circularDependencies",
            message=f"Circular dependency: {' -> '.join(cycle)}",
            subject=cycle[0],
            cycle=cycle,
        )
        for cycle in find_circular_dependencies(parts.dependencies)
    ]


def find_unreachable_practices(parts: SchemaParts) -> list[str]:
    """Practices with no dependency chain from the single root.

    Returns [] unless there is exactly one root with a string id.
    """
    roots = parts.roots()
    if len(roots) != 1 or not isinstance(roots[0].get("id"), str):
        return []

    practice_ids = parts.practice_ids()
    known = set(practice_ids)
    edges = [
        edge
        for edge in dependency_edges(parts.dependencies)
        if edge[0] in known and edge[1] in known
    ]
    snapshot = GraphSnapshot.build(edges, node_ids=practice_ids)
    # No depth cap: reachability must be exact here
    reached = bfs_levels(snapshot.forward, [snapshot.index[roots[0]["id"]]], len(snapshot))
    return [practice_id for practice_id in practice_ids if snapshot.index[practice_id] not in reached]


class SchemaOrchestrator:
    """Runs the validation stages over a catalog document.

    Stages, in order: structure, practice fields, unique ids, root practice,
    dependency pairs, cross-references, cycles, metadata.
    """

    STAGES: tuple[str, ...] = (
        "structure",
        "practices",
        "unique_ids",
        "root",
        "dependencies",
        "references",
        "cycles",
        "metadata",
    )

    def __init__(self, rules: ValidationRules | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            rules: Domain rules; defaults to ValidationRules().
        """
        self.rules = rules or ValidationRules()

    def validate(self, document: Any) -> SchemaReport:
        """Validate a whole document.

        Args:
            document: Parsed catalog document (any value is accepted).

        Returns:
            SchemaReport with every issue found and any warnings.
        """
        parts = SchemaParts.from_document(document)
        stages: dict[str, Callable[[], list[ValidationIssue]]] = {
            "structure": lambda: check_structure(document),
            "practices": lambda: validate_practices(parts.practices, self.rules.categories),
            "unique_ids": lambda: check_unique_ids(parts),
            "root": lambda: check_root_practice(parts, self.rules.root_category),
            "dependencies": lambda: validate_dependencies(parts.dependencies),
            "references": lambda: validate_dependency_references(
                parts.dependencies, parts.practice_ids()
            ),
            "cycles": lambda: check_cycles(parts),
            "metadata": lambda: (
                metadata_issues(parts.metadata, today=self.rules.today)
                if parts.metadata is not None
                else []
            ),
        }

        collected: list[ValidationIssue] = []
        for name in self.STAGES:
            started = time.perf_counter()
            issues = stages[name]()
            logger.debug(
                "Stage %s: %d issue(s) in %.2f ms",
                name,
                len(issues),
                (time.perf_counter() - started) * 1000,
            )
            collected.extend(issues)

        report = SchemaReport()
        for bucket in BUCKET_ORDER:
            for issue in collected:
                if issue.bucket == bucket:
                    report.add(issue)

        report.warnings.extend(self._warnings(document, parts))
        return report

    def _warnings(self, document: Any, parts: SchemaParts) -> list[str]:
        warnings: list[str] = []
        if isinstance(document, Mapping) and document.get("dependencies") == []:
            warnings.append(NO_DEPENDENCIES_WARNING)
        for practice_id in find_unreachable_practices(parts):
            warnings.append(f'Practice "{practice_id}" is not reachable from the root practice')
        return warnings


def validate_schema(document: Any, rules: ValidationRules | None = None) -> SchemaReport:
    """Validate a catalog document with the default stage pipeline."""
    return SchemaOrchestrator(rules).validate(document)


def summarize(document: Any, report: SchemaReport) -> dict[str, Any]:
    """Counts describing a validated document.

    Args:
        document: The validated document.
        report: Its validation report.

    Returns:
        Totals, counts by type and by category, and error/warning counts.
        errorCount counts error buckets, not individual issues.
    """
    parts = SchemaParts.from_document(document)
    by_type: dict[str, int] = {}
    by_category: dict[str, int] = {}
    for practice in parts.practices:
        if not isinstance(practice, Mapping):
            continue
        practice_type = str(practice.get("type"))
        category = str(practice.get("category"))
        by_type[practice_type] = by_type.get(practice_type, 0) + 1
        by_category[category] = by_category.get(category, 0) + 1

    return {
        "totalPractices": len(parts.practices),
        "totalDependencies": len(parts.dependencies),
        "practicesByType": by_type,
        "practicesByCategory": by_category,
        "hasErrors": not report.is_valid,
        "hasWarnings": bool(report.warnings),
        "errorCount": len(report.errors),
        "warningCount": len(report.warnings),
        "errorCategories": list(report.errors),
    }


def format_report(report: SchemaReport) -> list[str]:
    """Display lines for a report, issues numbered under each bucket."""
    if report.is_valid:
        return ["Schema validation passed"]

    lines = [f"Schema validation failed with {len(report.issues)} error(s)"]
    for bucket, issues in report.errors.items():
        lines.append(f"[{bucket.upper()}]")
        for number, issue in enumerate(issues, start=1):
            lines.append(f"  {number}. {issue.message}")
    return lines
