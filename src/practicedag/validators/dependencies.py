"""Validation of dependency edges.

Structural checks on single edges (presence, non-empty ids, self-reference)
are kept apart from the set-level checks: duplicate pairs, and the
cross-reference pass against the full practice set.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from practicedag.validators.base import FieldResult, ValidationIssue


@dataclass(frozen=True)
class DuplicateDependency:
    """A dependency pair listed more than once.

    Attributes:
        practice_id: Dependent practice id.
        depends_on_id: Prerequisite practice id.
        indices: Positions of every occurrence, first one included.
    """

    practice_id: str
    depends_on_id: str
    indices: tuple[int, ...]


def _is_id_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_valid_dependency_ids(practice_id: Any, depends_on_id: Any) -> bool:
    return _is_id_string(practice_id) and _is_id_string(depends_on_id)


def has_self_reference(practice_id: Any, depends_on_id: Any) -> bool:
    if not isinstance(practice_id, str) or not isinstance(depends_on_id, str):
        return False
    return practice_id == depends_on_id


def validate_dependency(dependency: Any) -> FieldResult:
    """Validate the structure of a single dependency.

    Self-reference is reported under its own "selfReference" key whether or
    not the id exists; existence is checked separately by
    validate_dependency_references().

    Args:
        dependency: Raw dependency entry.

    Returns:
        FieldResult mapping field (or "selfReference") to error message.
    """
    if not isinstance(dependency, Mapping):
        return FieldResult(errors={"dependency": "Dependency must be an object"})

    result = FieldResult()
    for name in ("practice_id", "depends_on_id"):
        if name not in dependency:
            result.errors[name] = f"Missing required field: {name}"
    if result.errors:
        return result

    practice_id = dependency["practice_id"]
    depends_on_id = dependency["depends_on_id"]

    if not _is_id_string(practice_id):
        result.errors["practice_id"] = "practice_id must be a non-empty string"
    if not _is_id_string(depends_on_id):
        result.errors["depends_on_id"] = "depends_on_id must be a non-empty string"

    if has_self_reference(practice_id, depends_on_id):
        result.errors["selfReference"] = (
            f'Self-reference detected: practice "{practice_id}" cannot depend on itself'
        )

    return result


def dependency_edges(dependencies: Iterable[Any]) -> list[tuple[str, str]]:
    """Extract (practice_id, depends_on_id) from well-formed entries only."""
    edges: list[tuple[str, str]] = []
    for dependency in dependencies:
        if not isinstance(dependency, Mapping):
            continue
        practice_id = dependency.get("practice_id")
        depends_on_id = dependency.get("depends_on_id")
        if is_valid_dependency_ids(practice_id, depends_on_id):
            edges.append((practice_id, depends_on_id))
    return edges


def find_duplicate_dependencies(dependencies: Iterable[Any]) -> list[DuplicateDependency]:
    """Find dependency pairs that occur more than once.

    Each duplicated pair is reported once, with all its positions.
    Malformed entries are ignored here.
    """
    positions: dict[tuple[str, str], list[int]] = {}
    for index, dependency in enumerate(dependencies):
        if not isinstance(dependency, Mapping):
            continue
        practice_id = dependency.get("practice_id")
        depends_on_id = dependency.get("depends_on_id")
        if not is_valid_dependency_ids(practice_id, depends_on_id):
            continue
        positions.setdefault((practice_id, depends_on_id), []).append(index)

    return [
        DuplicateDependency(practice_id, depends_on_id, tuple(indices))
        for (practice_id, depends_on_id), indices in positions.items()
        if len(indices) > 1
    ]


def validate_dependencies(dependencies: Iterable[Any]) -> list[ValidationIssue]:
    """Per-edge structural checks plus duplicate detection.

    Args:
        dependencies: Raw dependency entries.

    Returns:
        Issues for the "dependencies" bucket.
    """
    entries = list(dependencies)
    issues: list[ValidationIssue] = []

    for index, dependency in enumerate(entries):
        result = validate_dependency(dependency)
        owner = dependency.get("practice_id") if isinstance(dependency, Mapping) else None
        label = owner if _is_id_string(owner) else "unknown"
        for field_name, message in result.errors.items():
            issues.append(
                ValidationIssue(
                    kind="self_reference" if field_name == "selfReference" else "field",
                    bucket="dependencies",
                    message=f"Dependency {index} ({label}): {message}",
                    subject=f"dependency-{index}",
                    field=field_name,
                )
            )

    for duplicate in find_duplicate_dependencies(entries):
        indices = ", ".join(str(i) for i in duplicate.indices)
        issues.append(
            ValidationIssue(
                kind="duplicate_dependency",
                bucket="dependencies",
                message=(
                    f"Duplicate dependency: {duplicate.practice_id} -> "
                    f"{duplicate.depends_on_id} (indices {indices})"
                ),
                subject=f"dependency-{duplicate.indices[0]}",
            )
        )

    return issues


def validate_dependency_references(
    dependencies: Iterable[Any], practice_ids: Collection[str]
) -> list[ValidationIssue]:
    """Check that both ends of every edge name an existing practice.

    Args:
        dependencies: Raw dependency entries.
        practice_ids: Ids of the practices in the same document.

    Returns:
        One dangling-reference issue per missing endpoint.
    """
    known = set(practice_ids)
    issues: list[ValidationIssue] = []

    for index, dependency in enumerate(dependencies):
        if not isinstance(dependency, Mapping):
            continue
        for name in ("practice_id", "depends_on_id"):
            value = dependency.get(name)
            if not _is_id_string(value) or value in known:
                continue
            issues.append(
                ValidationIssue(
                    kind="dangling_reference",
                    bucket="dependencies",
                    message=(
                        f'Dependency {index}: {name} "{value}" does not reference '
                        "an existing practice"
                    ),
                    subject=f"dependency-{index}",
                    field=name,
                )
            )

    return issues
