"""Metadata validation: semantic version and last-updated date checks."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date
from typing import Any, NamedTuple

from practicedag.models import OPTIONAL_METADATA_KEYS, REQUIRED_METADATA_KEYS
from practicedag.validators.base import FieldResult, ValidationIssue

# Semantic Versioning 2.0.0: no leading zeros, optional pre-release and build
SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
    re.ASCII,
)
DATE_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$", re.ASCII)
MIN_YEAR_EXCLUSIVE = 1900


class SemanticVersion(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None


def is_valid_version(value: Any) -> bool:
    return isinstance(value, str) and SEMVER_PATTERN.fullmatch(value) is not None


def parse_semantic_version(value: Any) -> SemanticVersion | None:
    """Parse a semantic version string, or return None if it is invalid."""
    if not isinstance(value, str):
        return None
    match = SEMVER_PATTERN.fullmatch(value)
    if match is None:
        return None
    major, minor, patch, prerelease, build = match.groups()
    return SemanticVersion(int(major), int(minor), int(patch), prerelease, build)


def _compare_prerelease(left: str, right: str) -> int:
    # Identifier-wise: numeric < alphanumeric, numbers compared numerically,
    # a shorter identifier list sorts first when all shared ones are equal.
    for a, b in zip(left.split("."), right.split(".")):
        if a == b:
            continue
        if a.isdigit() and b.isdigit():
            return -1 if int(a) < int(b) else 1
        if a.isdigit():
            return -1
        if b.isdigit():
            return 1
        return -1 if a < b else 1
    left_count, right_count = left.count("."), right.count(".")
    return (left_count > right_count) - (left_count < right_count)


def compare_versions(left: Any, right: Any) -> int | None:
    """Compare two semantic versions by precedence.

    Build metadata is ignored and a pre-release sorts before its release.

    Returns:
        -1, 0 or 1; None if either version is invalid.
    """
    a = parse_semantic_version(left)
    b = parse_semantic_version(right)
    if a is None or b is None:
        return None

    if a[:3] != b[:3]:
        return -1 if a[:3] < b[:3] else 1
    if a.prerelease == b.prerelease:
        return 0
    if a.prerelease is None:
        return 1
    if b.prerelease is None:
        return -1
    return _compare_prerelease(a.prerelease, b.prerelease)


def parse_iso_date(value: Any) -> date | None:
    """Parse a strict YYYY-MM-DD calendar date, or return None."""
    if not isinstance(value, str) or DATE_PATTERN.fullmatch(value) is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        # Well-formed but not on the calendar, e.g. 2025-02-30
        return None


def is_valid_date(value: Any) -> bool:
    parsed = parse_iso_date(value)
    return parsed is not None and parsed.year > MIN_YEAR_EXCLUSIVE


def validate_metadata(metadata: Any, today: date | None = None) -> FieldResult:
    """Validate the metadata object of a catalog document.

    Args:
        metadata: Raw metadata mapping.
        today: Reference date for the future-date check (default: today).

    Returns:
        FieldResult mapping metadata key to error message.
    """
    if not isinstance(metadata, Mapping):
        return FieldResult(errors={"metadata": "Metadata must be an object"})

    result = FieldResult()
    for key in REQUIRED_METADATA_KEYS:
        if metadata.get(key) is None:
            result.errors[key] = f"Missing required field: {key}"
    if result.errors:
        return result

    for key in OPTIONAL_METADATA_KEYS:
        if key in metadata:
            value = metadata[key]
            if not isinstance(value, str) or not value.strip():
                result.errors[key] = f'Field "{key}" must be a non-empty string'

    version = metadata["version"]
    if not is_valid_version(version):
        result.errors["version"] = (
            f'Invalid version format: "{version}". Must be semantic version (e.g., "1.0.0")'
        )

    last_updated = metadata["lastUpdated"]
    if not is_valid_date(last_updated):
        result.errors["lastUpdated"] = (
            f'Invalid lastUpdated format: "{last_updated}". Must be ISO date (YYYY-MM-DD)'
        )
    else:
        reference = today or date.today()
        parsed = parse_iso_date(last_updated)
        if parsed is not None and parsed > reference:
            result.errors["lastUpdated"] = (
                f'lastUpdated cannot be in the future: "{last_updated}"'
            )

    return result


def validate_metadata_with_constraints(
    metadata: Any,
    min_version: str | None = None,
    max_version: str | None = None,
    today: date | None = None,
) -> FieldResult:
    """Validate metadata and additionally bound its version.

    Constraints are only applied when the base validation passes and the
    bound itself is a valid version.
    """
    result = validate_metadata(metadata, today=today)
    if not result.is_valid:
        return result

    version = metadata["version"]
    if min_version and is_valid_version(min_version):
        comparison = compare_versions(version, min_version)
        if comparison is not None and comparison < 0:
            result.errors["version"] = (
                f"Version {version} is less than minimum required version {min_version}"
            )
    if max_version and is_valid_version(max_version):
        comparison = compare_versions(version, max_version)
        if comparison is not None and comparison > 0:
            result.errors["version"] = (
                f"Version {version} is greater than maximum allowed version {max_version}"
            )

    return result


def metadata_issues(metadata: Any, today: date | None = None) -> list[ValidationIssue]:
    """Metadata validation as issues for the "metadata" bucket."""
    result = validate_metadata(metadata, today=today)
    return [
        ValidationIssue(
            kind="metadata_format" if key != "metadata" else "structure",
            bucket="metadata",
            message=message,
            field=key,
        )
        for key, message in result.errors.items()
    ]
