"""Field-level validation for individual practices.

Pure predicates per field, composed into a per-practice check. Nothing here
raises: a wrong type is simply an invalid value.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from practicedag.models import DEFAULT_CATEGORIES, PRACTICE_TYPES
from practicedag.validators.base import FieldResult, ValidationIssue

KEBAB_CASE_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

REQUIRED_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "type",
    "category",
    "description",
    "requirements",
    "benefits",
)

NAME_LENGTH = (3, 200)
DESCRIPTION_LENGTH = (10, 2000)
ITEM_LENGTH = (3, 500)


def _is_text(value: Any, bounds: tuple[int, int]) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    low, high = bounds
    return low <= len(value) <= high


def is_valid_practice_id(value: Any) -> bool:
    """Check kebab-case: lowercase alphanumeric segments joined by single hyphens."""
    return isinstance(value, str) and KEBAB_CASE_PATTERN.fullmatch(value) is not None


def is_valid_practice_name(value: Any) -> bool:
    return _is_text(value, NAME_LENGTH)


def is_valid_practice_type(value: Any) -> bool:
    return isinstance(value, str) and value in PRACTICE_TYPES


def is_valid_practice_category(
    value: Any, categories: Iterable[str] = DEFAULT_CATEGORIES
) -> bool:
    return isinstance(value, str) and value in tuple(categories)


def is_valid_practice_description(value: Any) -> bool:
    return _is_text(value, DESCRIPTION_LENGTH)


def is_valid_text_list(value: Any) -> bool:
    """Check a requirements/benefits list.

    The list must be non-empty and every entry must be present (no None
    holes) and a non-blank string of 3-500 characters.
    """
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(_is_text(item, ITEM_LENGTH) for item in value)


def _text_list_error(label: str, value: Any) -> str:
    if not isinstance(value, (list, tuple)):
        return f"{label} must be a list"
    if not value:
        return f"{label} must contain at least one item"
    low, high = ITEM_LENGTH
    return f"All {label.lower()} must be non-empty strings ({low}-{high} characters)"


def validate_practice_fields(
    practice: Mapping[str, Any],
    categories: Iterable[str] = DEFAULT_CATEGORIES,
) -> FieldResult:
    """Validate presence and format of every practice field.

    Missing fields are reported first; if any are missing the value checks
    are skipped.

    Args:
        practice: Raw practice mapping.
        categories: Allowed category names.

    Returns:
        FieldResult mapping field name to error message.
    """
    result = FieldResult()
    allowed = tuple(categories)

    for name in REQUIRED_FIELDS:
        if name not in practice:
            result.errors[name] = f"Missing required field: {name}"
    if result.errors:
        return result

    if not is_valid_practice_id(practice["id"]):
        result.errors["id"] = (
            f'Invalid practice ID format: "{practice["id"]}". '
            'Must be kebab-case (e.g., "continuous-integration")'
        )

    if not is_valid_practice_name(practice["name"]):
        low, high = NAME_LENGTH
        result.errors["name"] = (
            f'Invalid practice name: "{practice["name"]}". '
            f"Must be {low}-{high} characters and non-empty"
        )

    if not is_valid_practice_type(practice["type"]):
        result.errors["type"] = (
            f'Invalid practice type: "{practice["type"]}". '
            f"Must be one of: {', '.join(PRACTICE_TYPES)}"
        )

    if not is_valid_practice_category(practice["category"], allowed):
        result.errors["category"] = (
            f'Invalid practice category: "{practice["category"]}". '
            f"Must be one of: {', '.join(allowed)}"
        )

    if not is_valid_practice_description(practice["description"]):
        low, high = DESCRIPTION_LENGTH
        result.errors["description"] = (
            f"Invalid practice description. Must be {low}-{high} characters and non-empty"
        )

    if not is_valid_text_list(practice["requirements"]):
        result.errors["requirements"] = _text_list_error("Requirements", practice["requirements"])

    if not is_valid_text_list(practice["benefits"]):
        result.errors["benefits"] = _text_list_error("Benefits", practice["benefits"])

    return result


def validate_practice(
    practice: Any, categories: Iterable[str] = DEFAULT_CATEGORIES
) -> FieldResult:
    """Validate one practice of unknown shape."""
    if not isinstance(practice, Mapping):
        return FieldResult(errors={"practice": "Practice must be an object"})
    return validate_practice_fields(practice, categories)


def practice_label(practice: Any, index: int) -> str:
    """Identify a practice in messages: its id, or unknown-<index>."""
    if isinstance(practice, Mapping):
        practice_id = practice.get("id")
        if isinstance(practice_id, str) and practice_id:
            return practice_id
    return f"unknown-{index}"


def validate_practices(
    practices: Iterable[Any], categories: Iterable[str] = DEFAULT_CATEGORIES
) -> list[ValidationIssue]:
    """Run the field checks over a list of practices.

    Args:
        practices: Raw practice entries.
        categories: Allowed category names.

    Returns:
        One issue per invalid field, message prefixed with "[<practice id>]".
    """
    allowed = tuple(categories)
    issues: list[ValidationIssue] = []

    for index, practice in enumerate(practices):
        result = validate_practice(practice, allowed)
        label = practice_label(practice, index)
        for field_name, message in result.errors.items():
            issues.append(
                ValidationIssue(
                    kind="field",
                    bucket="practices",
                    message=f"[{label}] {message}",
                    subject=label,
                    field=field_name,
                )
            )

    return issues
