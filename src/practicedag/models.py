"""Entity model for the practice catalog.

Passive records only:
- Practice: a node of the dependency graph
- Dependency: a directed edge, "practice_id requires depends_on_id first"
- Metadata: dataset-level key/value records (version, lastUpdated, ...)

Validators work on raw mappings because authoring input may be malformed.
These dataclasses are built from input that already passed validation.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

PracticeType = Literal["root", "practice"]

PRACTICE_TYPES: tuple[str, ...] = ("practice", "root")
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "automation",
    "behavior",
    "behavior-enabled-automation",
    "core",
)
ROOT_CATEGORY = "core"

REQUIRED_METADATA_KEYS: tuple[str, ...] = ("version", "lastUpdated")
OPTIONAL_METADATA_KEYS: tuple[str, ...] = ("changelog", "source", "description")


@dataclass(frozen=True)
class Practice:
    """A single practice in the catalog.

    Attributes:
        id: Kebab-case unique key (e.g., "continuous-integration").
        name: Human-readable name.
        type: "root" for the overall goal, "practice" otherwise.
        category: Category name from the configured category set.
        description: Free-text description.
        requirements: Ordered requirement statements.
        benefits: Ordered benefit statements.
    """

    id: str
    name: str
    type: PracticeType
    category: str
    description: str
    requirements: tuple[str, ...] = ()
    benefits: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.type == "root"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Practice:
        """Build a Practice from its authoring (or database row) form.

        Requirements and benefits may be given as lists or as JSON text,
        the latter being how the store keeps them.

        Args:
            data: Mapping with the practice fields.

        Returns:
            The Practice record.

        Raises:
            KeyError: If a required field is missing.
        """
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            category=data["category"],
            description=data["description"],
            requirements=_as_text_tuple(data.get("requirements", ())),
            benefits=_as_text_tuple(data.get("benefits", ())),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the authoring document form."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "requirements": list(self.requirements),
            "benefits": list(self.benefits),
        }


@dataclass(frozen=True)
class Dependency:
    """A prerequisite edge: practice_id requires depends_on_id first."""

    practice_id: str
    depends_on_id: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dependency:
        return cls(practice_id=data["practice_id"], depends_on_id=data["depends_on_id"])

    def to_dict(self) -> dict[str, str]:
        return {"practice_id": self.practice_id, "depends_on_id": self.depends_on_id}

    def as_edge(self) -> tuple[str, str]:
        return (self.practice_id, self.depends_on_id)


@dataclass(frozen=True)
class Metadata:
    """Dataset metadata.

    Stored as key/value records; `version` and `lastUpdated` are required.

    Attributes:
        version: Semantic version of the dataset.
        last_updated: ISO date (YYYY-MM-DD) of the last content change.
        changelog: Optional changelog text.
        source: Optional source attribution.
        description: Optional dataset description.
    """

    version: str
    last_updated: str
    changelog: str | None = None
    source: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Metadata:
        return cls(
            version=data["version"],
            last_updated=data["lastUpdated"],
            changelog=data.get("changelog"),
            source=data.get("source"),
            description=data.get("description"),
        )

    def to_dict(self) -> dict[str, str]:
        """Convert to the authoring form, omitting unset optional keys."""
        result = {"version": self.version, "lastUpdated": self.last_updated}
        for key in OPTIONAL_METADATA_KEYS:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result

    def to_records(self) -> list[tuple[str, str]]:
        """Key/value records as persisted, values JSON-encoded."""
        return [(key, json.dumps(value)) for key, value in self.to_dict().items()]

    @classmethod
    def from_records(cls, records: Mapping[str, str]) -> Metadata:
        """Rebuild from persisted key/value records (JSON-encoded values)."""
        return cls.from_dict({key: json.loads(value) for key, value in records.items()})


def _as_text_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = json.loads(value)
    return tuple(value)
