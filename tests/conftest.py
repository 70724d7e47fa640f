"""Pytest configuration and fixtures for practicedag tests."""

from __future__ import annotations

import copy
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

from practicedag.database import PracticeDB  # noqa: E402

# Diamond-shaped catalog used across the suite:
#
#   continuous-delivery -> continuous-integration -> version-control
#   continuous-delivery -> deployment-pipeline    -> version-control
#   continuous-integration -> automated-testing   -> version-control
PRACTICE_NAMES = {
    "continuous-delivery": "Continuous Delivery",
    "continuous-integration": "Continuous Integration",
    "deployment-pipeline": "Deployment Pipeline",
    "version-control": "Version Control",
    "automated-testing": "Automated Testing",
}

EDGES = [
    ("continuous-delivery", "continuous-integration"),
    ("continuous-delivery", "deployment-pipeline"),
    ("continuous-integration", "version-control"),
    ("continuous-integration", "automated-testing"),
    ("deployment-pipeline", "version-control"),
    ("automated-testing", "version-control"),
]


def build_practice(
    practice_id: str,
    *,
    name: str | None = None,
    practice_type: str = "practice",
    category: str = "automation",
) -> dict[str, Any]:
    """Build a valid practice mapping."""
    return {
        "id": practice_id,
        "name": name or practice_id.replace("-", " ").title(),
        "type": practice_type,
        "category": category,
        "description": f"Description of the {practice_id} practice.",
        "requirements": ["Keep it in version control", "Run it on every change"],
        "benefits": ["Faster feedback"],
    }


def build_document(
    names: dict[str, str] | None = None,
    edges: list[tuple[str, str]] | None = None,
    root_id: str = "continuous-delivery",
) -> dict[str, Any]:
    """Build a catalog document; root_id becomes the core-category root."""
    names = PRACTICE_NAMES if names is None else names
    edges = EDGES if edges is None else edges
    practices = [
        build_practice(
            practice_id,
            name=name,
            practice_type="root" if practice_id == root_id else "practice",
            category="core" if practice_id == root_id else "automation",
        )
        for practice_id, name in names.items()
    ]
    return {
        "practices": practices,
        "dependencies": [
            {"practice_id": practice_id, "depends_on_id": depends_on_id}
            for practice_id, depends_on_id in edges
        ],
        "metadata": {"version": "1.0.0", "lastUpdated": "2025-01-15"},
    }


@pytest.fixture
def make_practice() -> Callable[..., dict[str, Any]]:
    """Factory for valid practice mappings."""
    return build_practice


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Factory for catalog documents."""
    return build_document


@pytest.fixture
def valid_document() -> dict[str, Any]:
    """The diamond catalog as a fresh, valid document."""
    return copy.deepcopy(build_document())


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Path for a new SQLite practice store."""
    return tmp_path / "practices.db"


@pytest.fixture
def db(temp_db_path: Path) -> Generator[PracticeDB, None, None]:
    """A connected, empty practice store."""
    with PracticeDB(temp_db_path) as connected:
        yield connected


@pytest.fixture
def loaded_db(db: PracticeDB, valid_document: dict[str, Any]) -> PracticeDB:
    """A practice store holding the diamond catalog."""
    from practicedag.store import import_document

    import_document(db, valid_document)
    return db
