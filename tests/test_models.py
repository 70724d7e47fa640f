"""Tests for practicedag.models module."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from practicedag.models import Dependency, Metadata, Practice


class TestPractice:
    """Tests for the Practice record."""

    def test_from_dict_builds_tuples(self, make_practice: Callable[..., dict[str, Any]]) -> None:
        """Test requirements and benefits become tuples."""
        practice = Practice.from_dict(make_practice("version-control"))
        assert practice.id == "version-control"
        assert practice.requirements == ("Keep it in version control", "Run it on every change")
        assert practice.benefits == ("Faster feedback",)

    def test_from_dict_accepts_json_text(
        self, make_practice: Callable[..., dict[str, Any]]
    ) -> None:
        """Test list fields stored as JSON text are decoded."""
        data = make_practice("version-control")
        data["requirements"] = json.dumps(["Commit everything"])
        practice = Practice.from_dict(data)
        assert practice.requirements == ("Commit everything",)

    def test_from_dict_missing_field_raises(self) -> None:
        """Test a missing required field raises KeyError."""
        with pytest.raises(KeyError):
            Practice.from_dict({"id": "x"})

    def test_to_dict_uses_lists(self, make_practice: Callable[..., dict[str, Any]]) -> None:
        """Test to_dict returns the authoring form."""
        data = make_practice("version-control")
        assert Practice.from_dict(data).to_dict() == data

    def test_is_root(self, make_practice: Callable[..., dict[str, Any]]) -> None:
        """Test is_root reflects the practice type."""
        root = Practice.from_dict(
            make_practice("continuous-delivery", practice_type="root", category="core")
        )
        leaf = Practice.from_dict(make_practice("version-control"))
        assert root.is_root
        assert not leaf.is_root


class TestDependency:
    """Tests for the Dependency record."""

    def test_round_trip_and_edge(self) -> None:
        """Test wire form conversion and edge tuple."""
        dependency = Dependency.from_dict({"practice_id": "a", "depends_on_id": "b"})
        assert dependency.to_dict() == {"practice_id": "a", "depends_on_id": "b"}
        assert dependency.as_edge() == ("a", "b")


class TestMetadata:
    """Tests for the Metadata record."""

    def test_to_dict_omits_unset_optionals(self) -> None:
        """Test only set keys appear in the authoring form."""
        metadata = Metadata.from_dict({"version": "1.2.0", "lastUpdated": "2025-01-15"})
        assert metadata.last_updated == "2025-01-15"
        assert metadata.to_dict() == {"version": "1.2.0", "lastUpdated": "2025-01-15"}

    def test_records_are_json_encoded(self) -> None:
        """Test persisted records hold JSON-encoded values."""
        metadata = Metadata("1.2.0", "2025-01-15", changelog="Initial release")
        records = dict(metadata.to_records())
        assert records["version"] == '"1.2.0"'
        assert Metadata.from_records(records) == metadata
