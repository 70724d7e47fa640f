"""Loading catalog documents from JSON or YAML files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

YAML_SUFFIXES = (".yaml", ".yml")
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted dates such as 2025-01-15 as strings."""


DocumentLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class DocumentError(Exception):
    """Raised when a catalog document cannot be read or parsed."""


def load_document(path: str | Path) -> Any:
    """Read and parse a catalog document.

    YAML is used for .yaml/.yml files, JSON for everything else. YAML
    timestamps are not resolved, so dates reach the validator as text.
    The parsed value is returned as-is; checking its shape is the
    validator's job.

    Args:
        path: Document file.

    Returns:
        The parsed document.

    Raises:
        DocumentError: If the file cannot be read or is not valid JSON/YAML.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                return yaml.load(f, Loader=DocumentLoader)
            return json.load(f)
    except OSError as e:
        raise DocumentError(f"Cannot read {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DocumentError(f"Cannot parse {path}: {e}") from e
