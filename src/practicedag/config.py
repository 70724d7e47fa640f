"""Configuration management for the practicedag CLI.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .practicedagrc > pyproject.toml > defaults
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from practicedag.graph.traversal import MAX_DEPTH
from practicedag.models import DEFAULT_CATEGORIES, ROOT_CATEGORY
from practicedag.validators.base import ValidationRules

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

RC_FILENAME = ".practicedagrc"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class PracticeDagConfig:
    """Configuration for the practicedag CLI.

    Attributes:
        db_path: SQLite practice store (default: "practices.db").
        categories: Allowed practice categories.
        root_category: Category the root practice must have (default: "core").
        max_depth: Traversal safety cap for graph queries (default: 100).
        log_level: Logging level name (default: "WARNING").
    """

    db_path: str = "practices.db"
    categories: list[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    root_category: str = ROOT_CATEGORY
    max_depth: int = MAX_DEPTH
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if isinstance(self.categories, tuple):
            self.categories = list(self.categories)
        if isinstance(self.log_level, str):
            self.log_level = self.log_level.upper()
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not self.db_path or not isinstance(self.db_path, str):
            raise ValueError("db_path must be a non-empty string")

        if not isinstance(self.categories, list) or not self.categories:
            raise ValueError("categories must be a non-empty list")
        if not all(isinstance(c, str) and c.strip() for c in self.categories):
            raise ValueError("categories must contain only non-empty strings")

        if self.root_category not in self.categories:
            raise ValueError(
                f"root_category {self.root_category!r} must be one of the categories"
            )

        # bool is an int subclass; reject it explicitly
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int):
            raise ValueError("max_depth must be an integer")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    def get_db_path(self, base_path: Path | None = None) -> Path:
        """Get the full path to the practice store.

        Args:
            base_path: Base path to resolve a relative db_path from.
                Defaults to current directory.

        Returns:
            Path to the database file.
        """
        path = Path(self.db_path)
        if path.is_absolute():
            return path
        return (base_path or Path.cwd()) / path

    def validation_rules(self) -> ValidationRules:
        """Validation rules derived from this configuration."""
        return ValidationRules(
            categories=tuple(self.categories),
            root_category=self.root_category,
        )


def _get_config_field_names() -> set[str]:
    return {f.name for f in fields(PracticeDagConfig)}


def find_config_file(filename: str = RC_FILENAME, start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _load_from_rc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the .practicedagrc file (TOML).

    Returns:
        Configuration from the rc file, or empty dict if not found or unreadable.
    """
    config_path = find_config_file(RC_FILENAME, start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        valid_fields = _get_config_field_names()
        return {k: v for k, v in data.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the pyproject.toml [tool.practicedag] section."""
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        section = data.get("tool", {}).get("practicedag", {})
        valid_fields = _get_config_field_names()
        return {k: v for k, v in section.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from PRACTICEDAG_* environment variables.

    PRACTICEDAG_CATEGORIES is comma-separated; PRACTICEDAG_MAX_DEPTH must
    be an integer.

    Raises:
        ValueError: If PRACTICEDAG_MAX_DEPTH is not an integer.
    """
    env_mapping = {
        "PRACTICEDAG_DB_PATH": "db_path",
        "PRACTICEDAG_CATEGORIES": "categories",
        "PRACTICEDAG_ROOT_CATEGORY": "root_category",
        "PRACTICEDAG_MAX_DEPTH": "max_depth",
        "PRACTICEDAG_LOG_LEVEL": "log_level",
    }

    result: dict[str, Any] = {}
    for env_var, config_key in env_mapping.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if config_key == "categories":
            result[config_key] = [c.strip() for c in value.split(",") if c.strip()]
        elif config_key == "max_depth":
            try:
                result[config_key] = int(value)
            except ValueError as e:
                raise ValueError(f"{env_var} must be an integer, got {value!r}") from e
        else:
            result[config_key] = value

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dicts; later ones take precedence, None values are skipped."""
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> PracticeDagConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (PRACTICEDAG_*)
    3. .practicedagrc file
    4. pyproject.toml [tool.practicedag] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved PracticeDagConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    valid_fields = _get_config_field_names()
    cli_config = {
        k: v for k, v in (cli_overrides or {}).items() if k in valid_fields and v is not None
    }

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_rc(start_dir),
        _load_from_env(),
        cli_config,
    )
    return PracticeDagConfig(**merged)
