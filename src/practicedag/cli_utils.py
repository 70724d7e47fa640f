"""CLI utility functions for practicedag.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Error reporting: Consistent user-friendly error messages with exit codes
- Option factories shared by several commands
"""

from __future__ import annotations

from typing import Any, NoReturn

import typer

from practicedag.config import PracticeDagConfig, load_config

# Exit code conventions
EXIT_USER_ERROR = 1  # User error (bad input, missing file, unknown practice, etc.)
EXIT_VALIDATION_FAILURE = 2  # Validation errors or a rejected change


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(
    db_path: str | None = None,
    max_depth: int | None = None,
    log_level: str | None = None,
) -> PracticeDagConfig:
    """Wire CLI options to load_config as overrides.

    Args:
        db_path: Override for the practice store path.
        max_depth: Override for the traversal safety cap.
        log_level: Override for the logging level.

    Returns:
        Fully resolved PracticeDagConfig instance.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {
        "db_path": db_path,
        "max_depth": max_depth,
        "log_level": log_level,
    }

    try:
        return load_config(cli_overrides=cli_overrides)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# Typer consumes Option objects when decorating commands, so every command
# needs a fresh instance.


def db_path_option() -> Any:
    """Create a Typer Option for --db / -d."""
    return typer.Option(
        None,
        "--db",
        "-d",
        help="Practice store file (default: practices.db).",
    )


def max_depth_option() -> Any:
    """Create a Typer Option for --max-depth."""
    return typer.Option(
        None,
        "--max-depth",
        min=1,
        help="Traversal safety cap in levels (default: 100).",
    )


def memory_option() -> Any:
    """Create a Typer Option for --memory / -m."""
    return typer.Option(
        None,
        "--memory",
        "-m",
        help="Answer from this JSON/YAML document instead of the practice store.",
    )


def json_option() -> Any:
    """Create a Typer Option for --json."""
    return typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    )


def quiet_option() -> Any:
    """Create a Typer Option for --quiet / -q."""
    return typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output for CI.",
    )
