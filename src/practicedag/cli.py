"""practicedag CLI - Main entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from practicedag import __version__, crud
from practicedag.cli_utils import (
    EXIT_USER_ERROR,
    EXIT_VALIDATION_FAILURE,
    db_path_option,
    json_option,
    max_depth_option,
    memory_option,
    quiet_option,
    wire_config,
)
from practicedag.config import PracticeDagConfig
from practicedag.database import DatabaseError, PracticeDB
from practicedag.documents import DocumentError, load_document
from practicedag.graph.queries import GraphQueries, InMemoryGraphQueries
from practicedag.logging_config import setup_logging
from practicedag.persisted_queries import PersistedGraphQueries
from practicedag.store import (
    ChangeSetRejectedError,
    CycleRejectedError,
    StoreError,
    add_dependency_guarded,
    import_document,
    read_document,
)
from practicedag.validators.base import SchemaReport
from practicedag.validators.orchestrator import format_report, summarize, validate_schema

app = typer.Typer(
    name="practicedag",
    help="practicedag - Validate and query a practice dependency DAG.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _output_success(message: str, quiet: bool = False) -> None:
    """Print a success message."""
    if not quiet:
        console.print(f"[green]Success:[/green] {message}")


def _output_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[red]Error:[/red] {message}")


def _output_warning(message: str, quiet: bool = False) -> None:
    """Print a warning message."""
    if not quiet:
        err_console.print(f"[yellow]Warning:[/yellow] {message}")


def _output_info(message: str, quiet: bool = False) -> None:
    """Print an info message."""
    if not quiet:
        console.print(message)


def _output_json(data: Any) -> None:
    console.print_json(json.dumps(data))


def _exit_error(message: str, exit_code: int = EXIT_USER_ERROR) -> None:
    """Print error and exit."""
    _output_error(message)
    raise typer.Exit(code=exit_code)


def _print_report(report: SchemaReport, quiet: bool) -> None:
    """Print a validation report in human-readable form."""
    if report.is_valid:
        _output_success("Schema validation passed", quiet)
    else:
        lines = format_report(report)
        _output_error(escape(lines[0]))
        if not quiet:
            for line in lines[1:]:
                console.print(escape(line))

    for warning in report.warnings:
        _output_warning(escape(warning), quiet)


# -----------------------------------------------------------------------------
# Store and Query Helpers
# -----------------------------------------------------------------------------


def _open_store(config: PracticeDagConfig, *, must_exist: bool = True) -> PracticeDB:
    """Open the configured practice store (not yet entered).

    Raises:
        typer.Exit: If must_exist is set and the database file is missing.
    """
    db_path = config.get_db_path()
    if must_exist and not db_path.exists():
        _exit_error(f"Database not found: {db_path}. Run 'practicedag import' first.")
    return PracticeDB(db_path, auto_init=not must_exist)


def _load_or_exit(path: Path) -> Any:
    try:
        return load_document(path)
    except DocumentError as e:
        _exit_error(escape(str(e)))


def _memory_queries(path: Path, config: PracticeDagConfig) -> InMemoryGraphQueries:
    """Build in-memory queries from a document that must validate first.

    Raises:
        typer.Exit: If the document cannot be loaded or is invalid.
    """
    document = _load_or_exit(path)
    report = validate_schema(document, config.validation_rules())
    if not report.is_valid:
        _exit_error(
            f"Document {path} failed validation. Run 'practicedag validate {path}' for details.",
            EXIT_VALIDATION_FAILURE,
        )
    return InMemoryGraphQueries.from_document(document, config.max_depth)


def _run_query(
    config: PracticeDagConfig,
    memory: Path | None,
    query: Any,
) -> Any:
    """Run query(queries) against a document or the practice store."""
    if memory is not None:
        return query(_memory_queries(memory, config))

    try:
        with _open_store(config) as db:
            queries: GraphQueries = PersistedGraphQueries(db, config.max_depth)
            return query(queries)
    except DatabaseError as e:
        _exit_error(escape(str(e)))


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"practicedag version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show debug logging on stderr.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: WARNING).",
    ),
) -> None:
    """practicedag - Validate and query a practice dependency DAG."""
    config = wire_config(log_level=log_level)
    setup_logging(config.log_level, verbose=verbose)


# -----------------------------------------------------------------------------
# Validate and Import Commands
# -----------------------------------------------------------------------------


@app.command()
def validate(
    file: Path | None = typer.Argument(
        None,
        help="JSON/YAML catalog document. Defaults to the stored catalog.",
    ),
    db_path: str | None = db_path_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Validate a catalog document (or the stored catalog).

    Every check runs, so one pass reports every defect: structure, practice
    fields, unique ids, the single root, dependency pairs, references,
    cycles and metadata.

    Exits with code 2 if validation fails. Warnings do not cause failure.
    """
    config = wire_config(db_path=db_path)

    if file is not None:
        document = _load_or_exit(file)
    else:
        try:
            with _open_store(config) as db:
                document = read_document(db)
        except DatabaseError as e:
            _exit_error(escape(str(e)))

    report = validate_schema(document, config.validation_rules())

    if json_output:
        result = report.to_dict()
        result["summary"] = summarize(document, report)
        _output_json(result)
    else:
        _print_report(report, quiet)

    if not report.is_valid:
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)


@app.command("import")
def import_catalog(
    file: Path = typer.Argument(..., help="JSON/YAML catalog document."),
    db_path: str | None = db_path_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Validate a catalog document and replace the stored catalog with it.

    Nothing is written unless the whole document passes validation.
    Exits with code 2 if the document is rejected.
    """
    config = wire_config(db_path=db_path)
    document = _load_or_exit(file)

    try:
        with _open_store(config, must_exist=False) as db:
            report = import_document(db, document, config.validation_rules())
    except ChangeSetRejectedError as e:
        if json_output:
            _output_json({"success": False, **e.report.to_dict()})
        else:
            _print_report(e.report, quiet)
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE) from e
    except DatabaseError as e:
        _exit_error(escape(str(e)))

    practices = len(document["practices"])
    dependencies = len(document["dependencies"])
    if json_output:
        _output_json(
            {
                "success": True,
                "db_path": str(config.get_db_path()),
                "practices": practices,
                "dependencies": dependencies,
                "warnings": report.warnings,
            }
        )
        return

    _output_success(
        f"Imported {practices} practice(s) and {dependencies} dependency(ies) "
        f"into {config.get_db_path()}",
        quiet,
    )
    for warning in report.warnings:
        _output_warning(escape(warning), quiet)


# -----------------------------------------------------------------------------
# Query Commands
# -----------------------------------------------------------------------------


@app.command()
def tree(
    root_id: str = typer.Argument(..., help="Practice to start from."),
    memory: Path | None = memory_option(),
    db_path: str | None = db_path_option(),
    max_depth: int | None = max_depth_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Show every practice reachable from ROOT_ID, by level then name."""
    config = wire_config(db_path=db_path, max_depth=max_depth)
    rows = _run_query(config, memory, lambda queries: queries.tree_from(root_id))

    if not rows:
        _exit_error(f"Practice not found: {escape(root_id)}")

    if json_output:
        _output_json({"root": root_id, "tree": [row.to_dict() for row in rows]})
        return

    if quiet:
        for row in rows:
            console.print(row.id)
        return

    table = Table(title=f"Practice Tree: {escape(rows[0].name)}")
    table.add_column("Level", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Category")
    table.add_column("Path")

    for row in rows:
        table.add_row(
            str(row.level), escape(row.id), escape(row.name), row.category, escape(row.path)
        )

    console.print(table)


@app.command()
def ancestors(
    practice_id: str = typer.Argument(..., help="Practice to start from."),
    memory: Path | None = memory_option(),
    db_path: str | None = db_path_option(),
    max_depth: int | None = max_depth_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Show every practice that leads to PRACTICE_ID, furthest first."""
    config = wire_config(db_path=db_path, max_depth=max_depth)
    rows = _run_query(config, memory, lambda queries: queries.ancestors_of(practice_id))

    if not rows:
        _exit_error(f"Practice not found: {escape(practice_id)}")

    if json_output:
        _output_json({"id": practice_id, "ancestors": [row.to_dict() for row in rows]})
        return

    if quiet:
        for row in rows:
            console.print(row.id)
        return

    table = Table(title=f"Ancestors of {escape(practice_id)}")
    table.add_column("Level", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    table.add_column("Path")

    for row in rows:
        table.add_row(str(row.level), escape(row.id), escape(row.name), row.type, escape(row.path))

    console.print(table)


@app.command()
def depth(
    practice_id: str = typer.Argument(..., help="Practice to measure."),
    memory: Path | None = memory_option(),
    db_path: str | None = db_path_option(),
    max_depth: int | None = max_depth_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Print the shortest distance from a root practice (-1 if unreachable)."""
    config = wire_config(db_path=db_path, max_depth=max_depth)
    value = _run_query(config, memory, lambda queries: queries.depth_of(practice_id))

    if json_output:
        _output_json({"id": practice_id, "depth": value})
    elif quiet:
        console.print(str(value))
    else:
        _output_info(f"{escape(practice_id)}: depth {value}")


@app.command("check-cycle")
def check_cycle(
    parent_id: str = typer.Argument(..., help="Dependent practice of the proposed edge."),
    child_id: str = typer.Argument(..., help="Prerequisite practice of the proposed edge."),
    memory: Path | None = memory_option(),
    db_path: str | None = db_path_option(),
    max_depth: int | None = max_depth_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Check whether PARENT_ID -> CHILD_ID would close a cycle.

    Read-only. Exits with code 2 if the edge would create a cycle.
    """
    config = wire_config(db_path=db_path, max_depth=max_depth)
    cyclic = _run_query(
        config, memory, lambda queries: queries.would_create_cycle(parent_id, child_id)
    )

    if json_output:
        _output_json({"parent_id": parent_id, "child_id": child_id, "would_create_cycle": cyclic})
    elif cyclic:
        _output_error(f"{escape(parent_id)} -> {escape(child_id)} would create a cycle")
    else:
        _output_success(f"{escape(parent_id)} -> {escape(child_id)} is safe", quiet)

    if cyclic:
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)


# -----------------------------------------------------------------------------
# Mutation Commands
# -----------------------------------------------------------------------------


@app.command("add-dependency")
def add_dependency(
    practice_id: str = typer.Argument(..., help="Dependent practice."),
    depends_on_id: str = typer.Argument(..., help="Prerequisite practice."),
    db_path: str | None = db_path_option(),
    max_depth: int | None = max_depth_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Record that PRACTICE_ID requires DEPENDS_ON_ID first.

    The edge is refused (exit code 2) if it would close a cycle.
    """
    config = wire_config(db_path=db_path, max_depth=max_depth)
    result: dict[str, Any] = {"practice_id": practice_id, "depends_on_id": depends_on_id}

    try:
        with _open_store(config) as db:
            add_dependency_guarded(db, practice_id, depends_on_id, config.max_depth)
    except CycleRejectedError as e:
        if json_output:
            _output_json({**result, "success": False, "error": str(e)})
        _exit_error(escape(str(e)), EXIT_VALIDATION_FAILURE)
    except (StoreError, DatabaseError) as e:
        if json_output:
            _output_json({**result, "success": False, "error": str(e)})
        _exit_error(escape(str(e)))

    if json_output:
        _output_json({**result, "success": True})
    else:
        _output_success(f"Added dependency {practice_id} -> {depends_on_id}", quiet)


@app.command("remove-dependency")
def remove_dependency(
    practice_id: str = typer.Argument(..., help="Dependent practice."),
    depends_on_id: str = typer.Argument(..., help="Prerequisite practice."),
    db_path: str | None = db_path_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Remove the dependency PRACTICE_ID -> DEPENDS_ON_ID."""
    config = wire_config(db_path=db_path)

    try:
        with _open_store(config) as db, db.transaction():
            removed = crud.remove_dependency(db, practice_id, depends_on_id)
    except DatabaseError as e:
        _exit_error(escape(str(e)))

    if json_output:
        _output_json(
            {"practice_id": practice_id, "depends_on_id": depends_on_id, "success": removed}
        )
    if not removed:
        if not json_output:
            _output_error(f"Dependency not found: {practice_id} -> {depends_on_id}")
        raise typer.Exit(code=EXIT_USER_ERROR)
    if not json_output:
        _output_success(f"Removed dependency {practice_id} -> {depends_on_id}", quiet)


@app.command("remove-practice")
def remove_practice(
    practice_id: str = typer.Argument(..., help="Practice to delete."),
    db_path: str | None = db_path_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Delete a practice and every dependency it takes part in."""
    config = wire_config(db_path=db_path)

    try:
        with _open_store(config) as db, db.transaction():
            removed = crud.delete_practice(db, practice_id)
    except DatabaseError as e:
        _exit_error(escape(str(e)))

    if json_output:
        _output_json({"id": practice_id, "success": removed})
    if not removed:
        if not json_output:
            _output_error(f"Practice not found: {escape(practice_id)}")
        raise typer.Exit(code=EXIT_USER_ERROR)
    if not json_output:
        _output_success(f"Removed practice {practice_id}", quiet)


@app.command("list")
def list_practices(
    category: str | None = typer.Option(
        None,
        "--category",
        "-c",
        help="Only list practices of this category.",
    ),
    db_path: str | None = db_path_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """List stored practices with their dependency and dependent counts."""
    config = wire_config(db_path=db_path)

    try:
        with _open_store(config) as db:
            summaries = crud.list_practice_summaries(db)
    except DatabaseError as e:
        _exit_error(escape(str(e)))

    if category is not None:
        summaries = [s for s in summaries if s["category"] == category]

    if json_output:
        _output_json({"practices": summaries})
        return

    if not summaries:
        _output_info("No practices stored.", quiet)
        return

    if quiet:
        for s in summaries:
            console.print(s["id"])
        return

    table = Table(title="Practices")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type")
    table.add_column("Category")
    table.add_column("Depends on", justify="right")
    table.add_column("Dependents", justify="right")

    for s in summaries:
        table.add_row(
            escape(s["id"]),
            escape(s["name"]),
            s["type"],
            s["category"],
            str(s["dependency_count"]),
            str(s["dependent_count"]),
        )

    console.print(table)


if __name__ == "__main__":
    app()
