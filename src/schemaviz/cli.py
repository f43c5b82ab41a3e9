"""Command line interface for SchemaViz."""

import logging
import sys
from json import JSONDecodeError, dumps, loads
from pathlib import Path
from typing import Annotated, Any, Literal

from cyclopts import App, Parameter
from ddl import graph_to_dialect_ddl
from diagram import diagram_to_graph, diagram_to_html, graph_to_diagram
from erd import SchemaVizError, Settings, load_settings
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from schemaviz.session import EditingSession

app = App(help="SchemaViz CLI tool")

type Format = Literal["json", "html", "ddl"]
type Dialect = Literal["canonical", "postgresql", "sqlite", "mysql"]

console = Console()
err_console = Console(stderr=True)

DDL_EXTENSIONS = {".sql", ".ddl"}


class Context:
    """Options shared by every command, set by the launcher."""

    settings = Settings()


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {escape(message)}", highlight=False)


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {escape(message)}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {escape(message)}")


def configure_logging(*, verbose: bool = False) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )


def validate_input_file(location: Path, extensions: set[str] | None = None) -> None:
    """Validate that an input file exists with an accepted extension."""
    if not location.is_file():
        print_error(f"Input file does not exist: {location}")
        sys.exit(1)
    if extensions and location.suffix.lower() not in extensions:
        print_info(
            f"Unexpected extension {location.suffix!r}, "
            f"expected one of: {', '.join(sorted(extensions))}",
        )


def read_session(ddl_location: Path) -> EditingSession:
    """Import a DDL file into a fresh session, exiting on failure."""
    validate_input_file(ddl_location, DDL_EXTENSIONS)
    print_info(f"Source DDL: {ddl_location}")

    session = EditingSession(settings=Context.settings)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
    ) as progress:
        progress.add_task("Parsing DDL...", total=None)
        try:
            report = session.import_ddl(ddl_location.read_text(encoding="utf-8"))
        except SchemaVizError as err:
            progress.stop()
            print_error(err.describe())
            sys.exit(1)

    print_info(f"Parsed {report.tables} table(s), {report.relations} relation(s)")
    return session


def load_payload(json_location: Path) -> EditingSession:
    """Load a canvas or suggestion payload into a fresh session."""
    validate_input_file(json_location, {".json"})
    try:
        payload: dict[str, Any] = loads(json_location.read_text(encoding="utf-8"))
    except JSONDecodeError as err:
        print_error(f"Invalid JSON in {json_location}: {err}")
        sys.exit(1)
    if not isinstance(payload, dict):
        print_error(f"Expected a JSON object in {json_location}")
        sys.exit(1)

    session = EditingSession(settings=Context.settings)
    try:
        if is_suggestion(payload):
            print_info("Reading schema suggestion payload")
            session.load_suggestion(payload)  # pyright: ignore[reportArgumentType]
        else:
            print_info("Reading canvas payload")
            graph, positions = diagram_to_graph(payload)  # pyright: ignore[reportArgumentType]
            session = EditingSession(graph, settings=Context.settings)
            session.positions.update(positions)
    except SchemaVizError as err:
        print_error(err.describe())
        sys.exit(1)
    return session


def is_suggestion(payload: dict[str, Any]) -> bool:
    """Suggestion payloads use camelCase relation keys and no positions."""
    relations = payload.get("relations") or []
    if relations:
        return "sourceTableId" in relations[0]
    return not any("position" in table for table in payload.get("tables", []))


def format_summary_table(session: EditingSession) -> None:
    """Format tables and relations as rich tables."""
    graph = session.graph
    tables = Table(title="Tables")
    tables.add_column("Table", style="bold cyan")
    tables.add_column("Columns", justify="right")
    tables.add_column("Primary Key", style="bold yellow")
    tables.add_column("Foreign Keys")
    for table in graph.tables.values():
        tables.add_row(
            escape(table.name),
            str(len(table.columns)),
            escape(", ".join(column.name for column in table.primary_keys)),
            escape(", ".join(col.name for col in table.columns if col.foreign_key)),
        )
    console.print(tables)

    if not graph.relations:
        console.print("No relations found.")
        return

    relations = Table(title="Relations")
    relations.add_column("Referenced", style="bold cyan")
    relations.add_column("Referencing", style="bold cyan")
    relations.add_column("Cardinality", style="bold yellow")
    for relation in graph.relations.values():
        source = graph.table(relation.source_table_id)
        target = graph.table(relation.target_table_id)
        source_column = graph.column(source.id, relation.source_column_id)
        target_column = graph.column(target.id, relation.target_column_id)
        relations.add_row(
            escape(f"{source.name}.{source_column.name}"),
            escape(f"{target.name}.{target_column.name}"),
            relation.cardinality.value,
        )
    console.print(relations)


@app.command
def parse(ddl_location: Path, fmt: Format = "json") -> None:
    """Import a DDL file and print it as a canvas payload, HTML or DDL."""
    session = read_session(ddl_location)
    print_info(f"Output format: {fmt}")

    diagram = graph_to_diagram(
        session.graph,
        session.positions,
        name=ddl_location.stem,
    )
    try:
        if fmt == "json":
            sys.stdout.write(dumps(diagram))
        elif fmt == "html":
            sys.stdout.write(diagram_to_html(diagram))
        elif fmt == "ddl":
            sys.stdout.write(session.export_ddl())
    except SchemaVizError as err:
        print_error(err.describe())
        sys.exit(1)

    print_success("Parsing completed successfully")


@app.command
def export(json_location: Path, dialect: Dialect = "canonical") -> None:
    """Generate DDL from a canvas or schema suggestion payload."""
    session = load_payload(json_location)
    print_info(f"Dialect: {dialect}")

    try:
        if dialect == "canonical":
            sys.stdout.write(session.export_ddl())
        else:
            sys.stdout.write(graph_to_dialect_ddl(session.graph, dialect))
    except SchemaVizError as err:
        print_error(err.describe())
        sys.exit(1)

    print_success("Export completed successfully")


@app.command
def check(ddl_location: Path) -> None:
    """Parse a DDL file and summarize its tables and relations."""
    session = read_session(ddl_location)
    format_summary_table(session)


@app.meta.default
def launcher(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    config: Path | None = None,
    verbose: bool = False,
) -> None:
    """Apply global options, then run the requested command.

    Parameters
    ----------
    config
        Settings TOML overriding the packaged defaults.
    verbose
        Log debug messages to stderr.
    """
    configure_logging(verbose=verbose)
    if config is not None:
        validate_input_file(config, {".toml"})
    try:
        Context.settings = load_settings(config)
    except (OSError, ValueError) as err:
        print_error(f"Invalid settings: {err}")
        sys.exit(1)
    app(tokens)


def main() -> None:
    """Entry point for the CLI."""
    app.meta()


if __name__ == "__main__":
    main()
