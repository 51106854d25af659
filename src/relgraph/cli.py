"""CLI commands for building, checking and deploying relgraph schemas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from graphql import GraphQLError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from relgraph.database import DatabaseError, DatabaseManager, DatabaseSettings
from relgraph.engine import ServedSchema, build_schema
from relgraph.schema import SchemaValidationError
from relgraph.settings import RelGraphSettings

console = Console()
app = typer.Typer(help="Relationship-property aware Relay schemas over Neo4j")


def _load_type_defs(schema_path: Path) -> str:
    try:
        return Path(schema_path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {schema_path}: {escape(str(e))}[/red]")
        raise typer.Exit(2)


def _settings(disable_relationship_properties: bool) -> RelGraphSettings:
    settings = RelGraphSettings.with_env_overrides()
    if disable_relationship_properties:
        settings = settings.model_copy(update={"relationship_properties_enabled": False})
    return settings


def _build(schema_path: Path, disable_relationship_properties: bool) -> ServedSchema:
    """Build the served schema, printing every build error on failure."""
    type_defs = _load_type_defs(schema_path)
    try:
        return build_schema(type_defs, _settings(disable_relationship_properties))
    except SchemaValidationError as e:
        table = Table(title=f"{len(e.errors)} schema error(s)")
        table.add_column("Error", style="red")
        table.add_column("Message")
        for error in e.errors:
            table.add_row(type(error).__name__, escape(str(error)))
        console.print(table)
        raise typer.Exit(1)
    except GraphQLError as e:
        console.print(f"[red]Invalid SDL: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("augment")
def augment(
    schema_path: Path = typer.Argument(..., help="Base schema SDL file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the augmented SDL here"),
    disable_relationship_properties: bool = typer.Option(
        False, "--disable-relationship-properties", help="Generate only the host CRUD shapes"
    ),
) -> None:
    """Print (or write) the augmented schema SDL."""
    served = _build(schema_path, disable_relationship_properties)
    if output is None:
        console.print(served.sdl, markup=False, highlight=False, soft_wrap=True)
        return
    output.write_text(served.sdl, encoding="utf-8")
    console.print(f"[green]Wrote augmented schema to {output}[/green]")


@app.command("validate")
def validate(
    schema_path: Path = typer.Argument(..., help="Base schema SDL file"),
    disable_relationship_properties: bool = typer.Option(
        False, "--disable-relationship-properties", help="Skip relationship property validation"
    ),
) -> None:
    """Check a base schema and report every error found."""
    served = _build(schema_path, disable_relationship_properties)

    table = Table(title="Schema summary")
    table.add_column("Node type", style="cyan")
    table.add_column("Relationships")
    for node in served.descriptors.nodes:
        relationships = ", ".join(
            f"{r.name} ({r.relationship_type}, {r.direction.value}"
            + (f", {r.properties})" if r.properties else ")")
            for r in node.relationships
        )
        table.add_row(node.name, relationships or "-")
    console.print(table)
    console.print("[green]Schema is valid[/green]")


@app.command("init-db")
def init_db(
    schema_path: Path = typer.Argument(..., help="Base schema SDL file"),
) -> None:
    """Create the constraints and indices a schema relies on.

    Connection settings come from RELGRAPH_NEO4J_* environment variables.
    """
    served = _build(schema_path, False)
    try:
        with DatabaseManager(DatabaseSettings.with_env_overrides()) as manager:
            results = manager.initialize_schema(served.descriptors, served.settings)
    except DatabaseError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title="Constraints and indices")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    for name, success in results.items():
        table.add_row(name, "[green]ok[/green]" if success else "[red]failed[/red]")
    console.print(table)


if __name__ == "__main__":
    app()
