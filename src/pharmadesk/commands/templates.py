"""Mapping template commands for pharmadesk.

A mapping template remembers how one source system names its columns, so
repeated imports from that system do not rely on auto-detection.

Examples:
    # Save a template from explicit mappings
    $ pharmadesk templates save legacy-pos --type Inventory --map "Item=name" --map "MRP=selling_price"

    # Save a template detected from a sample export
    $ pharmadesk templates save legacy-pos --type Inventory --from-file sample.csv

    # List templates for a category
    $ pharmadesk templates list --type Inventory
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from ..migration.exceptions import SourceFileError
from ..migration.mapping import auto_detect_field_mappings
from ..migration.models import MappingTemplate
from ..migration.readers import read_source_file
from ..migration.templates import MappingTemplateStore
from ..utils.config import Config
from .common import (
    console,
    format_option,
    open_store,
    parse_migration_type,
    print_json,
    run_async,
    type_option,
    validate_format,
)

app = typer.Typer(help="Manage saved column mapping templates.")


def _parse_mappings(pairs: List[str]) -> dict:
    mappings = {}
    for pair in pairs:
        source, sep, target = pair.partition("=")
        if not sep or not source.strip() or not target.strip():
            console.print(f"[red]Error: Invalid mapping '{pair}'. Use 'Source Header=field'.[/red]")
            raise typer.Exit(1)
        mappings[source.strip()] = target.strip()
    return mappings


@app.command("list")
def list_templates(
    type: str = type_option(),
    format: str = format_option(),
):
    """List mapping templates for a record category, sorted by name."""
    migration_type = parse_migration_type(type)
    format = validate_format(format)
    store, policy = open_store(Config())

    templates = run_async(MappingTemplateStore(store, policy).list(migration_type))

    if format == "json":
        print_json({"templates": [t.to_dict() for t in templates], "total_count": len(templates)})
        return

    if not templates:
        console.print(f"[yellow]No mapping templates found for {migration_type.value}.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Source System", style="magenta")
    table.add_column("Mappings")
    for template in templates:
        table.add_row(
            template.id or "",
            template.name,
            template.source_system,
            ", ".join(f"{k} → {v}" for k, v in template.mappings.items()),
        )
    console.print(table)


@app.command("save")
def save_template(
    name: str = typer.Argument(..., help="Template name"),
    type: str = type_option(),
    source_system: str = typer.Option("", "--source-system", "-s", help="Name of the source system"),
    mapping: Optional[List[str]] = typer.Option(
        None, "--map", help="Column mapping as 'Source Header=field' (repeatable)"
    ),
    from_file: Optional[Path] = typer.Option(
        None, "--from-file", help="Detect mappings from the headers of a sample export"
    ),
):
    """Save a mapping template."""
    migration_type = parse_migration_type(type)

    mappings = {}
    if from_file:
        try:
            rows = read_source_file(from_file)
        except SourceFileError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)
        if rows:
            mappings.update(auto_detect_field_mappings(rows[0].keys()))
    mappings.update(_parse_mappings(mapping or []))

    if not mappings:
        console.print("[red]Error: No mappings given. Use --map or --from-file.[/red]")
        raise typer.Exit(1)

    store, policy = open_store(Config())
    template = MappingTemplate(
        name=name, source_system=source_system, data_type=migration_type, mappings=mappings
    )
    if not run_async(MappingTemplateStore(store, policy).save(template)):
        console.print(f"[red]Error: Failed to save mapping template '{name}'.[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Saved mapping template '{name}' for {migration_type.value} "
        f"({len(mappings)} columns).[/green]"
    )


@app.command("delete")
def delete_template(
    template_id: str = typer.Argument(..., help="ID of the template to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete a mapping template by id."""
    if not yes and not typer.confirm(f"Delete mapping template {template_id}?"):
        console.print("[yellow]Deletion cancelled.[/yellow]")
        raise typer.Exit(0)

    store, policy = open_store(Config())
    if not run_async(MappingTemplateStore(store, policy).delete(template_id)):
        console.print(f"[red]Error: Failed to delete mapping template {template_id}.[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Deleted mapping template {template_id}.[/green]")
