"""Migration commands for pharmadesk.

This module provides commands for importing legacy pharmacy data, reviewing
the migration log and rolling back an imported batch. Every import is stamped
with a migration id; rolling back deletes every record carrying that id.

Commands:
    import: Import a CSV or JSON export as one migration batch
    history: Show the most recent migration log entries
    rollback: Delete every record of a migration batch
    status: Show the log entries and state of one migration batch

Examples:
    # Import an inventory export, detecting column names automatically
    $ pharmadesk migrate import stock.csv --type Inventory

    # Import with a saved mapping template
    $ pharmadesk migrate import patients.csv --type Patients --mapping-template legacy-pos

    # Validate and preview without writing anything
    $ pharmadesk migrate import stock.csv --type Inventory --dry-run

    # Show the last 20 imports as JSON
    $ pharmadesk migrate history --limit 20 --format json

    # Undo an import
    $ pharmadesk migrate rollback 3f0c2b9e-... --type Inventory
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from ..migration.exceptions import MappingTemplateNotFoundError, SourceFileError
from ..migration.log import MigrationLog
from ..migration.mapping import apply_mappings, auto_detect_field_mappings
from ..migration.models import BatchState, ImportIssue, MigrationType
from ..migration.processor import ImportProcessor
from ..migration.readers import read_source_file
from ..migration.rollback import RollbackHandler
from ..migration.templates import MappingTemplateStore
from ..migration.validation import auto_fix, has_too_many_invalid
from ..store import MemoryStore
from ..utils.config import Config
from ..utils.logging_config import get_logger, get_logging_manager
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

app = typer.Typer(help="Import legacy pharmacy data, review migrations and roll them back.")
logger = get_logger("commands.migrate")


def _show_issues(issues: List[ImportIssue], limit: int = 20) -> None:
    if not issues:
        return

    table = Table(title="Skipped Rows", show_header=True, header_style="bold yellow")
    table.add_column("Row", style="cyan", justify="right")
    table.add_column("Reason", style="yellow")
    for issue in issues[:limit]:
        table.add_row(str(issue.row), issue.reason)
    console.print(table)

    if len(issues) > limit:
        console.print(f"[dim]... and {len(issues) - limit} more skipped rows[/dim]")


@app.command("import")
def import_file(
    file: Path = typer.Argument(..., help="CSV or JSON export to import"),
    type: str = type_option(),
    mapping_template: Optional[str] = typer.Option(
        None, "--mapping-template", "-m", help="Name of a saved mapping template to apply"
    ),
    auto_map: bool = typer.Option(
        True,
        "--auto-map/--no-auto-map",
        help="Detect column mappings from the file headers when no template is given",
    ),
    fix: bool = typer.Option(
        False, "--fix", help="Clean up prices, quantities and DD/MM/YYYY dates before importing"
    ),
    force: bool = typer.Option(
        False, "--force", help="Import even when many rows fail validation"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and report without writing to the store"
    ),
    format: str = format_option(),
):
    """Import a source file as one migration batch.

    Rows that fail validation are skipped and listed with their row number.
    The batch is recorded in the migration log and can be undone with
    'migrate rollback'.
    """
    migration_type = parse_migration_type(type)
    format = validate_format(format)
    config = Config()
    store, policy = open_store(config)

    try:
        rows = read_source_file(file)
    except SourceFileError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not rows:
        console.print(f"[yellow]No rows found in {file}.[/yellow]")
        raise typer.Exit(0)

    if mapping_template:
        templates = MappingTemplateStore(store, policy)
        try:
            template = run_async(templates.require(mapping_template, migration_type))
        except MappingTemplateNotFoundError as e:
            console.print(f"[red]Error: {e}.[/red]")
            raise typer.Exit(1)
        rows = apply_mappings(rows, template.mappings)
    elif auto_map:
        mappings = auto_detect_field_mappings(rows[0].keys())
        logger.debug(f"Detected column mappings: {mappings}")
        rows = apply_mappings(rows, mappings)

    if fix:
        rows = auto_fix(rows)

    threshold = config.get_migration_config()["invalid_threshold"]
    if not force and has_too_many_invalid(migration_type, rows, threshold):
        console.print(
            f"[red]Error: More than {threshold:.0%} of the rows failed validation.[/red]"
        )
        console.print("[yellow]Fix the source file, try --fix, or use --force to import anyway.[/yellow]")
        raise typer.Exit(1)

    if dry_run:
        store = MemoryStore()

    manager = get_logging_manager()
    operation_id = manager.log_operation_start(
        logger, "import", migration_type=migration_type.value, rows=len(rows), dry_run=dry_run
    )
    processor = ImportProcessor(store, MigrationLog(store, policy), policy)
    with console.status(f"[blue]Importing {len(rows)} {migration_type.value} rows...[/blue]"):
        result = run_async(processor.process(migration_type, rows))
    manager.log_operation_end(
        logger,
        "import",
        operation_id,
        success=result.success,
        migration_id=result.migration_id,
        added=result.added,
        skipped=result.skipped,
    )

    if format == "json":
        print_json({**result.to_dict(), "dry_run": dry_run})
    else:
        title = "Dry Run Import" if dry_run else "Import"
        status = "[green]Success[/green]" if result.success else "[red]Failed[/red]"
        summary = (
            f"Status: {status}\n"
            f"Type: {migration_type.value}\n"
            f"Added: {result.added}\n"
            f"Skipped: {result.skipped}"
        )
        if result.success and not dry_run:
            summary += f"\nMigration ID: [cyan]{result.migration_id}[/cyan]"
        console.print(Panel(summary, title=title, expand=False))
        _show_issues(result.issues)

    if not result.success:
        raise typer.Exit(1)


@app.command("history")
def history(
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Maximum number of entries to show (default from config)"
    ),
    format: str = format_option(),
):
    """Show the most recent migrations, newest first."""
    format = validate_format(format)
    if limit is not None and limit <= 0:
        console.print("[red]Error: Limit must be a positive integer.[/red]")
        raise typer.Exit(1)

    config = Config()
    store, policy = open_store(config)
    limit = limit or config.get_migration_config()["recent_limit"]
    log = MigrationLog(store, policy)

    async def _load():
        entries = await log.get_recent(limit)
        rollbacks = await log.get_rollbacks()
        return entries, rollbacks

    with console.status("[blue]Retrieving migration history...[/blue]"):
        entries, rollbacks = run_async(_load())

    rolled_back = set()
    if rollbacks.is_success:
        rolled_back = {(r.migration_id, r.type) for r in rollbacks.data if r.success}

    def state_of(entry) -> BatchState:
        if (entry.migration_id, entry.type) in rolled_back:
            return BatchState.ROLLED_BACK
        return BatchState.ACTIVE

    if not entries:
        console.print("[yellow]No migrations found.[/yellow]")
        raise typer.Exit(0)

    if format == "json":
        print_json(
            {
                "migrations": [
                    {**entry.to_dict(), "state": state_of(entry).value} for entry in entries
                ],
                "total_count": len(entries),
            }
        )
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Migration ID", style="cyan", no_wrap=True)
    table.add_column("Date", style="green")
    table.add_column("Type", style="magenta")
    table.add_column("Added", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("State")

    for entry in entries:
        state = state_of(entry)
        table.add_row(
            entry.migration_id,
            entry.timestamp[:16].replace("T", " "),
            entry.type.value,
            str(entry.added_count),
            str(entry.skipped_count),
            "[red]Rolled Back[/red]" if state == BatchState.ROLLED_BACK else "[green]Active[/green]",
        )
    console.print(table)


@app.command("rollback")
def rollback(
    migration_id: str = typer.Argument(..., help="Migration ID to roll back"),
    type: str = type_option(),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete every record of one category that carries the migration id.

    The migration log entry is kept; the rollback is recorded alongside it.
    """
    migration_type = parse_migration_type(type)
    store, policy = open_store(Config())

    if not yes:
        console.print(
            f"[yellow]This will delete every {migration_type.value} record from migration "
            f"{migration_id}.[/yellow]"
        )
        if not typer.confirm("Do you want to proceed with the rollback?"):
            console.print("[yellow]Rollback cancelled.[/yellow]")
            raise typer.Exit(0)

    handler = RollbackHandler(store, MigrationLog(store, policy), policy)
    with console.status("[blue]Rolling back migration...[/blue]"):
        success = run_async(handler.rollback(migration_id, migration_type))

    if not success:
        console.print(f"[red]Error: Failed to roll back migration {migration_id}.[/red]")
        console.print("[yellow]Check the log for details and try again.[/yellow]")
        raise typer.Exit(1)

    console.print(
        f"[green]Rolled back {migration_type.value} migration {migration_id}.[/green]"
    )


@app.command("status")
def status(
    migration_id: str = typer.Argument(..., help="Migration ID to inspect"),
    type: str = type_option(),
    format: str = format_option(),
):
    """Show the log entries and state of one migration batch."""
    migration_type: MigrationType = parse_migration_type(type)
    format = validate_format(format)
    store, policy = open_store(Config())
    log = MigrationLog(store, policy)
    handler = RollbackHandler(store, log, policy)

    async def _load():
        entries = await log.get_entries(migration_id=migration_id, type=migration_type)
        state = await handler.status(migration_id, migration_type)
        return entries, state

    entries, state = run_async(_load())
    if not entries.is_success:
        console.print(f"[red]Error: Failed to read migration log: {entries.error}[/red]")
        raise typer.Exit(1)

    if format == "json":
        print_json(
            {
                "migration_id": migration_id,
                "type": migration_type.value,
                "state": state.value,
                "entries": [entry.to_dict() for entry in entries.data],
            }
        )
        return

    if not entries.data:
        console.print(
            f"[yellow]No {migration_type.value} log entries for migration {migration_id}.[/yellow]"
        )
    for entry in entries.data:
        console.print(
            f"{entry.timestamp}: {entry.added_count} added, {entry.skipped_count} skipped"
        )
        _show_issues(list(entry.issues))
    state_text = "[red]Rolled Back[/red]" if state == BatchState.ROLLED_BACK else "[green]Active[/green]"
    console.print(f"State: {state_text}")
