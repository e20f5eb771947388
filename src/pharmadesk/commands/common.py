"""Common command infrastructure for pharmadesk CLI commands.

This module provides shared functionality for the CLI commands:
- Building the record store and retry policy from configuration
- Parsing record categories with consistent error output
- Running async store work from synchronous typer commands
"""

import asyncio
import json
import logging
from typing import Any, Coroutine, Tuple, TypeVar

import typer
from rich.console import Console

from ..migration.exceptions import InvalidMigrationTypeError
from ..migration.models import MigrationType
from ..query.retry import RetryPolicy
from ..store import RecordStore, StoreError, create_store
from ..utils.config import Config

# Shared instances
console = Console()
logger = logging.getLogger(__name__)

T = TypeVar("T")


def type_option() -> Any:
    """Create the standard --type option for record categories."""
    return typer.Option(
        ...,
        "--type",
        "-t",
        help="Record category: Inventory, Patients or Prescriptions",
    )


def format_option() -> Any:
    return typer.Option("table", "--format", "-f", help="Output format (table or json)")


def parse_migration_type(value: str) -> MigrationType:
    """Parse a record category, exiting with an error message if it is unknown."""
    try:
        return MigrationType.parse(value)
    except InvalidMigrationTypeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def validate_format(format: str) -> str:
    if format.lower() not in ["table", "json"]:
        console.print(f"[red]Error: Invalid format '{format}'.[/red]")
        console.print("[yellow]Format must be either 'table' or 'json'.[/yellow]")
        raise typer.Exit(1)
    return format.lower()


def open_store(config: Config) -> Tuple[RecordStore, RetryPolicy]:
    """
    Create the configured record store and retry policy.

    Args:
        config: Configuration manager

    Returns:
        Tuple of (store, retry policy)
    """
    try:
        store = create_store(config.get_store_config())
        policy = RetryPolicy.from_config(config.get_retry_config())
    except (StoreError, ValueError) as e:
        console.print(f"[red]Error: Invalid store configuration: {e}[/red]")
        raise typer.Exit(1)

    logger.debug(f"Using {store.backend_type} record store")
    return store, policy


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine from a synchronous command."""
    return asyncio.run(coro)


def print_json(data: Any) -> None:
    """Print data as JSON without rich wrapping or markup."""
    console.print(
        json.dumps(data, indent=2, default=str), soft_wrap=True, markup=False, highlight=False
    )
