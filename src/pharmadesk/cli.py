#!/usr/bin/env python3
"""
pharmadesk - pharmacy data migration

A CLI tool for importing legacy pharmacy data, auditing imports and rolling
them back.
"""
import typer
from rich.console import Console

from pharmadesk import __version__

from .commands import config, migrate, templates
from .utils.config import Config
from .utils.logging_config import LoggingConfig, LogLevel, setup_logging

app = typer.Typer(
    help="Pharmacy data migration - import inventory, patients and prescriptions, review imports and roll them back.",
    add_completion=True,
    no_args_is_help=True,
)
console = Console()

# Add subcommands
app.add_typer(migrate.app, name="migrate")
app.add_typer(templates.app, name="templates")
app.add_typer(config.app, name="config")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging before any command runs."""
    logging_config = LoggingConfig.from_dict(Config().get_logging_config())
    if verbose:
        logging_config.level = LogLevel.DEBUG
    setup_logging(logging_config)


# Add version command
@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"pharmadesk version: {__version__}")
    raise typer.Exit()


if __name__ == "__main__":
    app()
