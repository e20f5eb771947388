"""Configuration management commands for pharmadesk."""

import json

import typer
import yaml
from rich.syntax import Syntax
from rich.table import Table

from ..utils.config import DEFAULT_CONFIG, Config
from ..utils.logging_config import LogLevel, is_valid_log_level
from .common import console

app = typer.Typer(
    help="Manage pharmadesk configuration settings including the record store, retries and logging."
)


@app.command("show")
def show_config(
    section: str = typer.Option(
        None, "--section", "-s", help="Show one configuration section (store, retry, migration, logging)"
    ),
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, yaml, json"),
) -> None:
    """Show the effective configuration, defaults included."""
    config = Config()
    config_data = config.get_all()

    if section:
        if section not in config_data:
            console.print(f"[red]Configuration section '{section}' not found.[/red]")
            console.print(f"Available sections: {', '.join(config_data.keys())}")
            raise typer.Exit(1)
        config_data = {section: config_data[section]}

    if format == "yaml":
        yaml_output = yaml.dump(config_data, default_flow_style=False, sort_keys=False)
        console.print(Syntax(yaml_output, "yaml", theme="monokai"))
    elif format == "json":
        console.print(Syntax(json.dumps(config_data, indent=2), "json", theme="monokai"))
    elif format == "table":
        table = Table(title=f"Configuration ({config.config_file})", show_header=True)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in _flatten(config_data):
            table.add_row(key, "" if value is None else str(value))
        console.print(table)
    else:
        console.print(f"[red]Error: Invalid format '{format}'. Use table, yaml or json.[/red]")
        raise typer.Exit(1)


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key in dot notation, e.g. store.backend"),
    value: str = typer.Argument(..., help="Value, parsed as YAML (numbers, true/false, null)"),
) -> None:
    """Set a configuration value and save it."""
    if key.split(".")[0] not in DEFAULT_CONFIG:
        console.print(f"[red]Error: Unknown configuration section in '{key}'.[/red]")
        console.print(f"Available sections: {', '.join(DEFAULT_CONFIG.keys())}")
        raise typer.Exit(1)

    parsed = yaml.safe_load(value)
    if key == "logging.level" and not is_valid_log_level(parsed):
        console.print(f"[red]Error: Invalid log level '{value}'.[/red]")
        console.print(f"Valid levels: {', '.join(LogLevel.__members__)}")
        raise typer.Exit(1)

    config = Config()
    config.set(key, parsed)

    errors = config.validate()
    if errors:
        console.print("[yellow]Configuration saved with problems:[/yellow]")
        for error in errors:
            console.print(f"  [yellow]• {error}[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]Set {key} = {value}[/green]")


@app.command("validate")
def validate_config() -> None:
    """Check the configuration for invalid values."""
    errors = Config().validate()
    if errors:
        console.print("[red]Configuration is invalid:[/red]")
        for error in errors:
            console.print(f"  [red]• {error}[/red]")
        raise typer.Exit(1)
    console.print("[green]Configuration is valid.[/green]")


def _flatten(data, prefix=""):
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _flatten(value, f"{full_key}.")
        else:
            yield full_key, value
