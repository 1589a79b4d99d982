"""Cadence config command - Configuration management."""

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from cadence_cli.cli.error_handler import ConfigurationError, handle_errors

app = typer.Typer(help="Manage Cadence configuration.")
console = Console()

_SECRET_KEYS = {"api_key", "cron_secret"}


def _config_path() -> Path:
    from cadence_cli.config import CONFIG_DIR, CONFIG_FILE

    # Check for environment variable override
    config_dir = Path(os.environ.get("CADENCE_CONFIG_DIR", CONFIG_DIR))
    return config_dir / CONFIG_FILE


@app.command("show")
@handle_errors
def show_config(
    section: Optional[str] = typer.Argument(
        None,
        help="Configuration section to show (executor, engine, trigger, logging, paths).",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, yaml, json).",
    ),
    unmask: bool = typer.Option(
        False,
        "--unmask",
        help="Show unmasked secrets (use with caution).",
    ),
) -> None:
    """Show current configuration.

    Example:
        cadence config show
        cadence config show executor
        cadence config show --format yaml
    """
    from cadence_cli.config import (
        get_config,
        config_to_dict,
        export_config_json,
        export_config_yaml,
    )

    config = get_config()

    if format == "yaml":
        console.print(Syntax(export_config_yaml(config, mask_secrets=not unmask), "yaml"))
        return
    if format == "json":
        console.print(Syntax(export_config_json(config, mask_secrets=not unmask), "json"))
        return

    data = config_to_dict(config, mask_secrets=not unmask)
    sections = {
        "executor": data["executor"],
        "engine": data["engine"],
        "trigger": data["trigger"],
        "logging": data["logging"],
        "paths": {
            "config_dir": data["config_dir"],
            "data_dir": data["data_dir"],
            "database_url": data["database_url"],
        },
    }

    if section and section not in sections:
        raise ConfigurationError(
            f"Unknown section: {section}",
            details={"available": ", ".join(sections)},
        )

    console.print(f"[bold]Configuration: {section}[/bold]" if section else "[bold]Cadence Configuration[/bold]")
    console.print()

    for name in [section] if section else sections:
        table = Table(title=name.capitalize())
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Sensitive", style="yellow")

        for key, value in sections[name].items():
            table.add_row(key, "" if value is None else str(value), "Yes" if key in _SECRET_KEYS else "")

        console.print(table)
        console.print()


@app.command("set")
@handle_errors
def set_config(
    key: str = typer.Argument(
        ...,
        help="Configuration key (format: section.key, e.g., executor.max_concurrent_executions).",
    ),
    value: str = typer.Argument(
        ...,
        help="Value to set.",
    ),
) -> None:
    """Set a configuration value.

    Example:
        cadence config set executor.max_concurrent_executions 10
        cadence config set engine.url https://agents.example.com/api/agent/execute-schedule
        cadence config set trigger.environment production
    """
    from cadence_cli.config import set_config_value, clear_config_cache

    if "." not in key:
        raise ConfigurationError("Key must be in format: section.key")

    section, config_key = key.split(".", 1)

    try:
        set_config_value(section, config_key, value, _config_path())
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    # Clear the global config cache so the new value will be loaded
    clear_config_cache()
    console.print(f"[green]✓[/green] Set {section}.{config_key} = {value}")


@app.command("path")
def config_path() -> None:
    """Show configuration file path.

    Example:
        cadence config path
    """
    path = _config_path()
    console.print(f"[bold]Config directory:[/bold] {path.parent}")
    console.print(f"[bold]Config file:[/bold] {path}")
    console.print(f"[bold]Exists:[/bold] {path.exists()}")


@app.command("validate")
@handle_errors
def validate_config() -> None:
    """Validate current configuration.

    Example:
        cadence config validate
    """
    from cadence_cli.config import get_config, validate_config as do_validate

    config = get_config()

    console.print("[bold]Validating configuration...[/bold]")
    console.print()

    errors = do_validate(config)
    has_errors = False

    for error in errors:
        if error.severity == "error":
            status = "[red]✗[/red]"
            has_errors = True
        else:
            status = "[yellow]![/yellow]"
        console.print(f"  {status} [{error.severity.upper()}] {error.field}: {error.message}")

    if errors:
        console.print()

    if has_errors:
        raise ConfigurationError("Configuration has errors")

    console.print("[green]Configuration is valid[/green]")
