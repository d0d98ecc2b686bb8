"""CLI commands for configuration management."""

import json
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from timetree.core.config import ConfigManager

console = Console()
error_console = Console(stderr=True)


def load_config(ctx: click.Context) -> ConfigManager:
    """Open the config file chosen for this invocation."""
    config_file = (ctx.obj or {}).get("config_path")
    try:
        return ConfigManager(Path(config_file) if config_file else None)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def convert_value(value: str) -> Any:
    """Convert a command line string to a config value."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    if value.lower() == "null":
        return None
    try:
        return int(value)
    except ValueError:
        return value


@click.group()  # type: ignore[misc]
@click.option(
    "--config", "config_path", type=click.Path(dir_okay=False), help="Path to config file"
)  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config(ctx: click.Context, config_path: Optional[str]) -> None:
    """Manage Timetree configuration.

    Configuration is stored in ~/.timetree/config.yml
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@config.command("show")  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show all configuration settings.

    Example:
        timetree config show
        timetree config show --json
    """
    config_mgr = load_config(ctx)

    if as_json:
        print(json.dumps(config_mgr.to_dict(), indent=2))
        return

    table = Table(title="Timetree Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in config_mgr.settings():
        if key == "api.authentication.secret_key" and value:
            value = "********"
        table.add_row(key, str(value))

    console.print(table)
    console.print(f"\nConfig file: {config_mgr.config_path}")


@config.command("get")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_get(ctx: click.Context, key: str) -> None:
    """Get a specific configuration value.

    Uses dot notation to access nested values.

    Example:
        timetree config get display.time_format
        timetree config get api.port
    """
    value = load_config(ctx).get(key)

    if value is None:
        error_console.print(f"[red]Error:[/red] Configuration key '{key}' not found")
        sys.exit(1)

    if isinstance(value, dict):
        console.print(json.dumps(value, indent=2))
    else:
        console.print(str(value))


@config.command("set")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.argument("value")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value.

    Use 'true'/'false' for booleans, numbers for integers.

    Example:
        timetree config set display.time_format MS
        timetree config set api.port 9000
    """
    config_mgr = load_config(ctx)
    converted_value = convert_value(value)

    try:
        config_mgr.set(key, converted_value)
        console.print(f"[green]✓[/green] Set {key} = {converted_value}")
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@config.command("edit")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_edit(ctx: click.Context) -> None:
    """Edit configuration in $EDITOR.

    Example:
        timetree config edit
    """
    config_mgr = load_config(ctx)
    editor = os.environ.get("EDITOR") or next(
        (name for name in ("nano", "vim", "vi") if shutil.which(name)), None
    )

    if not editor:
        error_console.print("[red]Error:[/red] No editor found. Set $EDITOR environment variable.")
        sys.exit(1)

    console.print(f"Opening {config_mgr.config_path} in {editor}...")

    try:
        subprocess.run([editor, str(config_mgr.config_path)], check=True)
        config_mgr.reload()
        console.print("[green]✓[/green] Configuration updated")
    except subprocess.CalledProcessError:
        error_console.print(f"[red]Error:[/red] Editor {editor} failed")
        sys.exit(1)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] Configuration validation failed: {e}")
        sys.exit(1)


@config.command("reset")  # type: ignore[misc]
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_reset(ctx: click.Context, yes: bool) -> None:
    """Reset configuration to defaults.

    Example:
        timetree config reset --yes
    """
    config_mgr = load_config(ctx)

    if not yes:
        console.print("[yellow]Warning:[/yellow] This will reset all configuration to defaults.")
        if not click.confirm("Continue?"):
            console.print("Cancelled")
            return

    backup_path = config_mgr.backup()
    if backup_path is not None:
        console.print(f"Backed up current config to {backup_path}")

    config_mgr.reset()
    console.print("[green]✓[/green] Configuration reset to defaults")


@config.command("validate")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_validate(ctx: click.Context) -> None:
    """Validate configuration file."""
    config_mgr = load_config(ctx)

    try:
        config_mgr.validate()
        console.print("[green]✓[/green] Configuration is valid")
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@config.command("path")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_path(ctx: click.Context) -> None:
    """Show path to configuration file."""
    console.print(str(load_config(ctx).config_path))
