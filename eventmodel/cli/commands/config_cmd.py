"""Config command for viewing and managing eventmodel configuration."""

import typer

from ..app import app, console
from ...config import (
    CLI_MODES,
    CONFIG_FILE,
    get_config,
    parse_bool,
    reset_config,
)


VALID_KEYS = {
    "rules.allow_event_fed_automation",
    "rules.require_connected_elements",
    "rules.sequencing_warnings",
    "cli.mode",
    "cli.indent",
}

BOOL_FIELDS = {
    "allow_event_fed_automation",
    "require_connected_elements",
    "sequencing_warnings",
}

INT_FIELDS = {"indent"}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. rules.sequencing_warnings, cli.mode)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify eventmodel configuration.

    Examples:
        eventmodel config show
        eventmodel config set rules.allow_event_fed_automation true
        eventmodel config set cli.mode agent
        eventmodel config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] eventmodel config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Eventmodel Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Rules[/bold cyan] (structural rule engine)")
    console.print(
        f"  allow_event_fed_automation = {config.rules.allow_event_fed_automation}"
    )
    console.print(
        f"  require_connected_elements = {config.rules.require_connected_elements}"
    )
    console.print(f"  sequencing_warnings        = {config.rules.sequencing_warnings}")

    console.print()
    console.print("[bold cyan]CLI[/bold cyan]")
    console.print(f"  mode   = {config.cli.mode}")
    console.print(f"  indent = {config.cli.indent}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        raise typer.Exit(1)

    config = get_config()
    zone, field_name = key.split(".", 1)
    target = config.rules if zone == "rules" else config.cli

    # Type coercion
    if field_name in BOOL_FIELDS:
        try:
            setattr(target, field_name, parse_bool(value))
        except ValueError:
            console.print(f"[red]Invalid boolean value:[/red] {value}")
            raise typer.Exit(1)
    elif field_name in INT_FIELDS:
        try:
            setattr(target, field_name, int(value))
        except ValueError:
            console.print(f"[red]Invalid integer value:[/red] {value}")
            raise typer.Exit(1)
    elif field_name == "mode" and value not in CLI_MODES:
        console.print(f"[red]Invalid mode:[/red] {value}")
        console.print(f"Valid modes: {', '.join(CLI_MODES)}")
        raise typer.Exit(1)
    else:
        setattr(target, field_name, value)

    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {value}")
    console.print(f"  Saved to {CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {CONFIG_FILE}")
    else:
        console.print("Config already at defaults (no config file exists)")
