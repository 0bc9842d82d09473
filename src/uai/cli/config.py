"""
CLI subcommands for viewing and managing configuration.

Usage:
    uai config list
    uai config get <key>
    uai config set <key>=<value>
    uai config reset
"""

import typer

from uai.cli import _context
from uai.errors import ConfigKeyError

config_app = typer.Typer(help="View and manage UAI configuration")


@config_app.command("list")
def config_list():
    """Show all settings (API keys masked)."""
    manager = _context.get_config()
    typer.secho("⚙️  UAI settings:\n", fg=typer.colors.BLUE)
    for section, rows in manager.describe():
        typer.secho(f"{section}:", fg=typer.colors.YELLOW)
        for label, value in rows:
            typer.echo(f"  {label}: {value}")
        typer.echo("")
    typer.secho(f"Location: {manager.config_path}", dim=True)


@config_app.command("get")
def config_get(
    key: str = typer.Argument(help="Setting to read, e.g. claude.model"),
):
    """Read a specific setting."""
    try:
        value = _context.get_config().get(key)
    except ConfigKeyError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)
    typer.echo(value if value is not None else "(not set)")


@config_app.command("set")
def config_set(
    assignment: str = typer.Argument(help="key=value, e.g. claude.apiKey=sk-..."),
):
    """Set a setting (persisted to the config file)."""
    key, sep, value = assignment.partition("=")
    if not sep:
        typer.echo("❌ Expected key=value")
        raise typer.Exit(code=1)

    try:
        _context.get_config().set(key.strip(), value)
    except ConfigKeyError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)
    typer.echo(f"✅ Set {key.strip()} = {value}")


@config_app.command("reset")
def config_reset():
    """Restore default settings."""
    _context.get_config().reset()
    typer.echo("✅ Settings reset")
