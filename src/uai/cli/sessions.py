"""
CLI subcommands for browsing recorded sessions.

Usage:
    uai sessions list
    uai sessions show <id>
    uai sessions clear
"""

import os
from collections import OrderedDict

import typer

from uai.cli import _context
from uai.errors import NotFoundError, PersistenceError
from uai.providers.base import tool_icon
from uai.session.models import Session

sessions_app = typer.Typer(help="Browse and manage session history")

RULE = "─" * 50


def group_by_date(sessions: list[Session]) -> "OrderedDict[str, list[Session]]":
    """Group sessions by local start date, preserving order."""
    grouped: OrderedDict[str, list[Session]] = OrderedDict()
    for session in sessions:
        day = session.start_time.astimezone().strftime("%Y-%m-%d (%a)")
        grouped.setdefault(day, []).append(session)
    return grouped


@sessions_app.command("list")
def sessions_list():
    """List recorded sessions, newest first."""
    sessions = _context.get_registry().store.list()
    if not sessions:
        typer.echo("No sessions recorded.")
        return

    typer.secho("📋 Sessions:\n", fg=typer.colors.BLUE)
    for day, day_sessions in group_by_date(sessions).items():
        typer.secho(f"📅 {day}", fg=typer.colors.YELLOW)
        for session in day_sessions:
            time_str = session.start_time.astimezone().strftime("%H:%M")
            project_name = os.path.basename(session.project_path.rstrip("/\\")) or session.project_path
            typer.echo(
                f"  {time_str} {tool_icon(session.tool)} {session.tool} "
                f"({len(session.messages)} messages) 📁 {project_name}"
                f"  [{session.id}]"
            )
        typer.echo("")


@sessions_app.command("show")
def sessions_show(
    session_id: str = typer.Argument(help="Session ID"),
):
    """Show a session's details and conversation."""
    try:
        session = _context.get_registry().store.get(session_id)
    except NotFoundError:
        typer.secho("❌ Session not found", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except PersistenceError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho("\n📊 Session details:", fg=typer.colors.BLUE)
    typer.echo(RULE)
    typer.echo(f"ID: {session.id}")
    typer.echo(f"Tool: {tool_icon(session.tool)} {session.tool}")
    typer.echo(f"Project: {session.project_path}")
    typer.echo(f"Started: {session.start_time.astimezone():%Y-%m-%d %H:%M:%S}")
    if session.is_open:
        typer.echo("Ended: (still open)")
    else:
        typer.echo(f"Ended: {session.end_time.astimezone():%Y-%m-%d %H:%M:%S}")
    typer.echo(RULE)
    typer.echo("\n📝 Conversation:\n")

    for msg in session.messages:
        time_str = msg.timestamp.astimezone().strftime("%H:%M:%S")
        if msg.role == "user":
            typer.secho(f"[{time_str}] 👤 User:", fg=typer.colors.BLUE)
            typer.echo(msg.content)
        elif msg.role == "assistant":
            typer.secho(f"[{time_str}] 🤖 Assistant:", fg=typer.colors.GREEN)
            typer.secho(msg.content, dim=True)
        else:
            continue
        typer.echo("")


@sessions_app.command("clear")
def sessions_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete every recorded session."""
    if not yes and not typer.confirm("Delete all recorded sessions?"):
        typer.echo("Aborted.")
        raise typer.Exit(code=1)

    try:
        removed = _context.get_registry().store.delete_all()
    except PersistenceError as e:
        typer.secho(f"❌ Failed to clear sessions: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.secho(f"✅ Cleared {removed} sessions", fg=typer.colors.GREEN)
