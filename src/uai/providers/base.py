"""
Shared plumbing for provider adapters.

A provider opens a session in the registry, talks to its external tool,
records the turns and always closes the session when it is done.
"""

import os
import shutil
from pathlib import Path
from typing import Optional

import typer

from uai.config import ConfigManager
from uai.errors import UAIError
from uai.logger import get_logger
from uai.session.registry import SessionRegistry
from uai.session.transcript import MessageSink

logger = get_logger(__name__)

TOOL_ICONS = {
    "claude-code": "🤖",
    "o3-mcp": "🔍",
    "gemini-cli": "🎨",
}
DEFAULT_ICON = "🔧"


def tool_icon(tool: str) -> str:
    return TOOL_ICONS.get(tool, DEFAULT_ICON)


def find_executable(name: str) -> Optional[str]:
    """Look in the usual install locations, then on PATH."""
    candidates = [
        Path("/usr/local/bin") / name,
        Path("/usr/bin") / name,
        Path.home() / ".local" / "bin" / name,
        Path.home() / "bin" / name,
    ]
    for path in candidates:
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return shutil.which(name)


class Provider:
    """Base class holding the config and session registry."""

    tool: str = ""

    def __init__(self, config: ConfigManager, registry: SessionRegistry):
        self.config = config
        self.registry = registry

    def open_session(self, project_path: Optional[str] = None) -> str:
        return self.registry.open(self.tool, project_path or os.getcwd())

    def record(self, session_id: str, user: str, assistant: str) -> None:
        """Record a user/assistant exchange; failures are logged, not raised."""
        try:
            self.registry.append(session_id, "user", user)
            self.registry.append(session_id, "assistant", assistant)
        except UAIError as e:
            logger.warning(f"Failed to record exchange in {session_id}: {e}")
            typer.secho(f"⚠️  Could not save session log: {e}", fg=typer.colors.YELLOW)

    def sink(self, session_id: str) -> MessageSink:
        """Message sink that appends straight into an open session."""

        def _append(role, content):
            self.registry.append(session_id, role, content)

        return _append

    def close_session(self, session_id: str) -> None:
        try:
            self.registry.close(session_id)
        except UAIError as e:
            logger.warning(f"Failed to finalize session {session_id}: {e}")
            typer.secho(f"⚠️  Could not finalize session: {e}", fg=typer.colors.YELLOW)

    def print_stats(self, session_id: str, show_id: bool = True) -> None:
        stats = self.registry.stats(session_id)
        typer.secho("\n📊 Session stats:", fg=typer.colors.BLUE)
        typer.echo(f"  - Duration: {stats.duration}")
        typer.echo(f"  - Messages: {stats.message_count}")
        if show_id:
            typer.echo(f"  - Session ID: {session_id}")
