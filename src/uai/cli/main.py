"""
Provider commands: claude, o3, gemini.
"""

import os
from typing import Optional

import typer

from uai.cli import _context
from uai.errors import UAIError


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from uai.logger import setup_logging

    level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING")
    setup_logging(level=level, log_file=os.getenv("LOG_FILE"))


def load_environment():
    """Load a .env file from the working directory, without overriding the shell."""
    from dotenv import load_dotenv

    load_dotenv(override=False)


def _provider_config():
    """Config with API keys and endpoints from the environment laid on top."""
    manager = _context.get_config()
    manager.load_from_env()
    return manager


def _fail(error: Exception):
    typer.secho(f"❌ Error: {error}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


def register_commands(app: typer.Typer):
    """Register provider commands onto the app."""

    @app.command()
    def claude(
        prompt: Optional[list[str]] = typer.Argument(None, help="Prompt (omit for an interactive session)"),
        project: Optional[str] = typer.Option(
            None, "--project", "-p", help="Project path (default: current directory)"
        ),
        interactive: bool = typer.Option(
            True, "--interactive/--no-interactive", help="Allow an interactive session"
        ),
    ):
        """Run Claude Code (interactive session when no prompt is given)."""
        from uai.providers.claude_code import ClaudeCodeProvider

        provider = ClaudeCodeProvider(_provider_config(), _context.get_registry())
        text = " ".join(prompt or []).strip()
        project = os.path.abspath(project or os.getcwd())

        try:
            if not text and interactive:
                typer.secho("🎯 Claude Code interactive session", fg=typer.colors.BLUE)
                typer.secho(f"📁 Project: {project}", dim=True)
                provider.start_interactive_session(project)
            elif text:
                typer.secho("🤖 Running Claude Code...", fg=typer.colors.BLUE)
                provider.execute_prompt(text, project)
            else:
                typer.secho(
                    "❌ Error: give a prompt or allow interactive mode",
                    fg=typer.colors.RED,
                )
                raise typer.Exit(code=1)
        except UAIError as e:
            _fail(e)

    @app.command()
    def o3(
        prompt: list[str] = typer.Argument(..., help="What to research"),
        output_format: str = typer.Option(
            "markdown", "--format", "-f", help="Output format (text/json/markdown)"
        ),
    ):
        """Research current technical information with O3 MCP."""
        from uai.providers.o3_mcp import FORMATS, O3MCPProvider

        if output_format not in FORMATS:
            typer.secho(f"❌ Unknown format: {output_format}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

        provider = O3MCPProvider(_provider_config(), _context.get_registry())
        typer.secho("🔍 O3 MCP researching...", fg=typer.colors.GREEN)
        try:
            provider.search(" ".join(prompt), output_format=output_format)
        except UAIError as e:
            _fail(e)

    @app.command()
    def gemini(
        prompt: list[str] = typer.Argument(..., help="Creative or visual task"),
        image: Optional[str] = typer.Option(None, "--image", "-i", help="Input image path"),
        output: Optional[str] = typer.Option(None, "--output", "-o", help="Output path"),
        model: Optional[str] = typer.Option(None, "--model", "-m", help="Gemini model"),
    ):
        """Run a visual/creative task with Gemini CLI."""
        from uai.providers.gemini_cli import GeminiCLIProvider

        provider = GeminiCLIProvider(_provider_config(), _context.get_registry())
        typer.secho("🎨 Gemini CLI running...", fg=typer.colors.MAGENTA)
        try:
            provider.execute(" ".join(prompt), image=image, output=output, model=model)
        except UAIError as e:
            _fail(e)
