"""
UAI CLI: Unified AI Interface.

This package splits CLI commands into focused modules:
- main:     claude, o3, gemini
- sessions: list, show, clear
- config:   list, get, set, reset
"""

import typer

from uai.cli.config import config_app
from uai.cli.main import configure_logging, load_environment, register_commands
from uai.cli.sessions import sessions_app

app = typer.Typer(help="UAI - use several AI tools through one interface")


@app.callback()
def root(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    UAI - Unified AI Interface.
    """
    configure_logging(verbose)
    load_environment()


register_commands(app)

app.add_typer(sessions_app, name="sessions")
app.add_typer(config_app, name="config")

if __name__ == "__main__":
    app()
