"""
Claude Code provider.

- Interactive: runs the native ``claude`` CLI under a pty (pipe fallback)
  with full transcript capture, or an API chat loop when the CLI is missing.
- Headless: a single API completion.
"""

import os
from typing import Optional

import litellm
import typer

from uai.config import DEFAULT_CLAUDE_MODEL
from uai.errors import LaunchFailure, ProviderError
from uai.logger import get_logger
from uai.providers.base import Provider, find_executable
from uai.session.interactive import run_interactive
from uai.session.transcript import CaptureMode

logger = get_logger(__name__)

litellm.drop_params = True

CLAUDE_COMMAND = "claude"
MAX_TOKENS = 4096
EXIT_WORDS = ("exit",)

SYSTEM_PROMPT = (
    "You are Claude Code, an AI assistant helping with coding tasks in the "
    "project at {project_path}.\n"
    "Current working directory: {project_path}\n"
    "{closing}"
)
INTERACTIVE_CLOSING = "Provide helpful, concise responses focused on the task at hand."
HEADLESS_CLOSING = "Provide a focused, actionable response."


def suggest_next_actions() -> None:
    typer.secho("\n💡 What next:", fg=typer.colors.CYAN)
    typer.echo("  🔍 Research the latest on a topic")
    typer.echo('    → uai o3 "topic to research"')
    typer.echo("  🎨 Get UI/UX ideas")
    typer.echo('    → uai gemini "UI to improve"')
    typer.echo("  📊 Review session history")
    typer.echo("    → uai sessions list")


class ClaudeCodeProvider(Provider):
    tool = "claude-code"

    @property
    def api_key(self) -> Optional[str]:
        return self.config.config.claude.api_key or os.getenv("ANTHROPIC_API_KEY")

    @property
    def model(self) -> str:
        name = self.config.config.claude.model or DEFAULT_CLAUDE_MODEL
        return name if "/" in name else f"anthropic/{name}"

    def _system_prompt(self, project_path: str, closing: str) -> str:
        return SYSTEM_PROMPT.format(project_path=project_path, closing=closing)

    # --- interactive ---

    def start_interactive_session(self, project_path: str) -> None:
        """Start an interactive session, preferring the native CLI."""
        session_id = self.open_session(project_path)
        cli_path = find_executable(CLAUDE_COMMAND)
        typer.secho(f"Claude CLI path: {cli_path or 'not found'}", dim=True)

        try:
            if cli_path:
                try:
                    self._run_native(cli_path, project_path, session_id)
                except LaunchFailure as e:
                    logger.warning(f"Native session unavailable: {e}")
                    typer.secho(
                        f"⚠️  {e}. Falling back to the API session.",
                        fg=typer.colors.YELLOW,
                    )
                    self._run_api_chat(project_path, session_id)
            else:
                self._run_api_chat(project_path, session_id)
        finally:
            self.close_session(session_id)

        self.print_stats(session_id)
        typer.secho("\n👋 Claude Code session ended", fg=typer.colors.YELLOW)
        suggest_next_actions()

    def _run_native(self, cli_path: str, project_path: str, session_id: str) -> None:
        typer.secho("🚀 Starting native Claude Code session...", fg=typer.colors.CYAN)
        typer.secho("💬 Type exit to quit", dim=True)
        typer.secho("📝 Recording: full transcript\n", dim=True)

        result = run_interactive(
            cli_path,
            self.sink(session_id),
            cwd=project_path,
        )
        if result.mode is CaptureMode.PIPE:
            typer.secho("📝 Session was recorded in pipe mode", fg=typer.colors.CYAN)
        if result.interrupted:
            typer.secho("\n👋 Interrupted", fg=typer.colors.YELLOW)
        typer.secho("  - 📝 Full session log recorded", fg=typer.colors.GREEN)

    def _run_api_chat(self, project_path: str, session_id: str) -> None:
        api_key = self.api_key
        if not api_key:
            typer.secho("❌ Claude API key is not configured", fg=typer.colors.RED)
            typer.echo("   Set it with: uai config set claude.apiKey=<your-api-key>")
            return

        typer.secho("💬 Enter a message (exit to quit)\n", fg=typer.colors.CYAN)
        system = self._system_prompt(project_path, INTERACTIVE_CLOSING)
        history: list[dict] = []

        while True:
            try:
                text = typer.prompt(
                    ">", default="", show_default=False, prompt_suffix=" "
                ).strip()
            except typer.Abort:
                typer.secho("\n\n👋 Interrupted", fg=typer.colors.YELLOW)
                break

            if text.lower() in EXIT_WORDS:
                break
            if not text:
                continue

            history.append({"role": "user", "content": text})
            try:
                reply = self._stream_reply(system, history, api_key)
            except Exception as e:
                history.pop()
                logger.error(f"Claude API call failed: {e}")
                typer.secho(f"\n❌ Error: {e}", fg=typer.colors.RED)
                continue

            history.append({"role": "assistant", "content": reply})
            self.record(session_id, text, reply)

    def _stream_reply(self, system: str, history: list[dict], api_key: str) -> str:
        response = litellm.completion(
            model=self.model,
            messages=[{"role": "system", "content": system}, *history],
            max_tokens=MAX_TOKENS,
            api_key=api_key,
            stream=True,
        )

        typer.echo("")
        typer.secho("🤖 ", fg=typer.colors.GREEN, nl=False)
        parts = []
        for chunk in response:
            delta = chunk.choices[0].delta.content
            if delta:
                parts.append(delta)
                typer.echo(delta, nl=False)
        typer.echo("\n")
        return "".join(parts)

    # --- headless ---

    def execute_prompt(self, prompt: str, project_path: str) -> None:
        """
        Run a single prompt through the API.

        Raises:
            ProviderError: If no API key is configured or the call fails.
        """
        session_id = self.open_session(project_path)
        try:
            api_key = self.api_key
            if not api_key:
                raise ProviderError("Claude API key is not configured")

            try:
                response = litellm.completion(
                    model=self.model,
                    messages=[
                        {
                            "role": "system",
                            "content": self._system_prompt(project_path, HEADLESS_CLOSING),
                        },
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=MAX_TOKENS,
                    api_key=api_key,
                )
            except Exception as e:
                logger.error(f"Claude API call failed: {e}")
                raise ProviderError(str(e)) from e

            text = response.choices[0].message.content or ""
            typer.secho("\n🤖 Claude Code:", fg=typer.colors.GREEN)
            typer.echo(text)
            self.record(session_id, prompt, text)
        finally:
            self.close_session(session_id)
