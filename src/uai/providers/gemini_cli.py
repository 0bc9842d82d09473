"""
Gemini CLI provider for visual and creative tasks.

Order of attempts: native ``gemini`` CLI, then the Generative Language API,
then a local simulation when no usable API key is available. Each fallback
runs once.
"""

import base64
import mimetypes
import os
import subprocess
import time
from pathlib import Path
from typing import Optional

import httpx
import typer

from uai.errors import LaunchFailure, ProviderError
from uai.logger import get_logger
from uai.providers.base import Provider, find_executable

logger = get_logger(__name__)

GEMINI_COMMAND = "gemini"
NATIVE_TIMEOUT_S = 30
REQUEST_TIMEOUT_S = 30.0
SIMULATION_DELAY_S = 2.0
GEMINI_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
DEFAULT_API_MODEL = "gemini-pro"
STOP_WORDS = {"を", "の", "は", "が", "で", "と", "に", "a", "the", "is", "are", "for", "of", "and"}


def extract_keywords(prompt: str, limit: int = 5) -> list[str]:
    """Crude keyword pick: longer words that are not stop words."""
    words = prompt.split()
    return [w for w in words if len(w) > 2 and w.lower() not in STOP_WORDS][:limit]


def simulated_result(prompt: str) -> str:
    lower = prompt.lower()
    if "画像" in prompt or "image" in lower:
        return (
            f'🎨 Image generation task: "{prompt}"\n\n'
            "Simulated result:\n"
            "- Size: 1024x1024\n"
            "- Style: photorealistic\n"
            f"- Key elements: {', '.join(extract_keywords(prompt))}\n\n"
            "Real image generation needs:\n"
            "1. A Gemini API key\n"
            "2. A model that supports image generation\n"
            "3. A well-engineered prompt"
        )
    if "ui" in lower or "デザイン" in prompt or "design" in lower:
        return (
            f'🎨 UI design proposal: "{prompt}"\n\n'
            "Design elements:\n"
            "- Palette: modern, calm tones\n"
            "- Typography: sans-serif, readability first\n"
            "- Layout: responsive grid\n"
            "- Interaction: smooth transitions\n\n"
            "Suggested frameworks:\n"
            "- React + Tailwind CSS\n"
            "- Vue.js + Vuetify\n"
            "- Svelte + Material UI"
        )
    return (
        f'📝 Task: "{prompt}"\n\n'
        "Simulated response:\n"
        f"Creative directions for {prompt}.\n\n"
        "Key points:\n"
        "1. Better user experience\n"
        "2. Optimized visual elements\n"
        "3. Balance of performance and accessibility\n\n"
        "Recommendations:\n"
        "- Use modern web technology\n"
        "- Progressive enhancement\n"
        "- Mobile-first approach"
    )


class GeminiCLIProvider(Provider):
    tool = "gemini-cli"

    @property
    def api_key(self) -> Optional[str]:
        return (
            self.config.config.gemini.api_key
            or os.getenv("GOOGLE_API_KEY")
            or os.getenv("GEMINI_API_KEY")
        )

    def execute(
        self,
        prompt: str,
        image: Optional[str] = None,
        output: Optional[str] = None,
        model: Optional[str] = None,
    ) -> None:
        """
        Run a creative task and record the exchange.

        Raises:
            ProviderError: If the native CLI fails for a reason that has no fallback.
        """
        session_id = self.open_session()
        model = model or self.config.config.gemini.model
        try:
            cli_path = find_executable(GEMINI_COMMAND)
            if cli_path:
                self._execute_native(cli_path, prompt, image, output, model, session_id)
            else:
                self._execute_api(prompt, image, output, model, session_id)
        finally:
            self.close_session(session_id)

    # --- native CLI ---

    def _execute_native(self, cli_path, prompt, image, output, model, session_id) -> None:
        typer.secho("🎨 Running Gemini CLI...", fg=typer.colors.MAGENTA)

        args = []
        if model:
            args += ["--model", model]
        args += ["--prompt", prompt, "--yolo"]

        env = dict(os.environ)
        if self.api_key:
            env["GOOGLE_API_KEY"] = self.api_key

        try:
            result = self._run_native(cli_path, args, prompt, env)
        except LaunchFailure as e:
            typer.secho(f"❌ {e}", fg=typer.colors.RED)
            typer.secho("Falling back to the API...", fg=typer.colors.YELLOW)
            self._execute_api(prompt, image, output, model, session_id)
            return
        except subprocess.TimeoutExpired:
            typer.secho("\nGemini CLI timed out", fg=typer.colors.YELLOW)
            typer.secho("Falling back to the API...", fg=typer.colors.YELLOW)
            self._execute_api(prompt, image, output, model, session_id)
            return

        text = (result.stdout or "").strip()
        if result.returncode == 0:
            typer.echo(text)
            self.record(session_id, prompt, text)
            typer.secho("\n✅ Gemini CLI finished", fg=typer.colors.GREEN)
            self._write_output(output, text)
        elif "Unknown argument" in (result.stderr or ""):
            typer.secho("❌ Gemini CLI rejected its arguments", fg=typer.colors.RED)
            typer.secho("Falling back to the API...", fg=typer.colors.YELLOW)
            self._execute_api(prompt, image, output, model, session_id)
        else:
            detail = (result.stderr or "").strip() or f"exit code {result.returncode}"
            raise ProviderError(f"Gemini CLI failed: {detail}")

    @staticmethod
    def _run_native(cli_path: str, args: list[str], prompt: str, env: dict):
        try:
            proc = subprocess.Popen(
                [cli_path, *args],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=env,
            )
        except OSError as e:
            raise LaunchFailure(cli_path, str(e)) from e

        try:
            stdout, stderr = proc.communicate(prompt + "\n", timeout=NATIVE_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise
        return subprocess.CompletedProcess(proc.args, proc.returncode, stdout, stderr)

    # --- API ---

    def _execute_api(self, prompt, image, output, model, session_id) -> None:
        typer.secho("⚠️  Gemini CLI not available - using the API", fg=typer.colors.YELLOW)

        api_key = self.api_key
        if not api_key:
            self._simulate(prompt, output, session_id)
            return

        typer.secho("Calling Gemini API...", dim=True)
        try:
            parts = [{"text": prompt}]
            if image:
                parts.append(self._image_part(image))
            resp = httpx.post(
                GEMINI_API_URL.format(model=model or DEFAULT_API_MODEL),
                json={"contents": [{"parts": parts}]},
                params={"key": api_key},
                timeout=REQUEST_TIMEOUT_S,
            )
            resp.raise_for_status()
            text = resp.json()["candidates"][0]["content"]["parts"][0]["text"]
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 403:
                logger.info("Gemini API key rejected, simulating")
                self._simulate(prompt, output, session_id)
                return
            logger.error(f"Gemini API error: {e}")
            typer.secho(f"❌ Error: Gemini API returned {e.response.status_code}", fg=typer.colors.RED)
            return
        except (httpx.HTTPError, OSError, KeyError, IndexError, ValueError) as e:
            logger.error(f"Gemini API call failed: {e}")
            typer.secho(f"❌ Error: {e}", fg=typer.colors.RED)
            return

        typer.secho("\n🤖 Gemini:", fg=typer.colors.GREEN)
        typer.echo(text)
        self._write_output(output, text)
        self.record(session_id, prompt, text)

    @staticmethod
    def _image_part(image: str) -> dict:
        path = Path(image)
        mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
        data = base64.b64encode(path.read_bytes()).decode("ascii")
        return {"inline_data": {"mime_type": mime_type, "data": data}}

    # --- simulation ---

    def _simulate(self, prompt: str, output: Optional[str], session_id: str) -> None:
        typer.secho(
            "⚠️  Gemini API not configured - running in simulation mode\n",
            fg=typer.colors.YELLOW,
        )
        time.sleep(SIMULATION_DELAY_S)
        result = simulated_result(prompt)

        typer.secho("\n🤖 Gemini (simulated):", fg=typer.colors.GREEN)
        typer.echo(result)
        self._write_output(output, result)
        self.record(session_id, prompt, result)

        typer.secho("\n💡 Tip:", fg=typer.colors.CYAN)
        typer.secho("  To use real Gemini features:", dim=True)
        typer.secho("  1. Get an API key from Google AI Studio", dim=True)
        typer.secho("  2. uai config set gemini.apiKey=<your-api-key>", dim=True)
        typer.secho("  3. Or install the Gemini CLI", dim=True)

    @staticmethod
    def _write_output(output: Optional[str], text: str) -> None:
        if not output:
            return
        try:
            Path(output).write_text(text, encoding="utf-8")
            typer.secho(f"\n📁 Saved to: {output}", dim=True)
        except OSError as e:
            logger.error(f"Failed to write {output}: {e}")
            typer.secho(f"❌ Could not write {output}: {e}", fg=typer.colors.RED)
