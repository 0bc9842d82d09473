"""
UAI configuration.

Paths for session and config storage, plus the typed provider configuration
persisted at ``{CONFIG_DIR}/config.json``.

Config keys are addressed as ``section.field`` (e.g. ``claude.apiKey``).
Only the known sections and their declared fields are reachable; there is
no arbitrary nesting.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from uai.errors import ConfigKeyError
from uai.logger import get_logger

logger = get_logger(__name__)

SESSION_DIR = Path(os.getenv("UAI_SESSION_DIR", str(Path.home() / ".ai-sessions")))
CONFIG_DIR = Path(os.getenv("UAI_CONFIG_DIR", str(Path.home() / ".config" / "uai")))
CONFIG_FILE = "config.json"

DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ClaudeSettings(_Section):
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model: Optional[str] = None


class O3Settings(_Section):
    endpoint: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class GeminiSettings(_Section):
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model: Optional[str] = None


class GeneralSettings(_Section):
    default_tool: Optional[str] = Field(default=None, alias="defaultTool")
    theme: Optional[str] = None


class UAIConfig(_Section):
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    o3: O3Settings = Field(default_factory=O3Settings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)

    @classmethod
    def defaults(cls) -> "UAIConfig":
        return cls(
            claude=ClaudeSettings(model=DEFAULT_CLAUDE_MODEL),
            general=GeneralSettings(default_tool="claude", theme="auto"),
        )


SECTIONS = ("claude", "o3", "gemini", "general")


def mask_api_key(api_key: Optional[str]) -> str:
    """Show only the first and last four characters of a key."""
    if not api_key:
        return "(not set)"
    if len(api_key) <= 8:
        return "*" * len(api_key)
    masked = "*" * max(len(api_key) - 8, 4)
    return f"{api_key[:4]}{masked}{api_key[-4:]}"


class ConfigManager:
    """Loads, edits and persists the UAI config file."""

    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = Path(config_dir or str(CONFIG_DIR))
        self.config_path = self.config_dir / CONFIG_FILE
        self.config = UAIConfig()

    def load(self) -> UAIConfig:
        """Read the config file, writing defaults when it is missing or invalid."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create config directory: {e}")

        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
            self.config = UAIConfig.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.debug(f"Using default config ({e})")
            self.reset()
        return self.config

    def save(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(
                self.config.model_dump_json(by_alias=True, exclude_none=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def reset(self) -> None:
        self.config = UAIConfig.defaults()
        self.save()

    def _resolve(self, key: str) -> tuple[BaseModel, str]:
        section_name, _, field_alias = key.partition(".")
        if section_name not in SECTIONS or not field_alias:
            raise ConfigKeyError(f"Unknown config key: {key}")

        section = getattr(self.config, section_name)
        for name, info in type(section).model_fields.items():
            if field_alias in (name, info.alias):
                return section, name
        raise ConfigKeyError(f"Unknown config key: {key}")

    def get(self, key: str) -> Any:
        """
        Read ``section.field``.

        Raises:
            ConfigKeyError: If the key is not a known field.
        """
        section, name = self._resolve(key)
        return getattr(section, name)

    def set(self, key: str, value: Any) -> None:
        """
        Set ``section.field`` and persist.

        Raises:
            ConfigKeyError: If the key is not a known field.
        """
        section, name = self._resolve(key)
        setattr(section, name, value if value != "" else None)
        self.save()

    def load_from_env(self) -> None:
        """Overlay API keys and endpoints from environment variables (not saved)."""
        if os.getenv("ANTHROPIC_API_KEY"):
            self.config.claude.api_key = os.environ["ANTHROPIC_API_KEY"]
        if os.getenv("O3_MCP_ENDPOINT"):
            self.config.o3.endpoint = os.environ["O3_MCP_ENDPOINT"]
        if os.getenv("O3_MCP_API_KEY"):
            self.config.o3.api_key = os.environ["O3_MCP_API_KEY"]
        gemini_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        if gemini_key:
            self.config.gemini.api_key = gemini_key

    def describe(self) -> list[tuple[str, list[tuple[str, str]]]]:
        """Rows for display, with API keys masked."""
        c = self.config
        return [
            (
                "Claude Code",
                [
                    ("API Key", mask_api_key(c.claude.api_key)),
                    ("Model", c.claude.model or DEFAULT_CLAUDE_MODEL),
                ],
            ),
            (
                "O3 MCP",
                [
                    ("Endpoint", c.o3.endpoint or "(not set)"),
                    ("API Key", mask_api_key(c.o3.api_key)),
                ],
            ),
            (
                "Gemini CLI",
                [
                    ("API Key", mask_api_key(c.gemini.api_key)),
                    ("Model", c.gemini.model or "(not set)"),
                ],
            ),
            (
                "General",
                [
                    ("Default tool", c.general.default_tool or "claude"),
                    ("Theme", c.general.theme or "auto"),
                ],
            ),
        ]
