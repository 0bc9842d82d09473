"""
Unit tests for the CLI commands (providers, sessions, config).
"""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from uai.cli import app

runner = CliRunner()


@pytest.fixture
def cli_state(config_manager, registry, clean_env):
    """Point the CLI at temporary config and session directories."""
    with patch("uai.cli._context.get_config", return_value=config_manager), patch(
        "uai.cli._context.get_registry", return_value=registry
    ), patch("uai.providers.o3_mcp.SIMULATION_DELAY_S", 0), patch(
        "uai.providers.gemini_cli.SIMULATION_DELAY_S", 0
    ), patch("uai.providers.gemini_cli.find_executable", return_value=None):
        yield config_manager, registry


class TestCLIRoot:
    def test_help_shows_all_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("claude", "o3", "gemini", "sessions", "config"):
            assert name in result.output

    def test_sessions_help(self):
        result = runner.invoke(app, ["sessions", "--help"])
        assert result.exit_code == 0
        assert "list" in result.output
        assert "show" in result.output
        assert "clear" in result.output


class TestProviderCommands:
    def test_o3_records_session(self, cli_state):
        _, registry = cli_state
        result = runner.invoke(app, ["o3", "latest", "react", "features"])
        assert result.exit_code == 0
        assert "React 19" in result.output

        sessions = registry.store.list()
        assert len(sessions) == 1
        assert sessions[0].messages[0].content == "latest react features"

    def test_o3_rejects_unknown_format(self, cli_state):
        result = runner.invoke(app, ["o3", "x", "--format", "yaml"])
        assert result.exit_code == 1
        assert "Unknown format" in result.output

    def test_gemini_simulates(self, cli_state):
        result = runner.invoke(app, ["gemini", "design", "a", "dashboard"])
        assert result.exit_code == 0
        assert "UI design proposal" in result.output

    def test_claude_prompt_without_key_fails(self, cli_state, tmp_path):
        _, registry = cli_state
        result = runner.invoke(app, ["claude", "explain", "--project", str(tmp_path)])
        assert result.exit_code == 1
        assert "API key" in result.output

        session = registry.store.list()[0]
        assert session.project_path == str(tmp_path)
        assert session.end_time is not None

    def test_claude_without_prompt_or_interactive(self, cli_state):
        result = runner.invoke(app, ["claude", "--no-interactive"])
        assert result.exit_code == 1

    @patch("uai.providers.claude_code.ClaudeCodeProvider.start_interactive_session")
    def test_claude_starts_interactive_session(self, mock_start, cli_state, tmp_path):
        result = runner.invoke(app, ["claude", "-p", str(tmp_path)])
        assert result.exit_code == 0
        mock_start.assert_called_once_with(str(tmp_path))


class TestSessionsCommands:
    def test_list_empty(self, cli_state):
        result = runner.invoke(app, ["sessions", "list"])
        assert result.exit_code == 0
        assert "No sessions recorded" in result.output

    def test_list_shows_sessions(self, cli_state):
        _, registry = cli_state
        session_id = registry.open("gemini-cli", "/home/me/webapp")
        registry.append(session_id, "user", "hi")
        registry.close(session_id)

        result = runner.invoke(app, ["sessions", "list"])
        assert result.exit_code == 0
        assert "gemini-cli" in result.output
        assert "(1 messages)" in result.output
        assert "webapp" in result.output
        assert session_id in result.output

    def test_show_session(self, cli_state):
        _, registry = cli_state
        session_id = registry.open("o3-mcp", "/proj")
        registry.append(session_id, "user", "question")
        registry.append(session_id, "assistant", "answer")
        registry.append(session_id, "system", "raw log")
        registry.close(session_id)

        result = runner.invoke(app, ["sessions", "show", session_id])
        assert result.exit_code == 0
        assert "question" in result.output
        assert "answer" in result.output
        assert "raw log" not in result.output
        assert "Ended:" in result.output

    def test_show_unknown_session(self, cli_state):
        result = runner.invoke(app, ["sessions", "show", "missing"])
        assert result.exit_code == 1
        assert "Session not found" in result.output

    def test_clear_with_confirmation(self, cli_state):
        _, registry = cli_state
        registry.close(registry.open("claude-code", "/a"))
        registry.close(registry.open("o3-mcp", "/b"))

        result = runner.invoke(app, ["sessions", "clear"], input="y\n")
        assert result.exit_code == 0
        assert "Cleared 2 sessions" in result.output
        assert registry.store.list() == []

    def test_clear_aborted(self, cli_state):
        _, registry = cli_state
        registry.close(registry.open("claude-code", "/a"))

        result = runner.invoke(app, ["sessions", "clear"], input="n\n")
        assert result.exit_code == 1
        assert len(registry.store.list()) == 1

    def test_clear_while_open_then_append(self, cli_state):
        _, registry = cli_state
        session_id = registry.open("claude-code", "/a")

        result = runner.invoke(app, ["sessions", "clear", "--yes"])
        assert result.exit_code == 0

        registry.append(session_id, "user", "still here")
        assert registry.store.read(session_id).messages[0].content == "still here"


class TestConfigCommands:
    def test_set_and_get(self, cli_state):
        result = runner.invoke(app, ["config", "set", "o3.endpoint=http://o3.local"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["config", "get", "o3.endpoint"])
        assert result.exit_code == 0
        assert "http://o3.local" in result.output

    def test_set_requires_assignment(self, cli_state):
        result = runner.invoke(app, ["config", "set", "o3.endpoint"])
        assert result.exit_code == 1

    def test_get_unknown_key(self, cli_state):
        result = runner.invoke(app, ["config", "get", "foo.bar"])
        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_list_masks_keys(self, cli_state):
        config, _ = cli_state
        config.set("claude.apiKey", "sk-ant-super-secret")
        result = runner.invoke(app, ["config", "list"])
        assert result.exit_code == 0
        assert "super-secret" not in result.output
        assert "Claude Code" in result.output

    def test_reset(self, cli_state):
        config, _ = cli_state
        config.set("general.theme", "dark")
        result = runner.invoke(app, ["config", "reset"])
        assert result.exit_code == 0
        assert config.get("general.theme") == "auto"
