"""Shared pytest fixtures and configuration."""

import pytest

from uai.config import ConfigManager
from uai.session.registry import SessionRegistry
from uai.session.store import SessionStore


@pytest.fixture
def session_dir(tmp_path):
    """Directory for session files, isolated per test."""
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def store(session_dir):
    return SessionStore(str(session_dir))


@pytest.fixture
def registry(store):
    return SessionRegistry(store)


@pytest.fixture
def config_manager(tmp_path):
    """A loaded config manager writing under tmp_path."""
    manager = ConfigManager(str(tmp_path / "config"))
    manager.load()
    return manager


@pytest.fixture
def clean_env(monkeypatch):
    """Strip provider credentials from the environment."""
    for name in (
        "ANTHROPIC_API_KEY",
        "O3_MCP_ENDPOINT",
        "O3_MCP_API_KEY",
        "GOOGLE_API_KEY",
        "GEMINI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
