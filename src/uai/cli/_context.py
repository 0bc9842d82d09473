"""
Shared state for CLI commands: the loaded config and the session registry.

Commands go through these helpers so tests can patch them.
"""

from functools import lru_cache

from uai.config import ConfigManager
from uai.session.registry import SessionRegistry
from uai.session.store import SessionStore


@lru_cache(maxsize=1)
def get_config() -> ConfigManager:
    manager = ConfigManager()
    manager.load()
    return manager


@lru_cache(maxsize=1)
def get_registry() -> SessionRegistry:
    return SessionRegistry(SessionStore())
