"""
Exception types shared across UAI.
"""


class UAIError(Exception):
    """Base class for all UAI errors."""


class NotFoundError(UAIError):
    """A session identifier has no in-memory or on-disk record."""

    def __init__(self, session_id: str, where: str = "registry"):
        self.session_id = session_id
        self.where = where
        super().__init__(f"Session {session_id} not found ({where})")


class LaunchFailure(UAIError):
    """The interactive child process could not be started."""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        message = f"Failed to launch '{command}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PersistenceError(UAIError):
    """Reading or writing a session file failed."""


class InterruptSignal(UAIError):
    """
    Raised by the capture loop when the user presses Ctrl+C.

    Not a failure: the runner converts it into a graceful exit.
    """


class ConfigKeyError(UAIError, KeyError):
    """A configuration key does not name a known section field."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown config key"


class ProviderError(UAIError):
    """A provider call failed with no fallback left to try."""
