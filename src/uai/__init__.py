"""UAI - Unified AI Interface."""

__version__ = "1.0.0"
