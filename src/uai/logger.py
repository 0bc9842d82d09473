"""
Logging setup for UAI, built on loguru.

Modules obtain a bound logger via ``get_logger(__name__)``; the CLI calls
``setup_logging`` once at startup.
"""

import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

logger.configure(extra={"name": "uai"})


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for the stderr sink.
        log_file: Optional path for an additional rotating file sink.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=LOG_FORMAT,
            rotation="10 MB",
            retention=2,
            encoding="utf-8",
        )


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return logger.bind(name=name)
