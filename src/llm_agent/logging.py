"""
Package logging.

All modules log through children of the ``llm_agent`` logger obtained from
``get_logger``. Nothing is configured on import; applications (and the CLI)
call ``setup_logging`` once.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "llm_agent"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

_root_logger = logging.getLogger(PACKAGE_LOGGER)


def _as_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure the package logger.

    Replaces any handlers installed by a previous call. HTTP client loggers
    are held at WARNING unless ``level`` is DEBUG, so provider calls do not
    flood the console.

    Args:
        level: Level name or number
        format: Log format string
        stream: Output stream (defaults to stderr)
        file: Optional log file path
    """
    level = _as_level(level)
    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if file:
        handlers.append(logging.FileHandler(file))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        _root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the package child logger for ``name`` (e.g. ``"loop"``)."""
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
