"""Logging utilities for goweight commands.

Reports go to stdout, so console logging is pinned to stderr to keep JSON
output parseable. Console lines carry the component that emitted them
(``[goweight:reconcile] WARNING ...``) when debugging is enabled.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

_LOGGER_NAME = "goweight"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the goweight hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def component_of(logger_name: str) -> str:
    """Return the part of ``logger_name`` below ``goweight`` (``""`` for the root)."""
    prefix = _LOGGER_NAME + "."
    if logger_name.startswith(prefix):
        return logger_name[len(prefix):]
    return ""


class ConsoleFormatter(logging.Formatter):
    """Formats records as ``[goweight] LEVEL message``.

    With ``show_component`` the tag names the emitting module instead, e.g.
    ``[goweight:module_cache]``.
    """

    def __init__(self, *, show_component: bool = False) -> None:
        super().__init__("%(message)s")
        self.show_component = show_component

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag = _LOGGER_NAME
        component = component_of(record.name) if self.show_component else ""
        if component:
            tag = f"{_LOGGER_NAME}:{component}"
        return f"[{tag}] {record.levelname} {message}"


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the goweight logger with stderr output and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(ConsoleFormatter(show_component=verbose))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)
        if not verbose:
            logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["ConsoleFormatter", "component_of", "configure_logging", "get_logger"]
