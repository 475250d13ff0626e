"""
Console logging setup for the CLI.

Library modules only ever call ``logging.getLogger("index_tail")``; handlers
are installed here, once, by the command-line entry point.
"""

from __future__ import annotations

import logging

__all__ = ["LOGGER_NAME", "TrimmedFormatter", "configure_logging"]

LOGGER_NAME = "index_tail"
_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class TrimmedFormatter(logging.Formatter):
    """Formatter that strips surrounding whitespace from every record."""

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record).strip()


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Send the package logger to stderr at INFO (DEBUG/WARNING with the flags)."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_index_tail_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(TrimmedFormatter(_DEFAULT_FORMAT))
    handler._index_tail_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
