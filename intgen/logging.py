"""Logging setup for the intgen CLI and service."""

from __future__ import annotations

import logging
import re
from pathlib import Path

_ROOT = "intgen"
_CONSOLE_FORMAT = "[intgen] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s: %(message)s"

# NAME=value pairs where NAME looks like an environment variable.
_ASSIGNMENT = re.compile(r"\b([A-Z][A-Z0-9_]*)=(\"[^\"]*\"|'[^']*'|[^\s,;)\]}]+)")


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(_ROOT)
    return logging.getLogger(f"{_ROOT}.{name}")


def redact_assignments(text: str) -> str:
    """Replace the value half of ``NAME=value`` pairs so secrets never reach a sink."""
    return _ASSIGNMENT.sub(lambda match: f"{match.group(1)}=<redacted>", text)


class RedactingFilter(logging.Filter):
    """Rewrites each record's rendered message through :func:`redact_assignments`."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_assignments(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(RedactingFilter())
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console (and optionally file) handlers on the ``intgen`` logger.

    Calling it again replaces the previous handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    logger.addHandler(_handler(logging.StreamHandler(), level, _CONSOLE_FORMAT))
    if log_file is not None:
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), level, _FILE_FORMAT)
        )
    return logger


__all__ = ["RedactingFilter", "configure_logging", "get_logger", "redact_assignments"]
