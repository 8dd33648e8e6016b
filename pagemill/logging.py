"""Loggers for the `pagemill` namespace.

Library modules only call `get_logger`; handlers are attached once by the
command line entrypoint through `configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "pagemill"
CONSOLE_FORMAT = "[pagemill] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Child logger such as `pagemill.loader`, or the namespace root when unnamed."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send pagemill records to stderr and, when given, to `log_file`.

    Calling this again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    for previous in list(logger.handlers):
        logger.removeHandler(previous)
        previous.close()

    _attach(logger, logging.StreamHandler(sys.stderr), level, CONSOLE_FORMAT)
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
