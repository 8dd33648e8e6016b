"""Tests for logger configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pagemill.logging import configure_logging, get_logger


def test_child_loggers_share_the_pagemill_namespace() -> None:
    assert get_logger().name == "pagemill"
    assert get_logger("loader").name == "pagemill.loader"


def test_reconfiguring_replaces_handlers_and_writes_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "build.log"
    configure_logging()
    logger = configure_logging(verbose=True, log_file=log_file)
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        get_logger("build").debug("compiled %s", "index.md")
        for handler in logger.handlers:
            handler.flush()

        assert "pagemill.build: compiled index.md" in log_file.read_text(encoding="utf-8")
    finally:
        configure_logging()
