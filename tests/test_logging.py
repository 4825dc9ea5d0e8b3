from __future__ import annotations

import logging
from pathlib import Path

from dashmon_analytics.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    # Ensure configuring logging doesn't raise and attaches a StreamHandler
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_replaces_handlers_and_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "analytics.log"
    configure_logging(log_file, logging.DEBUG)
    configure_logging(log_file, logging.DEBUG)

    root = logging.getLogger()
    assert sum(isinstance(h, logging.FileHandler) for h in root.handlers) == 1

    logging.getLogger("dashmon_analytics.test").info("hello")
    for h in root.handlers:
        h.flush()
    assert "| INFO | dashmon_analytics.test | hello" in log_file.read_text(encoding="utf-8")
    configure_logging(None)
