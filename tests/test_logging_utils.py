"""Tests for logging utilities."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from stopmotion_export.ffmpeg import runner
from stopmotion_export.ffmpeg.runner import run_encoder
from stopmotion_export.services import email_sender, ending_frame
from stopmotion_export.utils.logging_utils import DEFAULT_LOGGER_NAME, setup_logging


def _reset() -> None:
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    for h in logger.handlers[:]:
        logger.removeHandler(h)


def test_setup_logging_defaults() -> None:
    _reset()
    logger = setup_logging()
    assert logger.name == DEFAULT_LOGGER_NAME
    assert logger.level == logging.INFO
    assert logger.handlers


def test_setup_logging_verbose() -> None:
    _reset()
    logger = setup_logging(verbose=True)
    assert logger.level == logging.DEBUG


def test_setup_logging_quiet_wins_over_verbose() -> None:
    _reset()
    logger = setup_logging(verbose=True, quiet=True)
    assert logger.level == logging.ERROR


def test_setup_logging_singleton() -> None:
    logger1 = setup_logging()
    logger2 = setup_logging()
    assert logger1 is logger2
    # Second call shouldn't add more handlers
    assert len(logger1.handlers) == len(logger2.handlers)


class _Collect(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_module_loggers_share_the_configured_logger(tmp_path: Path) -> None:
    _reset()
    logger = setup_logging(verbose=True)
    collect = _Collect()
    logger.addHandler(collect)
    try:
        for module in (runner, email_sender, ending_frame):
            assert module.LOG is logger
        run_encoder(["-c", "print('ok')"], tmp_path, lambda _c: None, binary=sys.executable)
    finally:
        logger.removeHandler(collect)
    assert any(r.getMessage().startswith("Running in") for r in collect.records)
