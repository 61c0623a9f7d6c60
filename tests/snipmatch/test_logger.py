"""Tests for logging setup."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from snipmatch.config import LoggingConfig
from snipmatch.logger import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    """Test setup_logging()."""

    def test_level_from_config(self) -> None:
        setup_logging(LoggingConfig(level="WARNING"))

        assert logging.getLogger().level == logging.WARNING

    def test_level_override(self) -> None:
        setup_logging(LoggingConfig(level="WARNING"), level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "snipmatch.log"

        setup_logging(LoggingConfig(level="INFO", file=str(log_file)))
        logging.getLogger("snipmatch.test").info("[Test] hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "snipmatch.test - INFO - [Test] hello" in log_file.read_text()
