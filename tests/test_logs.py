"""Tests for logging setup."""

import logging
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from timetree.core.config import ConfigManager
from timetree.core.logs import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Drop the handlers installed by a test and restore the level."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in own_handlers():
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def own_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if h.get_name() == "timetree"]


class TestSetupLogging:
    """Test setup_logging."""

    def test_level_from_config(self, temp_dir: Path) -> None:
        """Test that the configured level is applied."""
        config = ConfigManager(temp_dir / "config.yml")
        config.set("advanced.log_level", "DEBUG")

        root = setup_logging(config)

        assert root.level == logging.DEBUG
        assert len(own_handlers()) == 1

    def test_explicit_level_wins(self, temp_dir: Path) -> None:
        """Test that an explicit level overrides the config."""
        config = ConfigManager(temp_dir / "config.yml")

        assert setup_logging(config, level="error").level == logging.ERROR

    def test_repeated_calls_do_not_stack(self) -> None:
        """Test that handlers are replaced rather than added."""
        setup_logging(level="INFO")
        setup_logging(level="INFO")

        assert len(own_handlers()) == 1

    def test_log_file(self, temp_dir: Path) -> None:
        """Test that a configured log file receives records."""
        log_file = temp_dir / "logs" / "timetree.log"
        config = ConfigManager(temp_dir / "config.yml")
        config.set("advanced.log_file", str(log_file))
        config.set("advanced.log_level", "INFO")

        setup_logging(config)
        logging.getLogger("timetree.test").info("hello from the test")
        for handler in own_handlers():
            handler.flush()

        assert len(own_handlers()) == 2
        assert "timetree.test - INFO - hello from the test" in log_file.read_text()
