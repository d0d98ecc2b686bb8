"""Logging setup."""

import logging
from pathlib import Path
from typing import Optional

from timetree.core.config import ConfigManager

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_NAME = "timetree"


def setup_logging(
    config: Optional[ConfigManager] = None, level: Optional[str] = None
) -> logging.Logger:
    """Configure the root logger from the configuration.

    Handlers installed by an earlier call are replaced, so calling this more
    than once does not duplicate output.

    Args:
        config: Configuration manager (``advanced.log_level``, ``advanced.log_file``)
        level: Level name overriding the configured one

    Returns:
        The root logger
    """
    if level is None:
        level = config.get("advanced.log_level", "WARNING") if config else "WARNING"
    log_level = getattr(logging, str(level).upper(), logging.WARNING)
    log_file = config.get("advanced.log_file") if config else None

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.set_name(_HANDLER_NAME)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.set_name(_HANDLER_NAME)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger
