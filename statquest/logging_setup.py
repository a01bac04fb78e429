"""File logging for StatQuest.

Log file:
    ~/Library/Application Support/StatQuest/logs/statquest.log

Library modules log through children of the ``StatQuest`` logger
(``StatQuest.bonuses``, ``StatQuest.engine``); nothing is written to
disk until the application calls :func:`setup_logger`.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .paths import APP_SUPPORT_DIR


LOGGER_NAME = "StatQuest"
LOG_DIR = APP_SUPPORT_DIR / "logs"
LOG_FILE = LOG_DIR / "statquest.log"


def get_logger(name: str = "") -> logging.Logger:
    """``StatQuest`` logger, or its child ``StatQuest.<name>``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def setup_logger(log_file: Path = LOG_FILE, level: int = logging.INFO) -> logging.Logger:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    return logger
