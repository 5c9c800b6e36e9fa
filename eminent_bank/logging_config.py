"""
Logging configuration for the transfer service.

Creates a rotating file logger under LOG_DIR (default ./logs) and mirrors
warnings and errors to the console.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

SERVICE_LOGGER = "eminent_bank"
LOG_FILE_NAME = "eminent_bank.log"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _setup_file_logger(name: str, log_file: Path, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Avoid duplicate handlers if setup_logging is called multiple times
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger


def setup_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> Path:
    """
    Configure root + service loggers. Returns the service log file path.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    directory = Path(log_dir) if log_dir is not None else Path("logs")
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    _setup_file_logger(SERVICE_LOGGER, log_file, log_level)

    # Keep SQLAlchemy and httpx quiet unless something goes wrong
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Convenience wrapper to get a named logger.
    """
    return logging.getLogger(name)
