"""Logging setup for the temple administration API.

Everything under the ``templeadmin`` logger goes to stderr and, when
``LOG_TO_FILE`` is set, to ``<LOG_DIR>/templeadmin.log`` rotated by size.
"""

import logging
import logging.handlers
import os
from typing import List, Optional

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
ISO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("passlib", "multipart")


def _parse_level(level: str) -> int:
    name = str(level).strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LOG_LEVELS)}")
    return getattr(logging, name)


def _handlers(
    name: str,
    log_dir: str,
    file_logging: bool,
    console_logging: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        ))
    if console_logging:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logger(
    name: str,
    log_dir: str = "./logs",
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure ``name`` and return it.

    Calling again only changes the level; handlers are attached once.

    Args:
        name: Logger name; "templeadmin" covers the whole package
        log_dir: Directory for the rotating log file
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_format: Record format, ``DEFAULT_FORMAT`` if omitted
        date_format: Timestamp format, ISO 8601 if omitted
        file_logging: Write ``<log_dir>/<name>.log``
        console_logging: Write to stderr
        max_bytes: Size at which the file is rotated
        backup_count: Rotated files to keep
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt=date_format or ISO_DATE_FORMAT)
    for handler in _handlers(name, log_dir, file_logging, console_logging, max_bytes, backup_count):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_logging(settings) -> logging.Logger:
    """Package logger configured from ``LOG_LEVEL``, ``LOG_DIR`` and ``LOG_TO_FILE``."""
    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return setup_logger(
        "templeadmin",
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
    )
