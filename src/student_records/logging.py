"""Logging setup for the student records service.

Everything the service writes, uvicorn's server messages included, lands in
one rotating file under ``config.log_dir``. Environment overrides such as
``STUDENT_RECORDS_LOG_LEVEL`` reach this module through ``load_config``.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from student_records.config import AppConfig

LOG_FILE = "student_records.log"
MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

ROOT_LOGGER = "student_records"
# uvicorn.error and uvicorn.access propagate to this one
SERVER_LOGGER = "uvicorn"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    config: AppConfig | None = None,
    *,
    log_file: str = LOG_FILE,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
    console: bool = True,
) -> logging.Logger:
    """Attach file (and console) handlers for the service and its server.

    Args:
        config: Source of ``log_dir`` and ``log_level``. Defaults apply when None.
        log_file: File name inside ``config.log_dir``.
        max_bytes: Size at which the file rotates.
        backup_count: Rotated files to keep.
        console: Also write to stderr.

    Returns:
        The ``student_records`` logger.
    """
    if config is None:
        from student_records.config import AppConfig

        config = AppConfig()

    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    log_path = log_dir / log_file
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    logger = _install(ROOT_LOGGER, handlers, level)
    _install(SERVER_LOGGER, handlers, level)

    logger.info(
        "Logging initialized (level=%s, file=%s)", logging.getLevelName(level), log_path
    )
    return logger


def _install(name: str, handlers: list[logging.Handler], level: int) -> logging.Logger:
    """Replace a logger's handlers; handlers shared with another logger stay open."""
    logger = logging.getLogger(name)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        if old not in handlers:
            old.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a component logger under ``student_records`` (e.g. 'api', 'store')."""
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
