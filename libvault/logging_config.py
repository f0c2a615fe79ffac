"""Logging setup: everything to a rotating file, warnings and up to the console."""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from libvault.config import settings

LOG_FILE_PREFIX = "library-manager_"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_initialized = False


def setup_logging(log_dir: Optional[str] = None, level: Optional[str] = None) -> Optional[Path]:
    """Install file and console handlers on the root logger once.

    Returns the log file path, or None when file logging could not be set up
    (console logging is still installed in that case).
    """
    global _initialized
    if _initialized:
        return None

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.setLevel(logging.DEBUG if settings.debug else logging.WARNING)
    root.addHandler(console_handler)

    log_path: Optional[Path] = None
    try:
        directory = Path(log_dir or settings.log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / f"{LOG_FILE_PREFIX}{datetime.now():%Y-%m-%d}.log"
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
    except OSError as e:
        logging.getLogger(__name__).warning("Failed to initialize file logging: %s", e)
        log_path = None

    _initialized = True
    logging.getLogger(__name__).info("Logging system initialized. File: %s", log_path)
    return log_path
