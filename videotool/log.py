"""Logging configuration for videotool.

Library modules only create `logging.getLogger(__name__)` loggers; the CLI
calls configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3


def configure_logging(level: str = "info", log_file: Path | None = None) -> None:
    """Configure the root logger.

    Args:
        level: One of debug, info, warning, error (case-insensitive).
        log_file: Optional rotating log file, written in addition to stderr.
    """
    resolved = _LEVEL_MAP.get(level.casefold(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(resolved)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_file:
        try:
            file_path = Path(log_file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=MAX_BYTES,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            root_logger.warning("Log file %s unavailable, logging to stderr only: %s", log_file, exc)
        else:
            file_handler.setLevel(resolved)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
