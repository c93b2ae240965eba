"""Root logging setup for the burstcam command line."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 1024 * 1024
LOG_FILE_BACKUPS = 2

# Encoder libraries are chatty at INFO.
QUIET_LOGGERS = ("libav", "tifffile")

_configured = False


def configure_logging(level: int = logging.INFO, *, log_file: Optional[Union[str, Path]] = None) -> None:
    """Send records to stdout and, with ``log_file``, to a rotating file.

    A second call only adjusts the level; the handlers from the first call
    stay in place.
    """

    global _configured
    root = logging.getLogger()
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if _configured:
        for handler in root.handlers:
            handler.setLevel(level)
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8")
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    _configured = True


__all__ = ["LOG_DATEFMT", "LOG_FORMAT", "configure_logging"]
