"""Logging configuration for the sync command line."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, log_path: Optional[Path] = None) -> Optional[Path]:
    """Configure the root logger for a sync run.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger.
    log_path:
        Optional file that receives a copy of every record.

    Returns
    -------
    pathlib.Path or None
        The log file path when one was configured.

    A console handler is only installed when nothing else configured the
    root logger yet, so calling this repeatedly is harmless.
    """

    root_logger = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT)
    if not root_logger.handlers:
        root_logger.setLevel(level)
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root_logger.addHandler(console)
    elif root_logger.level == logging.NOTSET or level < root_logger.level:
        root_logger.setLevel(level)

    if log_path is None:
        return None

    log_path.parent.mkdir(parents=True, exist_ok=True)
    already_configured = any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == os.path.abspath(log_path)
        for handler in root_logger.handlers
    )
    if not already_configured:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.debug("Logging configured. Writing to %s", log_path)
    return log_path


__all__ = ["LOG_FORMAT", "configure_logging"]
