# src/logging/handlers.py — v1
"""File handlers: rotating process log and per-run diagnostic log."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cxscan.core.sizes import parse_size


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a rotating file handler.

    Args:
        log_file: Path to log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of backup files to keep.

    Returns:
        Configured RotatingFileHandler.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    max_bytes = parse_size(rotation)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=retention,
        encoding="utf-8",
    )
    return handler


def create_run_file_handler(log_file: Path) -> logging.FileHandler:
    """Plain file handler for one run's diagnostic log (appends)."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(str(log_file), mode="a", encoding="utf-8")
