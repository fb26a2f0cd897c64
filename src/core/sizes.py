# src/core/sizes.py — v1
"""Byte-size parsing and display helpers.

Shared by the upload ceiling setting, the archiver messages and the log
rotation handler.
"""

from __future__ import annotations

import re

_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
}

_DISPLAY_UNITS: tuple[tuple[str, int], ...] = (
    ("GB", 1024**3),
    ("MB", 1024**2),
    ("KB", 1024),
)


def parse_size(size_str: str) -> int:
    """Parse size string like '10MB' or '1.5GB' into bytes.

    Supported suffixes: B, KB, MB, GB (case-insensitive).
    """
    match = re.match(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    value = float(match.group(1))
    unit = match.group(2).upper()
    return int(value * _MULTIPLIERS[unit])


def format_size(num_bytes: int) -> str:
    """Render a byte count for humans: 1610612736 -> '1.5 GB'."""
    for unit, factor in _DISPLAY_UNITS:
        if num_bytes >= factor:
            value = f"{num_bytes / factor:.1f}".rstrip("0").rstrip(".")
            return f"{value} {unit}"
    return f"{num_bytes} bytes"
