# src/storage/local_writer.py — v1
"""Local filesystem artifact writer (default backend).

Writes go through a ``.part`` sibling and an atomic rename, so a report that
is being downloaded is never seen half-written by the host.
"""

from __future__ import annotations

import os
from pathlib import Path

from cxscan.storage.base_output_writer import BaseOutputWriter

PART_SUFFIX = ".part"


class LocalWriter(BaseOutputWriter):
    """Write run artifacts to the local filesystem."""

    def __init__(self, base_path: Path | str | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Directory relative paths resolve against. If None,
                paths are used as given.
        """
        self._base = Path(base_path) if base_path else None

    def _resolve(self, path: str) -> Path:
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content
        part = target.with_name(target.name + PART_SUFFIX)
        try:
            part.write_bytes(data)
            os.replace(part, target)
        finally:
            part.unlink(missing_ok=True)

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()
