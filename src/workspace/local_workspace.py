# src/workspace/local_workspace.py — v1
"""Workspace on the machine running the orchestrator (default backend)."""

from __future__ import annotations

import asyncio
import logging
import socket
from pathlib import Path
from typing import Callable, TypeVar

from cxscan.workspace.base_workspace import BaseWorkspace

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalWorkspace(BaseWorkspace):
    """Run workspace operations in a worker thread on this host."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def location(self) -> str:
        return f"{socket.gethostname()}:{self._root}"

    async def act(self, fn: Callable[[Path], T]) -> T:
        """Run ``fn(root)`` off the event loop; context vars are carried over."""
        return await asyncio.to_thread(fn, self._root)

    async def remove(self, path: Path) -> None:
        try:
            await asyncio.to_thread(Path(path).unlink, missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary file %s", path, exc_info=True)
