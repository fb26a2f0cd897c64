# src/workspace/base_workspace.py — v1
"""Abstract workspace interface.

A workspace is the build's source tree on whichever machine holds it. Work
that must touch the files (walking, zipping) is dispatched through act() so
it runs next to the data; only the returned value travels back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, TypeVar

T = TypeVar("T")


class BaseWorkspace(ABC):
    """Unified interface for local and agent-hosted workspaces."""

    @abstractmethod
    async def act(self, fn: Callable[[Path], T]) -> T:
        """Run ``fn(root)`` where the workspace files reside."""

    @abstractmethod
    async def remove(self, path: Path) -> None:
        """Delete a file created on the workspace host (e.g. a temp payload)."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location (host and path) for log messages."""
