# src/storage/base_output_writer.py — v1
"""Abstract output writer interface for run artifacts."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOutputWriter(ABC):
    """Unified interface for artifact storage backends."""

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to the given path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""
