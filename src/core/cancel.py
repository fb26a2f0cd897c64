# src/core/cancel.py — v1
"""Run-scoped cancellation signal.

Observed both by the archiver (running in a worker thread) and by the
asynchronous polling loop, hence a threading.Event underneath.
"""

from __future__ import annotations

import asyncio
import threading


class CancelSignal:
    """Thread-safe, one-way cancellation flag for a single run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        if self._event.is_set():
            return True
        return await asyncio.to_thread(self._event.wait, timeout)
