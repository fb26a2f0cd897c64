# src/logging/context.py — v1
"""Contextual logging support — attach run_id, project and step to log records.

Context variables follow the run into worker threads started with
asyncio.to_thread, so archiver logs are tagged with the run as well.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_project: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    project: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        project=_project.get(),
        step=_step.get(),
    )


def set_step(step: str | None) -> None:
    """Set the current orchestration step (login, archive, submit, ...)."""
    _step.set(step)


@contextmanager
def bound_run_context(run_id: str, project: str | None = None) -> Iterator[LogContext]:
    """Bind run context for the block and restore the previous values after."""
    tokens = (_run_id.set(run_id), _project.set(project), _step.set(None))
    try:
        yield get_context()
    finally:
        _step.reset(tokens[2])
        _project.reset(tokens[1])
        _run_id.reset(tokens[0])
