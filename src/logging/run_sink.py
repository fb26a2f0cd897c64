# src/logging/run_sink.py — v1
"""Per-run diagnostic log sink.

For the duration of one run the ``cxscan`` logger additionally writes to:
  - the host's output stream (INFO and up, bare messages)
  - ``<run_dir>/cxscan.log`` (DEBUG and up, full detail)
Both handlers only accept records emitted under this run's context, so
concurrent runs in one process do not leak into each other's sinks. On exit,
whatever the outcome, the handlers are flushed, closed and detached. The
logger level is lowered while at least one sink is open and put back when
the last one closes.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

from cxscan.logging.context import bound_run_context, get_context
from cxscan.logging.handlers import create_run_file_handler
from cxscan.logging.logger import ROOT_LOGGER

RUN_LOG_FILE = "cxscan.log"
RUN_FILE_FORMAT = "%(name)s: [%(asctime)s] %(levelname)-5s: %(message)s"
RUN_OUTPUT_FORMAT = "%(message)s"

_level_lock = threading.Lock()
_active_sinks = 0
_saved_level = logging.NOTSET


def _acquire_debug_level(root_logger: logging.Logger) -> None:
    """First open sink lowers the logger to DEBUG; later ones share it."""
    global _active_sinks, _saved_level
    with _level_lock:
        if _active_sinks == 0:
            _saved_level = root_logger.level
            if _saved_level == logging.NOTSET or _saved_level > logging.DEBUG:
                root_logger.setLevel(logging.DEBUG)
        _active_sinks += 1


def _release_debug_level(root_logger: logging.Logger) -> None:
    global _active_sinks
    with _level_lock:
        _active_sinks -= 1
        if _active_sinks == 0:
            root_logger.setLevel(_saved_level)


class RunIdFilter(logging.Filter):
    """Pass only records emitted while the given run id is bound."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        return get_context().run_id == self.run_id


@contextmanager
def run_log_sink(
    run_dir: Path,
    output: TextIO,
    project: str | None = None,
    run_id: str | None = None,
) -> Iterator[str]:
    """Redirect cxscan logging for one run; yields the bound run id."""
    run_id = run_id or uuid.uuid4().hex[:12]
    root_logger = logging.getLogger(ROOT_LOGGER)
    run_filter = RunIdFilter(run_id)

    output_handler = logging.StreamHandler(output)
    output_handler.setLevel(logging.INFO)
    output_handler.setFormatter(logging.Formatter(RUN_OUTPUT_FORMAT))
    output_handler.addFilter(run_filter)
    handlers: list[logging.Handler] = [output_handler]

    try:
        file_handler = create_run_file_handler(run_dir / RUN_LOG_FILE)
    except OSError:
        root_logger.warning(
            "Could not open log file for writing: %s", run_dir / RUN_LOG_FILE,
            exc_info=True,
        )
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(RUN_FILE_FORMAT))
        file_handler.addFilter(run_filter)
        handlers.append(file_handler)

    for handler in handlers:
        root_logger.addHandler(handler)
    _acquire_debug_level(root_logger)

    try:
        with bound_run_context(run_id, project):
            yield run_id
    finally:
        for handler in handlers:
            root_logger.removeHandler(handler)
            handler.flush()
            if handler is not output_handler:
                handler.close()
        _release_debug_level(root_logger)
