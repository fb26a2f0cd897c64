# tests/unit/logging/test_unit_run_sink.py — v1
"""Tests for logging/run_sink.py — per-run diagnostic log."""

from __future__ import annotations

import asyncio
import io
import logging

import pytest

from cxscan.logging.logger import ROOT_LOGGER
from cxscan.logging.run_sink import RUN_LOG_FILE, run_log_sink

logger = logging.getLogger("cxscan.test.sink")


class TestRunLogSink:
    def test_output_and_file(self, tmp_path):
        out = io.StringIO()
        with run_log_sink(tmp_path, out, project="demo") as run_id:
            logger.info("Starting to zip the workspace")
            logger.debug("detail only in file")

        assert out.getvalue() == "Starting to zip the workspace\n"
        content = (tmp_path / RUN_LOG_FILE).read_text(encoding="utf-8")
        assert "Starting to zip the workspace" in content
        assert "DEBUG: detail only in file" in content
        assert run_id

    def test_handlers_detached_and_level_restored(self, tmp_path):
        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(logging.WARNING)
        before = list(root.handlers)
        try:
            with run_log_sink(tmp_path, io.StringIO()):
                assert root.level == logging.DEBUG
                assert len(root.handlers) == len(before) + 2
            assert root.handlers == before
            assert root.level == logging.WARNING
        finally:
            root.setLevel(logging.NOTSET)

    def test_released_on_exception(self, tmp_path):
        root = logging.getLogger(ROOT_LOGGER)
        before = list(root.handlers)
        out = io.StringIO()
        with pytest.raises(RuntimeError):
            with run_log_sink(tmp_path, out):
                logger.error("Scan failed: boom")
                raise RuntimeError("boom")
        assert root.handlers == before
        logger.error("after run")
        assert "after run" not in out.getvalue()
        assert not out.closed

    def test_records_outside_run_not_captured(self, tmp_path):
        out = io.StringIO()
        with run_log_sink(tmp_path, out, run_id="mine"):
            pass
        logger.info("not mine")
        assert out.getvalue() == ""

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_leak(self, tmp_path):
        async def run(name: str) -> str:
            out = io.StringIO()
            run_dir = tmp_path / name
            with run_log_sink(run_dir, out, run_id=name):
                for i in range(3):
                    logger.info("%s line %d", name, i)
                    await asyncio.sleep(0)
            return out.getvalue()

        out_a, out_b = await asyncio.gather(run("a"), run("b"))
        assert "b line" not in out_a
        assert "a line" not in out_b
        assert out_a.count("a line") == 3
        assert out_b.count("b line") == 3

    def test_unwritable_log_dir_still_runs(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        out = io.StringIO()
        with run_log_sink(blocker / "sub", out):
            logger.info("still reported")
        assert "still reported" in out.getvalue()
