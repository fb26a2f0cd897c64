# tests/unit/logging/test_unit_handlers.py — v1
"""Tests for logging/handlers.py."""

from __future__ import annotations

import pytest

from cxscan.logging.handlers import create_rotating_handler, create_run_file_handler


class TestRotatingHandler:
    def test_size_and_backups(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "a" / "x.log"), "1MB", 5)
        try:
            assert handler.maxBytes == 1024 * 1024
            assert handler.backupCount == 5
            assert (tmp_path / "a").is_dir()
        finally:
            handler.close()

    def test_bad_rotation(self, tmp_path):
        with pytest.raises(ValueError):
            create_rotating_handler(str(tmp_path / "x.log"), "huge")


class TestRunFileHandler:
    def test_creates_parent_and_appends(self, tmp_path):
        log_file = tmp_path / "build" / "cxscan" / "cxscan.log"
        handler = create_run_file_handler(log_file)
        try:
            assert log_file.parent.is_dir()
            assert handler.mode == "a"
        finally:
            handler.close()
