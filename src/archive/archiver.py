# src/archive/archiver.py — v1
"""Workspace archiver — filtered walk of a source tree into one zip payload.

The archiver is a plain callable taking the workspace root so that it can be
dispatched to wherever the files physically reside (see workspace/).
Partial archives are never handed back: on any failure the temp file is
removed before the exception leaves.
"""

from __future__ import annotations

import logging
import os
import tempfile
import zipfile
from pathlib import Path

from cxscan.archive.filters import PathFilter
from cxscan.core.cancel import CancelSignal
from cxscan.core.errors import EmptyArchive, InterruptedArchive, SizeLimitExceeded
from cxscan.core.models import ArchiveResult, CombinedFilter
from cxscan.core.sizes import format_size

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "cxscan_src_"
ARCHIVE_SUFFIX = ".zip"


class WorkspaceArchiver:
    """Zip every accepted file under a root, enforcing a compressed-size ceiling.

    Workflow:
        1. Walk the root (sorted, symlinked directories not followed)
        2. Keep files accepted by the combined include/exclude filter
        3. Deflate each file into a temp zip, checking the size after each entry
        4. Return ArchiveResult; the caller removes payload_path when done
    """

    def __init__(
        self,
        combined_filter: CombinedFilter,
        max_size_bytes: int,
        cancel: CancelSignal | None = None,
        temp_dir: Path | None = None,
    ) -> None:
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be > 0")
        self._filter = PathFilter(combined_filter)
        self._max_size = max_size_bytes
        self._cancel = cancel
        self._temp_dir = temp_dir

    @property
    def max_size_bytes(self) -> int:
        return self._max_size

    def __call__(self, root: Path) -> ArchiveResult:
        return self.archive(root)

    def iter_matching(self, root: Path) -> list[tuple[Path, str]]:
        """List (absolute path, archive name) pairs accepted by the filter."""
        if not root.is_dir():
            msg = f"Workspace root is not a directory: {root}"
            raise ValueError(msg)

        matches: list[tuple[Path, str]] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(dirpath) / name
                if not path.is_file():
                    continue
                rel = path.relative_to(root).as_posix()
                if self._filter.accepts(rel):
                    matches.append((path, rel))
        return matches

    def archive(self, root: Path) -> ArchiveResult:
        """Build the zip payload for ``root``.

        Raises:
            SizeLimitExceeded: Compressed size went past the ceiling.
            EmptyArchive: No file matched the filter.
            InterruptedArchive: The run was cancelled while archiving.
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=ARCHIVE_PREFIX, suffix=ARCHIVE_SUFFIX, dir=self._temp_dir,
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                file_count = self._write_zip(root, fh)
            byte_size = tmp_path.stat().st_size
            if byte_size > self._max_size:
                raise SizeLimitExceeded(self._max_size, byte_size)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Archived %d files from %s (%s compressed)",
            file_count, root, format_size(byte_size),
        )
        return ArchiveResult(
            payload_path=tmp_path, file_count=file_count, byte_size=byte_size,
        )

    def _write_zip(self, root: Path, fh) -> int:
        file_count = 0
        with zipfile.ZipFile(fh, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path, arcname in self.iter_matching(root):
                if self._cancel is not None and self._cancel.cancelled:
                    raise InterruptedArchive()
                zf.write(path, arcname)
                file_count += 1
                written = fh.tell()
                if written > self._max_size:
                    logger.debug(
                        "Size ceiling hit after %d files (%d bytes)", file_count, written,
                    )
                    raise SizeLimitExceeded(self._max_size, written)
            if file_count == 0:
                raise EmptyArchive()
        return file_count
