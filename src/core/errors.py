# src/core/errors.py — v1
"""Exception taxonomy for archiving, remote calls and report parsing.

Archive, auth, submission, tracking and parsing failures are strict: the
orchestrator turns them into an aborted outcome. Catalog lookups never raise
these; they degrade to empty results inside the client.
"""

from __future__ import annotations

from cxscan.core.sizes import format_size


class CxScanError(Exception):
    """Base class for every domain failure of a scan run."""


# --- Archiving ---


class ArchiveError(CxScanError):
    """Workspace could not be packaged for upload."""


class SizeLimitExceeded(ArchiveError):
    """Compressed workspace grew past the configured upload ceiling."""

    def __init__(self, limit: int, reached: int | None = None):
        self.limit = limit
        self.reached = reached
        super().__init__(
            f"Reached maximum upload size limit of {format_size(limit)}"
        )


class EmptyArchive(ArchiveError):
    """No file matched the include/exclude filter."""

    def __init__(self) -> None:
        super().__init__("No files to scan")


class InterruptedArchive(ArchiveError):
    """Archiving was cancelled by the owning run."""

    def __init__(self) -> None:
        super().__init__("Remote scan interrupted")


# --- Remote service ---


class AuthError(CxScanError):
    """Login rejected or session no longer accepted by the server."""


class SessionExpired(AuthError):
    """A call was rejected because the session is not valid anymore."""


class SubmissionError(CxScanError):
    """The server did not accept the scan job."""


class ScanTrackingError(CxScanError):
    """Waiting for a submitted scan did not end in a completed scan."""


class ScanFailed(ScanTrackingError):
    """The server reports the scan run in a terminal error state."""

    def __init__(self, run_id: str, reason: str):
        self.run_id = run_id
        self.reason = reason
        super().__init__(f"Scan run {run_id} failed: {reason}")


class ScanTimedOut(ScanTrackingError):
    """The scan did not complete within the maximum wait."""

    def __init__(self, run_id: str, waited_s: float):
        self.run_id = run_id
        self.waited_s = waited_s
        super().__init__(
            f"Scan run {run_id} did not complete within {waited_s:.0f}s"
        )


class InterruptedWait(ScanTrackingError):
    """The run was cancelled while waiting; the remote job keeps running."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Stopped waiting for scan run {run_id}: interrupted")


class ReportUnavailable(CxScanError):
    """Report could not be generated or downloaded."""


class MalformedReport(CxScanError):
    """Report body does not follow the expected XML layout."""


# --- Host boundary ---


class ScanAborted(Exception):
    """Raised to the host pipeline when a run ends aborted."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
