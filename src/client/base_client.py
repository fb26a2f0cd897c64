# src/client/base_client.py — v1
"""Abstract remote scan client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from cxscan.client.models import Preset, Project, ProjectNameCheck, Session, SourceEncoding
from cxscan.core.cancel import CancelSignal
from cxscan.core.models import ReportFormat, RunHandle, ScanRequest


class BaseScanClient(ABC):
    """Unified interface to the remote scanning service.

    Strict operations (login, submit, track_until_done, fetch_report) raise
    CxScanError subclasses. Catalog queries never raise: they return empty
    results and log a warning.
    """

    @abstractmethod
    async def login(self, username: str, password: str) -> Session:
        """Authenticate and cache the session. Raises AuthError."""

    @abstractmethod
    def is_logged_in(self) -> bool:
        """Local check of the cached session; no round trip."""

    @abstractmethod
    async def ping(self) -> None:
        """Check the server answers. Raises CxScanError."""

    @abstractmethod
    async def submit(self, request: ScanRequest) -> RunHandle:
        """Hand a scan job to the server. Raises SubmissionError."""

    @abstractmethod
    async def track_until_done(
        self, handle: RunHandle, cancel: CancelSignal | None = None,
    ) -> int:
        """Poll until the run completes and return its scan id.

        Raises ScanFailed, ScanTimedOut or InterruptedWait.
        """

    @abstractmethod
    async def fetch_report(self, scan_id: int, fmt: ReportFormat) -> bytes:
        """Generate and download a report. Raises ReportUnavailable."""

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """Projects visible to the session (empty on failure)."""

    @abstractmethod
    async def list_presets(self) -> list[Preset]:
        """Rule presets (empty on failure)."""

    @abstractmethod
    async def list_source_encodings(self) -> list[SourceEncoding]:
        """Source encoding / configuration sets (empty on failure)."""

    @abstractmethod
    async def validate_project_name(self, name: str) -> ProjectNameCheck:
        """Server-side project name check (unreachable verdict on failure)."""

    async def aclose(self) -> None:
        """Release transport resources."""
