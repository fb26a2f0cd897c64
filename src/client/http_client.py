# src/client/http_client.py — v1
"""HTTP implementation of the remote scan client (httpx).

Wire contract: JSON envelope ``{"success": bool, "errorMessage": str, ...}``
under ``<server>/cxwebapi/``; the session id travels in the ``CxSessionId``
header. An HTTP 401/403 on an authenticated call invalidates the cached
session and raises SessionExpired; it is never retried.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Literal

import httpx

from cxscan.client.base_client import BaseScanClient
from cxscan.client.models import Preset, Project, ProjectNameCheck, Session, SourceEncoding
from cxscan.client.retry import RetryConfig, RetryExhausted, build_retry_configs, with_retry
from cxscan.config.settings import Settings
from cxscan.core.cancel import CancelSignal
from cxscan.core.errors import (
    AuthError,
    CxScanError,
    InterruptedWait,
    ReportUnavailable,
    ScanFailed,
    ScanTimedOut,
    ScanTrackingError,
    SessionExpired,
    SubmissionError,
)
from cxscan.core.models import (
    ReportFormat,
    RunHandle,
    RunStatus,
    ScanRequest,
    StreamedPayload,
)

logger = logging.getLogger(__name__)

API_PREFIX = "cxwebapi/"
SESSION_HEADER = "CxSessionId"

_KNOWN_STAGES = {"queued", "working", "finished", "failed", "canceled", "deleted"}
_SOFT_ERRORS = (CxScanError, httpx.HTTPError, ValueError, KeyError, TypeError)

RunState = Literal["submitted", "running", "completed", "failed"]


def normalize_server_url(server_url: str) -> str:
    """Validate a server URL and return the API base URL.

    Raises:
        ValueError: If the URL is not an absolute http(s) URL.
    """
    try:
        url = httpx.URL(server_url.strip())
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid server URL: {server_url!r}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Invalid server URL: {server_url!r}")
    base = str(url).rstrip("/")
    return f"{base}/{API_PREFIX}"


class HttpScanClient(BaseScanClient):
    """Remote scan client speaking JSON over HTTP."""

    def __init__(
        self,
        server_url: str,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        settings = settings or Settings()
        self._server_url = server_url
        self._base_url = normalize_server_url(server_url)
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.request_timeout_s,
            transport=transport,
        )
        self._poll_interval_s = settings.poll_interval_s
        self._scan_timeout_s = settings.scan_timeout_s
        self._report_poll_interval_s = settings.report_poll_interval_s
        self._report_timeout_s = settings.report_timeout_s
        self._retry_configs = (
            retry_configs
            if retry_configs is not None
            else build_retry_configs(settings.poll_max_retries)
        )
        self._session: Session | None = None
        self._login_lock = asyncio.Lock()
        self._runs: dict[str, RunState] = {}

    @property
    def server_url(self) -> str:
        return self._server_url

    # --- Session ---

    async def login(self, username: str, password: str) -> Session:
        async with self._login_lock:
            logger.debug("Logging in to %s as %s", self._server_url, username)
            try:
                response = await self._http.post(
                    "auth/login", json={"username": username, "password": password},
                )
            except httpx.HTTPError as exc:
                self._session = None
                raise AuthError(f"Could not reach server {self._server_url}: {exc}") from exc

            if response.status_code in (401, 403):
                self._session = None
                raise AuthError(
                    self._error_message(response) or "Invalid username or password"
                )
            if response.is_error:
                self._session = None
                raise AuthError(f"Login failed with HTTP {response.status_code}")

            data = self._envelope(response, AuthError)
            session_id = data.get("sessionId")
            if not session_id:
                self._session = None
                raise AuthError("Login response carries no session id")

            self._session = Session(
                session_id=str(session_id),
                username=username,
                created_at=datetime.now(timezone.utc),
            )
            logger.debug("Login successful for %s", username)
            return self._session

    def is_logged_in(self) -> bool:
        return self._session is not None

    async def ping(self) -> None:
        """Check that the server answers; raises CxScanError otherwise."""
        try:
            response = await self._http.get("ping")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CxScanError(f"Server {self._server_url} is not reachable: {exc}") from exc

    # --- Scan lifecycle ---

    async def submit(self, request: ScanRequest) -> RunHandle:
        args = self._scan_args(request)
        payload = request.payload
        try:
            if isinstance(payload, StreamedPayload):
                with payload.path.open("rb") as fh:
                    response = await self._call(
                        "POST",
                        "scans/streaming",
                        data={"args": json.dumps(args)},
                        files={"file": (payload.file_name, fh, "application/zip")},
                    )
            else:
                args["zippedFile"] = base64.b64encode(payload.data).decode("ascii")
                response = await self._call("POST", "scans", json=args)
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Scan submission failed: {exc}") from exc
        except OSError as exc:
            raise SubmissionError(f"Cannot read scan payload: {exc}") from exc

        data = self._envelope(response, SubmissionError)
        run_id = data.get("runId")
        if not run_id:
            raise SubmissionError("Server accepted the scan but returned no run id")

        handle = RunHandle(run_id=str(run_id))
        self._runs[handle.run_id] = "submitted"
        logger.debug("Scan submitted: project=%s run_id=%s", request.project_name, handle.run_id)
        return handle

    def run_state(self, handle: RunHandle) -> RunState | None:
        return self._runs.get(handle.run_id)

    async def get_run_status(self, handle: RunHandle) -> RunStatus:
        """Fetch one status snapshot; transient transport errors are retried."""
        run_id = handle.run_id
        try:
            response = await with_retry(
                self._call, "GET", f"scans/runs/{run_id}",
                operation="poll run status",
                retry_configs=self._retry_configs,
            )
        except RetryExhausted as exc:
            raise ScanTrackingError(
                f"Lost contact with server while tracking run {run_id}: {exc.last_error}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ScanTrackingError(f"Cannot read status of run {run_id}: {exc}") from exc

        data = self._envelope(response, ScanTrackingError)
        stage = str(data.get("currentStatus", "")).lower()
        if stage not in _KNOWN_STAGES:
            raise ScanTrackingError(f"Unknown status {stage!r} for run {run_id}")
        scan_id = data.get("scanId")
        return RunStatus(
            run_id=run_id,
            stage=stage,  # type: ignore[arg-type]
            scan_id=int(scan_id) if scan_id is not None else None,
            percent=int(data.get("totalPercent") or 0),
            message=str(data.get("stageMessage") or data.get("errorMessage") or ""),
        )

    async def track_until_done(
        self, handle: RunHandle, cancel: CancelSignal | None = None,
    ) -> int:
        run_id = handle.run_id
        t0 = time.monotonic()
        last_progress: tuple[str, int] | None = None

        while True:
            if cancel is not None and cancel.cancelled:
                raise InterruptedWait(run_id)

            status = await self.get_run_status(handle)
            if (status.stage, status.percent) != last_progress:
                last_progress = (status.stage, status.percent)
                logger.info(
                    "Scan progress: %s %d%% %s", status.stage, status.percent, status.message,
                )

            if status.completed:
                if status.scan_id is None:
                    self._runs[run_id] = "failed"
                    raise ScanFailed(run_id, "run finished without a scan id")
                self._runs[run_id] = "completed"
                return status.scan_id
            if status.failed:
                self._runs[run_id] = "failed"
                raise ScanFailed(run_id, status.message or status.stage)
            self._runs[run_id] = "running"

            elapsed = time.monotonic() - t0
            if elapsed >= self._scan_timeout_s:
                raise ScanTimedOut(run_id, elapsed)
            delay = min(self._poll_interval_s, self._scan_timeout_s - elapsed)
            if cancel is not None:
                if await cancel.wait(delay):
                    raise InterruptedWait(run_id)
            else:
                await asyncio.sleep(delay)

    async def fetch_report(self, scan_id: int, fmt: ReportFormat) -> bytes:
        try:
            response = await self._call(
                "POST", "reports", json={"scanId": scan_id, "type": fmt},
            )
        except httpx.HTTPError as exc:
            raise ReportUnavailable(f"{fmt} report request failed: {exc}") from exc
        data = self._envelope(response, ReportUnavailable)
        report_id = data.get("reportId")
        if report_id is None:
            raise ReportUnavailable(f"Server returned no id for the {fmt} report")

        await self._wait_report_ready(report_id, fmt)

        try:
            response = await with_retry(
                self._call, "GET", f"reports/{report_id}",
                operation=f"download {fmt} report",
                retry_configs=self._retry_configs,
            )
        except (RetryExhausted, httpx.HTTPError) as exc:
            raise ReportUnavailable(f"{fmt} report download failed: {exc}") from exc

        logger.debug("Downloaded %s report %s (%d bytes)", fmt, report_id, len(response.content))
        return response.content

    async def _wait_report_ready(self, report_id: Any, fmt: str) -> None:
        t0 = time.monotonic()
        while True:
            try:
                response = await with_retry(
                    self._call, "GET", f"reports/{report_id}/status",
                    operation=f"{fmt} report status",
                    retry_configs=self._retry_configs,
                )
            except (RetryExhausted, httpx.HTTPError) as exc:
                raise ReportUnavailable(f"{fmt} report status unavailable: {exc}") from exc
            data = self._envelope(response, ReportUnavailable)
            if data.get("isFailed"):
                raise ReportUnavailable(f"Server failed to generate the {fmt} report")
            if data.get("isReady"):
                return
            if time.monotonic() - t0 >= self._report_timeout_s:
                raise ReportUnavailable(
                    f"{fmt} report not ready after {self._report_timeout_s:.0f}s"
                )
            await asyncio.sleep(self._report_poll_interval_s)

    # --- Catalog (fail soft) ---

    async def list_projects(self) -> list[Project]:
        try:
            data = await self._get_catalog("projects")
            return [
                Project(id=int(p["projectId"]), name=p["projectName"])
                for p in data.get("projects", [])
            ]
        except _SOFT_ERRORS as exc:
            logger.warning("Projects list unavailable: %s", exc)
            return []

    async def list_presets(self) -> list[Preset]:
        try:
            data = await self._get_catalog("presets")
            return [
                Preset(id=int(p["id"]), name=p["presetName"])
                for p in data.get("presets", [])
            ]
        except _SOFT_ERRORS as exc:
            logger.warning("Presets list unavailable: %s", exc)
            return []

    async def list_source_encodings(self) -> list[SourceEncoding]:
        try:
            data = await self._get_catalog("configurations")
            return [
                SourceEncoding(id=int(c["id"]), name=c["configSetName"])
                for c in data.get("configurations", [])
            ]
        except _SOFT_ERRORS as exc:
            logger.warning("Source encodings list unavailable: %s", exc)
            return []

    async def validate_project_name(self, name: str) -> ProjectNameCheck:
        try:
            response = await self._call(
                "POST", "projects/validate", json={"projectName": name},
            )
            data = self._json(response, CxScanError)
        except _SOFT_ERRORS as exc:
            logger.warning("Could not validate project name with server: %s", exc)
            return ProjectNameCheck(valid=False, reachable=False, message=str(exc))

        if data.get("success"):
            return ProjectNameCheck(valid=True)
        return ProjectNameCheck(valid=False, message=str(data.get("errorMessage") or ""))

    async def _get_catalog(self, path: str) -> dict[str, Any]:
        response = await self._call("GET", path)
        return self._envelope(response, CxScanError)

    # --- Plumbing ---

    async def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Authenticated request; raises SessionExpired on 401/403."""
        if self._session is None:
            raise SessionExpired("Not logged in")
        headers = dict(kwargs.pop("headers", None) or {})
        headers[SESSION_HEADER] = self._session.session_id
        response = await self._http.request(method, path, headers=headers, **kwargs)
        if response.status_code in (401, 403):
            self._session = None
            raise SessionExpired(
                f"Session rejected by server (HTTP {response.status_code}); login required"
            )
        response.raise_for_status()
        return response

    @staticmethod
    def _json(response: httpx.Response, error_cls: type[CxScanError]) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls(f"Server returned a non-JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise error_cls("Server returned an unexpected response shape")
        return data

    def _envelope(
        self, response: httpx.Response, error_cls: type[CxScanError],
    ) -> dict[str, Any]:
        data = self._json(response, error_cls)
        if not data.get("success"):
            raise error_cls(str(data.get("errorMessage") or "Server reported a failure"))
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return ""
        return str(data.get("errorMessage") or "") if isinstance(data, dict) else ""

    @staticmethod
    def _scan_args(request: ScanRequest) -> dict[str, Any]:
        return {
            "projectName": request.project_name,
            "presetId": request.preset_id,
            "configurationId": request.configuration_id,
            "isIncremental": request.incremental,
            "isPrivateScan": request.is_private,
            "comment": request.comment,
            "sourceOrigin": "LOCAL",
            "fileName": request.payload.file_name,
        }

    async def aclose(self) -> None:
        await self._http.aclose()
