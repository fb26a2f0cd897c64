# src/orchestrator/orchestrator.py — v1
"""Scan orchestrator — login, archive, submit, wait, fetch, parse, decide.

One ScanOrchestrator.run() call is one run. Steps are strictly sequential and
every run gets its own client from the client factory, so one pipeline's
polling never blocks another's.

Failure translation:
  - CxScanError subclasses (auth, archive, submit, tracking, report, parse)
    end the run as Outcome.aborted with the cause attached
  - any other exception propagates unchanged to the caller
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from cxscan.api.models import JobConfig
from cxscan.archive.archiver import WorkspaceArchiver
from cxscan.client.base_client import BaseScanClient
from cxscan.config.settings import Settings
from cxscan.core.cancel import CancelSignal
from cxscan.core.errors import AuthError, CxScanError, InterruptedArchive
from cxscan.core.models import (
    ArchiveResult,
    FilterSpec,
    Outcome,
    RunHandle,
    ScanPayload,
    ScanRequest,
    ScanResultRecord,
    StreamedPayload,
)
from cxscan.core.sizes import format_size
from cxscan.logging.context import set_step
from cxscan.policy.threshold import evaluate_threshold
from cxscan.report.parser import parse_report
from cxscan.storage import layout
from cxscan.storage.base_output_writer import BaseOutputWriter
from cxscan.storage.local_writer import LocalWriter
from cxscan.workspace.base_workspace import BaseWorkspace

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], BaseScanClient]


@dataclass(frozen=True)
class Credentials:
    """Server URL and login to use for one run."""

    server_url: str
    username: str
    password: str


def parse_numeric_id(value: str | None, label: str, default: int) -> int:
    """Lenient id parsing: log and fall back to ``default`` on a bad value."""
    try:
        parsed = int(str(value).strip())
        if parsed < 0:
            raise ValueError(f"negative {label}")
        return parsed
    except (TypeError, ValueError):
        logger.warning(
            "Encountered illegal %s value: %r. Using default %s (%d).",
            label, value, label, default,
        )
        return default


async def build_result_record(
    config: JobConfig,
    outcome: Outcome,
    run_dir: Path,
    writer: BaseOutputWriter,
) -> ScanResultRecord:
    """Serializable record of a run for the host's result display."""
    xml_path = str(layout.xml_report_path(run_dir))
    pdf_path = str(layout.pdf_report_path(run_dir))
    return ScanResultRecord(
        project_name=config.project_name,
        scan_id=outcome.scan_id,
        status=outcome.status,
        reason=outcome.reason,
        threshold=config.threshold_policy,
        summary=outcome.summary,
        xml_report=xml_path if await writer.exists(xml_path) else None,
        pdf_report=pdf_path if await writer.exists(pdf_path) else None,
        created_at=datetime.now(timezone.utc),
    )


class ScanOrchestrator:
    """Runs one scan job end-to-end and returns its Outcome."""

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
        writer: BaseOutputWriter | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._client_factory = client_factory or self._default_client_factory
        self._writer = writer or LocalWriter()

    def _default_client_factory(self, server_url: str) -> BaseScanClient:
        from cxscan.client.http_client import HttpScanClient

        return HttpScanClient(server_url, settings=self._settings)

    # --- Request building ---

    def resolve_credentials(self, config: JobConfig) -> Credentials:
        """Job credentials when the job brings its own, else the global ones."""
        if config.use_own_server_credentials:
            return Credentials(config.server_url, config.username, config.password)
        return Credentials(
            self._settings.server_url,
            self._settings.server_username,
            self._settings.server_password,
        )

    def build_scan_request(self, config: JobConfig, payload: ScanPayload) -> ScanRequest:
        return ScanRequest(
            project_name=config.project_name,
            preset_id=parse_numeric_id(
                config.preset, "preset", self._settings.default_preset_id,
            ),
            configuration_id=parse_numeric_id(
                config.source_encoding,
                "source encoding (configuration)",
                self._settings.default_configuration_id,
            ),
            incremental=config.incremental,
            comment=config.comment,
            payload=payload,
        )

    def combined_filter_for(self, config: JobConfig) -> FilterSpec:
        pattern = (
            config.filter_pattern
            if config.filter_pattern is not None
            else self._settings.default_filter_pattern
        )
        return FilterSpec.parse(pattern, config.exclude_folders)

    # --- Run ---

    async def run(
        self,
        config: JobConfig,
        workspace: BaseWorkspace,
        run_dir: Path,
        cancel: CancelSignal | None = None,
    ) -> Outcome:
        """Execute the scan sequence for one job.

        Returns:
            Outcome.success / Outcome.unstable, or Outcome.aborted for any
            domain failure.
        """
        cancel = cancel or CancelSignal()
        credentials = self.resolve_credentials(config)
        client: BaseScanClient | None = None
        try:
            set_step("login")
            try:
                client = self._open_client(credentials.server_url)
                await client.login(credentials.username, credentials.password)
            except AuthError as exc:
                reason = f"Login to {credentials.server_url} failed: {exc}"
                logger.error(reason)
                return Outcome.aborted(reason, cause=exc)
            logger.info("Server login successful")
            return await self._run_steps(config, workspace, run_dir, cancel, client)
        except CxScanError as exc:
            reason = f"Scan failed: {exc}"
            logger.error(reason)
            logger.debug("Failure detail", exc_info=True)
            return Outcome.aborted(reason, cause=exc)
        finally:
            set_step(None)
            if client is not None:
                await client.aclose()

    def _open_client(self, server_url: str) -> BaseScanClient:
        try:
            return self._client_factory(server_url)
        except ValueError as exc:
            raise AuthError(str(exc)) from exc

    async def _run_steps(
        self,
        config: JobConfig,
        workspace: BaseWorkspace,
        run_dir: Path,
        cancel: CancelSignal,
        client: BaseScanClient,
    ) -> Outcome:
        handle = await self._archive_and_submit(config, workspace, client, cancel)
        logger.info("Scan job submitted successfully")

        if not config.wait_for_results_enabled:
            logger.info("Not waiting for scan results")
            return Outcome.success()

        set_step("track")
        scan_id = await client.track_until_done(handle, cancel)
        logger.info("Scan finished: scan_id=%d", scan_id)

        set_step("report")
        xml_bytes = await client.fetch_report(scan_id, "XML")
        await self._writer.write(str(layout.xml_report_path(run_dir)), xml_bytes)
        if config.generate_pdf_report:
            await self._fetch_pdf_report(client, scan_id, run_dir)

        set_step("parse")
        summary = parse_report(xml_bytes)

        set_step("policy")
        outcome = evaluate_threshold(summary, config.threshold_policy)
        return outcome.model_copy(update={"scan_id": scan_id})

    async def _archive_and_submit(
        self,
        config: JobConfig,
        workspace: BaseWorkspace,
        client: BaseScanClient,
        cancel: CancelSignal,
    ) -> RunHandle:
        set_step("archive")
        logger.info("Starting to zip the workspace")
        filter_spec = self.combined_filter_for(config)
        logger.debug("Exclude folders converted to: %s", ", ".join(filter_spec.exclusion_clauses()))
        archiver = WorkspaceArchiver(
            filter_spec.combined(), self._settings.max_upload_size_bytes, cancel,
        )
        result = await self._act_with_cleanup(workspace, archiver, cancel)
        try:
            logger.info(
                "Zipping complete with %d files, total compressed size: %s",
                result.file_count, format_size(result.byte_size),
            )
            logger.info(
                "Temporary file with zipped sources was created at: %s (%s)",
                result.payload_path, workspace.location,
            )
            if cancel.cancelled:
                raise InterruptedArchive()

            request = self.build_scan_request(
                config,
                StreamedPayload(
                    path=result.payload_path,
                    file_name=self._settings.payload_file_name,
                ),
            )
            set_step("submit")
            return await client.submit(request)
        finally:
            await workspace.remove(result.payload_path)

    @staticmethod
    async def _act_with_cleanup(
        workspace: BaseWorkspace,
        archiver: WorkspaceArchiver,
        cancel: CancelSignal,
    ) -> ArchiveResult:
        """Run the archiver in the workspace.

        If the run task is cancelled mid-archive, the worker is told to stop
        and any payload it still produces is removed before re-raising.
        """
        act_task = asyncio.ensure_future(workspace.act(archiver))
        try:
            return await asyncio.shield(act_task)
        except asyncio.CancelledError:
            cancel.cancel()
            try:
                result = await act_task
            except CxScanError:
                logger.debug("Archiving stopped after cancellation")
            else:
                await workspace.remove(result.payload_path)
            raise

    async def _fetch_pdf_report(
        self, client: BaseScanClient, scan_id: int, run_dir: Path,
    ) -> None:
        """PDF is informational only; failures never affect the outcome."""
        try:
            pdf_bytes = await client.fetch_report(scan_id, "PDF")
            await self._writer.write(str(layout.pdf_report_path(run_dir)), pdf_bytes)
        except (CxScanError, OSError) as exc:
            logger.warning("PDF report could not be retrieved: %s", exc)
