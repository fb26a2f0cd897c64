# src/api/facade.py — v1
"""Public API facade — single entry point for one pipeline scan step.

Usage:
    from cxscan.api.facade import perform
    ok = await perform(workspace, run_context, sys.stdout, job_config)
"""

from __future__ import annotations

import logging
from typing import TextIO

from cxscan.api.models import JobConfig, RunContext
from cxscan.config.settings import Settings
from cxscan.core.errors import ScanAborted
from cxscan.orchestrator.orchestrator import (
    ClientFactory,
    ScanOrchestrator,
    build_result_record,
)
from cxscan.logging.run_sink import run_log_sink
from cxscan.storage import layout
from cxscan.storage.base_output_writer import BaseOutputWriter
from cxscan.storage.local_writer import LocalWriter
from cxscan.version import __version__
from cxscan.workspace.base_workspace import BaseWorkspace

logger = logging.getLogger(__name__)


async def perform(
    workspace: BaseWorkspace,
    run_context: RunContext,
    output: TextIO,
    config: JobConfig,
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
    writer: BaseOutputWriter | None = None,
) -> bool:
    """Run the scan step of one pipeline run.

    Diagnostics go to ``output`` and to ``<build_dir>/cxscan/cxscan.log``
    for the duration of the call. The outcome is stored on
    ``run_context.status`` and a ScanResultRecord is appended to
    ``run_context.results``.

    Args:
        workspace: Where the sources to scan live.
        run_context: Host run descriptor (display names, build dir, cancel).
        output: Host log stream.
        config: Job configuration.
        settings: Global settings. Loaded from .env if None.
        client_factory: Builds a scan client for a server URL.
        writer: Artifact writer. Local filesystem if None.

    Returns:
        True when the run completed (success or unstable).

    Raises:
        ScanAborted: The run was aborted; ``reason`` says why.
    """
    settings = settings or Settings()
    writer = writer or LocalWriter()
    run_dir = layout.ensure_scan_dir(run_context.build_dir)

    with run_log_sink(run_dir, output, project=run_context.project_display_name):
        logger.info("cxscan version: %s", __version__)
        logger.debug(
            "Starting scan step: %s (%s)",
            run_context.logger_suffix, workspace.location,
        )
        try:
            orchestrator = ScanOrchestrator(
                settings=settings, client_factory=client_factory, writer=writer,
            )
            outcome = await orchestrator.run(
                config, workspace, run_dir, cancel=run_context.cancel,
            )
        except Exception:
            logger.exception("Unexpected failure during scan step")
            run_context.status = "aborted"
            raise

        record = await build_result_record(config, outcome, run_dir, writer)
        await writer.write(
            str(layout.result_record_path(run_dir)),
            record.model_dump_json(indent=2),
        )
        run_context.results.append(record)
        run_context.status = outcome.status

        if outcome.is_aborted:
            logger.error("Scan step aborted: %s", outcome.reason)
        else:
            logger.info("Scan step finished: %s", outcome.status)

    if outcome.is_aborted:
        raise ScanAborted(outcome.reason or "Scan aborted") from outcome.cause
    return True
