# src/core/models.py — v1
"""Core domain types shared across archiving, client, parser and orchestrator.

Value types produced once per run (ReportSummary, ThresholdPolicy, Outcome)
are frozen.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["high", "medium", "low", "info"]
RunStage = Literal["queued", "working", "finished", "failed", "canceled", "deleted"]
ReportFormat = Literal["XML", "PDF"]
OutcomeStatus = Literal["success", "unstable", "aborted"]

TERMINAL_FAILURE_STAGES: frozenset[str] = frozenset({"failed", "canceled", "deleted"})

EXCLUDE_FOLDER_TEMPLATE = "!**/{name}/**/*"


def split_entries(text: str | None) -> list[str]:
    """Split a comma/newline separated field into trimmed, non-empty entries."""
    if not text:
        return []
    return [part.strip() for part in re.split(r"[,\n]", text) if part.strip()]


# === Workspace filtering ===


class CombinedFilter(BaseModel):
    """Ordered include patterns followed by generated '!'-exclusions."""

    model_config = ConfigDict(frozen=True)

    patterns: tuple[str, ...] = ()

    @property
    def include_patterns(self) -> list[str]:
        return [p for p in self.patterns if not p.startswith("!")]

    @property
    def exclude_patterns(self) -> list[str]:
        return [p[1:] for p in self.patterns if p.startswith("!")]

    def as_pattern_string(self) -> str:
        return ", ".join(self.patterns)


class FilterSpec(BaseModel):
    """Include globs plus plain folder names to exclude at any depth."""

    include_patterns: list[str] = Field(default_factory=list)
    exclude_folders: list[str] = Field(default_factory=list)

    @classmethod
    def parse(cls, filter_pattern: str | None, exclude_folders: str | None) -> FilterSpec:
        return cls(
            include_patterns=split_entries(filter_pattern),
            exclude_folders=split_entries(exclude_folders),
        )

    def exclusion_clauses(self) -> list[str]:
        return [
            EXCLUDE_FOLDER_TEMPLATE.format(name=name.strip())
            for name in self.exclude_folders
            if name.strip()
        ]

    def combined(self) -> CombinedFilter:
        return CombinedFilter(
            patterns=tuple(self.include_patterns + self.exclusion_clauses())
        )


class ArchiveResult(BaseModel):
    """Finished archive: caller owns ``payload_path`` and must remove it."""

    payload_path: Path
    file_count: int = Field(ge=0)
    byte_size: int = Field(ge=0)


# === Scan submission ===


class InlinePayload(BaseModel):
    """Archive bytes carried inside the request body."""

    kind: Literal["inline"] = "inline"
    file_name: str = "src.zip"
    data: bytes


class StreamedPayload(BaseModel):
    """Archive streamed from a temp file referenced by path."""

    kind: Literal["streamed"] = "streamed"
    file_name: str = "src.zip"
    path: Path


ScanPayload = Annotated[
    Union[InlinePayload, StreamedPayload], Field(discriminator="kind")
]


class ScanRequest(BaseModel):
    """Everything the server needs to start one scan run."""

    project_name: str
    preset_id: int = 0
    configuration_id: int = 0
    incremental: bool = False
    is_private: bool = False
    comment: str = ""
    payload: ScanPayload


class RunHandle(BaseModel):
    """Opaque identifier of a submitted scan run."""

    model_config = ConfigDict(frozen=True)

    run_id: str


class RunStatus(BaseModel):
    """One status snapshot of a scan run."""

    run_id: str
    stage: RunStage
    scan_id: int | None = None
    percent: int = 0
    message: str = ""

    @property
    def completed(self) -> bool:
        return self.stage == "finished"

    @property
    def failed(self) -> bool:
        return self.stage in TERMINAL_FAILURE_STAGES


# === Report ===


class Finding(BaseModel):
    """One reported vulnerability instance."""

    model_config = ConfigDict(frozen=True)

    query_name: str
    query_group: str = ""
    severity: Severity
    file_name: str = ""
    line: int | None = None
    column: int | None = None
    node_id: str = ""
    deep_link: str = ""
    state: str = ""
    false_positive: bool = False


class QuerySummary(BaseModel):
    """Counted results of one query (vulnerability type)."""

    model_config = ConfigDict(frozen=True)

    name: str
    group: str = ""
    severity: Severity
    result_count: int = Field(default=0, ge=0)


class ReportSummary(BaseModel):
    """Parsed scan report: per-severity counts plus finding records."""

    model_config = ConfigDict(frozen=True)

    high_count: int = Field(default=0, ge=0)
    medium_count: int = Field(default=0, ge=0)
    low_count: int = Field(default=0, ge=0)
    info_count: int = Field(default=0, ge=0)
    findings: tuple[Finding, ...] = ()
    queries: tuple[QuerySummary, ...] = ()
    project_name: str = ""
    scan_id: str = ""
    scan_start: str = ""
    deep_link: str = ""
    files_scanned: int | None = None
    lines_of_code_scanned: int | None = None

    def count_for(self, severity: Severity) -> int:
        return {
            "high": self.high_count,
            "medium": self.medium_count,
            "low": self.low_count,
            "info": self.info_count,
        }[severity]

    @property
    def total_count(self) -> int:
        return self.high_count + self.medium_count + self.low_count + self.info_count


# === Policy and outcome ===


class ThresholdPolicy(BaseModel):
    """Marks the run unstable when high findings exceed the threshold."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    high_threshold: int = Field(default=0, ge=0)


class Outcome(BaseModel):
    """Terminal result of one orchestration run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: OutcomeStatus
    reason: str | None = None
    error_type: str | None = None
    summary: ReportSummary | None = None
    scan_id: int | None = None
    cause: BaseException | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def success(
        cls, summary: ReportSummary | None = None, scan_id: int | None = None,
    ) -> Outcome:
        return cls(status="success", summary=summary, scan_id=scan_id)

    @classmethod
    def unstable(
        cls,
        summary: ReportSummary,
        reason: str | None = None,
        scan_id: int | None = None,
    ) -> Outcome:
        return cls(status="unstable", summary=summary, reason=reason, scan_id=scan_id)

    @classmethod
    def aborted(cls, reason: str, cause: BaseException | None = None) -> Outcome:
        return cls(
            status="aborted",
            reason=reason,
            error_type=type(cause).__name__ if cause is not None else None,
            cause=cause,
        )

    @property
    def is_aborted(self) -> bool:
        return self.status == "aborted"


class ScanResultRecord(BaseModel):
    """Serializable result attached to the pipeline run for later display."""

    project_name: str
    scan_id: int | None = None
    status: OutcomeStatus
    reason: str | None = None
    threshold: ThresholdPolicy
    summary: ReportSummary | None = None
    xml_report: str | None = None
    pdf_report: str | None = None
    created_at: datetime
