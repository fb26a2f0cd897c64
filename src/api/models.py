# src/api/models.py — v1
"""API-level models: JobConfig, RunContext, ValidationMessage, ListOption."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from cxscan.core.cancel import CancelSignal
from cxscan.core.models import ScanResultRecord, ThresholdPolicy


class JobConfig(BaseModel):
    """Persisted per-job configuration of the scan build step."""

    use_own_server_credentials: bool = False
    server_url: str = ""
    username: str = ""
    password: str = ""
    project_name: str
    preset: str = "0"
    preset_specified: bool = False
    exclude_folders: str = ""
    filter_pattern: str | None = None
    incremental: bool = False
    source_encoding: str = "0"
    comment: str = ""
    wait_for_results_enabled: bool = True
    vulnerability_threshold_enabled: bool = False
    high_threshold: int = Field(default=0, ge=0)
    generate_pdf_report: bool = False

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, v: str) -> str:  # noqa: N805
        if not v.strip():
            raise ValueError("project_name must not be empty")
        return v.strip()

    @property
    def threshold_policy(self) -> ThresholdPolicy:
        return ThresholdPolicy(
            enabled=self.vulnerability_threshold_enabled,
            high_threshold=self.high_threshold,
        )

    @classmethod
    def from_file(cls, path: Path) -> JobConfig:
        """Load a job definition from a JSON file."""
        return cls.model_validate(json.loads(path.read_text(encoding="utf-8")))


@dataclass
class RunContext:
    """What the host pipeline hands to one perform() call, and gets back."""

    project_display_name: str
    build_display_name: str
    build_dir: Path
    cancel: CancelSignal = field(default_factory=CancelSignal)
    results: list[ScanResultRecord] = field(default_factory=list)
    status: Literal["success", "unstable", "aborted"] | None = None

    @property
    def logger_suffix(self) -> str:
        return f"{self.project_display_name}-{self.build_display_name}"


class ValidationMessage(BaseModel):
    """Result of one configuration-field check."""

    kind: Literal["ok", "warning", "error"]
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> ValidationMessage:
        return cls(kind="ok", message=message)

    @classmethod
    def warning(cls, message: str) -> ValidationMessage:
        return cls(kind="warning", message=message)

    @classmethod
    def error(cls, message: str) -> ValidationMessage:
        return cls(kind="error", message=message)


class ListOption(BaseModel):
    """Drop-down entry: display name plus submitted value."""

    name: str
    value: str
