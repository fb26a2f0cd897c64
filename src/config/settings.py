# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for the global server credentials, upload limits,
polling cadence and logging. Job-level options live in JobConfig.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cxscan.core.sizes import parse_size

# Version-control metadata, build output and binary artifacts are never sent.
DEFAULT_FILTER_PATTERN = (
    "!**/_cvs/**/*, !**/.svn/**/*, !**/.hg/**/*, !**/.git/**/*, !**/.bzr/**/*, "
    "!**/bin/**/*, !**/obj/**/*, !**/backup/**/*, !**/.idea/**/*, "
    "!**/node_modules/**/*, !**/*.DS_Store, !**/*.ipr, !**/*.iws, "
    "!**/*.bak, !**/*.tmp, !**/*.aac, !**/*.aif, !**/*.iff, !**/*.m3u, "
    "!**/*.mid, !**/*.mp3, !**/*.mpa, !**/*.ra, !**/*.wav, !**/*.wma, "
    "!**/*.3g2, !**/*.3gp, !**/*.asf, !**/*.asx, !**/*.avi, !**/*.flv, "
    "!**/*.mov, !**/*.mp4, !**/*.mpg, !**/*.rm, !**/*.swf, !**/*.vob, "
    "!**/*.wmv, !**/*.bmp, !**/*.gif, !**/*.jpg, !**/*.png, !**/*.psd, "
    "!**/*.tif, !**/*.jar, !**/*.zip, !**/*.rar, !**/*.exe, !**/*.dll, "
    "!**/*.pdb, !**/*.7z, !**/*.gz, !**/*.tar.gz, !**/*.tar, !**/*.ahtm, "
    "!**/*.ahtml, !**/*.fhtml, !**/*.hdm, !**/*.hdml, !**/*.hsql, !**/*.ht, "
    "!**/*.hta, !**/*.htc, !**/*.htd, !**/*.war, !**/*.ear, !**/*.htmls, "
    "!**/*.ihtml, !**/*.mht, !**/*.mhtm, !**/*.mhtml, !**/*.ssi, !**/*.stm, "
    "!**/*.stml, !**/*.ttml, !**/*.txn, !**/*.xhtm, !**/*.xhtml, !**/*.class, "
    "!**/*.iml, **/*"
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Global server credentials (used unless a job brings its own) ===
    server_url: str = ""
    server_username: str = ""
    server_password: str = ""

    # === Upload ===
    max_upload_size: str = "200MB"
    default_filter_pattern: str = DEFAULT_FILTER_PATTERN
    payload_file_name: str = "src.zip"

    # === Fallback ids for unparsable job fields ===
    default_preset_id: int = 0
    default_configuration_id: int = 0

    # === Remote calls ===
    request_timeout_s: float = 60.0
    poll_interval_s: float = 10.0
    scan_timeout_s: float = 6 * 3600.0
    report_poll_interval_s: float = 5.0
    report_timeout_s: float = 600.0
    poll_max_retries: int = 3

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "request_timeout_s",
        "poll_interval_s",
        "scan_timeout_s",
        "report_poll_interval_s",
        "report_timeout_s",
    )
    @classmethod
    def validate_positive(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("poll_max_retries", "default_preset_id", "default_configuration_id")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("max_upload_size", "log_rotation")
    @classmethod
    def validate_size(cls, v: str) -> str:  # noqa: N805
        parse_size(v)
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field polling rules."""
        errors: list[str] = []

        if self.poll_interval_s > self.scan_timeout_s:
            errors.append("POLL_INTERVAL_S must be <= SCAN_TIMEOUT_S")

        if self.report_poll_interval_s > self.report_timeout_s:
            errors.append("REPORT_POLL_INTERVAL_S must be <= REPORT_TIMEOUT_S")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def max_upload_size_bytes(self) -> int:
        return parse_size(self.max_upload_size)

    @property
    def has_default_credentials(self) -> bool:
        return bool(self.server_url and self.server_username)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
