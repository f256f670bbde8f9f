"""Centralized configuration for cangjie-docs-mcp using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from cron_converter import Cron
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DOCS_ROOT = Path.home() / ".config" / "cangjie-docs-mcp" / "CangjieCorpus"
DEFAULT_REPO_URL = "https://gitcode.com/Cangjie/CangjieCorpus.git"


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    All environment variables are validated at startup. Segmentation limits
    and search defaults are plain values here; category tables and learning
    paths live in `CorpusCatalog` so tests can inject their own.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Corpus location and synchronization
    docs_root_dir: Path = Field(default=DEFAULT_DOCS_ROOT, description="Root directory of the markdown corpus")
    docs_repo_url: str = Field(default=DEFAULT_REPO_URL, description="Git repository that provides the corpus")
    docs_repo_branch: str | None = Field(default=None, description="Branch to track (auto-detected when empty)")
    docs_sync_enabled: bool = Field(default=True, description="Clone the corpus when the root directory is missing")
    docs_auto_update: bool = Field(default=False, description="Pull corpus updates at startup")
    refresh_schedule: str | None = Field(
        default=None, description="Cron expression for periodic corpus refresh and index rebuild"
    )

    # Segmentation
    enable_document_splitting: bool = Field(default=True, description="Split oversized documents along headings")
    large_document_threshold: int = Field(
        default=15_000, ge=1, description="Documents at or above this many characters are considered for splitting"
    )
    max_section_size: int = Field(default=10_000, ge=1, description="Largest section emitted without sub-splitting")

    # Indexing and search defaults
    content_index_chars: int = Field(default=1_000, ge=0, description="Leading content characters fed to the index")
    default_max_results: int = Field(default=10, ge=1, description="Default number of search results")
    default_min_confidence: float = Field(default=0.3, ge=0.0, description="Default minimum result score")
    default_max_suggestions: int = Field(default=5, ge=1, description="Default number of suggestions")

    # Server settings
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport to serve")
    mcp_host: str = Field(default="127.0.0.1", description="HTTP transport host")
    mcp_port: int = Field(default=15005, ge=1, le=65535, description="HTTP transport port")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Observability
    otel_collector_endpoint: str = Field(default="", description="OTLP collector endpoint (empty disables export)")
    otel_protocol: Literal["grpc", "http"] = Field(default="grpc", description="OTLP export protocol")
    otel_timeout_seconds: int = Field(default=10, ge=1, description="OTLP export timeout in seconds")
    otel_insecure: bool = Field(default=True, description="Use an insecure gRPC channel for OTLP export")

    @field_validator("refresh_schedule")
    @classmethod
    def _validate_refresh_schedule(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            Cron(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid refresh_schedule cron expression '{value}': {exc}") from exc
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported log_level '{value}'")
        return normalized

    @model_validator(mode="after")
    def _check_segmentation_limits(self) -> "Settings":
        if self.max_section_size >= self.large_document_threshold:
            raise ValueError(
                "MAX_SECTION_SIZE must be smaller than LARGE_DOCUMENT_THRESHOLD; "
                f"got {self.max_section_size} >= {self.large_document_threshold}"
            )
        return self

    def otlp_enabled(self) -> bool:
        """Check whether span export to an OTLP collector is configured."""
        return bool(self.otel_collector_endpoint.strip())
