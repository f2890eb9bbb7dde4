"""
Pydantic v2 Configuration Models for CatalogSync

Provides strict, typed configuration for every CatalogSync subsystem:
- Synchronizer settings (URI chunk size, READY-file filter, index tool id)
- Sample index build settings (batch size, job tool id)
- Backend retry policy
- Logging
- Top-level CatalogSyncConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from typing import ClassVar, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ============================================================================
# Shared Policy Models
# ============================================================================


class RetryPolicy(BaseModel):
    """Retry behaviour for transient metadata backend failures."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=3, description="Total attempts including the first call")
    base_delay_ms: int = Field(default=200, description="Base backoff delay in ms")
    max_delay_ms: int = Field(default=2000, description="Maximum backoff delay in ms")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("base_delay_ms", "max_delay_ms")
    @classmethod
    def validate_delays(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Delay values must be >= 0")
        return v


class FileFilter(BaseModel):
    """Which Catalog files take part in the READY and running-index sweeps."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    bioformat: Optional[str] = Field(default="VARIANT", description="Required bioformat (None = any)")
    formats: List[str] = Field(
        default_factory=lambda: ["VCF", "GVCF"],
        description="Accepted file formats (empty = any)",
    )


class LoggingConfig(BaseModel):
    """Logging handlers installed by setup_logging."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level for the CatalogSync logger"
    )
    json_file: bool = Field(default=False, description="Also write JSON lines to log_dir")
    log_dir: Optional[str] = Field(default=None, description="Directory for JSON log files")
    max_log_size_mb: float = Field(default=5.0, description="Rotation threshold in MB")

    @field_validator("max_log_size_mb")
    @classmethod
    def validate_size(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_log_size_mb must be > 0")
        return v

    @model_validator(mode="after")
    def _require_dir_for_json(self) -> "LoggingConfig":
        if self.json_file and not self.log_dir:
            raise ValueError("log_dir is required when json_file is enabled")
        return self


# ============================================================================
# Component Config Models
# ============================================================================


class SynchronizerConfig(BaseModel):
    """Catalog ↔ Storage Metadata reconciliation settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    uri_chunk_size: int = Field(
        default=2000, ge=1, le=100_000, description="URIs looked up per Catalog query"
    )
    default_cohort: str = Field(default="ALL", description="Cohort holding every indexed sample")
    file_filter: FileFilter = Field(
        default_factory=FileFilter, description="Filter for READY/running Catalog files"
    )
    index_tool_id: str = Field(
        default="variant-index",
        description="Catalog tool id of jobs that load files into storage",
    )
    strict: bool = Field(
        default=False,
        description="Raise InconsistentError for unmatched URIs instead of skipping them",
    )


class SampleIndexConfig(BaseModel):
    """Batch sample-index build settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_samples_per_job: int = Field(
        default=100, ge=1, description="Upper bound of samples per build job"
    )
    tool_id: str = Field(default="sample-index-build", description="Job Runner tool id")


# ============================================================================
# Top-Level Configuration
# ============================================================================


class CatalogSyncConfig(BaseModel):
    """
    Single source of truth for CatalogSync configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    run_id: Optional[str] = Field(default=None, description="Unique run identifier for traceability")
    sync: SynchronizerConfig = Field(
        default_factory=SynchronizerConfig, description="Synchronizer configuration"
    )
    sample_index: SampleIndexConfig = Field(
        default_factory=SampleIndexConfig, description="Sample index build configuration"
    )
    retry: RetryPolicy = Field(default_factory=RetryPolicy, description="Backend retry policy")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
