"""
CatalogSync Configuration Package

Public API for loading, validating, and introspecting CatalogSync configuration.

Example:
    from CatalogSync.config import load_config

    config = load_config(
        path="catalogsync.yaml",
        cli_overrides={"sample_index": {"max_samples_per_job": 50}},
    )
    config_id = config.config_hash()
"""

from .loader import (
    env_overrides,
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    CatalogSyncConfig,
    FileFilter,
    LoggingConfig,
    RetryPolicy,
    SampleIndexConfig,
    SynchronizerConfig,
)

__all__ = [
    # Models
    "CatalogSyncConfig",
    "SynchronizerConfig",
    "SampleIndexConfig",
    "FileFilter",
    "RetryPolicy",
    "LoggingConfig",
    # Loading/validation
    "load_config",
    "env_overrides",
    "validate_config_file",
    "export_config_schema",
]
