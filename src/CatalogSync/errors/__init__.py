"""Public error exports for CatalogSync."""

from __future__ import annotations

from CatalogSync.errors.retry_policies import create_backend_retry_policy
from CatalogSync.errors.taxonomy import (
    BackendUnavailableError,
    CatalogSyncError,
    InconsistentError,
    JobFailedError,
    NotFoundError,
    get_actionable_error_message,
    log_sync_failure,
)

__all__ = [
    "BackendUnavailableError",
    "CatalogSyncError",
    "InconsistentError",
    "JobFailedError",
    "NotFoundError",
    "create_backend_retry_policy",
    "get_actionable_error_message",
    "log_sync_failure",
]
