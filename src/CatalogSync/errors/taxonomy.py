# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.errors.taxonomy",
#   "purpose": "Error taxonomy and operator-facing messages for synchronization and index builds.",
#   "sections": [
#     {"id": "catalogsyncerror", "name": "CatalogSyncError", "anchor": "class-catalogsyncerror", "kind": "class"},
#     {"id": "get-actionable-error-message", "name": "get_actionable_error_message", "anchor": "function-get-actionable-error-message", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy for CatalogSync.

Responsibilities
----------------
- ``NotFoundError``: requested study or entity is absent. Fatal to the call.
- ``BackendUnavailableError``: Catalog or Storage Metadata unreachable. Aborts
  the current pass; callers retry by re-invoking.
- ``JobFailedError``: the Job Runner reported a failed batch. Remaining
  batches are not submitted; completed ones keep their state.
- ``InconsistentError``: a logical impossibility in stored metadata. Raised
  internally for per-entity anomalies which are logged and skipped.

Every error can carry the partial report of the call that raised it
(``exc.report``) so failures always come with progress accounting.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)


class CatalogSyncError(Exception):
    """Base class for every error raised by CatalogSync."""

    def __init__(
        self,
        message: str,
        *,
        study: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        report: Any = None,
    ):
        super().__init__(message)
        self.study = study
        self.details = details or {}
        self.report = report

    def __str__(self) -> str:
        message = super().__str__()
        summary = getattr(self.report, "summary", None)
        if callable(summary):
            return f"{message} [{summary()}]"
        return message


class NotFoundError(CatalogSyncError):
    """Raised when a study or entity cannot be found."""

    def __init__(self, message: str, *, entity: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.entity = entity


class BackendUnavailableError(CatalogSyncError):
    """Raised when the Catalog or Storage Metadata backend cannot be reached."""

    def __init__(self, message: str, *, backend: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.backend = backend


class JobFailedError(CatalogSyncError):
    """Raised when the Job Runner reports a failed batch."""

    def __init__(
        self,
        message: str,
        *,
        job_id: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.job_id = job_id
        self.reason = reason


class InconsistentError(CatalogSyncError):
    """Raised for metadata that contradicts itself (e.g. unresolvable sample ids)."""


def get_actionable_error_message(exc: BaseException) -> tuple[str, Optional[str]]:
    """Translate an error into an operator message and a remediation hint.

    Args:
        exc: Error raised by a synchronization or build call

    Returns:
        Tuple of (message, suggestion) where suggestion may be None

    Examples:
        >>> msg, hint = get_actionable_error_message(JobFailedError("batch 2/3 failed"))
        >>> hint
        'Fix the failing job and re-run the build; completed batches are skipped.'
    """
    if isinstance(exc, NotFoundError):
        return (
            f"Not found: {exc}",
            "Check the study and entity names; samples must be loaded before indexing.",
        )
    if isinstance(exc, BackendUnavailableError):
        return (
            f"Metadata backend unavailable: {exc}",
            "Retry once the backend is reachable; synchronization resumes from scratch.",
        )
    if isinstance(exc, JobFailedError):
        return (
            f"Index build job failed: {exc}",
            "Fix the failing job and re-run the build; completed batches are skipped.",
        )
    if isinstance(exc, InconsistentError):
        return (
            f"Inconsistent metadata: {exc}",
            "Inspect the storage metadata of the affected entity before re-running.",
        )
    return (str(exc) or exc.__class__.__name__, None)


def log_sync_failure(
    exc: CatalogSyncError,
    *,
    operation: str,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Log a failed call with its partial report and a remediation hint."""
    message, suggestion = get_actionable_error_message(exc)
    extra_fields: dict[str, Any] = {"operation": operation, "error_type": type(exc).__name__}
    if exc.study:
        extra_fields["study"] = exc.study
    as_dict = getattr(exc.report, "as_dict", None)
    if callable(as_dict):
        extra_fields["report"] = as_dict()
    (logger or LOGGER).error(
        f"{operation} failed: {message}" + (f" ({suggestion})" if suggestion else ""),
        extra={"extra_fields": extra_fields},
    )


__all__ = [
    "BackendUnavailableError",
    "CatalogSyncError",
    "InconsistentError",
    "JobFailedError",
    "NotFoundError",
    "get_actionable_error_message",
    "log_sync_failure",
]
