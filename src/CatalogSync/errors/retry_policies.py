"""Retry policies for metadata backend reads and writes.

Snapshot reads from Storage Metadata and post-batch sample-state writes are
the only calls retried automatically. Chunked Catalog lookups are never
retried inside a call: the synchronizer trades completeness for progress and
relies on the caller re-invoking it.

Usage:
    from CatalogSync.errors.retry_policies import create_backend_retry_policy

    policy = create_backend_retry_policy(max_attempts=3, base_delay_ms=200)
    for attempt in policy:
        with attempt:
            entries = list(storage.iter_file_metadata(study.id))

Only :class:`~CatalogSync.errors.taxonomy.BackendUnavailableError` is
retried; every other error propagates on the first attempt.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from CatalogSync.errors.taxonomy import BackendUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_backend_retry_policy(
    max_attempts: int = 3,
    base_delay_ms: int = 200,
    max_delay_ms: int = 2000,
    log: Optional[logging.Logger] = None,
) -> Retrying:
    """Create a Tenacity policy retrying transient backend failures.

    Args:
        max_attempts: Total attempts including the first call (>= 1)
        base_delay_ms: First backoff delay in milliseconds
        max_delay_ms: Upper bound for a single backoff delay
        log: Logger used for the before-sleep warning

    Returns:
        Configured Tenacity Retrying object (reraises the last error)

    Raises:
        ValueError: If ``max_attempts`` is lower than 1
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay_ms / 1000.0, max=max_delay_ms / 1000.0),
        retry=retry_if_exception_type(BackendUnavailableError),
        before_sleep=before_sleep_log(log or logger, logging.WARNING, exc_info=False),
        reraise=True,
    )


def call_with_retry(policy: Retrying, fn: Callable[[], T]) -> T:
    """Run ``fn`` under ``policy`` and return its result.

    Example:
        >>> policy = create_backend_retry_policy(max_attempts=2, base_delay_ms=0)
        >>> call_with_retry(policy, lambda: 42)
        42
    """
    for attempt in policy:
        with attempt:
            return fn()
    raise RuntimeError("retry policy stopped without an attempt")  # pragma: no cover


__all__ = ["call_with_retry", "create_backend_retry_policy"]
