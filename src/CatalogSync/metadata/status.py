# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.metadata.status",
#   "purpose": "File-index and cohort status transitions driven by Storage Metadata facts",
#   "sections": [
#     {"id": "next-file-status", "name": "next_file_status", "anchor": "#function-next-file-status", "kind": "function"},
#     {"id": "next-cohort-status", "name": "next_cohort_status", "anchor": "#function-next-cohort-status", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Status state machine for file indexes and cohorts.

Storage Metadata is the only authority for a transition; the Catalog always
follows. Both decision functions are pure and total and return ``None`` when
the Catalog status should stay as it is.

**File index lifecycle:**

    NONE
      ↓ (transform)
    TRANSFORMED
      ↓ (load starts)
    INDEXING / LOADING ──(error)──→ ERROR
      ↓ (storage reports indexed)       ↓ (reset: no running job)
    READY                          TRANSFORMED | NONE

A READY file that storage has forgotten is reset the same way.

**Cohort lifecycle:**

    NONE → CALCULATING → READY | INVALID

INVALID is only left through a fresh statistics computation whose members
match the Catalog's.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, FrozenSet, Optional

from CatalogSync.models import CohortStatsState, CohortStatus, IndexStatus, TaskStatus

FILE_TRANSITIONS: Dict[IndexStatus, FrozenSet[IndexStatus]] = {
    IndexStatus.NONE: frozenset(
        {IndexStatus.TRANSFORMED, IndexStatus.INDEXING, IndexStatus.LOADING, IndexStatus.READY}
    ),
    IndexStatus.TRANSFORMED: frozenset(
        {IndexStatus.NONE, IndexStatus.INDEXING, IndexStatus.LOADING, IndexStatus.READY}
    ),
    IndexStatus.INDEXING: frozenset(
        {IndexStatus.LOADING, IndexStatus.READY, IndexStatus.ERROR, IndexStatus.NONE, IndexStatus.TRANSFORMED}
    ),
    IndexStatus.LOADING: frozenset(
        {IndexStatus.INDEXING, IndexStatus.READY, IndexStatus.ERROR, IndexStatus.NONE, IndexStatus.TRANSFORMED}
    ),
    IndexStatus.READY: frozenset(
        {IndexStatus.NONE, IndexStatus.TRANSFORMED, IndexStatus.INDEXING, IndexStatus.LOADING}
    ),
    IndexStatus.ERROR: frozenset(
        {IndexStatus.NONE, IndexStatus.TRANSFORMED, IndexStatus.INDEXING, IndexStatus.LOADING, IndexStatus.READY}
    ),
}

COHORT_TRANSITIONS: Dict[CohortStatus, FrozenSet[CohortStatus]] = {
    CohortStatus.NONE: frozenset({CohortStatus.CALCULATING, CohortStatus.READY, CohortStatus.INVALID}),
    CohortStatus.CALCULATING: frozenset({CohortStatus.READY, CohortStatus.INVALID, CohortStatus.NONE}),
    CohortStatus.READY: frozenset({CohortStatus.INVALID, CohortStatus.CALCULATING}),
    CohortStatus.INVALID: frozenset({CohortStatus.READY, CohortStatus.CALCULATING}),
}

_ACTIVE_FILE_STATUSES = frozenset({IndexStatus.LOADING, IndexStatus.INDEXING})


def is_legal_file_transition(current: IndexStatus, new: IndexStatus) -> bool:
    return current == new or new in FILE_TRANSITIONS[current]


def is_legal_cohort_transition(current: CohortStatus, new: CohortStatus) -> bool:
    return current == new or new in COHORT_TRANSITIONS[current]


def reset_file_status(has_transformed: bool) -> IndexStatus:
    """Status a file falls back to when storage holds nothing for it."""
    return IndexStatus.TRANSFORMED if has_transformed else IndexStatus.NONE


def active_file_status(has_transformed: bool) -> IndexStatus:
    """Status of a file whose load is in progress in storage."""
    return IndexStatus.LOADING if has_transformed else IndexStatus.INDEXING


def next_file_status(
    current: IndexStatus,
    storage_indexed: bool,
    storage_task_status: TaskStatus,
    has_transformed: bool,
    has_running_job: bool,
) -> Optional[IndexStatus]:
    """Decide the Catalog index status of a file from Storage facts.

    Args:
        current: Catalog status of the file
        storage_indexed: Whether storage lists the file as indexed
        storage_task_status: Status of the last load/index task covering the file
        has_transformed: Whether a transformed artifact exists for the file
        has_running_job: Whether a Catalog-visible job still references the file

    Returns:
        The new status, or ``None`` when the Catalog should not change.
    """
    if storage_task_status == TaskStatus.RUNNING:
        target = active_file_status(has_transformed)
    elif storage_indexed:
        target = IndexStatus.READY
    elif storage_task_status == TaskStatus.ERROR:
        # Last load failed: only a job that is still running keeps the file active.
        target = current if has_running_job else reset_file_status(has_transformed)
    elif current in (IndexStatus.READY, IndexStatus.ERROR) and not has_running_job:
        target = reset_file_status(has_transformed)
    else:
        # LOADING/INDEXING with no storage evidence yet: the job may still be transforming.
        target = current
    return None if target == current else target


def next_cohort_status(
    current: CohortStatus,
    catalog_members: AbstractSet[str],
    storage_members: AbstractSet[str],
    stats_state: CohortStatsState,
) -> Optional[CohortStatus]:
    """Decide the Catalog status of a cohort from Storage statistics facts.

    Args:
        current: Catalog cohort status
        catalog_members: Sample names the Catalog lists for the cohort
        storage_members: Sample names storage computed statistics for
        stats_state: Validity of the statistics held in storage

    Returns:
        The new status, or ``None`` when the Catalog should not change.
    """
    members_match = set(catalog_members) == set(storage_members)
    if stats_state == CohortStatsState.INVALID:
        target = CohortStatus.INVALID
    elif stats_state == CohortStatsState.READY:
        if current == CohortStatus.INVALID and not members_match:
            target = current
        else:
            target = CohortStatus.READY
    elif current == CohortStatus.CALCULATING and not members_match:
        # The running computation targets a membership that no longer exists.
        target = CohortStatus.NONE
    else:
        target = current
    return None if target == current else target


__all__ = [
    "COHORT_TRANSITIONS",
    "FILE_TRANSITIONS",
    "active_file_status",
    "is_legal_cohort_transition",
    "is_legal_file_transition",
    "next_cohort_status",
    "next_file_status",
    "reset_file_status",
]
