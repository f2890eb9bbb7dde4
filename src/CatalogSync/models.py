# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.models",
#   "purpose": "Catalog and Storage Metadata record types shared by the synchronizer and orchestrator",
#   "sections": [
#     {"id": "enums", "name": "IndexStatus", "anchor": "#class-indexstatus", "kind": "enum"},
#     {"id": "catalog-records", "name": "FileIndexRecord", "anchor": "#class-fileindexrecord", "kind": "dataclass"},
#     {"id": "storage-records", "name": "StorageFileEntry", "anchor": "#class-storagefileentry", "kind": "dataclass"}
#   ]
# }
# === /NAVMAP ===

"""Record types for the Catalog and the Storage Metadata store.

Two families of records describe the same dataset:

- **Catalog** records (``FileIndexRecord``, ``CohortRecord``, ``JobRecord``,
  ``ProjectRecord``) are user-facing. Only their status and sample-set fields
  are ever rewritten by :mod:`CatalogSync.metadata.synchronizer`.
- **Storage** records (``StudyMetadata``, ``StorageFileEntry``,
  ``SampleMetadata``, ``StorageCohortEntry``, ``TaskRecord``,
  ``ProjectMetadata``) are owned by the loading/indexing backend and are the
  source of truth for what is actually indexed.

Every record is a frozen dataclass; stores hand out new instances via
:func:`dataclasses.replace` rather than mutating in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional, Tuple

DEFAULT_COHORT = "ALL"
ALL_SAMPLES = "ALL"


class IndexStatus(str, Enum):
    """Catalog-visible lifecycle of a file index.

    NONE → TRANSFORMED → {INDEXING, LOADING} → READY, with ERROR reachable
    from INDEXING/LOADING and recoverable back to NONE or TRANSFORMED.
    """

    NONE = "NONE"
    TRANSFORMED = "TRANSFORMED"
    INDEXING = "INDEXING"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"


class TaskStatus(str, Enum):
    """Storage-side status of a task or of a per-entity operation."""

    NONE = "NONE"
    RUNNING = "RUNNING"
    READY = "READY"
    ERROR = "ERROR"


class TaskType(str, Enum):
    LOAD = "LOAD"
    INDEX = "INDEX"
    REMOVE = "REMOVE"


class CohortStatus(str, Enum):
    """Catalog-visible cohort statistics status."""

    NONE = "NONE"
    CALCULATING = "CALCULATING"
    READY = "READY"
    INVALID = "INVALID"


class CohortStatsState(str, Enum):
    """Validity of the statistics Storage holds for a cohort."""

    NONE = "NONE"
    READY = "READY"
    INVALID = "INVALID"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"
    ABORTED = "ABORTED"


class UpdateAction(str, Enum):
    """How a list field is written back to the Catalog."""

    SET = "SET"
    ADD = "ADD"
    REMOVE = "REMOVE"


# ============================================================================
# Catalog records
# ============================================================================


@dataclass(frozen=True)
class TransformedFileRef:
    """Reference to the transformed artifact produced before loading."""

    id: int
    uri: Optional[str] = None


@dataclass(frozen=True)
class FileIndexRecord:
    """Catalog view of one data file and its index status.

    Attributes:
        id: Catalog file identifier
        name: File name (matches the Storage entry name)
        uri: Physical location; Catalog looks files up by URI
        sample_ids: Catalog sample identifiers (names) associated with the file
        index_status: Current :class:`IndexStatus`
        transformed_file: Optional prior transformed artifact
        bioformat: Catalog bioformat, used by the READY-file filter
        format: Catalog file format, used by the READY-file filter
    """

    id: str
    name: str
    uri: str
    sample_ids: Tuple[str, ...] = ()
    index_status: IndexStatus = IndexStatus.NONE
    transformed_file: Optional[TransformedFileRef] = None
    bioformat: str = "VARIANT"
    format: str = "VCF"

    def has_transformed_file(self) -> bool:
        """Whether a usable transformed artifact exists for this file."""
        return self.transformed_file is not None and self.transformed_file.id > 0


@dataclass(frozen=True)
class CohortRecord:
    id: str
    sample_ids: Tuple[str, ...] = ()
    status: CohortStatus = CohortStatus.NONE


@dataclass(frozen=True)
class JobRecord:
    """Catalog job registry entry (only what the synchronizer needs)."""

    id: str
    tool_id: str
    input_file_ids: Tuple[str, ...] = ()
    status: JobStatus = JobStatus.PENDING


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    scientific_name: str
    assembly: str
    current_release: int = 1


# ============================================================================
# Storage Metadata records
# ============================================================================


@dataclass(frozen=True)
class StudyMetadata:
    """Storage-side study descriptor.

    ``sample_index_version`` is the version of the latest sample-index
    configuration; build jobs stamp samples with it.
    """

    id: int
    name: str
    sample_index_version: int = 1


@dataclass(frozen=True)
class StorageFileEntry:
    """Storage truth for one loaded file.

    ``sample_ids`` is ``None`` when the backend lost track of the file's
    samples; readers must degrade rather than fail.
    """

    id: int
    name: str
    path: str
    indexed: bool = False
    sample_ids: Optional[Tuple[Optional[int], ...]] = ()
    index_status: TaskStatus = TaskStatus.NONE


@dataclass(frozen=True)
class SampleIndexState:
    version: int = 0
    status: TaskStatus = TaskStatus.NONE

    def is_up_to_date(self, version: int) -> bool:
        return self.status == TaskStatus.READY and self.version == version


@dataclass(frozen=True)
class SampleMetadata:
    id: int
    name: str
    indexed: bool = False
    sample_index: SampleIndexState = field(default_factory=SampleIndexState)

    def with_sample_index(self, status: TaskStatus, version: int) -> "SampleMetadata":
        """Return a copy stamped with a new sample-index state."""
        return replace(self, sample_index=SampleIndexState(version=version, status=status))


@dataclass(frozen=True)
class StorageCohortEntry:
    """Storage-side cohort membership and statistics bookkeeping."""

    id: int
    name: str
    sample_ids: Tuple[int, ...] = ()
    stats_status: TaskStatus = TaskStatus.NONE
    invalid: bool = False

    def is_stats_ready(self) -> bool:
        return self.stats_status == TaskStatus.READY

    @property
    def stats_state(self) -> CohortStatsState:
        if self.invalid:
            return CohortStatsState.INVALID
        if self.is_stats_ready():
            return CohortStatsState.READY
        return CohortStatsState.NONE


@dataclass(frozen=True)
class TaskRecord:
    id: int
    type: TaskType
    status: TaskStatus
    file_ids: Tuple[int, ...] = ()

    def is_running(self) -> bool:
        return self.status == TaskStatus.RUNNING


@dataclass(frozen=True)
class ProjectMetadata:
    species: str = ""
    assembly: str = ""
    release: int = 0


def member_set(sample_ids: Optional[Tuple[str, ...]]) -> FrozenSet[str]:
    """Normalise a member list into a comparable set."""
    return frozenset(sample_ids or ())


__all__ = [
    "ALL_SAMPLES",
    "DEFAULT_COHORT",
    "CohortRecord",
    "CohortStatsState",
    "CohortStatus",
    "FileIndexRecord",
    "IndexStatus",
    "JobRecord",
    "JobStatus",
    "ProjectMetadata",
    "ProjectRecord",
    "SampleIndexState",
    "SampleMetadata",
    "StorageCohortEntry",
    "StorageFileEntry",
    "StudyMetadata",
    "TaskRecord",
    "TaskStatus",
    "TaskType",
    "TransformedFileRef",
    "UpdateAction",
    "member_set",
]
