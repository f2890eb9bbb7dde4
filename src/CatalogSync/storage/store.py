"""Storage Metadata API consumed by the synchronizer and the index builder."""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional, Union

from CatalogSync.models import (
    ProjectMetadata,
    SampleMetadata,
    StorageCohortEntry,
    StorageFileEntry,
    StudyMetadata,
    TaskRecord,
)

SampleMutator = Callable[[SampleMetadata], SampleMetadata]
ProjectMutator = Callable[[Optional[ProjectMetadata]], ProjectMetadata]


class StorageMetadataStore:
    """Protocol-like base class for Storage Metadata backends.

    Storage Metadata is owned by the loading/indexing engine. CatalogSync
    reads it to reconcile the Catalog and writes only two things: per-sample
    index state after a successful build job, and project metadata.
    """

    def get_study(self, study: Union[str, int]) -> Optional[StudyMetadata]:
        """Resolve a study by name or id; ``None`` when storage has never seen it."""
        raise NotImplementedError

    def iter_file_metadata(self, study_id: int) -> Iterator[StorageFileEntry]:
        raise NotImplementedError

    def get_file_metadata(
        self, study_id: int, file: Union[str, int]
    ) -> Optional[StorageFileEntry]:
        """Get a file entry by name or integer id."""
        raise NotImplementedError

    def get_indexed_file_ids(self, study_id: int) -> List[int]:
        """Ids of indexed files, in indexing order."""
        raise NotImplementedError

    def iter_sample_metadata(self, study_id: int) -> Iterator[SampleMetadata]:
        raise NotImplementedError

    def get_sample_metadata(self, study_id: int, sample_id: int) -> Optional[SampleMetadata]:
        raise NotImplementedError

    def get_sample_id(self, study_id: int, sample_name: str) -> Optional[int]:
        raise NotImplementedError

    def get_indexed_sample_ids(self, study_id: int) -> List[int]:
        raise NotImplementedError

    def update_sample_metadata(
        self, study_id: int, sample_id: int, mutator: SampleMutator
    ) -> SampleMetadata:
        """Apply ``mutator`` to the stored sample and persist the result."""
        raise NotImplementedError

    def get_cohort_metadata(self, study_id: int, name: str) -> Optional[StorageCohortEntry]:
        raise NotImplementedError

    def get_calculated_cohorts(self, study_id: int) -> List[StorageCohortEntry]:
        """Cohorts whose statistics are computed and valid."""
        raise NotImplementedError

    def get_invalid_cohorts(self, study_id: int) -> List[StorageCohortEntry]:
        """Cohorts whose statistics were invalidated."""
        raise NotImplementedError

    def get_running_tasks(self, study_id: int) -> List[TaskRecord]:
        raise NotImplementedError

    def get_project_metadata(self) -> Optional[ProjectMetadata]:
        raise NotImplementedError

    def update_project_metadata(self, mutator: ProjectMutator) -> ProjectMetadata:
        raise NotImplementedError
