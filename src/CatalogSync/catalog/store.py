"""Catalog API consumed by the synchronizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Optional, Sequence

from CatalogSync.models import (
    CohortRecord,
    CohortStatus,
    FileIndexRecord,
    IndexStatus,
    JobRecord,
    JobStatus,
    ProjectRecord,
    UpdateAction,
)


@dataclass(frozen=True)
class FileQuery:
    """Filter for :meth:`CatalogStore.iter_files`; unset criteria match everything."""

    ids: Optional[FrozenSet[str]] = None
    names: Optional[FrozenSet[str]] = None
    uris: Optional[FrozenSet[str]] = None
    index_statuses: Optional[FrozenSet[IndexStatus]] = None
    bioformat: Optional[str] = None
    formats: Optional[FrozenSet[str]] = None

    @classmethod
    def build(
        cls,
        *,
        ids: Optional[Sequence[str]] = None,
        names: Optional[Sequence[str]] = None,
        uris: Optional[Sequence[str]] = None,
        index_statuses: Optional[Sequence[IndexStatus]] = None,
        bioformat: Optional[str] = None,
        formats: Optional[Sequence[str]] = None,
    ) -> "FileQuery":
        def _freeze(values):
            return None if values is None else frozenset(values)

        return cls(
            ids=_freeze(ids),
            names=_freeze(names),
            uris=_freeze(uris),
            index_statuses=_freeze(index_statuses),
            bioformat=bioformat,
            formats=_freeze(formats) if formats else None,
        )

    def matches(self, record: FileIndexRecord) -> bool:
        if self.ids is not None and record.id not in self.ids:
            return False
        if self.names is not None and record.name not in self.names:
            return False
        if self.uris is not None and record.uri not in self.uris:
            return False
        if self.index_statuses is not None and record.index_status not in self.index_statuses:
            return False
        if self.bioformat is not None and record.bioformat != self.bioformat:
            return False
        if self.formats is not None and record.format not in self.formats:
            return False
        return True


@dataclass(frozen=True)
class JobQuery:
    input_file_id: Optional[str] = None
    tool_id: Optional[str] = None
    statuses: Optional[FrozenSet[JobStatus]] = None

    def matches(self, job: JobRecord) -> bool:
        if self.input_file_id is not None and self.input_file_id not in job.input_file_ids:
            return False
        if self.tool_id is not None and job.tool_id != self.tool_id:
            return False
        if self.statuses is not None and job.status not in self.statuses:
            return False
        return True


class CatalogStore:
    """Protocol-like base class for Catalog backends.

    Implementations raise :class:`~CatalogSync.errors.NotFoundError` for
    unknown studies or entities and
    :class:`~CatalogSync.errors.BackendUnavailableError` when the backend
    cannot be reached. Writes are independent: no method is transactional
    across entities.
    """

    def get_file(self, study: str, file_id: str) -> FileIndexRecord:
        """Get one file by Catalog id."""
        raise NotImplementedError

    def iter_files(
        self, study: str, query: FileQuery, batch_size: int = 500
    ) -> Iterator[FileIndexRecord]:
        """Iterate files matching ``query``.

        Implementations fetch ``batch_size`` records per round trip; errors
        may surface part-way through the iteration.
        """
        raise NotImplementedError

    def update_file_index_status(
        self, study: str, file_id: str, status: IndexStatus, message: str = ""
    ) -> FileIndexRecord:
        """Set the index status of a file, recording ``message`` as the reason."""
        raise NotImplementedError

    def update_file_samples(
        self, study: str, file_id: str, sample_ids: Sequence[str]
    ) -> FileIndexRecord:
        """Replace the sample set associated with a file."""
        raise NotImplementedError

    def get_cohort(self, study: str, cohort_id: str) -> CohortRecord:
        raise NotImplementedError

    def iter_cohorts(
        self, study: str, cohort_ids: Optional[Sequence[str]] = None
    ) -> Iterator[CohortRecord]:
        raise NotImplementedError

    def update_cohort_status(
        self, study: str, cohort_id: str, status: CohortStatus, message: str = ""
    ) -> CohortRecord:
        raise NotImplementedError

    def update_cohort_samples(
        self,
        study: str,
        cohort_id: str,
        sample_ids: Sequence[str],
        action: UpdateAction = UpdateAction.SET,
    ) -> CohortRecord:
        """Update cohort membership; ``SET`` replaces, ``ADD``/``REMOVE`` merge."""
        raise NotImplementedError

    def search_jobs(self, study: str, query: JobQuery) -> List[JobRecord]:
        raise NotImplementedError

    def get_project(self, project_id: str) -> ProjectRecord:
        raise NotImplementedError
