"""In-memory Catalog used by tests and by embedding applications."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from CatalogSync.catalog.store import CatalogStore, FileQuery, JobQuery
from CatalogSync.errors import NotFoundError
from CatalogSync.models import (
    CohortRecord,
    CohortStatus,
    FileIndexRecord,
    IndexStatus,
    JobRecord,
    ProjectRecord,
    UpdateAction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogChange:
    """One write applied to the catalog, kept for auditing."""

    study: str
    entity: str
    entity_id: str
    field: str
    value: object
    message: str = ""


class _StudyState:
    def __init__(self) -> None:
        self.files: Dict[str, FileIndexRecord] = {}
        self.cohorts: Dict[str, CohortRecord] = {}
        self.jobs: Dict[str, JobRecord] = {}


class InMemoryCatalog(CatalogStore):
    """Thread-safe dictionary-backed Catalog.

    Iteration snapshots the matching records before yielding, so writes made
    while a caller iterates are not observed by that iteration.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._studies: Dict[str, _StudyState] = {}
        self._projects: Dict[str, ProjectRecord] = {}
        self.history: List[CatalogChange] = []

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_study(self, study: str) -> None:
        with self._lock:
            self._studies.setdefault(study, _StudyState())

    def add_file(self, study: str, record: FileIndexRecord) -> FileIndexRecord:
        with self._lock:
            self._studies.setdefault(study, _StudyState()).files[record.id] = record
            return record

    def add_cohort(self, study: str, record: CohortRecord) -> CohortRecord:
        with self._lock:
            self._studies.setdefault(study, _StudyState()).cohorts[record.id] = record
            return record

    def add_job(self, study: str, record: JobRecord) -> JobRecord:
        with self._lock:
            self._studies.setdefault(study, _StudyState()).jobs[record.id] = record
            return record

    def add_project(self, record: ProjectRecord) -> ProjectRecord:
        with self._lock:
            self._projects[record.id] = record
            return record

    # ------------------------------------------------------------------
    # CatalogStore API
    # ------------------------------------------------------------------

    def _study(self, study: str) -> _StudyState:
        state = self._studies.get(study)
        if state is None:
            raise NotFoundError(f"Study '{study}' not found in catalog", entity="study", study=study)
        return state

    def get_file(self, study: str, file_id: str) -> FileIndexRecord:
        with self._lock:
            record = self._study(study).files.get(file_id)
            if record is None:
                raise NotFoundError(f"File '{file_id}' not found", entity="file", study=study)
            return record

    def iter_files(
        self, study: str, query: FileQuery, batch_size: int = 500
    ) -> Iterator[FileIndexRecord]:
        with self._lock:
            matched = [r for r in self._study(study).files.values() if query.matches(r)]
        return iter(matched)

    def update_file_index_status(
        self, study: str, file_id: str, status: IndexStatus, message: str = ""
    ) -> FileIndexRecord:
        with self._lock:
            record = replace(self.get_file(study, file_id), index_status=status)
            self._studies[study].files[file_id] = record
            self._record(study, "file", file_id, "index_status", status, message)
            return record

    def update_file_samples(
        self, study: str, file_id: str, sample_ids: Sequence[str]
    ) -> FileIndexRecord:
        with self._lock:
            record = replace(self.get_file(study, file_id), sample_ids=tuple(sample_ids))
            self._studies[study].files[file_id] = record
            self._record(study, "file", file_id, "sample_ids", record.sample_ids)
            return record

    def get_cohort(self, study: str, cohort_id: str) -> CohortRecord:
        with self._lock:
            record = self._study(study).cohorts.get(cohort_id)
            if record is None:
                raise NotFoundError(f"Cohort '{cohort_id}' not found", entity="cohort", study=study)
            return record

    def iter_cohorts(
        self, study: str, cohort_ids: Optional[Sequence[str]] = None
    ) -> Iterator[CohortRecord]:
        with self._lock:
            cohorts = self._study(study).cohorts
            if cohort_ids is None:
                matched = list(cohorts.values())
            else:
                wanted = set(cohort_ids)
                matched = [c for c in cohorts.values() if c.id in wanted]
        return iter(matched)

    def update_cohort_status(
        self, study: str, cohort_id: str, status: CohortStatus, message: str = ""
    ) -> CohortRecord:
        with self._lock:
            record = replace(self.get_cohort(study, cohort_id), status=status)
            self._studies[study].cohorts[cohort_id] = record
            self._record(study, "cohort", cohort_id, "status", status, message)
            return record

    def update_cohort_samples(
        self,
        study: str,
        cohort_id: str,
        sample_ids: Sequence[str],
        action: UpdateAction = UpdateAction.SET,
    ) -> CohortRecord:
        with self._lock:
            current = self.get_cohort(study, cohort_id)
            members: Tuple[str, ...]
            if action == UpdateAction.SET:
                members = tuple(dict.fromkeys(sample_ids))
            elif action == UpdateAction.ADD:
                members = tuple(dict.fromkeys((*current.sample_ids, *sample_ids)))
            else:
                removed = set(sample_ids)
                members = tuple(s for s in current.sample_ids if s not in removed)
            record = replace(current, sample_ids=members)
            self._studies[study].cohorts[cohort_id] = record
            self._record(study, "cohort", cohort_id, "sample_ids", members, action.value)
            return record

    def search_jobs(self, study: str, query: JobQuery) -> List[JobRecord]:
        with self._lock:
            return [job for job in self._study(study).jobs.values() if query.matches(job)]

    def get_project(self, project_id: str) -> ProjectRecord:
        with self._lock:
            record = self._projects.get(project_id)
            if record is None:
                raise NotFoundError(f"Project '{project_id}' not found", entity="project")
            return record

    def _record(
        self, study: str, entity: str, entity_id: str, field: str, value: object, message: str = ""
    ) -> None:
        self.history.append(CatalogChange(study, entity, entity_id, field, value, message))
        logger.debug(f"Catalog {entity} '{entity_id}' {field} <- {value!r}")
