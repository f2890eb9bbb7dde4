"""In-memory Storage Metadata used by tests and by embedding applications."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Union

from CatalogSync.errors import NotFoundError
from CatalogSync.models import (
    ProjectMetadata,
    SampleMetadata,
    StorageCohortEntry,
    StorageFileEntry,
    StudyMetadata,
    TaskRecord,
    TaskStatus,
)
from CatalogSync.storage.store import ProjectMutator, SampleMutator, StorageMetadataStore

logger = logging.getLogger(__name__)


class _StudyState:
    def __init__(self, metadata: StudyMetadata) -> None:
        self.metadata = metadata
        self.files: Dict[int, StorageFileEntry] = {}
        self.indexed_order: List[int] = []
        self.samples: Dict[int, SampleMetadata] = {}
        self.cohorts: Dict[str, StorageCohortEntry] = {}
        self.tasks: Dict[int, TaskRecord] = {}


class InMemoryStorageMetadata(StorageMetadataStore):
    """Thread-safe dictionary-backed Storage Metadata store.

    The seeding helpers (``add_*``, ``index_file``, ``remove_study``) stand in
    for the loading engine's own bookkeeping.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._studies: Dict[int, _StudyState] = {}
        self._names: Dict[str, int] = {}
        self._project: Optional[ProjectMetadata] = None

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_study(self, metadata: StudyMetadata) -> StudyMetadata:
        with self._lock:
            self._studies[metadata.id] = _StudyState(metadata)
            self._names[metadata.name] = metadata.id
            return metadata

    def set_sample_index_version(self, study_id: int, version: int) -> None:
        with self._lock:
            state = self._state(study_id)
            state.metadata = replace(state.metadata, sample_index_version=version)

    def add_file(self, study_id: int, entry: StorageFileEntry) -> StorageFileEntry:
        with self._lock:
            state = self._state(study_id)
            state.files[entry.id] = entry
            if entry.indexed and entry.id not in state.indexed_order:
                state.indexed_order.append(entry.id)
            elif not entry.indexed and entry.id in state.indexed_order:
                state.indexed_order.remove(entry.id)
            return entry

    def index_file(self, study_id: int, file_id: int) -> StorageFileEntry:
        """Mark a file indexed with a READY last operation."""
        with self._lock:
            entry = self._state(study_id).files[file_id]
            return self.add_file(
                study_id, replace(entry, indexed=True, index_status=TaskStatus.READY)
            )

    def add_sample(self, study_id: int, sample: SampleMetadata) -> SampleMetadata:
        with self._lock:
            self._state(study_id).samples[sample.id] = sample
            return sample

    def add_cohort(self, study_id: int, cohort: StorageCohortEntry) -> StorageCohortEntry:
        with self._lock:
            self._state(study_id).cohorts[cohort.name] = cohort
            return cohort

    def add_task(self, study_id: int, task: TaskRecord) -> TaskRecord:
        with self._lock:
            self._state(study_id).tasks[task.id] = task
            return task

    def remove_study(self, study_id: int) -> None:
        with self._lock:
            state = self._studies.pop(study_id)
            self._names.pop(state.metadata.name, None)

    # ------------------------------------------------------------------
    # StorageMetadataStore API
    # ------------------------------------------------------------------

    def _state(self, study_id: int) -> _StudyState:
        state = self._studies.get(study_id)
        if state is None:
            raise NotFoundError(f"Study {study_id} not found in storage metadata", entity="study")
        return state

    def get_study(self, study: Union[str, int]) -> Optional[StudyMetadata]:
        with self._lock:
            study_id = study if isinstance(study, int) else self._names.get(study)
            state = self._studies.get(study_id) if study_id is not None else None
            return state.metadata if state else None

    def iter_file_metadata(self, study_id: int) -> Iterator[StorageFileEntry]:
        with self._lock:
            entries = list(self._state(study_id).files.values())
        return iter(entries)

    def get_file_metadata(
        self, study_id: int, file: Union[str, int]
    ) -> Optional[StorageFileEntry]:
        with self._lock:
            files = self._state(study_id).files
            if isinstance(file, int):
                return files.get(file)
            for entry in files.values():
                if entry.name == file:
                    return entry
            return None

    def get_indexed_file_ids(self, study_id: int) -> List[int]:
        with self._lock:
            return list(self._state(study_id).indexed_order)

    def iter_sample_metadata(self, study_id: int) -> Iterator[SampleMetadata]:
        with self._lock:
            samples = list(self._state(study_id).samples.values())
        return iter(samples)

    def get_sample_metadata(self, study_id: int, sample_id: int) -> Optional[SampleMetadata]:
        with self._lock:
            return self._state(study_id).samples.get(sample_id)

    def get_sample_id(self, study_id: int, sample_name: str) -> Optional[int]:
        with self._lock:
            for sample in self._state(study_id).samples.values():
                if sample.name == sample_name:
                    return sample.id
            return None

    def get_indexed_sample_ids(self, study_id: int) -> List[int]:
        with self._lock:
            return [s.id for s in self._state(study_id).samples.values() if s.indexed]

    def update_sample_metadata(
        self, study_id: int, sample_id: int, mutator: SampleMutator
    ) -> SampleMetadata:
        with self._lock:
            samples = self._state(study_id).samples
            current = samples.get(sample_id)
            if current is None:
                raise NotFoundError(f"Sample {sample_id} not found", entity="sample")
            updated = mutator(current)
            samples[sample_id] = updated
            return updated

    def get_cohort_metadata(self, study_id: int, name: str) -> Optional[StorageCohortEntry]:
        with self._lock:
            return self._state(study_id).cohorts.get(name)

    def get_calculated_cohorts(self, study_id: int) -> List[StorageCohortEntry]:
        with self._lock:
            return [
                c
                for c in self._state(study_id).cohorts.values()
                if c.is_stats_ready() and not c.invalid
            ]

    def get_invalid_cohorts(self, study_id: int) -> List[StorageCohortEntry]:
        with self._lock:
            return [c for c in self._state(study_id).cohorts.values() if c.invalid]

    def get_running_tasks(self, study_id: int) -> List[TaskRecord]:
        with self._lock:
            return [t for t in self._state(study_id).tasks.values() if t.is_running()]

    def get_project_metadata(self) -> Optional[ProjectMetadata]:
        with self._lock:
            return self._project

    def update_project_metadata(self, mutator: ProjectMutator) -> ProjectMetadata:
        with self._lock:
            self._project = mutator(self._project)
            logger.debug(f"Project metadata updated: {self._project}")
            return self._project
