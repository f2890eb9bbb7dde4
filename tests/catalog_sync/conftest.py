"""Shared fixtures for CatalogSync tests.

``StudyFixture`` seeds one study into an in-memory Catalog and an in-memory
Storage Metadata store at the same time, keeping file names, URIs and sample
names aligned the way a real deployment would.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence, Tuple

import pytest

from CatalogSync.catalog import InMemoryCatalog
from CatalogSync.config import CatalogSyncConfig
from CatalogSync.metadata.names import to_uri
from CatalogSync.models import (
    CohortRecord,
    CohortStatus,
    FileIndexRecord,
    IndexStatus,
    SampleIndexState,
    SampleMetadata,
    StorageCohortEntry,
    StorageFileEntry,
    StudyMetadata,
    TaskStatus,
    TransformedFileRef,
)
from CatalogSync.storage import InMemoryStorageMetadata


class StudyFixture:
    """Seeds a study in both stores."""

    def __init__(
        self,
        catalog: InMemoryCatalog,
        storage: InMemoryStorageMetadata,
        name: str = "study1",
        study_id: int = 1,
        version: int = 1,
    ) -> None:
        self.catalog = catalog
        self.storage = storage
        self.name = name
        self.study_id = study_id
        catalog.add_study(name)
        storage.add_study(StudyMetadata(id=study_id, name=name, sample_index_version=version))
        self.sample_ids: Dict[str, int] = {}
        self._next_file_id = 1
        self._next_cohort_id = 1

    def add_samples(
        self,
        *names: str,
        indexed: bool = True,
        sample_index: Optional[SampleIndexState] = None,
    ) -> Tuple[int, ...]:
        ids = []
        for name in names:
            sample_id = len(self.sample_ids) + 1
            self.sample_ids[name] = sample_id
            self.storage.add_sample(
                self.study_id,
                SampleMetadata(
                    id=sample_id,
                    name=name,
                    indexed=indexed,
                    sample_index=sample_index or SampleIndexState(),
                ),
            )
            ids.append(sample_id)
        return tuple(ids)

    def add_file(
        self,
        name: str,
        *,
        samples: Sequence[str] = (),
        indexed: bool = False,
        task_status: TaskStatus = TaskStatus.NONE,
        catalog_status: IndexStatus = IndexStatus.NONE,
        catalog_samples: Optional[Sequence[str]] = None,
        transformed: bool = False,
        in_catalog: bool = True,
        in_storage: bool = True,
        storage_sample_ids: Optional[Tuple[Optional[int], ...]] = (),
    ) -> int:
        """Add a file to both stores and return its storage id."""
        file_id = self._next_file_id
        self._next_file_id += 1
        path = f"/data/{self.name}/{name}"
        if in_storage:
            sample_ids = (
                tuple(self.sample_ids[s] for s in samples)
                if storage_sample_ids == ()
                else storage_sample_ids
            )
            self.storage.add_file(
                self.study_id,
                StorageFileEntry(
                    id=file_id,
                    name=name,
                    path=path,
                    indexed=indexed,
                    sample_ids=sample_ids,
                    index_status=task_status,
                ),
            )
        if in_catalog:
            self.catalog.add_file(
                self.name,
                FileIndexRecord(
                    id=name,
                    name=name,
                    uri=to_uri(path),
                    sample_ids=tuple(samples if catalog_samples is None else catalog_samples),
                    index_status=catalog_status,
                    transformed_file=TransformedFileRef(id=file_id * 100) if transformed else None,
                ),
            )
        return file_id

    def add_cohort(
        self,
        name: str,
        *,
        storage_samples: Optional[Iterable[str]] = None,
        catalog_samples: Optional[Iterable[str]] = None,
        catalog_status: CohortStatus = CohortStatus.NONE,
        stats_status: TaskStatus = TaskStatus.NONE,
        invalid: bool = False,
    ) -> None:
        if storage_samples is not None:
            self._next_cohort_id += 1
            self.storage.add_cohort(
                self.study_id,
                StorageCohortEntry(
                    id=self._next_cohort_id,
                    name=name,
                    sample_ids=tuple(self.sample_ids[s] for s in storage_samples),
                    stats_status=stats_status,
                    invalid=invalid,
                ),
            )
        if catalog_samples is not None:
            self.catalog.add_cohort(
                self.name,
                CohortRecord(id=name, sample_ids=tuple(catalog_samples), status=catalog_status),
            )

    def file_status(self, name: str) -> IndexStatus:
        return self.catalog.get_file(self.name, name).index_status

    def file_samples(self, name: str) -> frozenset:
        return frozenset(self.catalog.get_file(self.name, name).sample_ids)

    def cohort(self, name: str) -> CohortRecord:
        return self.catalog.get_cohort(self.name, name)


@pytest.fixture
def config() -> CatalogSyncConfig:
    """Configuration with immediate retries so tests never sleep."""
    return CatalogSyncConfig(retry={"max_attempts": 2, "base_delay_ms": 0, "max_delay_ms": 0})


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture
def storage() -> InMemoryStorageMetadata:
    return InMemoryStorageMetadata()


@pytest.fixture
def study(catalog: InMemoryCatalog, storage: InMemoryStorageMetadata) -> StudyFixture:
    return StudyFixture(catalog, storage)


@pytest.fixture
def study_factory(catalog: InMemoryCatalog, storage: InMemoryStorageMetadata):
    """Build a ``StudyFixture`` over custom store subclasses."""

    def _factory(catalog_store=None, storage_store=None, **kwargs) -> StudyFixture:
        return StudyFixture(catalog_store or catalog, storage_store or storage, **kwargs)

    return _factory
