"""Storage Metadata API: the loading engine's bookkeeping, source of truth for what is indexed."""

from __future__ import annotations

from CatalogSync.storage.memory import InMemoryStorageMetadata
from CatalogSync.storage.store import ProjectMutator, SampleMutator, StorageMetadataStore

__all__ = [
    "InMemoryStorageMetadata",
    "ProjectMutator",
    "SampleMutator",
    "StorageMetadataStore",
]
