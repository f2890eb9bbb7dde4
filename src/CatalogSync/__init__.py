# === NAVMAP v1 ===
# {
#   "module": "CatalogSync",
#   "purpose": "Public API for Catalog/Storage Metadata reconciliation and sample-index builds",
#   "sections": [
#     {"id": "getattr", "name": "__getattr__", "anchor": "function-getattr", "kind": "function"},
#     {"id": "dir", "name": "__dir__", "anchor": "function-dir", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Public API for CatalogSync.

Two services keep a user-facing Catalog consistent with the Storage Metadata
of a variant-storage engine:

- :class:`CatalogStorageSynchronizer` reconciles file index status, file
  sample sets and cohort state, always following Storage Metadata.
- :class:`SampleIndexBuilder` runs resumable, batched sample-index builds
  through a Job Runner.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

_EXPORTS: dict[str, tuple[str, str]] = {
    "BuildReport": ("CatalogSync.orchestrator.models", "BuildReport"),
    "CallableJobRunner": ("CatalogSync.orchestrator.runner", "CallableJobRunner"),
    "CatalogStorageSynchronizer": ("CatalogSync.metadata.synchronizer", "CatalogStorageSynchronizer"),
    "CatalogStore": ("CatalogSync.catalog.store", "CatalogStore"),
    "CatalogSyncConfig": ("CatalogSync.config.models", "CatalogSyncConfig"),
    "CatalogSyncError": ("CatalogSync.errors.taxonomy", "CatalogSyncError"),
    "InMemoryCatalog": ("CatalogSync.catalog.memory", "InMemoryCatalog"),
    "InMemoryStorageMetadata": ("CatalogSync.storage.memory", "InMemoryStorageMetadata"),
    "JobRunner": ("CatalogSync.orchestrator.runner", "JobRunner"),
    "SampleIndexBuilder": ("CatalogSync.orchestrator.sample_index", "SampleIndexBuilder"),
    "StorageMetadataStore": ("CatalogSync.storage.store", "StorageMetadataStore"),
    "SyncReport": ("CatalogSync.metadata.synchronizer", "SyncReport"),
    "load_config": ("CatalogSync.config.loader", "load_config"),
    "setup_logging": ("CatalogSync.logging_config", "setup_logging"),
}

__all__ = sorted([*_EXPORTS, "__version__"])

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from CatalogSync.catalog import CatalogStore, InMemoryCatalog
    from CatalogSync.config import CatalogSyncConfig, load_config
    from CatalogSync.errors import CatalogSyncError
    from CatalogSync.logging_config import setup_logging
    from CatalogSync.metadata import CatalogStorageSynchronizer, SyncReport
    from CatalogSync.orchestrator.models import BuildReport
    from CatalogSync.orchestrator.runner import CallableJobRunner, JobRunner
    from CatalogSync.orchestrator.sample_index import SampleIndexBuilder
    from CatalogSync.storage import InMemoryStorageMetadata, StorageMetadataStore


def __getattr__(name: str) -> Any:
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module 'CatalogSync' has no attribute '{name}'")
    module_name, attr_name = target
    value = getattr(import_module(module_name), attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
