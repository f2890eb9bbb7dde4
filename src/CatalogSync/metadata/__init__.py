"""Catalog ↔ Storage Metadata reconciliation."""

from __future__ import annotations

from CatalogSync.metadata.names import NameResolver, NameTables, to_uri
from CatalogSync.metadata.status import next_cohort_status, next_file_status
from CatalogSync.metadata.synchronizer import (
    CatalogStorageSynchronizer,
    SyncReport,
    species_short_name,
)

__all__ = [
    "CatalogStorageSynchronizer",
    "NameResolver",
    "NameTables",
    "SyncReport",
    "next_cohort_status",
    "next_file_status",
    "species_short_name",
    "to_uri",
]
