"""
Catalog API for CatalogSync.

The Catalog is the authoritative, user-facing registry of files, cohorts,
samples and jobs. CatalogSync only ever follows Storage Metadata truth when
writing to it: file index status and sample sets, cohort status and
membership.
"""

from __future__ import annotations

from CatalogSync.catalog.memory import CatalogChange, InMemoryCatalog
from CatalogSync.catalog.store import CatalogStore, FileQuery, JobQuery

__all__ = [
    "CatalogChange",
    "CatalogStore",
    "FileQuery",
    "InMemoryCatalog",
    "JobQuery",
]
