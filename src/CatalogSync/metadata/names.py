"""Name resolution between Catalog names/URIs and Storage integer ids.

:class:`NameResolver` reads Storage Metadata once and returns an immutable
:class:`NameTables` snapshot. Nothing in the snapshot is mutated after
``build`` returns; the synchronizer derives every decision of a call from it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from CatalogSync.errors import InconsistentError
from CatalogSync.models import StorageFileEntry, StudyMetadata
from CatalogSync.storage.store import StorageMetadataStore

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def to_uri(path: str) -> str:
    """Convert a storage path into the URI form the Catalog indexes files by.

    Examples:
        >>> to_uri("/data/s1.vcf.gz")
        'file:///data/s1.vcf.gz'
        >>> to_uri("hdfs://nn/data/s1.vcf.gz")
        'hdfs://nn/data/s1.vcf.gz'
    """
    if _SCHEME_RE.match(path):
        return path
    if path.startswith("/"):
        return "file://" + path
    return Path(path).absolute().as_uri()


@dataclass(frozen=True)
class NameTables:
    """Read-only lookup tables for one study, built in a single pass.

    Attributes:
        study: Storage study the tables describe
        file_names: file id → file name
        file_ids: file name → file id (inverse of ``file_names``)
        file_paths: file id → storage path
        file_entries: file id → storage entry
        file_samples: file name → sample names (indexed files only)
        sample_names: sample id → sample name
        indexed_file_ids: indexed file ids, in storage order
        degraded_files: indexed file names whose sample list is missing
    """

    study: StudyMetadata
    file_names: Mapping[int, str]
    file_ids: Mapping[str, int]
    file_paths: Mapping[int, str]
    file_entries: Mapping[int, StorageFileEntry]
    file_samples: Mapping[str, FrozenSet[str]]
    sample_names: Mapping[int, str]
    indexed_file_ids: Tuple[int, ...]
    degraded_files: FrozenSet[str] = frozenset()

    def uri_for(self, file_id: int) -> Optional[str]:
        path = self.file_paths.get(file_id)
        return to_uri(path) if path is not None else None

    def entry_for_name(self, name: str) -> Optional[StorageFileEntry]:
        file_id = self.file_ids.get(name)
        return self.file_entries.get(file_id) if file_id is not None else None

    def sample_names_for(self, sample_ids: Iterable[Optional[int]], owner: str) -> FrozenSet[str]:
        """Translate storage sample ids to names, skipping unresolvable ones.

        Args:
            sample_ids: Storage sample ids (``None`` entries are tolerated)
            owner: Entity the ids belong to, used in log messages
        """
        return _translate_sample_ids(self.sample_names, sample_ids, owner, self.study.name)


def _translate_sample_ids(
    sample_names: Mapping[int, str],
    sample_ids: Iterable[Optional[int]],
    owner: str,
    study_name: str,
) -> FrozenSet[str]:
    names: Set[str] = set()
    for sample_id in sample_ids:
        if sample_id is None:
            logger.warning(f"'{owner}' has a null sample id in its samples")
            continue
        name = sample_names.get(sample_id)
        if name is None:
            err = InconsistentError(
                f"Sample id {sample_id} of '{owner}' does not resolve to a sample name",
                study=study_name,
            )
            logger.warning(str(err))
            continue
        names.add(name)
    return frozenset(names)


class NameResolver:
    """Builds :class:`NameTables` from Storage Metadata."""

    def __init__(self, storage: StorageMetadataStore) -> None:
        self.storage = storage

    def build(
        self, study: StudyMetadata, file_names: Optional[Sequence[str]] = None
    ) -> NameTables:
        """Snapshot the name tables of ``study``.

        Args:
            study: Storage study metadata
            file_names: Restrict the file tables to these names (None = all files)

        Returns:
            Immutable tables for this call
        """
        sample_names: Dict[int, str] = {
            sample.id: sample.name for sample in self.storage.iter_sample_metadata(study.id)
        }

        entries: List[StorageFileEntry] = []
        if file_names is None:
            entries.extend(self.storage.iter_file_metadata(study.id))
            indexed_ids: Sequence[int] = self.storage.get_indexed_file_ids(study.id)
        else:
            for name in dict.fromkeys(file_names):
                entry = self.storage.get_file_metadata(study.id, name)
                if entry is None:
                    logger.debug(f"File '{name}' not found in storage metadata")
                    continue
                entries.append(entry)
            indexed_ids = [entry.id for entry in entries if entry.indexed]

        file_names_by_id: Dict[int, str] = {}
        file_ids_by_name: Dict[str, int] = {}
        file_paths: Dict[int, str] = {}
        file_entries: Dict[int, StorageFileEntry] = {}
        file_samples: Dict[str, FrozenSet[str]] = {}
        degraded: Set[str] = set()
        for entry in entries:
            file_names_by_id[entry.id] = entry.name
            file_ids_by_name[entry.name] = entry.id
            file_paths[entry.id] = entry.path
            file_entries[entry.id] = entry
            if not entry.indexed:
                continue
            if entry.sample_ids is None:
                logger.warning(f"File '{entry.name}' with null samples")
                file_samples[entry.name] = frozenset()
                degraded.add(entry.name)
            else:
                file_samples[entry.name] = _translate_sample_ids(
                    sample_names, entry.sample_ids, entry.name, study.name
                )

        return NameTables(
            study=study,
            file_names=MappingProxyType(file_names_by_id),
            file_ids=MappingProxyType(file_ids_by_name),
            file_paths=MappingProxyType(file_paths),
            file_entries=MappingProxyType(file_entries),
            file_samples=MappingProxyType(file_samples),
            sample_names=MappingProxyType(sample_names),
            indexed_file_ids=tuple(i for i in indexed_ids if i in file_entries),
            degraded_files=frozenset(degraded),
        )


__all__ = ["NameResolver", "NameTables", "to_uri"]
