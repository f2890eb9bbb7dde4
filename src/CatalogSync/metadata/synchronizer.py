# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.metadata.synchronizer",
#   "purpose": "Reconcile Catalog file and cohort state with Storage Metadata truth",
#   "sections": [
#     {"id": "syncreport", "name": "SyncReport", "anchor": "#class-syncreport", "kind": "dataclass"},
#     {"id": "studysnapshot", "name": "StudySnapshot", "anchor": "#class-studysnapshot", "kind": "dataclass"},
#     {"id": "catalogstoragesynchronizer", "name": "CatalogStorageSynchronizer", "anchor": "#class-catalogstoragesynchronizer", "kind": "class"},
#     {"id": "species-short-name", "name": "species_short_name", "anchor": "#function-species-short-name", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Catalog ↔ Storage Metadata synchronization.

The Catalog follows Storage Metadata. One ``synchronize`` call takes a
snapshot of the study's storage metadata, then runs four sweeps against the
Catalog, in order:

1. **Indexed files**: Catalog files whose URI matches an indexed storage file
   become READY; their sample sets are aligned with storage.
2. **Stale READY files**: READY Catalog files storage no longer indexes are
   reset to TRANSFORMED or NONE.
3. **Running loads**: files whose last load errored are reset unless a job
   still runs for them; files covered by a running LOAD task are marked
   LOADING/INDEXING.
4. **Cohorts**: the default cohort's membership is overwritten with storage's
   and every cohort with storage statistics gets its status recomputed.

Each Catalog write is independent: a failed write is logged and counted in the
report, and the sweep moves on. Only failures that prevent reading the
metadata at all abort the call; the raised error carries the partial
:class:`SyncReport`.

Indexed-file URIs are looked up in bounded chunks. A backend error inside a
chunk that already matched files degrades to "remaining URIs not found";
only a chunk with zero progress aborts the call. Callers re-invoke to pick up
stragglers.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from CatalogSync.catalog.store import CatalogStore, FileQuery, JobQuery
from CatalogSync.config.models import CatalogSyncConfig
from CatalogSync.errors import (
    BackendUnavailableError,
    CatalogSyncError,
    InconsistentError,
    NotFoundError,
    create_backend_retry_policy,
    log_sync_failure,
)
from CatalogSync.errors.retry_policies import call_with_retry
from CatalogSync.logging_config import generate_correlation_id
from CatalogSync.metadata.names import NameResolver, NameTables
from CatalogSync.metadata.status import next_cohort_status, next_file_status
from CatalogSync.models import (
    CohortStatsState,
    CohortStatus,
    FileIndexRecord,
    IndexStatus,
    JobStatus,
    ProjectMetadata,
    StorageCohortEntry,
    StudyMetadata,
    TaskRecord,
    TaskStatus,
    TaskType,
    UpdateAction,
    member_set,
)
from CatalogSync.storage.store import StorageMetadataStore

logger = logging.getLogger(__name__)

FileRef = Union[FileIndexRecord, str]


@dataclass
class SyncReport:
    """Progress accounting of one synchronization call.

    Counters only grow during the call. ``modified`` is true as soon as any
    Catalog write succeeded.
    """

    study: str
    correlation_id: str = ""
    files_ready: int = 0
    files_reset: int = 0
    files_active: int = 0
    file_samples_updated: int = 0
    files_not_found: int = 0
    cohorts_updated: int = 0
    cohort_members_updated: int = 0
    failed_updates: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return (
            self.files_ready
            + self.files_reset
            + self.files_active
            + self.file_samples_updated
            + self.cohorts_updated
            + self.cohort_members_updated
        ) > 0

    def summary(self) -> str:
        return (
            f"study={self.study} modified={self.modified} ready={self.files_ready} "
            f"reset={self.files_reset} active={self.files_active} "
            f"samples={self.file_samples_updated} not_found={self.files_not_found} "
            f"cohorts={self.cohorts_updated} cohort_members={self.cohort_members_updated} "
            f"failed={self.failed_updates}"
        )

    def as_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["modified"] = self.modified
        return data


@dataclass(frozen=True)
class StudySnapshot:
    """Storage Metadata read once at the start of a call."""

    study: StudyMetadata
    tables: NameTables
    running_tasks: Tuple[TaskRecord, ...] = ()
    default_cohort: Optional[StorageCohortEntry] = None
    calculated_cohorts: Tuple[StorageCohortEntry, ...] = ()
    invalid_cohorts: Tuple[StorageCohortEntry, ...] = ()

    @property
    def loading_file_ids(self) -> FrozenSet[int]:
        """Storage ids of files covered by a running LOAD task."""
        return frozenset(
            file_id
            for task in self.running_tasks
            if task.type == TaskType.LOAD and task.status == TaskStatus.RUNNING
            for file_id in task.file_ids
        )


def species_short_name(scientific_name: str) -> str:
    """Short species name used by storage annotation, e.g. ``hsapiens``.

    Examples:
        >>> species_short_name("Homo sapiens")
        'hsapiens'
        >>> species_short_name("Mus musculus")
        'mmusculus'
    """
    words = scientific_name.split()
    if len(words) >= 2:
        return (words[0][0] + words[-1]).lower()
    return scientific_name.strip().lower()


class CatalogStorageSynchronizer:
    """Updates Catalog file and cohort status from Storage Metadata.

    Attributes:
        catalog: Catalog backend (written to)
        storage: Storage Metadata backend (read, plus project metadata)
        config: CatalogSync configuration
    """

    def __init__(
        self,
        catalog: CatalogStore,
        storage: StorageMetadataStore,
        config: Optional[CatalogSyncConfig] = None,
    ) -> None:
        self.catalog = catalog
        self.storage = storage
        self.config = config or CatalogSyncConfig()
        self.resolver = NameResolver(storage)
        retry = self.config.retry
        self._retry = create_backend_retry_policy(
            max_attempts=retry.max_attempts,
            base_delay_ms=retry.base_delay_ms,
            max_delay_ms=retry.max_delay_ms,
            log=logger,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def synchronize(
        self,
        study: str,
        files: Optional[Sequence[FileRef]] = None,
        sync_cohorts: bool = True,
    ) -> SyncReport:
        """Make the Catalog agree with Storage Metadata for one study.

        Args:
            study: Study name
            files: Optional Catalog files (records or ids) to restrict the file
                sweeps to; empty means every file
            sync_cohorts: Also run the cohort sweep

        Returns:
            SyncReport; ``report.modified`` tells whether the Catalog changed

        Raises:
            NotFoundError: If an explicitly requested Catalog file is missing
            BackendUnavailableError: If metadata cannot be read at all
        """
        return self._run(study, files, sync_files=True, sync_cohorts=sync_cohorts)

    def synchronize_files(
        self, study: str, files: Optional[Sequence[FileRef]] = None
    ) -> SyncReport:
        """Run only the file sweeps."""
        return self._run(study, files, sync_files=True, sync_cohorts=False)

    def synchronize_cohorts(self, study: str) -> SyncReport:
        """Run only the cohort sweep."""
        return self._run(study, None, sync_files=False, sync_cohorts=True)

    def synchronize_removed_study(self, study: str) -> SyncReport:
        """Reset Catalog state after a study was removed from storage.

        The default cohort is emptied and set to NONE, and every READY file is
        set to NONE. Nothing is compared: storage now holds nothing.
        """
        report = SyncReport(study=study, correlation_id=generate_correlation_id())
        cohort_id = self.config.sync.default_cohort
        reason = "Study has been removed from storage"
        try:
            self._apply(
                report,
                "cohort_members_updated",
                f"empty cohort '{cohort_id}'",
                lambda: self.catalog.update_cohort_samples(study, cohort_id, [], UpdateAction.SET),
            )
            self._apply(
                report,
                "cohorts_updated",
                f"reset cohort '{cohort_id}'",
                lambda: self.catalog.update_cohort_status(study, cohort_id, CohortStatus.NONE, reason),
            )
            for record in self.catalog.iter_files(study, self._filtered_query([IndexStatus.READY])):
                self._set_file_status(study, record, IndexStatus.NONE, reason, report, "files_reset")
        except CatalogSyncError as exc:
            self._fail(exc, report, "synchronize_removed_study")
        logger.info(f"Removed study {study} synchronized: {report.summary()}")
        return report

    def update_project_metadata(self, project_id: str) -> ProjectMetadata:
        """Copy the Catalog project's organism and release into Storage Metadata."""
        project = self.catalog.get_project(project_id)
        species = species_short_name(project.scientific_name)

        def _mutate(_current: Optional[ProjectMetadata]) -> ProjectMetadata:
            return ProjectMetadata(
                species=species, assembly=project.assembly, release=project.current_release
            )

        updated = call_with_retry(self._retry, lambda: self.storage.update_project_metadata(_mutate))
        logger.info(
            f"Project metadata updated from catalog project '{project_id}': "
            f"species={updated.species} assembly={updated.assembly} release={updated.release}"
        )
        return updated

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def _run(
        self,
        study: str,
        files: Optional[Sequence[FileRef]],
        *,
        sync_files: bool,
        sync_cohorts: bool,
    ) -> SyncReport:
        report = SyncReport(study=study, correlation_id=generate_correlation_id())
        try:
            study_meta = call_with_retry(self._retry, lambda: self.storage.get_study(study))
            if study_meta is None:
                logger.info(f"Study {study} not found in storage metadata. Nothing to synchronize")
                return report
            logger.info(
                f"Synchronizing study {study_meta.name}",
                extra={"correlation_id": report.correlation_id},
            )

            subset = self._resolve_subset(study, files)
            snapshot = self._take_snapshot(
                study_meta,
                [f.name for f in subset] if subset is not None else None,
                with_cohorts=sync_cohorts,
            )
            if sync_files:
                subset_ids = [f.id for f in subset] if subset is not None else None
                self._sync_indexed_files(study, snapshot, subset_ids, report)
                self._sync_stale_ready_files(study, snapshot, subset_ids, report)
                self._sync_running_files(study, snapshot, subset_ids, report)
            if sync_cohorts:
                self._sync_cohorts(study, snapshot, report)
        except CatalogSyncError as exc:
            self._fail(exc, report, "synchronize")

        logger.info(
            f"Synchronized study {study}: {report.summary()}",
            extra={"correlation_id": report.correlation_id},
        )
        return report

    def _resolve_subset(
        self, study: str, files: Optional[Sequence[FileRef]]
    ) -> Optional[List[FileIndexRecord]]:
        if not files:
            return None
        resolved: List[FileIndexRecord] = []
        for ref in files:
            if isinstance(ref, FileIndexRecord):
                resolved.append(ref)
            else:
                resolved.append(self.catalog.get_file(study, ref))
        return resolved

    def _take_snapshot(
        self,
        study: StudyMetadata,
        file_names: Optional[List[str]],
        *,
        with_cohorts: bool,
    ) -> StudySnapshot:
        tables = call_with_retry(self._retry, lambda: self.resolver.build(study, file_names))
        running = call_with_retry(self._retry, lambda: self.storage.get_running_tasks(study.id))
        if not with_cohorts:
            return StudySnapshot(study=study, tables=tables, running_tasks=tuple(running))

        default_name = self.config.sync.default_cohort
        default = call_with_retry(
            self._retry, lambda: self.storage.get_cohort_metadata(study.id, default_name)
        )
        calculated = call_with_retry(self._retry, lambda: self.storage.get_calculated_cohorts(study.id))
        invalid = call_with_retry(self._retry, lambda: self.storage.get_invalid_cohorts(study.id))
        return StudySnapshot(
            study=study,
            tables=tables,
            running_tasks=tuple(running),
            default_cohort=default,
            calculated_cohorts=tuple(calculated),
            invalid_cohorts=tuple(invalid),
        )

    def _fail(self, exc: CatalogSyncError, report: SyncReport, operation: str) -> None:
        exc.report = report
        exc.study = exc.study or report.study
        log_sync_failure(exc, operation=operation, logger=logger)
        raise exc

    # ------------------------------------------------------------------
    # Step 1: indexed files
    # ------------------------------------------------------------------

    def _sync_indexed_files(
        self,
        study: str,
        snapshot: StudySnapshot,
        subset_ids: Optional[List[str]],
        report: SyncReport,
    ) -> None:
        tables = snapshot.tables
        uris: List[str] = []
        for file_id in tables.indexed_file_ids:
            uri = tables.uri_for(file_id)
            if uri is not None:
                uris.append(uri)
        uris = list(dict.fromkeys(uris))
        if not uris:
            return

        chunk_size = self.config.sync.uri_chunk_size
        found = 0
        logger.info(f"Synchronize {len(uris)} files")
        for start in range(0, len(uris), chunk_size):
            chunk = uris[start : start + chunk_size]
            pending = set(chunk)
            logger.info(f"Synchronize {len(chunk)}/{len(uris) - start} files")
            processed = 0
            try:
                query = FileQuery.build(uris=chunk, ids=subset_ids)
                for record in self.catalog.iter_files(study, query, batch_size=chunk_size):
                    self._sync_indexed_file(study, snapshot, record, report)
                    pending.discard(record.uri)
                    processed += 1
            except BackendUnavailableError as exc:
                if processed == 0:
                    raise
                logger.warning(f"Catch exception {exc}. Continue")
            found += len(chunk) - len(pending)
            if pending:
                # Unmatched URIs are dropped for this call, never retried.
                logger.warning(f"Unable to find {len(pending)} files in catalog: {sorted(pending)}")

        if found != len(uris):
            missing = len(uris) - found
            report.files_not_found += missing
            message = (
                f"{missing} out of {len(uris)} files were not found in catalog given their file uri"
            )
            report.warnings.append(message)
            logger.warning(message)
            if self.config.sync.strict:
                raise InconsistentError(message, study=study)

    def _sync_indexed_file(
        self, study: str, snapshot: StudySnapshot, record: FileIndexRecord, report: SyncReport
    ) -> None:
        tables = snapshot.tables
        if record.index_status != IndexStatus.READY:
            entry = tables.entry_for_name(record.name)
            task_status = entry.index_status if entry is not None else TaskStatus.READY
            if entry is not None and entry.id in snapshot.loading_file_ids:
                # Indexed, but a running load is adding to it again.
                task_status = TaskStatus.RUNNING
            new_status = next_file_status(
                record.index_status,
                True,
                task_status,
                record.has_transformed_file(),
                False,
            )
            if new_status is not None:
                counter = "files_ready" if new_status == IndexStatus.READY else "files_active"
                self._set_file_status(
                    study, record, new_status, "Indexed, regarding Storage Metadata", report, counter
                )

        storage_samples = tables.file_samples.get(record.name)
        if storage_samples is None or record.name in tables.degraded_files:
            return
        if storage_samples != member_set(record.sample_ids):
            logger.warning(
                f"File samples does not match between catalog and storage for file "
                f"'{record.uri}'. Update catalog file samples"
            )
            self._apply(
                report,
                "file_samples_updated",
                f"update samples of file '{record.id}'",
                lambda: self.catalog.update_file_samples(study, record.id, sorted(storage_samples)),
            )

    # ------------------------------------------------------------------
    # Step 2: READY files storage no longer indexes
    # ------------------------------------------------------------------

    def _sync_stale_ready_files(
        self,
        study: str,
        snapshot: StudySnapshot,
        subset_ids: Optional[List[str]],
        report: SyncReport,
    ) -> None:
        tables = snapshot.tables
        indexed_ids = set(tables.indexed_file_ids)
        indexed_uris = {tables.uri_for(file_id) for file_id in indexed_ids}
        query = self._filtered_query([IndexStatus.READY], subset_ids)
        for record in self.catalog.iter_files(study, query):
            file_id = tables.file_ids.get(record.name)
            if (file_id is not None and file_id in indexed_ids) or record.uri in indexed_uris:
                continue
            entry = tables.file_entries.get(file_id) if file_id is not None else None
            new_status = next_file_status(
                record.index_status,
                False,
                entry.index_status if entry is not None else TaskStatus.NONE,
                record.has_transformed_file(),
                False,
            )
            if new_status is None:
                continue
            logger.info(f'File "{record.name}" change status from {record.index_status.value} to {new_status.value}')
            counter = "files_active" if new_status in (IndexStatus.LOADING, IndexStatus.INDEXING) else "files_reset"
            self._set_file_status(
                study, record, new_status, "Not indexed, regarding Storage Metadata", report, counter
            )

    # ------------------------------------------------------------------
    # Step 3: running or failed loads
    # ------------------------------------------------------------------

    def _sync_running_files(
        self,
        study: str,
        snapshot: StudySnapshot,
        subset_ids: Optional[List[str]],
        report: SyncReport,
    ) -> None:
        tables = snapshot.tables
        query = self._filtered_query([IndexStatus.LOADING, IndexStatus.INDEXING], subset_ids)
        for record in self.catalog.iter_files(study, query):
            entry = tables.entry_for_name(record.name)
            if entry is None or entry.index_status != TaskStatus.ERROR:
                continue
            has_running_job = self._has_running_job(study, record, report)
            if has_running_job is None:
                continue
            new_status = next_file_status(
                record.index_status,
                entry.indexed,
                TaskStatus.ERROR,
                record.has_transformed_file(),
                has_running_job,
            )
            if new_status is None:
                # A job is still running; it might be transforming or just started.
                continue
            logger.info(f'File "{record.name}" change status from {record.index_status.value} to {new_status.value}')
            self._set_file_status(
                study,
                record,
                new_status,
                f"Error loading. Reset status to {new_status.value}",
                report,
                "files_reset",
            )

        loading_uris = set()
        for file_id in snapshot.loading_file_ids:
            uri = tables.uri_for(file_id)
            if uri is not None:
                loading_uris.add(uri)
        if not loading_uris:
            return

        query = FileQuery.build(uris=sorted(loading_uris), ids=subset_ids)
        for record in self.catalog.iter_files(study, query):
            new_status = next_file_status(
                record.index_status, False, TaskStatus.RUNNING, record.has_transformed_file(), True
            )
            if new_status is not None:
                self._set_file_status(
                    study,
                    record,
                    new_status,
                    "File is being loaded regarding Storage",
                    report,
                    "files_active",
                )

    def _has_running_job(
        self, study: str, record: FileIndexRecord, report: SyncReport
    ) -> Optional[bool]:
        query = JobQuery(
            input_file_id=record.id,
            tool_id=self.config.sync.index_tool_id,
            statuses=frozenset({JobStatus.RUNNING}),
        )
        try:
            return bool(self.catalog.search_jobs(study, query))
        except CatalogSyncError as exc:
            report.failed_updates += 1
            logger.warning(f"Unable to search running jobs for file '{record.id}': {exc}")
            return None

    # ------------------------------------------------------------------
    # Step 4: cohorts
    # ------------------------------------------------------------------

    def _sync_cohorts(self, study: str, snapshot: StudySnapshot, report: SyncReport) -> None:
        tables = snapshot.tables
        default_name = self.config.sync.default_cohort
        storage_default = snapshot.default_cohort
        if storage_default is None:
            logger.info(f"Cohort {default_name} not found in storage metadata")
        else:
            self._sync_default_cohort(study, tables, storage_default, report)

        stats: Dict[str, Tuple[StorageCohortEntry, CohortStatsState]] = {}
        for entry in snapshot.calculated_cohorts:
            stats[entry.name] = (entry, CohortStatsState.READY)
        for entry in snapshot.invalid_cohorts:
            stats[entry.name] = (entry, CohortStatsState.INVALID)
        stats.pop(default_name, None)
        if not stats:
            return

        for cohort in self.catalog.iter_cohorts(study, sorted(stats)):
            entry, state = stats[cohort.id]
            storage_members = tables.sample_names_for(entry.sample_ids, f"cohort {cohort.id}")
            new_status = next_cohort_status(
                cohort.status, member_set(cohort.sample_ids), storage_members, state
            )
            if new_status is None:
                logger.debug(f"Skip {cohort.id}")
                continue
            logger.debug(f'Cohort "{cohort.id}" change status to {new_status.value}')
            self._set_cohort_status(study, cohort.id, new_status, "Update status from Storage", report)

    def _sync_default_cohort(
        self,
        study: str,
        tables: NameTables,
        storage_default: StorageCohortEntry,
        report: SyncReport,
    ) -> None:
        name = storage_default.name
        try:
            cohort = self.catalog.get_cohort(study, name)
        except NotFoundError:
            logger.warning(f"Cohort {name} not found in catalog")
            return

        storage_members = tables.sample_names_for(storage_default.sample_ids, f"cohort {name}")
        catalog_members = member_set(cohort.sample_ids)
        if cohort.status == CohortStatus.INVALID and storage_members != catalog_members:
            logger.info(f"Cohort {name} is INVALID and its members differ from storage. Skip")
            return
        new_status = next_cohort_status(
            cohort.status, catalog_members, storage_members, storage_default.stats_state
        )
        if new_status is not None:
            self._set_cohort_status(study, name, new_status, "Update status from Storage", report)
        if storage_members != catalog_members:
            logger.info(f"Update cohort {name}")
            self._apply(
                report,
                "cohort_members_updated",
                f"set members of cohort '{name}'",
                lambda: self.catalog.update_cohort_samples(
                    study, name, sorted(storage_members), UpdateAction.SET
                ),
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _filtered_query(
        self, statuses: Sequence[IndexStatus], subset_ids: Optional[Sequence[str]] = None
    ) -> FileQuery:
        file_filter = self.config.sync.file_filter
        return FileQuery.build(
            index_statuses=statuses,
            bioformat=file_filter.bioformat,
            formats=file_filter.formats,
            ids=subset_ids,
        )

    def _set_file_status(
        self,
        study: str,
        record: FileIndexRecord,
        status: IndexStatus,
        message: str,
        report: SyncReport,
        counter: str,
    ) -> None:
        logger.debug(f'File "{record.name}" change status from {record.index_status.value} to {status.value}')
        self._apply(
            report,
            counter,
            f"set status {status.value} on file '{record.id}'",
            lambda: self.catalog.update_file_index_status(study, record.id, status, message),
        )

    def _set_cohort_status(
        self, study: str, cohort_id: str, status: CohortStatus, message: str, report: SyncReport
    ) -> None:
        self._apply(
            report,
            "cohorts_updated",
            f"set status {status.value} on cohort '{cohort_id}'",
            lambda: self.catalog.update_cohort_status(study, cohort_id, status, message),
        )

    @staticmethod
    def _apply(report: SyncReport, counter: str, description: str, write: Callable[[], object]) -> bool:
        """Apply one Catalog write; failures are logged and counted, never raised."""
        try:
            write()
        except CatalogSyncError as exc:
            report.failed_updates += 1
            logger.warning(f"Failed to {description}: {exc}")
            return False
        setattr(report, counter, getattr(report, counter) + 1)
        return True


__all__ = [
    "CatalogStorageSynchronizer",
    "StudySnapshot",
    "SyncReport",
    "species_short_name",
]
