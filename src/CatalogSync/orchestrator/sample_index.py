# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.orchestrator.sample_index",
#   "purpose": "Resumable batch orchestration of sample-index builds",
#   "sections": [
#     {"id": "plan-batches", "name": "plan_batches", "anchor": "#function-plan-batches", "kind": "function"},
#     {"id": "sampleindexbuilder", "name": "SampleIndexBuilder", "anchor": "#class-sampleindexbuilder", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Batch sample-index build.

``SampleIndexBuilder.build`` resolves the target samples, drops the ones whose
sample index is already READY at the study's latest index version, splits the
rest into evenly sized batches and runs one job per batch, sequentially.

Progress is recorded in Storage Metadata after every successful batch, so a
build that fails half way can simply be re-run: finished batches are skipped
and no sample is indexed twice.

**Usage:**

    builder = SampleIndexBuilder(storage, runner, config)
    report = builder.build("study1", "ALL")
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, TypeVar, Union

from CatalogSync.config.models import CatalogSyncConfig
from CatalogSync.errors import (
    CatalogSyncError,
    JobFailedError,
    NotFoundError,
    create_backend_retry_policy,
    log_sync_failure,
)
from CatalogSync.errors.retry_policies import call_with_retry
from CatalogSync.models import ALL_SAMPLES, SampleMetadata, StudyMetadata, TaskStatus
from CatalogSync.orchestrator.models import BuildReport, JobSpec
from CatalogSync.orchestrator.runner import JobRunner
from CatalogSync.storage.store import StorageMetadataStore

__all__ = ["SampleIndexBuilder", "plan_batches"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Below this many samples the build logs every sample name.
_LIST_SAMPLES_BELOW = 20


def plan_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split ``items`` into the fewest batches of at most ``batch_size``.

    Batch sizes differ by at most one; larger batches come first. Order is
    preserved.

    Args:
        items: Items to split
        batch_size: Maximum items per batch (>= 1)

    Returns:
        List of batches; empty when ``items`` is empty

    Raises:
        ValueError: If ``batch_size`` is less than 1

    Examples:
        >>> [len(b) for b in plan_batches(list(range(25)), 10)]
        [9, 8, 8]
        >>> plan_batches([1, 2, 3], 5)
        [[1, 2, 3]]
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    if not items:
        return []
    count = math.ceil(len(items) / batch_size)
    base, extra = divmod(len(items), count)
    batches: List[List[T]] = []
    start = 0
    for index in range(count):
        size = base + 1 if index < extra else base
        batches.append(list(items[start : start + size]))
        start += size
    return batches


class SampleIndexBuilder:
    """Runs sample-index build jobs and records their progress.

    Attributes:
        storage: Storage Metadata backend holding per-sample index state
        runner: Job Runner executing one job per batch
        config: CatalogSync configuration
    """

    def __init__(
        self,
        storage: StorageMetadataStore,
        runner: JobRunner,
        config: Optional[CatalogSyncConfig] = None,
    ) -> None:
        self.storage = storage
        self.runner = runner
        self.config = config or CatalogSyncConfig()
        retry = self.config.retry
        self._retry = create_backend_retry_policy(
            max_attempts=retry.max_attempts,
            base_delay_ms=retry.base_delay_ms,
            max_delay_ms=retry.max_delay_ms,
            log=logger,
        )

    def build(
        self,
        study: str,
        samples: Union[str, Sequence[str]],
        overwrite: bool = False,
        batch_size: Optional[int] = None,
    ) -> BuildReport:
        """Build the sample index of ``samples`` in ``study``.

        Args:
            study: Study name
            samples: ``"ALL"`` for every indexed sample, or sample names
            overwrite: Rebuild samples that are already up to date
            batch_size: Maximum samples per job (defaults to
                ``sample_index.max_samples_per_job``)

        Returns:
            BuildReport of the jobs run

        Raises:
            NotFoundError: If the study or a named sample does not exist
            JobFailedError: If a job fails; earlier batches stay recorded
            ValueError: If ``batch_size`` is less than 1
        """
        size = self.config.sample_index.max_samples_per_job if batch_size is None else batch_size
        if size < 1:
            raise ValueError(f"batch_size must be >= 1, got {size}")

        report = BuildReport(study=study)
        try:
            study_meta = call_with_retry(self._retry, lambda: self.storage.get_study(study))
            if study_meta is None:
                raise NotFoundError(
                    f"Study {study} not found in storage metadata", entity="study", study=study
                )
            report.version = study_meta.sample_index_version
            targets = self._resolve_targets(study_meta, samples)
            report.target = len(targets)
            pending = self._pending(study_meta, targets, report.version, overwrite)
            report.skipped = len(targets) - len(pending)
            if report.skipped:
                logger.info(
                    f"Skip sample index build for {report.skipped} samples. "
                    f"Already built with version {report.version}"
                )
            if not pending:
                logger.info("Nothing to do!")
                return report

            if len(pending) < _LIST_SAMPLES_BELOW:
                names = [sample.name for sample in pending]
                logger.info(f"Run sample index build on samples {names}")
            else:
                logger.info(f"Run sample index build on {len(pending)} samples")

            batches = plan_batches(pending, size)
            report.batches_planned = len(batches)
            for number, batch in enumerate(batches, start=1):
                self._run_batch(study_meta, batch, number, len(batches), overwrite, report)
        except CatalogSyncError as exc:
            exc.report = report
            exc.study = exc.study or study
            log_sync_failure(exc, operation="build_sample_index", logger=logger)
            raise

        logger.info(f"Sample index build finished: {report.summary()}")
        return report

    def _resolve_targets(
        self, study: StudyMetadata, samples: Union[str, Sequence[str]]
    ) -> List[int]:
        names = [samples] if isinstance(samples, str) else list(samples)
        if names == [ALL_SAMPLES]:
            return list(
                call_with_retry(self._retry, lambda: self.storage.get_indexed_sample_ids(study.id))
            )

        sample_ids: List[int] = []
        for name in dict.fromkeys(names):
            sample_id = self.storage.get_sample_id(study.id, name)
            if sample_id is None:
                raise NotFoundError(
                    f"Sample '{name}' not found in study {study.name}",
                    entity="sample",
                    study=study.name,
                )
            sample_ids.append(sample_id)
        return list(dict.fromkeys(sample_ids))

    def _pending(
        self, study: StudyMetadata, sample_ids: List[int], version: int, overwrite: bool
    ) -> List[SampleMetadata]:
        pending: List[SampleMetadata] = []
        for sample_id in sample_ids:
            sample = self.storage.get_sample_metadata(study.id, sample_id)
            if sample is None:
                raise NotFoundError(
                    f"Sample {sample_id} not found in study {study.name}",
                    entity="sample",
                    study=study.name,
                )
            if overwrite or not sample.sample_index.is_up_to_date(version):
                pending.append(sample)
        return pending

    def _run_batch(
        self,
        study: StudyMetadata,
        batch: List[SampleMetadata],
        number: int,
        total: int,
        overwrite: bool,
        report: BuildReport,
    ) -> None:
        spec = JobSpec(
            study_id=study.id,
            sample_ids=tuple(sample.id for sample in batch),
            tool=self.config.sample_index.tool_id,
            description=f"Sample index build {number}/{total} ({len(batch)} samples)",
            params={"version": report.version, "overwrite": overwrite},
        )
        try:
            handle = self.runner.submit(spec)
        except Exception as exc:
            raise JobFailedError(
                f"Unable to submit sample index build job: {spec.description}",
                reason=str(exc),
                study=study.name,
            ) from exc
        report.job_ids.append(handle.job_id)
        logger.info(f"Submitted job {handle.job_id}: {spec.description}")

        try:
            result = self.runner.await_completion(handle)
        except Exception as exc:
            raise JobFailedError(
                f"Lost track of sample index build job {handle.job_id}",
                job_id=handle.job_id,
                reason=str(exc),
                study=study.name,
            ) from exc
        if not result.is_success():
            raise JobFailedError(
                f"Sample index build job {handle.job_id} failed",
                job_id=handle.job_id,
                reason=result.reason,
                study=study.name,
            )

        for sample in batch:
            self._mark_ready(study, sample.id, report.version)
        report.batches_done += 1
        report.samples_indexed += len(batch)

    def _mark_ready(self, study: StudyMetadata, sample_id: int, version: int) -> None:
        def _mutate(current: SampleMetadata) -> SampleMetadata:
            return current.with_sample_index(TaskStatus.READY, version)

        call_with_retry(
            self._retry, lambda: self.storage.update_sample_metadata(study.id, sample_id, _mutate)
        )
