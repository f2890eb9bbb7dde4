"""Job Runner contract and a synchronous in-process implementation.

A Job Runner executes one sample-index build job: ``submit`` hands the job
over, ``await_completion`` blocks until it reaches a terminal state. No
timeout is imposed by callers.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict

from CatalogSync.errors import NotFoundError
from CatalogSync.orchestrator.models import JobHandle, JobResult, JobSpec, JobState

logger = logging.getLogger(__name__)

JobCallable = Callable[[JobSpec], None]


class JobRunner:
    """Protocol-like base class for Job Runners."""

    def submit(self, spec: JobSpec) -> JobHandle:  # pragma: no cover - interface
        raise NotImplementedError

    def await_completion(self, handle: JobHandle) -> JobResult:  # pragma: no cover - interface
        raise NotImplementedError


class CallableJobRunner(JobRunner):
    """Runs each job through a Python callable.

    The callable runs when the job is awaited. Returning normally yields a
    DONE result; any exception yields an ERROR result carrying the message.

    Example:
        >>> runner = CallableJobRunner(lambda spec: None)
        >>> handle = runner.submit(JobSpec(study_id=1, sample_ids=(1,), tool="t"))
        >>> runner.await_completion(handle).state
        <JobState.DONE: 'done'>
    """

    def __init__(self, fn: JobCallable, *, prefix: str = "job") -> None:
        self.fn = fn
        self.prefix = prefix
        self.submitted: Dict[str, JobSpec] = {}
        self._results: Dict[str, JobResult] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def submit(self, spec: JobSpec) -> JobHandle:
        with self._lock:
            job_id = f"{self.prefix}-{next(self._counter)}"
            self.submitted[job_id] = spec
        logger.debug(f"Submitted {job_id}: {spec.description}")
        return JobHandle(job_id=job_id, spec=spec)

    def await_completion(self, handle: JobHandle) -> JobResult:
        with self._lock:
            if handle.job_id not in self.submitted:
                raise NotFoundError(f"Unknown job {handle.job_id}", entity="job")
            cached = self._results.get(handle.job_id)
        if cached is not None:
            return cached

        try:
            self.fn(handle.spec)
        except Exception as exc:  # noqa: BLE001 - job failures become results
            logger.warning(f"Job {handle.job_id} failed: {exc}")
            result = JobResult(job_id=handle.job_id, state=JobState.ERROR, reason=str(exc))
        else:
            result = JobResult(job_id=handle.job_id, state=JobState.DONE)

        with self._lock:
            self._results[handle.job_id] = result
        return result


__all__ = ["CallableJobRunner", "JobRunner"]
