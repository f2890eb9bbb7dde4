# === NAVMAP v1 ===
# {
#   "module": "CatalogSync.orchestrator.models",
#   "purpose": "Job specs, handles, results and build accounting for sample-index builds",
#   "sections": [
#     {"id": "jobstate", "name": "JobState", "anchor": "#class-jobstate", "kind": "enum"},
#     {"id": "jobspec", "name": "JobSpec", "anchor": "#class-jobspec", "kind": "dataclass"},
#     {"id": "jobresult", "name": "JobResult", "anchor": "#class-jobresult", "kind": "dataclass"},
#     {"id": "buildreport", "name": "BuildReport", "anchor": "#class-buildreport", "kind": "dataclass"}
#   ]
# }
# === /NAVMAP ===

"""Job models for the batch sample-index build.

**State Machine (Jobs):**

    SUBMITTED
      ↓ (runner starts it)
    RUNNING
      ├→ DONE
      └→ ERROR

Only DONE marks the batch's samples READY in Storage Metadata.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class JobState(str, Enum):
    """Job lifecycle states as reported by a Job Runner."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class JobSpec:
    """What a build job should do.

    Attributes:
        study_id: Storage study id
        sample_ids: Storage sample ids the job indexes
        tool: Job Runner tool id
        description: Human readable summary of the batch
        params: Extra tool parameters (index version, overwrite flag)
    """

    study_id: int
    sample_ids: Tuple[int, ...]
    tool: str
    description: str = ""
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JobHandle:
    job_id: str
    spec: JobSpec


@dataclass(frozen=True)
class JobResult:
    """Terminal outcome of a job.

    Attributes:
        job_id: Runner-assigned identifier
        state: Terminal JobState
        reason: Failure description when ``state`` is ERROR
    """

    job_id: str
    state: JobState
    reason: Optional[str] = None

    def is_terminal(self) -> bool:
        return self.state in (JobState.DONE, JobState.ERROR)

    def is_success(self) -> bool:
        return self.state == JobState.DONE


@dataclass
class BuildReport:
    """Progress accounting of one ``SampleIndexBuilder.build`` call."""

    study: str
    version: int = 0
    target: int = 0
    skipped: int = 0
    batches_planned: int = 0
    batches_done: int = 0
    samples_indexed: int = 0
    job_ids: List[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return self.samples_indexed > 0

    def summary(self) -> str:
        return (
            f"study={self.study} version={self.version} target={self.target} "
            f"skipped={self.skipped} batches={self.batches_done}/{self.batches_planned} "
            f"indexed={self.samples_indexed}"
        )

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["modified"] = self.modified
        return data


__all__ = ["BuildReport", "JobHandle", "JobResult", "JobSpec", "JobState"]
