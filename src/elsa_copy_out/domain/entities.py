"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from elsa_copy_out.domain.invocation_models import CopyOutInvocationMessage, CopyOutRunResult
from elsa_copy_out.domain.run_types import JobStatus, RunState


@dataclass(slots=True, frozen=True)
class JobObservation:
    """Status of a job as last reported by the execution fleet."""

    status: JobStatus
    exit_code: int | None = None
    reason: str | None = None


@dataclass(slots=True)
class DispatchedJob:
    """One submission of a batch to the execution fleet."""

    job_id: str
    batch_index: int
    attempt: int
    status: JobStatus = JobStatus.SUBMITTED
    exit_code: int | None = None
    reason: str | None = None


@dataclass(slots=True, frozen=True)
class BatchOutcome:
    """Terminal outcome of one batch after all dispatch attempts."""

    batch_index: int
    status: JobStatus
    attempts: int
    job_id: str | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED


@dataclass(slots=True)
class CopyOutRun:
    """Mutable record of one copy out invocation."""

    run_id: str
    request: CopyOutInvocationMessage
    created_at: datetime
    state: RunState = RunState.DEFAULTING
    total_items: int = 0
    total_batches: int = 0
    outcomes: dict[int, BatchOutcome] = field(default_factory=dict)
    result: CopyOutRunResult | None = None
    completed_at: datetime | None = None

    @property
    def status_path(self) -> str:
        """Relative tracking path for asynchronous responses."""

        return f"/copy-out/runs/{self.run_id}"

    @property
    def finished(self) -> bool:
        return self.state is RunState.COMPLETED


__all__ = ["BatchOutcome", "CopyOutRun", "DispatchedJob", "JobObservation"]
