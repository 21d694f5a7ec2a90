"""Ports for manifest storage, job execution, run persistence and events."""

from __future__ import annotations

from typing import Protocol

from elsa_copy_out.domain.copy_items import Batch
from elsa_copy_out.domain.entities import CopyOutRun, JobObservation


class ManifestObjectStore(Protocol):
    """Read access to the object storage holding manifests."""

    async def read_object(self, bucket: str, key: str) -> bytes:
        """Return the full object body.

        Raises `ManifestNotFoundError` when the object is missing or unreadable.
        """


class ExecutionFleet(Protocol):
    """Container execution pool running one copy job per batch."""

    async def submit_job(self, batch: Batch) -> str:
        """Start a job for `batch` and return its identifier.

        Raises `JobSubmissionError` when the fleet rejects the submission.
        """

    async def describe_job(self, job_id: str) -> JobObservation:
        """Return the current status of a submitted job."""

    async def stop_job(self, job_id: str, reason: str) -> None:
        """Ask the fleet to stop a job that exceeded its runtime limit."""


class CopyOutRunRepository(Protocol):
    """Persistence port for run records."""

    async def get(self, run_id: str) -> CopyOutRun | None:
        """Return a run by id."""

    async def list_runs(self) -> list[CopyOutRun]:
        """Return all known runs."""

    async def upsert(self, run: CopyOutRun) -> None:
        """Create or update a run."""


class CopyOutEventPublisher(Protocol):
    """Outbound publisher for run state changes."""

    async def publish_run(self, run: CopyOutRun) -> None:
        """Publish the current state (and result, once known) of a run."""


__all__ = [
    "CopyOutEventPublisher",
    "CopyOutRunRepository",
    "ExecutionFleet",
    "ManifestObjectStore",
]
