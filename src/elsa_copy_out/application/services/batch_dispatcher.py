"""Bounded-concurrency dispatch of batches to the execution fleet."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from elsa_copy_out.application.runtime import QueueExecutionControl, SlotBasedJobQueue
from elsa_copy_out.domain.copy_items import Batch
from elsa_copy_out.domain.entities import BatchOutcome, DispatchedJob
from elsa_copy_out.domain.errors import JobSubmissionError
from elsa_copy_out.domain.ports import ExecutionFleet
from elsa_copy_out.domain.run_types import (
    TERMINAL_JOB_STATUSES,
    JobStatus,
    RunStatus,
    evaluate_run_status,
    failed_batch_percentage,
)

_DEFAULT_JOB_POLL_INTERVAL_SECONDS = 10.0
_DEFAULT_JOB_TIMEOUT_SECONDS = 6 * 60 * 60.0
_DEFAULT_DISPATCH_MAX_RETRIES = 2

OutcomeCallback = Callable[[BatchOutcome], Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DispatchSummary:
    """Folded outcome of dispatching every batch of a run."""

    outcomes: dict[int, BatchOutcome]
    status: RunStatus
    tolerated_failure_percentage: float
    peak_active_jobs: int

    @property
    def total_batches(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded_batches(self) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome.succeeded)

    @property
    def failed_batches(self) -> int:
        return self.total_batches - self.succeeded_batches

    @property
    def failed_batch_percentage(self) -> float:
        return failed_batch_percentage(self.total_batches, self.failed_batches)


class BatchDispatcher:
    """Run one fleet job per batch with bounded concurrency.

    - Batches are submitted in order, each once it holds a concurrency slot.
    - A rejected submission or a FAILED job is resubmitted up to
      `max_retries` times; TIMED_OUT jobs are not.
    - A failing batch never cancels its siblings.
    """

    def __init__(
        self,
        fleet: ExecutionFleet,
        poll_interval_seconds: float = _DEFAULT_JOB_POLL_INTERVAL_SECONDS,
        job_timeout_seconds: float = _DEFAULT_JOB_TIMEOUT_SECONDS,
        max_retries: int = _DEFAULT_DISPATCH_MAX_RETRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fleet = fleet
        self._poll_interval_seconds = max(0.0, poll_interval_seconds)
        self._job_timeout_seconds = max(0.0, job_timeout_seconds)
        self._max_retries = max(0, max_retries)
        self._clock = clock

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def dispatch(
        self,
        batches: Iterable[Batch],
        *,
        max_concurrency: int,
        tolerated_failure_percentage: float,
        on_outcome: OutcomeCallback | None = None,
    ) -> DispatchSummary:
        """Run every batch to a terminal state and fold the outcomes."""

        queue = SlotBasedJobQueue(max_concurrency)
        outcomes: dict[int, BatchOutcome] = {}
        in_flight: set[asyncio.Task[None]] = set()

        async def run_admitted(batch: Batch, control: QueueExecutionControl) -> None:
            try:
                outcome = await self._run_batch(batch)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Batch %d dispatch failed unexpectedly.", batch.index)
                outcome = BatchOutcome(
                    batch_index=batch.index,
                    status=JobStatus.FAILED,
                    attempts=1,
                    reason=str(exc) or type(exc).__name__,
                )
            finally:
                queue.release(control)

            outcomes[batch.index] = outcome
            if on_outcome is not None:
                await on_outcome(outcome)

        try:
            for batch in batches:
                control = QueueExecutionControl()
                await queue.wait_until_active(control)
                task = asyncio.create_task(
                    run_admitted(batch, control),
                    name=f"copy-out-batch-{batch.index}",
                )
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)

            if in_flight:
                await asyncio.gather(*in_flight)
        except BaseException:
            for task in in_flight:
                task.cancel()
            raise

        failed_count = sum(1 for outcome in outcomes.values() if not outcome.succeeded)
        return DispatchSummary(
            outcomes=outcomes,
            status=evaluate_run_status(
                total_batches=len(outcomes),
                failed_batches=failed_count,
                tolerated_failure_percentage=tolerated_failure_percentage,
            ),
            tolerated_failure_percentage=tolerated_failure_percentage,
            peak_active_jobs=queue.peak_active_jobs,
        )

    async def _run_batch(self, batch: Batch) -> BatchOutcome:
        """Submit a batch, resubmitting on fleet rejection or job failure."""

        max_attempts = self._max_retries + 1
        attempt = 1
        while True:
            outcome = await self._attempt_batch(batch, attempt, max_attempts)
            if outcome.status is not JobStatus.FAILED or attempt >= max_attempts:
                return outcome
            attempt += 1

    async def _attempt_batch(self, batch: Batch, attempt: int, max_attempts: int) -> BatchOutcome:
        """Run one submission of `batch` to a terminal outcome."""

        try:
            job_id = await self._fleet.submit_job(batch)
        except JobSubmissionError as exc:
            logger.warning(
                "Fleet rejected batch %d (attempt %d/%d): %s",
                batch.index,
                attempt,
                max_attempts,
                exc,
            )
            return BatchOutcome(
                batch_index=batch.index,
                status=JobStatus.FAILED,
                attempts=attempt,
                reason=str(exc),
            )

        job = DispatchedJob(job_id=job_id, batch_index=batch.index, attempt=attempt)
        await self._wait_for_terminal(job)
        if job.status is JobStatus.FAILED:
            logger.warning(
                "Job '%s' for batch %d failed (attempt %d/%d): %s",
                job.job_id,
                batch.index,
                attempt,
                max_attempts,
                job.reason or f"exit code {job.exit_code}",
            )
        return BatchOutcome(
            batch_index=batch.index,
            status=job.status,
            attempts=attempt,
            job_id=job.job_id,
            reason=job.reason,
        )

    async def _wait_for_terminal(self, job: DispatchedJob) -> None:
        """Poll the fleet until the job is terminal or exceeds its runtime limit.

        A failing status query is treated as transient; the job keeps its slot
        and is polled again until the deadline, after which it is stopped.
        """

        deadline = self._clock() + self._job_timeout_seconds
        last_poll_error: Exception | None = None
        while True:
            try:
                observation = await self._fleet.describe_job(job.job_id)
            except Exception as exc:  # noqa: BLE001
                last_poll_error = exc
                logger.warning(
                    "Status query for job '%s' (batch %d) failed: %s",
                    job.job_id,
                    job.batch_index,
                    exc,
                )
            else:
                last_poll_error = None
                job.status = observation.status
                job.exit_code = observation.exit_code
                job.reason = observation.reason
                if job.status in TERMINAL_JOB_STATUSES:
                    return

            if self._clock() >= deadline:
                job.status = JobStatus.TIMED_OUT
                job.reason = f"Job exceeded runtime limit of {self._job_timeout_seconds:g}s."
                if last_poll_error is not None:
                    job.reason = f"{job.reason} Last status query failed: {last_poll_error}"
                logger.warning("Job '%s' for batch %d timed out.", job.job_id, job.batch_index)
                await self._stop_timed_out_job(job)
                return

            await asyncio.sleep(self._poll_interval_seconds)

    async def _stop_timed_out_job(self, job: DispatchedJob) -> None:
        try:
            await self._fleet.stop_job(job.job_id, job.reason or "timed out")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to stop timed out job '%s': %s", job.job_id, exc)


__all__ = ["BatchDispatcher", "DispatchSummary", "OutcomeCallback"]
