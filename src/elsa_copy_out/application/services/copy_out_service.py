"""Copy out run orchestration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from contextlib import suppress
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from elsa_copy_out.application.services.batch_dispatcher import BatchDispatcher, DispatchSummary
from elsa_copy_out.application.services.batcher import build_batches
from elsa_copy_out.application.services.manifest_reader import ManifestLocation, ManifestReader
from elsa_copy_out.domain.copy_items import remote_location
from elsa_copy_out.domain.entities import BatchOutcome, CopyOutRun
from elsa_copy_out.domain.errors import (
    CopyOutRunNotFoundError,
    CopyOutValidationError,
    ManifestError,
)
from elsa_copy_out.domain.invocation_models import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_ITEMS_PER_BATCH,
    DEFAULT_TOLERATED_FAILURE_PERCENTAGE,
    BatchFailureResponse,
    CopyOutInvocationMessage,
    CopyOutRunListResponse,
    CopyOutRunResponse,
    CopyOutRunResult,
)
from elsa_copy_out.domain.ports import CopyOutEventPublisher, CopyOutRunRepository
from elsa_copy_out.domain.run_types import RunEvent, RunStatus, next_run_state

_DEFAULT_SHUTDOWN_GRACE_SECONDS = 30.0

BUILT_IN_DEFAULTS: dict[str, Any] = {
    "maxItemsPerBatch": DEFAULT_MAX_ITEMS_PER_BATCH,
    "toleratedFailurePercentage": DEFAULT_TOLERATED_FAILURE_PERCENTAGE,
    "maxConcurrency": DEFAULT_MAX_CONCURRENCY,
}

logger = logging.getLogger(__name__)


def apply_defaults(defaults: Mapping[str, Any], request: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow-merge `request` over `defaults`.

    A key present in `request` always wins, even when its value is falsy or
    null; only absent keys fall back to the default.
    """

    return {**defaults, **request}


def _wire_keys(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rename python field names to their wire aliases so defaults merge by field."""

    aliases = {
        name: field.alias
        for name, field in CopyOutInvocationMessage.model_fields.items()
        if field.alias is not None
    }
    return {aliases.get(key, key): value for key, value in payload.items()}


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CopyOutService:
    """Drives copy out runs through reading, batching and dispatch."""

    def __init__(
        self,
        service_id: str,
        manifest_reader: ManifestReader,
        dispatcher: BatchDispatcher,
        repository: CopyOutRunRepository,
        event_publisher: CopyOutEventPublisher,
        defaults: Mapping[str, Any] | None = None,
        shutdown_grace_seconds: float = _DEFAULT_SHUTDOWN_GRACE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._service_id = service_id
        self._manifest_reader = manifest_reader
        self._dispatcher = dispatcher
        self._repository = repository
        self._event_publisher = event_publisher
        self._defaults = apply_defaults(BUILT_IN_DEFAULTS, _wire_keys(defaults or {}))
        self._shutdown_grace_seconds = max(0.0, shutdown_grace_seconds)
        self._clock = clock
        self._run_tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def service_id(self) -> str:
        return self._service_id

    async def shutdown(self) -> None:
        """Wait for background runs, cancelling those still going after the grace period."""

        tasks = [task for task in self._run_tasks.values() if not task.done()]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=self._shutdown_grace_seconds)
        for task in pending:
            task.cancel()
        for task in pending:
            with suppress(asyncio.CancelledError):
                await task

    def build_request(self, payload: Mapping[str, Any]) -> CopyOutInvocationMessage:
        """Apply defaults to a raw invocation and validate it."""

        merged = apply_defaults(self._defaults, _wire_keys(payload))
        try:
            return CopyOutInvocationMessage.model_validate(merged)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
                for error in exc.errors()
            )
            raise CopyOutValidationError(f"Invalid copy out invocation: {problems}") from exc

    async def run(self, payload: Mapping[str, Any]) -> CopyOutRun:
        """Execute one run to completion and return its record.

        Configuration and manifest errors propagate; batch failures are only
        reflected in the run result.
        """

        run = await self._create_run(payload)
        await self._execute(run)
        return run

    async def start(self, payload: Mapping[str, Any]) -> CopyOutRun:
        """Validate an invocation and execute it in the background."""

        run = await self._create_run(payload)
        task = asyncio.create_task(
            self._execute_in_background(run),
            name=f"copy-out-run-{run.run_id}",
        )
        self._run_tasks[run.run_id] = task
        task.add_done_callback(lambda _: self._run_tasks.pop(run.run_id, None))
        return run

    async def get_run(self, run_id: str) -> CopyOutRun:
        """Return one run record."""

        run = await self._repository.get(run_id)
        if run is None:
            raise CopyOutRunNotFoundError(f"Copy out run '{run_id}' not found.")
        return run

    async def get_run_info(self, run_id: str) -> CopyOutRunResponse:
        """Return one run as a tracking payload."""

        return self.run_response(await self.get_run(run_id))

    async def list_runs(self) -> CopyOutRunListResponse:
        """Return all runs as tracking payloads."""

        runs = await self._repository.list_runs()
        return CopyOutRunListResponse(
            service_id=self._service_id,
            runs=[self.run_response(run) for run in runs],
        )

    def run_response(self, run: CopyOutRun) -> CopyOutRunResponse:
        request = run.request
        return CopyOutRunResponse(
            run_id=run.run_id,
            state=run.state,
            source_files_csv_bucket=request.source_files_csv_bucket,
            source_files_csv_key=request.source_files_csv_key,
            destination_bucket=request.destination_bucket,
            max_items_per_batch=request.max_items_per_batch,
            max_concurrency=request.max_concurrency,
            total_items=run.total_items,
            total_batches=run.total_batches,
            completed_batches=len(run.outcomes),
            created_at=run.created_at,
            completed_at=run.completed_at,
            result=run.result,
        )

    async def _create_run(self, payload: Mapping[str, Any]) -> CopyOutRun:
        request = self.build_request(payload)
        run = CopyOutRun(run_id=str(uuid4()), request=request, created_at=self._clock())
        await self._repository.upsert(run)
        return run

    async def _execute(self, run: CopyOutRun) -> None:
        request = run.request
        await self._transition(run, RunEvent.DEFAULTS_APPLIED)

        location = ManifestLocation(
            bucket=request.source_files_csv_bucket,
            key=request.source_files_csv_key,
        )
        try:
            items = await self._manifest_reader.read(location)
        except ManifestError as exc:
            logger.warning("Copy out run '%s' aborted reading %s: %s", run.run_id, location, exc)
            await self._fail(run, str(exc))
            raise

        run.total_items = len(items)
        await self._transition(run, RunEvent.MANIFEST_READ)

        batches = build_batches(
            items,
            max_items_per_batch=request.max_items_per_batch,
            destination=remote_location(request.destination_bucket),
            batch_input=request.batch_input,
        )
        run.total_batches = len(batches)
        await self._transition(run, RunEvent.BATCHES_BUILT)

        async def record_outcome(outcome: BatchOutcome) -> None:
            run.outcomes[outcome.batch_index] = outcome

        summary = await self._dispatcher.dispatch(
            batches,
            max_concurrency=request.max_concurrency,
            tolerated_failure_percentage=request.tolerated_failure_percentage,
            on_outcome=record_outcome,
        )
        run.outcomes = dict(summary.outcomes)
        run.result = self._result_from_summary(run, summary)
        run.completed_at = self._clock()
        await self._transition(run, RunEvent.DISPATCH_FINISHED)
        logger.info(
            "Copy out run '%s' finished %s: %d/%d batch(es) failed (tolerated %g%%).",
            run.run_id,
            summary.status,
            summary.failed_batches,
            summary.total_batches,
            request.tolerated_failure_percentage,
        )

    async def _execute_in_background(self, run: CopyOutRun) -> None:
        try:
            await self._execute(run)
        except ManifestError:
            return
        except asyncio.CancelledError:
            if not run.finished:
                await self._fail(run, "Run cancelled during service shutdown.")
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Copy out run '%s' failed unexpectedly.", run.run_id)
            if not run.finished:
                await self._fail(run, str(exc) or type(exc).__name__)

    async def _fail(self, run: CopyOutRun, error: str) -> None:
        run.result = CopyOutRunResult(
            status=RunStatus.FAILED,
            total_items=run.total_items,
            total_batches=run.total_batches,
            tolerated_failure_percentage=run.request.tolerated_failure_percentage,
            error=error,
        )
        run.completed_at = self._clock()
        await self._transition(run, RunEvent.FAILED)

    async def _transition(self, run: CopyOutRun, event: RunEvent) -> None:
        previous = run.state
        run.state = next_run_state(run.state, event)
        await self._repository.upsert(run)
        await self._event_publisher.publish_run(run)
        logger.info("Copy out run '%s': %s -> %s.", run.run_id, previous, run.state)

    def _result_from_summary(self, run: CopyOutRun, summary: DispatchSummary) -> CopyOutRunResult:
        failures = [
            BatchFailureResponse(
                batch_index=outcome.batch_index,
                status=outcome.status,
                attempts=outcome.attempts,
                job_id=outcome.job_id,
                reason=outcome.reason,
            )
            for _, outcome in sorted(summary.outcomes.items())
            if not outcome.succeeded
        ]
        return CopyOutRunResult(
            status=summary.status,
            total_items=run.total_items,
            total_batches=summary.total_batches,
            succeeded_batches=summary.succeeded_batches,
            failed_batches=summary.failed_batches,
            failed_batch_percentage=round(summary.failed_batch_percentage, 2),
            tolerated_failure_percentage=summary.tolerated_failure_percentage,
            failures=failures,
        )


__all__ = ["BUILT_IN_DEFAULTS", "CopyOutService", "apply_defaults"]
