"""Execution fleet running the copy command as local subprocesses."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass
from uuid import uuid4

from elsa_copy_out.domain.copy_items import Batch
from elsa_copy_out.domain.entities import JobObservation
from elsa_copy_out.domain.errors import JobSubmissionError
from elsa_copy_out.domain.ports import ExecutionFleet
from elsa_copy_out.domain.run_types import JobStatus


@dataclass(slots=True)
class _LocalJob:
    process: asyncio.subprocess.Process
    waiter: asyncio.Task[int]


class LocalProcessExecutionFleet(ExecutionFleet):
    """Run `command + sources` per batch on this host, for development.

    The process gets the same environment contract as the container job.
    """

    def __init__(self, command: Sequence[str], inherit_environment: bool = True) -> None:
        if not command:
            raise ValueError("command cannot be empty.")
        self._command = list(command)
        self._inherit_environment = inherit_environment
        self._jobs: dict[str, _LocalJob] = {}

    async def submit_job(self, batch: Batch) -> str:
        """Spawn one process for `batch`."""

        environment = dict(os.environ) if self._inherit_environment else {}
        environment.update(batch.job_environment())
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                *batch.sources,
                env=environment,
            )
        except OSError as exc:
            raise JobSubmissionError(
                f"Failed to start '{self._command[0]}' for batch {batch.index}: {exc}"
            ) from exc

        job_id = f"local-{batch.index}-{uuid4()}"
        self._jobs[job_id] = _LocalJob(
            process=process,
            waiter=asyncio.create_task(process.wait(), name=f"copy-out-{job_id}"),
        )
        return job_id

    async def describe_job(self, job_id: str) -> JobObservation:
        """Report process state; finished jobs are forgotten after being reported."""

        job = self._jobs.get(job_id)
        if job is None:
            return JobObservation(status=JobStatus.FAILED, reason=f"Unknown job '{job_id}'.")
        if not job.waiter.done():
            return JobObservation(status=JobStatus.RUNNING)

        self._jobs.pop(job_id, None)
        exit_code = job.waiter.result()
        if exit_code == 0:
            return JobObservation(status=JobStatus.SUCCEEDED, exit_code=0)
        return JobObservation(
            status=JobStatus.FAILED,
            exit_code=exit_code,
            reason=f"exit code {exit_code}",
        )

    async def stop_job(self, job_id: str, reason: str) -> None:
        """Kill a process that outlived the runtime limit."""

        _ = reason
        job = self._jobs.pop(job_id, None)
        if job is None or job.waiter.done():
            return
        with suppress(ProcessLookupError):
            job.process.kill()
        await job.waiter


__all__ = ["LocalProcessExecutionFleet"]
