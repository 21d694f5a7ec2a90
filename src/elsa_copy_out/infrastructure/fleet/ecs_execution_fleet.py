"""ECS Fargate execution fleet running one copy task per batch."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any, Protocol, cast

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from elsa_copy_out.domain.copy_items import Batch
from elsa_copy_out.domain.entities import JobObservation
from elsa_copy_out.domain.errors import JobSubmissionError
from elsa_copy_out.domain.ports import ExecutionFleet
from elsa_copy_out.domain.run_types import JobStatus

_RUNNING_TASK_STATUSES = frozenset({"RUNNING", "DEACTIVATING", "STOPPING", "DEPROVISIONING"})


class EcsClient(Protocol):
    """Subset of ECS client operations used by the execution fleet."""

    def run_task(self, **kwargs: Any) -> dict[str, Any]:
        """Start a task."""

    def describe_tasks(self, *, cluster: str, tasks: list[str]) -> dict[str, Any]:
        """Describe tasks."""

    def stop_task(self, *, cluster: str, task: str, reason: str) -> dict[str, Any]:
        """Stop a running task."""


class EcsExecutionFleet(ExecutionFleet):
    """Execution fleet backed by `ecs:RunTask` on Fargate capacity providers.

    - The container command is the batch's ordered source locations.
    - `destination` and any pass-through parameters become container
      environment variables.
    - A stopped task succeeded iff the copy container exited with code 0.
    """

    def __init__(
        self,
        cluster: str,
        task_definition: str,
        container_name: str,
        subnets: Sequence[str] = (),
        security_groups: Sequence[str] = (),
        assign_public_ip: bool = False,
        capacity_provider: str = "FARGATE_SPOT",
        platform_version: str = "1.4.0",
        region: str = "us-east-1",
        ecs_client_factory: Callable[[str], EcsClient] | None = None,
    ) -> None:
        self._cluster = cluster
        self._task_definition = task_definition
        self._container_name = container_name
        self._subnets = list(subnets)
        self._security_groups = list(security_groups)
        self._assign_public_ip = assign_public_ip
        self._capacity_provider = capacity_provider
        self._platform_version = platform_version
        self._region = region
        self._ecs_client_factory = ecs_client_factory or self._build_default_ecs_client
        self._client: EcsClient | None = None

    async def submit_job(self, batch: Batch) -> str:
        """Run one task for `batch` and return the task ARN."""

        client = self._get_client()
        try:
            response = await asyncio.to_thread(client.run_task, **self._run_task_request(batch))
        except ClientError as exc:
            raise JobSubmissionError(
                f"ecs:RunTask rejected batch {batch.index}: {self._client_error_detail(exc)}"
            ) from exc
        except BotoCoreError as exc:
            raise JobSubmissionError(f"ecs:RunTask failed for batch {batch.index}: {exc}") from exc

        failures = response.get("failures") or []
        tasks = response.get("tasks") or []
        if failures or not tasks:
            reasons = ", ".join(
                str(failure.get("reason") or failure.get("detail") or "unknown")
                for failure in failures
            )
            raise JobSubmissionError(
                f"ecs:RunTask started no task for batch {batch.index}: {reasons or 'no tasks'}"
            )

        task_arn = tasks[0].get("taskArn")
        if not isinstance(task_arn, str) or not task_arn:
            raise JobSubmissionError("ecs:RunTask did not return taskArn")
        return task_arn

    async def describe_job(self, job_id: str) -> JobObservation:
        """Map ECS task state to a job status."""

        client = self._get_client()
        response = await asyncio.to_thread(
            client.describe_tasks,
            cluster=self._cluster,
            tasks=[job_id],
        )
        tasks = response.get("tasks") or []
        if not tasks:
            failures = response.get("failures") or []
            reason = failures[0].get("reason") if failures else None
            return JobObservation(
                status=JobStatus.FAILED,
                reason=f"Task '{job_id}' is unknown to ECS: {reason or 'MISSING'}",
            )

        task = cast(dict[str, Any], tasks[0])
        last_status = str(task.get("lastStatus", ""))
        if last_status != "STOPPED":
            status = (
                JobStatus.RUNNING if last_status in _RUNNING_TASK_STATUSES else JobStatus.SUBMITTED
            )
            return JobObservation(status=status)

        exit_code = self._container_exit_code(task)
        if exit_code == 0:
            return JobObservation(status=JobStatus.SUCCEEDED, exit_code=0)
        return JobObservation(
            status=JobStatus.FAILED,
            exit_code=exit_code,
            reason=self._stopped_reason(task, exit_code),
        )

    async def stop_job(self, job_id: str, reason: str) -> None:
        """Stop a task that outlived the runtime limit."""

        client = self._get_client()
        await asyncio.to_thread(
            client.stop_task,
            cluster=self._cluster,
            task=job_id,
            reason=reason[:255],
        )

    def _run_task_request(self, batch: Batch) -> dict[str, Any]:
        environment = [
            {"name": name, "value": value}
            for name, value in sorted(batch.job_environment().items())
        ]
        request: dict[str, Any] = {
            "cluster": self._cluster,
            "taskDefinition": self._task_definition,
            "count": 1,
            "capacityProviderStrategy": [{"capacityProvider": self._capacity_provider}],
            "platformVersion": self._platform_version,
            "propagateTags": "TASK_DEFINITION",
            "startedBy": f"elsa-copy-out-{batch.index}"[:36],
            "overrides": {
                "containerOverrides": [
                    {
                        "name": self._container_name,
                        "command": batch.sources,
                        "environment": environment,
                    }
                ]
            },
        }
        if self._subnets:
            request["networkConfiguration"] = {
                "awsvpcConfiguration": {
                    "subnets": self._subnets,
                    "securityGroups": self._security_groups,
                    "assignPublicIp": "ENABLED" if self._assign_public_ip else "DISABLED",
                }
            }
        return request

    def _container_exit_code(self, task: dict[str, Any]) -> int | None:
        for container in task.get("containers") or []:
            if container.get("name") == self._container_name:
                exit_code = container.get("exitCode")
                return exit_code if isinstance(exit_code, int) else None
        return None

    def _stopped_reason(self, task: dict[str, Any], exit_code: int | None) -> str:
        stopped_reason = task.get("stoppedReason")
        if exit_code is None:
            return str(stopped_reason or "Task stopped without a container exit code.")
        if stopped_reason:
            return f"exit code {exit_code}: {stopped_reason}"
        return f"exit code {exit_code}"

    def _client_error_detail(self, exc: ClientError) -> str:
        error = exc.response.get("Error", {})
        code = error.get("Code", "ClientError")
        message = error.get("Message", "")
        return f"{code} {message}".strip()

    def _get_client(self) -> EcsClient:
        if self._client is None:
            self._client = self._ecs_client_factory(self._region)
        return self._client

    def _build_default_ecs_client(self, region: str) -> EcsClient:
        return cast(EcsClient, boto3.client("ecs", region_name=region))


__all__ = ["EcsExecutionFleet"]
