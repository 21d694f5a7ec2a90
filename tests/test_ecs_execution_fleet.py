from __future__ import annotations

import asyncio
from typing import Any

import pytest
from botocore.exceptions import ClientError

from elsa_copy_out.application.services import build_batches
from elsa_copy_out.domain.copy_items import Batch, CopyItem
from elsa_copy_out.domain.errors import JobSubmissionError
from elsa_copy_out.domain.run_types import JobStatus
from elsa_copy_out.infrastructure.fleet import EcsExecutionFleet

TASK_ARN = "arn:aws:ecs:ap-southeast-2:123456789012:task/copy-out/abc123"


class FakeEcsClient:
    def __init__(self) -> None:
        self.run_task_calls: list[dict[str, Any]] = []
        self.stop_task_calls: list[dict[str, Any]] = []
        self.run_task_response: dict[str, Any] = {"tasks": [{"taskArn": TASK_ARN}], "failures": []}
        self.run_task_error: Exception | None = None
        self.describe_response: dict[str, Any] = {"tasks": [], "failures": []}

    def run_task(self, **kwargs: Any) -> dict[str, Any]:
        self.run_task_calls.append(kwargs)
        if self.run_task_error is not None:
            raise self.run_task_error
        return self.run_task_response

    def describe_tasks(self, *, cluster: str, tasks: list[str]) -> dict[str, Any]:
        assert cluster == "copy-out"
        assert tasks == [TASK_ARN]
        return self.describe_response

    def stop_task(self, *, cluster: str, task: str, reason: str) -> dict[str, Any]:
        self.stop_task_calls.append({"cluster": cluster, "task": task, "reason": reason})
        return {}


def _fleet(client: FakeEcsClient, **kwargs: Any) -> EcsExecutionFleet:
    return EcsExecutionFleet(
        cluster="copy-out",
        task_definition="copy-out-rclone:3",
        container_name="RcloneContainer",
        region="ap-southeast-2",
        ecs_client_factory=lambda _: client,
        **kwargs,
    )


def _batch(batch_input: dict[str, Any] | None = None) -> Batch:
    items = [CopyItem(bucket="src", key="a.bam"), CopyItem(bucket="src", key="dir/b.bam")]
    (batch,) = build_batches(
        items,
        max_items_per_batch=2,
        destination="s3:dest",
        batch_input=batch_input,
    )
    return batch


def _stopped_task(
    exit_code: int | None,
    stopped_reason: str = "Essential container exited",
) -> dict[str, Any]:
    container: dict[str, Any] = {"name": "RcloneContainer"}
    if exit_code is not None:
        container["exitCode"] = exit_code
    return {
        "tasks": [
            {
                "taskArn": TASK_ARN,
                "lastStatus": "STOPPED",
                "stoppedReason": stopped_reason,
                "containers": [{"name": "sidecar", "exitCode": 0}, container],
            }
        ]
    }


def test_submit_job_runs_task_with_sources_and_environment() -> None:
    client = FakeEcsClient()
    fleet = _fleet(client)

    job_id = asyncio.run(fleet.submit_job(_batch({"copyThreshold": "1G"})))

    assert job_id == TASK_ARN
    (request,) = client.run_task_calls
    assert request["cluster"] == "copy-out"
    assert request["taskDefinition"] == "copy-out-rclone:3"
    assert request["count"] == 1
    assert request["capacityProviderStrategy"] == [{"capacityProvider": "FARGATE_SPOT"}]
    assert request["platformVersion"] == "1.4.0"
    assert request["propagateTags"] == "TASK_DEFINITION"
    assert "networkConfiguration" not in request
    assert request["overrides"]["containerOverrides"] == [
        {
            "name": "RcloneContainer",
            "command": ["s3:src/a.bam", "s3:src/dir/b.bam"],
            "environment": [
                {"name": "copyThreshold", "value": "1G"},
                {"name": "destination", "value": "s3:dest"},
            ],
        }
    ]


def test_submit_job_adds_awsvpc_configuration_when_subnets_are_set() -> None:
    client = FakeEcsClient()
    fleet = _fleet(client, subnets=["subnet-1", "subnet-2"], security_groups=["sg-1"])

    asyncio.run(fleet.submit_job(_batch()))

    assert client.run_task_calls[0]["networkConfiguration"] == {
        "awsvpcConfiguration": {
            "subnets": ["subnet-1", "subnet-2"],
            "securityGroups": ["sg-1"],
            "assignPublicIp": "DISABLED",
        }
    }


def test_submit_job_maps_client_error_to_submission_error() -> None:
    client = FakeEcsClient()
    client.run_task_error = ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
        "RunTask",
    )

    with pytest.raises(JobSubmissionError, match="ThrottlingException"):
        asyncio.run(_fleet(client).submit_job(_batch()))


def test_submit_job_maps_placement_failures_to_submission_error() -> None:
    client = FakeEcsClient()
    client.run_task_response = {"tasks": [], "failures": [{"reason": "RESOURCE:CAPACITY"}]}

    with pytest.raises(JobSubmissionError, match="RESOURCE:CAPACITY"):
        asyncio.run(_fleet(client).submit_job(_batch()))


@pytest.mark.parametrize(
    ("last_status", "expected"),
    [
        ("PROVISIONING", JobStatus.SUBMITTED),
        ("PENDING", JobStatus.SUBMITTED),
        ("RUNNING", JobStatus.RUNNING),
        ("DEPROVISIONING", JobStatus.RUNNING),
    ],
)
def test_describe_job_maps_active_task_statuses(last_status: str, expected: JobStatus) -> None:
    client = FakeEcsClient()
    client.describe_response = {"tasks": [{"taskArn": TASK_ARN, "lastStatus": last_status}]}

    observation = asyncio.run(_fleet(client).describe_job(TASK_ARN))

    assert observation.status is expected


def test_describe_job_reports_success_for_zero_exit_code() -> None:
    client = FakeEcsClient()
    client.describe_response = _stopped_task(0)

    observation = asyncio.run(_fleet(client).describe_job(TASK_ARN))

    assert observation.status is JobStatus.SUCCEEDED
    assert observation.exit_code == 0


def test_describe_job_reports_failure_for_non_zero_exit_code() -> None:
    client = FakeEcsClient()
    client.describe_response = _stopped_task(5)

    observation = asyncio.run(_fleet(client).describe_job(TASK_ARN))

    assert observation.status is JobStatus.FAILED
    assert observation.exit_code == 5
    assert observation.reason == "exit code 5: Essential container exited"


def test_describe_job_reports_failure_when_container_never_ran() -> None:
    client = FakeEcsClient()
    client.describe_response = _stopped_task(None, stopped_reason="Spot capacity reclaimed")

    observation = asyncio.run(_fleet(client).describe_job(TASK_ARN))

    assert observation.status is JobStatus.FAILED
    assert observation.exit_code is None
    assert observation.reason == "Spot capacity reclaimed"


def test_describe_job_reports_failure_for_unknown_task() -> None:
    client = FakeEcsClient()
    client.describe_response = {"tasks": [], "failures": [{"reason": "MISSING"}]}

    observation = asyncio.run(_fleet(client).describe_job(TASK_ARN))

    assert observation.status is JobStatus.FAILED
    assert observation.reason is not None and "MISSING" in observation.reason


def test_stop_job_truncates_reason() -> None:
    client = FakeEcsClient()

    asyncio.run(_fleet(client).stop_job(TASK_ARN, "x" * 300))

    (call,) = client.stop_task_calls
    assert call["cluster"] == "copy-out"
    assert call["task"] == TASK_ARN
    assert len(call["reason"]) == 255
