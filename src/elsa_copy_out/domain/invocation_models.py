"""Pydantic models for copy out invocations and run tracking payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from elsa_copy_out.domain.run_types import JobStatus, RunState, RunStatus

DEFAULT_MAX_ITEMS_PER_BATCH = 1
DEFAULT_TOLERATED_FAILURE_PERCENTAGE = 0
DEFAULT_MAX_CONCURRENCY = 100


class CopyOutInvocationMessage(BaseModel):
    """Parameters supplied to start one copy out run.

    Keys other than the declared ones are kept in `model_extra` and handed to
    every batch unchanged (copy tool thresholds and similar flags).
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    source_files_csv_bucket: str = Field(alias="sourceFilesCsvBucket")
    source_files_csv_key: str = Field(alias="sourceFilesCsvKey")
    destination_bucket: str = Field(alias="destinationBucket")
    max_items_per_batch: int = Field(
        default=DEFAULT_MAX_ITEMS_PER_BATCH, ge=1, alias="maxItemsPerBatch"
    )
    tolerated_failure_percentage: float = Field(
        default=DEFAULT_TOLERATED_FAILURE_PERCENTAGE,
        ge=0,
        le=100,
        alias="toleratedFailurePercentage",
    )
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1, alias="maxConcurrency")

    @field_validator(
        "source_files_csv_bucket",
        "source_files_csv_key",
        "destination_bucket",
    )
    @classmethod
    def require_non_blank(cls, value: str) -> str:
        """Reject empty object storage locations."""

        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be empty")
        return stripped

    @property
    def batch_input(self) -> dict[str, Any]:
        """Pass-through parameters stamped onto every batch."""

        return dict(self.model_extra or {})


class TrackingModel(BaseModel):
    """Base model for execution tracking responses."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BatchFailureResponse(TrackingModel):
    """Terminal details of one failed batch."""

    batch_index: int = Field(alias="batchIndex")
    status: JobStatus
    attempts: int
    job_id: str | None = Field(default=None, alias="jobId")
    reason: str | None = None


class CopyOutRunResult(TrackingModel):
    """Aggregate outcome of a completed run."""

    status: RunStatus
    total_items: int = Field(default=0, alias="totalItems")
    total_batches: int = Field(default=0, alias="totalBatches")
    succeeded_batches: int = Field(default=0, alias="succeededBatches")
    failed_batches: int = Field(default=0, alias="failedBatches")
    failed_batch_percentage: float = Field(default=0.0, alias="failedBatchPercentage")
    tolerated_failure_percentage: float = Field(default=0.0, alias="toleratedFailurePercentage")
    failures: list[BatchFailureResponse] = Field(default_factory=list)
    error: str | None = None


class CopyOutRunResponse(TrackingModel):
    """Single run tracking payload."""

    run_id: str = Field(alias="runId")
    state: RunState
    source_files_csv_bucket: str = Field(alias="sourceFilesCsvBucket")
    source_files_csv_key: str = Field(alias="sourceFilesCsvKey")
    destination_bucket: str = Field(alias="destinationBucket")
    max_items_per_batch: int = Field(alias="maxItemsPerBatch")
    max_concurrency: int = Field(alias="maxConcurrency")
    total_items: int = Field(default=0, alias="totalItems")
    total_batches: int = Field(default=0, alias="totalBatches")
    completed_batches: int = Field(default=0, alias="completedBatches")
    created_at: datetime = Field(alias="createdAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    result: CopyOutRunResult | None = None


class CopyOutRunListResponse(TrackingModel):
    """Collection wrapper for run listing."""

    service_id: str = Field(alias="serviceId")
    runs: list[CopyOutRunResponse]


__all__ = [
    "BatchFailureResponse",
    "CopyOutInvocationMessage",
    "CopyOutRunListResponse",
    "CopyOutRunResponse",
    "CopyOutRunResult",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_MAX_ITEMS_PER_BATCH",
    "DEFAULT_TOLERATED_FAILURE_PERCENTAGE",
]
