"""Domain public API."""

from elsa_copy_out.domain.copy_items import Batch, CopyItem, remote_location
from elsa_copy_out.domain.entities import BatchOutcome, CopyOutRun, DispatchedJob, JobObservation
from elsa_copy_out.domain.errors import (
    CopyOutError,
    CopyOutRunNotFoundError,
    CopyOutValidationError,
    InvalidRunTransitionError,
    JobSubmissionError,
    ManifestError,
    ManifestFormatError,
    ManifestNotFoundError,
)
from elsa_copy_out.domain.invocation_models import (
    BatchFailureResponse,
    CopyOutInvocationMessage,
    CopyOutRunListResponse,
    CopyOutRunResponse,
    CopyOutRunResult,
)
from elsa_copy_out.domain.ports import (
    CopyOutEventPublisher,
    CopyOutRunRepository,
    ExecutionFleet,
    ManifestObjectStore,
)
from elsa_copy_out.domain.run_types import (
    JobStatus,
    RunEvent,
    RunState,
    RunStatus,
    evaluate_run_status,
    next_run_state,
)

__all__ = [
    "Batch",
    "BatchFailureResponse",
    "BatchOutcome",
    "CopyItem",
    "CopyOutError",
    "CopyOutEventPublisher",
    "CopyOutInvocationMessage",
    "CopyOutRun",
    "CopyOutRunListResponse",
    "CopyOutRunNotFoundError",
    "CopyOutRunRepository",
    "CopyOutRunResponse",
    "CopyOutRunResult",
    "CopyOutValidationError",
    "DispatchedJob",
    "ExecutionFleet",
    "InvalidRunTransitionError",
    "JobObservation",
    "JobStatus",
    "JobSubmissionError",
    "ManifestError",
    "ManifestFormatError",
    "ManifestNotFoundError",
    "ManifestObjectStore",
    "RunEvent",
    "RunState",
    "RunStatus",
    "evaluate_run_status",
    "next_run_state",
    "remote_location",
]
