"""Run state, job status and failure policy helpers."""

from enum import StrEnum

from elsa_copy_out.domain.errors import CopyOutValidationError, InvalidRunTransitionError


class RunState(StrEnum):
    """Pipeline stages of one copy out run."""

    DEFAULTING = "DEFAULTING"
    READING = "READING"
    BATCHING = "BATCHING"
    DISPATCHING = "DISPATCHING"
    COMPLETED = "COMPLETED"


class RunEvent(StrEnum):
    """Events that move a run between pipeline stages."""

    DEFAULTS_APPLIED = "DEFAULTS_APPLIED"
    MANIFEST_READ = "MANIFEST_READ"
    BATCHES_BUILT = "BATCHES_BUILT"
    DISPATCH_FINISHED = "DISPATCH_FINISHED"
    FAILED = "FAILED"


class RunStatus(StrEnum):
    """Aggregate outcome of a completed run."""

    SUCCEEDED = "SUCCEEDED"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    FAILED = "FAILED"


class JobStatus(StrEnum):
    """Execution status of one dispatched job."""

    SUBMITTED = "SUBMITTED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT})

_TRANSITIONS: dict[tuple[RunState, RunEvent], RunState] = {
    (RunState.DEFAULTING, RunEvent.DEFAULTS_APPLIED): RunState.READING,
    (RunState.DEFAULTING, RunEvent.FAILED): RunState.COMPLETED,
    (RunState.READING, RunEvent.MANIFEST_READ): RunState.BATCHING,
    (RunState.READING, RunEvent.FAILED): RunState.COMPLETED,
    (RunState.BATCHING, RunEvent.BATCHES_BUILT): RunState.DISPATCHING,
    (RunState.BATCHING, RunEvent.FAILED): RunState.COMPLETED,
    (RunState.DISPATCHING, RunEvent.DISPATCH_FINISHED): RunState.COMPLETED,
    (RunState.DISPATCHING, RunEvent.FAILED): RunState.COMPLETED,
}


def next_run_state(state: RunState, event: RunEvent) -> RunState:
    """Return the stage reached from `state` on `event`.

    The pipeline is strictly linear. Batch failures never produce FAILED
    events; they are folded into the run status at DISPATCH_FINISHED. FAILED
    after READING only comes from internal errors or shutdown cancellation.
    """

    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidRunTransitionError(
            f"Run in state '{state}' cannot handle event '{event}'."
        ) from None


def failed_batch_percentage(total_batches: int, failed_batches: int) -> float:
    """Return the failed share of batches in percent, for reporting."""

    if total_batches <= 0:
        return 0.0
    return failed_batches / total_batches * 100


def evaluate_run_status(
    total_batches: int,
    failed_batches: int,
    tolerated_failure_percentage: float,
) -> RunStatus:
    """Fold batch outcomes into a run status.

    A failure rate equal to the tolerated percentage still passes. The rate is
    compared as a cross product, never as a rounded quotient.
    """

    if not 0 <= tolerated_failure_percentage <= 100:
        raise CopyOutValidationError("toleratedFailurePercentage must be between 0 and 100.")
    if failed_batches < 0 or failed_batches > max(total_batches, 0):
        raise ValueError("failed_batches must be between 0 and total_batches.")

    if failed_batches * 100 > tolerated_failure_percentage * total_batches:
        return RunStatus.FAILED
    if failed_batches > 0:
        return RunStatus.PARTIAL_FAILURE
    return RunStatus.SUCCEEDED


__all__ = [
    "JobStatus",
    "RunEvent",
    "RunState",
    "RunStatus",
    "TERMINAL_JOB_STATUSES",
    "evaluate_run_status",
    "failed_batch_percentage",
    "next_run_state",
]
