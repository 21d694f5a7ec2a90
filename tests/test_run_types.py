from __future__ import annotations

import pytest

from elsa_copy_out.domain.errors import CopyOutValidationError, InvalidRunTransitionError
from elsa_copy_out.domain.run_types import (
    RunEvent,
    RunState,
    RunStatus,
    evaluate_run_status,
    failed_batch_percentage,
    next_run_state,
)


def test_run_progresses_linearly_to_completed() -> None:
    state = RunState.DEFAULTING
    visited = [state]
    for event in (
        RunEvent.DEFAULTS_APPLIED,
        RunEvent.MANIFEST_READ,
        RunEvent.BATCHES_BUILT,
        RunEvent.DISPATCH_FINISHED,
    ):
        state = next_run_state(state, event)
        visited.append(state)

    assert visited == [
        RunState.DEFAULTING,
        RunState.READING,
        RunState.BATCHING,
        RunState.DISPATCHING,
        RunState.COMPLETED,
    ]


@pytest.mark.parametrize(
    "state",
    [RunState.DEFAULTING, RunState.READING, RunState.BATCHING, RunState.DISPATCHING],
)
def test_failure_completes_a_run_from_any_active_state(state: RunState) -> None:
    assert next_run_state(state, RunEvent.FAILED) is RunState.COMPLETED


@pytest.mark.parametrize(
    ("state", "event"),
    [
        (RunState.DEFAULTING, RunEvent.MANIFEST_READ),
        (RunState.READING, RunEvent.DISPATCH_FINISHED),
        (RunState.DISPATCHING, RunEvent.BATCHES_BUILT),
        (RunState.COMPLETED, RunEvent.DEFAULTS_APPLIED),
        (RunState.COMPLETED, RunEvent.FAILED),
    ],
)
def test_illegal_transitions_are_rejected(state: RunState, event: RunEvent) -> None:
    with pytest.raises(InvalidRunTransitionError):
        next_run_state(state, event)


def test_two_of_ten_failures_exceed_ten_percent_tolerance() -> None:
    assert evaluate_run_status(10, 2, 10) is RunStatus.FAILED


def test_two_of_ten_failures_within_twenty_five_percent_tolerance() -> None:
    assert evaluate_run_status(10, 2, 25) is RunStatus.PARTIAL_FAILURE


def test_failure_rate_equal_to_tolerance_passes() -> None:
    assert evaluate_run_status(4, 1, 25) is RunStatus.PARTIAL_FAILURE


@pytest.mark.parametrize(
    ("total", "failed", "tolerance"),
    [(100, 7, 7), (20, 3, 15), (50, 29, 58), (25, 7, 28)],
)
def test_failure_rate_exactly_at_tolerance_is_not_rounded_into_failure(
    total: int, failed: int, tolerance: float
) -> None:
    assert evaluate_run_status(total, failed, tolerance) is RunStatus.PARTIAL_FAILURE


def test_one_failure_over_tolerance_fails_run() -> None:
    assert evaluate_run_status(100, 8, 7) is RunStatus.FAILED


def test_any_failure_fails_run_with_zero_tolerance() -> None:
    assert evaluate_run_status(100, 1, 0) is RunStatus.FAILED
    assert evaluate_run_status(100, 0, 0) is RunStatus.SUCCEEDED


def test_all_failures_pass_with_full_tolerance() -> None:
    assert evaluate_run_status(3, 3, 100) is RunStatus.PARTIAL_FAILURE


def test_empty_run_succeeds() -> None:
    assert failed_batch_percentage(0, 0) == 0.0
    assert evaluate_run_status(0, 0, 0) is RunStatus.SUCCEEDED


@pytest.mark.parametrize("tolerance", [-1, 100.5])
def test_tolerance_outside_percentage_range_is_rejected(tolerance: float) -> None:
    with pytest.raises(CopyOutValidationError):
        evaluate_run_status(10, 0, tolerance)


def test_failed_count_larger_than_total_is_rejected() -> None:
    with pytest.raises(ValueError):
        evaluate_run_status(2, 3, 50)
