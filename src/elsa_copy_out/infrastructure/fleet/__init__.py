"""Execution fleet implementations."""

from elsa_copy_out.infrastructure.fleet.ecs_execution_fleet import EcsExecutionFleet
from elsa_copy_out.infrastructure.fleet.local_process_execution_fleet import (
    LocalProcessExecutionFleet,
)

__all__ = ["EcsExecutionFleet", "LocalProcessExecutionFleet"]
