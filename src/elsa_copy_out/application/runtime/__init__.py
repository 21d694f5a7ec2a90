"""Runtime primitives for batch dispatch."""

from elsa_copy_out.application.runtime.slot_based_job_queue import (
    QueueExecutionControl,
    SlotBasedJobQueue,
)

__all__ = ["QueueExecutionControl", "SlotBasedJobQueue"]
