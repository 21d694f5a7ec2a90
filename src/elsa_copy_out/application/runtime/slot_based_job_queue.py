"""Slot-based admission queue bounding concurrently running jobs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass


@dataclass(slots=True)
class QueueExecutionControl:
    """Admission state for one queued batch."""

    slot_acquired: bool = False


class SlotBasedJobQueue:
    """Admit at most `max_active_jobs` jobs at a time, in arrival order."""

    def __init__(self, max_active_jobs: int) -> None:
        self._max_active_jobs = max(1, max_active_jobs)
        self._slots = asyncio.Semaphore(self._max_active_jobs)
        self._active_jobs = 0
        self._peak_active_jobs = 0

    @property
    def max_active_jobs(self) -> int:
        """Return queue capacity for concurrently active jobs."""

        return self._max_active_jobs

    @property
    def active_jobs(self) -> int:
        return self._active_jobs

    @property
    def peak_active_jobs(self) -> int:
        """Highest number of simultaneously admitted jobs seen so far."""

        return self._peak_active_jobs

    async def wait_until_active(self, control: QueueExecutionControl) -> None:
        """Block until the job holds a slot."""

        if control.slot_acquired:
            return

        await self._slots.acquire()
        control.slot_acquired = True
        self._active_jobs += 1
        self._peak_active_jobs = max(self._peak_active_jobs, self._active_jobs)

    def release(self, control: QueueExecutionControl) -> None:
        """Release a previously acquired slot."""

        if not control.slot_acquired:
            return
        control.slot_acquired = False
        self._active_jobs -= 1
        self._slots.release()


__all__ = ["QueueExecutionControl", "SlotBasedJobQueue"]
