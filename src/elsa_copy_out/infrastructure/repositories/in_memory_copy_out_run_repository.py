"""In-memory repository implementation for copy out runs."""

from __future__ import annotations

import asyncio

from elsa_copy_out.domain.entities import CopyOutRun
from elsa_copy_out.domain.ports import CopyOutRunRepository


class InMemoryCopyOutRunRepository(CopyOutRunRepository):
    """Simple repository for local development and tests."""

    def __init__(self) -> None:
        self._by_run_id: dict[str, CopyOutRun] = {}
        self._lock = asyncio.Lock()

    async def get(self, run_id: str) -> CopyOutRun | None:
        """Return by run id."""

        return self._by_run_id.get(run_id)

    async def list_runs(self) -> list[CopyOutRun]:
        """Return all runs in insertion order."""

        async with self._lock:
            return list(self._by_run_id.values())

    async def upsert(self, run: CopyOutRun) -> None:
        """Persist run state."""

        async with self._lock:
            self._by_run_id[run.run_id] = run


__all__ = ["InMemoryCopyOutRunRepository"]
