"""No-op copy out event publisher."""

from __future__ import annotations

from elsa_copy_out.domain.entities import CopyOutRun
from elsa_copy_out.domain.ports import CopyOutEventPublisher


class NoopCopyOutEventPublisher(CopyOutEventPublisher):
    """No-op implementation for environments without event streaming."""

    async def publish_run(self, run: CopyOutRun) -> None:
        _ = run


__all__ = ["NoopCopyOutEventPublisher"]
