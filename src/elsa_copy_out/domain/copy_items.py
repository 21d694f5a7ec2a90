"""Copy items, batches and the copy tool's location syntax."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

# rclone remote syntax, not an s3:// URL
REMOTE_PREFIX = "s3"
DESTINATION_ENV_NAME = "destination"


def remote_location(bucket: str, key: str | None = None) -> str:
    """Render a bucket (and optional key or prefix) as a copy tool location."""

    bucket = bucket.strip().strip("/")
    if key is None or not key:
        return f"{REMOTE_PREFIX}:{bucket}"
    return f"{REMOTE_PREFIX}:{bucket}/{key}"


@dataclass(slots=True, frozen=True)
class CopyItem:
    """One source object listed in a manifest."""

    bucket: str
    key: str

    @property
    def source(self) -> str:
        """Source location passed to the copy job."""

        return remote_location(self.bucket, self.key)


@dataclass(slots=True, frozen=True)
class Batch:
    """A group of copy items dispatched together as one job."""

    index: int
    items: tuple[CopyItem, ...]
    destination: str
    batch_input: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def sources(self) -> list[str]:
        """Ordered source locations, one per item."""

        return [item.source for item in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def job_environment(self) -> dict[str, str]:
        """Environment handed to the copy job: destination plus pass-through parameters."""

        environment = {name: _environment_value(value) for name, value in self.batch_input.items()}
        environment[DESTINATION_ENV_NAME] = self.destination
        return environment


def _environment_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str | int | float):
        return str(value)
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


__all__ = ["Batch", "CopyItem", "DESTINATION_ENV_NAME", "REMOTE_PREFIX", "remote_location"]
