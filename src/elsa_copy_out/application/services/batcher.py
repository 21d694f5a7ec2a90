"""Group copy items into bounded batches."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from elsa_copy_out.domain.copy_items import Batch, CopyItem
from elsa_copy_out.domain.errors import CopyOutValidationError


def build_batches(
    items: Sequence[CopyItem],
    max_items_per_batch: int,
    destination: str,
    batch_input: Mapping[str, Any] | None = None,
) -> list[Batch]:
    """Partition `items` in order into batches of at most `max_items_per_batch`."""

    if max_items_per_batch < 1:
        raise CopyOutValidationError("maxItemsPerBatch must be >= 1.")

    shared_input = MappingProxyType(dict(batch_input or {}))
    return [
        Batch(
            index=index,
            items=tuple(items[offset : offset + max_items_per_batch]),
            destination=destination,
            batch_input=shared_input,
        )
        for index, offset in enumerate(range(0, len(items), max_items_per_batch))
    ]


__all__ = ["build_batches"]
