"""Repository implementations."""

from elsa_copy_out.infrastructure.repositories.in_memory_copy_out_run_repository import (
    InMemoryCopyOutRunRepository,
)

__all__ = ["InMemoryCopyOutRunRepository"]
