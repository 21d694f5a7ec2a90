"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from elsa_copy_out.application.services import CopyOutService
from elsa_copy_out.bootstrap import build_copy_out_service
from elsa_copy_out.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_copy_out_service() -> CopyOutService:
    """Return singleton service graph."""

    return build_copy_out_service(get_settings())


__all__ = ["get_copy_out_service", "get_settings"]
