"""HTTP API package."""

from elsa_copy_out.api.router import api_router

__all__ = ["api_router"]
