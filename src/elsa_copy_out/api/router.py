"""Top-level API router composition."""

from fastapi import APIRouter

from elsa_copy_out.api.routes import copy_out_router, health_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(copy_out_router)

__all__ = ["api_router"]
