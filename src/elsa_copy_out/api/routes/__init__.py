"""Route modules public API."""

from elsa_copy_out.api.routes.copy_out import router as copy_out_router
from elsa_copy_out.api.routes.health import router as health_router

__all__ = ["copy_out_router", "health_router"]
