"""API routers."""

from appointment_core.routers.appointments import router as appointments_router
from appointment_core.routers.templates import router as templates_router

__all__ = [
    "appointments_router",
    "templates_router",
]
