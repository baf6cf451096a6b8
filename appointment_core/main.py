"""FastAPI application entry point."""
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from appointment_core.core.config import settings
from appointment_core.core.structured_logging import build_log_context, configure_logging
from appointment_core.db.session import engine
from appointment_core.services.exceptions import (
    AppointmentNotFoundError,
    AppointmentServiceError,
    AppointmentStoreError,
    AppointmentValidationError,
    ConflictNotAcknowledgedError,
    ContactNotFoundError,
    PartialSeriesError,
    SlotUnavailableError,
    TemplateNotFoundError,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Appointment Core API",
    description="Appointment scheduling and conflict management",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# ============================================================================
# Service error translation
# ============================================================================

def _conflict_handler(request: Request, exc: ConflictNotAcknowledgedError) -> JSONResponse:
    from appointment_core.routers.appointments import conflict_to_read

    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "conflicts": [conflict_to_read(c).model_dump(mode="json") for c in exc.conflicts],
        },
    )


def _service_error_handler(request: Request, exc: AppointmentServiceError) -> JSONResponse:
    if isinstance(exc, (AppointmentNotFoundError, TemplateNotFoundError, ContactNotFoundError)):
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    if isinstance(exc, SlotUnavailableError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})
    if isinstance(exc, AppointmentValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})
    if isinstance(exc, PartialSeriesError):
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "parent_id": str(exc.parent_id),
                "parent_removed": exc.parent_removed,
            },
        )
    if isinstance(exc, AppointmentStoreError):
        logger.error(
            "store_error",
            extra=build_log_context(route=request.url.path, method=request.method),
        )
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.add_exception_handler(ConflictNotAcknowledgedError, _conflict_handler)
app.add_exception_handler(AppointmentServiceError, _service_error_handler)


# ============================================================================
# Routers
# ============================================================================

from appointment_core.routers import appointments, templates

business_prefix = "/businesses/{business_id}"

app.include_router(appointments.router, prefix=business_prefix, tags=["appointments"])
app.include_router(templates.router, prefix=business_prefix, tags=["templates"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}


def main() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "127.0.0.1")
    uvicorn.run("appointment_core.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
