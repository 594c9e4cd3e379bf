"""PropCare Maintenance Ticketing - Main Application Entry Point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core.exceptions import PropCareException
from .core.logging import (
    RequestContextMiddleware,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .core.utils import utc_now

# Import routers
from .modules.assignments import report_assign_router
from .modules.assignments import router as assignments_router
from .modules.auth import router as auth_router
from .modules.directory import contractors_router, properties_router
from .modules.maintenance import files_router
from .modules.maintenance import router as reports_router
from .modules.notifications import hub
from .modules.notifications import router as notifications_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging()
    logger.info("Starting PropCare application...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Debug mode: {settings.app_debug}")
    yield
    # Shutdown
    logger.info("Shutting down PropCare application...")
    hub.close_all()
    shutdown_logging()


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    description="Maintenance ticketing for tenants, landlords, helpdesk and contractors",
    version=settings.api_version,
    docs_url=f"{settings.api_prefix}/docs" if settings.app_debug else None,
    redoc_url=f"{settings.api_prefix}/redoc" if settings.app_debug else None,
    openapi_url=f"{settings.api_prefix}/openapi.json" if settings.app_debug else None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Transaction id for request tracing
app.add_middleware(RequestContextMiddleware)


def _error_body(message: str, error, redirect_to: str | None = None) -> dict:
    body = {
        "success": False,
        "message": message,
        "error": error,
        "data": None,
        "timestamp": utc_now().isoformat(),
    }
    if redirect_to:
        body["redirect_to"] = redirect_to
    return body


# Global exception handler
@app.exception_handler(PropCareException)
async def propcare_exception_handler(request: Request, exc: PropCareException):
    """Turn domain errors into the response envelope with their HTTP status."""
    status_code = getattr(exc, "status_code", 400)
    if status_code >= 500:
        logger.warning(
            exc.message, extra={"path": request.url.path, "status_code": status_code}
        )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(
            exc.message,
            exc.details or exc.message,
            getattr(exc, "redirect_to", None),
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=_error_body(
            "Internal server error",
            str(exc) if settings.app_debug else "Internal server error",
        ),
    )


# Health check endpoint
@app.get(f"{settings.api_prefix}/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.api_version,
        "env": settings.app_env,
    }


# Register routers with /api prefix
API_PREFIX = settings.api_prefix

app.include_router(auth_router, prefix=API_PREFIX)

app.include_router(properties_router, prefix=API_PREFIX)
app.include_router(contractors_router, prefix=API_PREFIX)

app.include_router(reports_router, prefix=API_PREFIX)
app.include_router(report_assign_router, prefix=API_PREFIX)
app.include_router(files_router, prefix=API_PREFIX)

app.include_router(assignments_router, prefix=API_PREFIX)

app.include_router(notifications_router, prefix=API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "propcare_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_debug,
    )
