"""FastAPI main application module."""

from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...domain.exceptions import (
    ConstraintViolationError,
    InfeasibleAllocationError,
    InvalidInputError,
    StaleCapacityError,
)
from ...infrastructure.logging import get_logger, setup_logging_from_env
from ...infrastructure.services import initialize_services, shutdown_services
from .routes import health, availability, suggestions, appointments, bookings
from .config import get_settings
from .middleware import RequestResponseLoggingMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    setup_logging_from_env()
    logger.info("Starting Fleet Booking API")
    await initialize_services()

    yield

    # Shutdown
    logger.info("Shutting down Fleet Booking API")
    await shutdown_services()


def _stale_capacity_details(exc: StaleCapacityError) -> Dict[str, Any]:
    return {
        "service": exc.service,
        "date": exc.slot_date.isoformat() if exc.slot_date else None,
        "time": exc.slot_time,
        "requested": exc.requested,
        "available": exc.available
    }


def _infeasible_details(exc: InfeasibleAllocationError) -> Dict[str, Any]:
    return {"requested": exc.requested, "allocated": exc.allocated}


# exception -> (status code, error type, extra response fields)
ERROR_RESPONSES: Dict[Type[Exception], Tuple[int, str, Optional[Callable[[Any], Dict[str, Any]]]]] = {
    InvalidInputError: (400, "validation_error", None),
    ConstraintViolationError: (400, "constraint_violation", None),
    StaleCapacityError: (409, "stale_capacity", _stale_capacity_details),
    InfeasibleAllocationError: (422, "infeasible_allocation", _infeasible_details),
    ValueError: (400, "validation_error", None),
}


async def scheduling_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate a scheduling rejection into its HTTP response."""
    status_code, error_type, details = next(
        ERROR_RESPONSES[cls] for cls in type(exc).__mro__ if cls in ERROR_RESPONSES
    )
    logger.warning(
        f"Request rejected on {request.url.path}: {exc}",
        extra={"error_type": error_type, "status_code": status_code}
    )
    content: Dict[str, Any] = {"detail": str(exc), "type": error_type}
    if details is not None:
        content.update(details(exc))
    return JSONResponse(status_code=status_code, content=content)


async def runtime_error_handler(request: Request, exc: RuntimeError) -> JSONResponse:
    """Hide internal failures behind a generic 500."""
    logger.error(f"Runtime error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error occurred", "type": "runtime_error"}
    )


def add_exception_handlers(app: FastAPI) -> None:
    for exc_class in ERROR_RESPONSES:
        app.add_exception_handler(exc_class, scheduling_error_handler)
    app.add_exception_handler(RuntimeError, runtime_error_handler)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Fleet Booking",
        description="API for scheduling vehicle fleets across weighing, inspection and registration",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    add_exception_handlers(app)

    app.add_middleware(RequestResponseLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(
        availability.router,
        prefix=f"{settings.api_prefix}/availability",
        tags=["availability"]
    )
    app.include_router(
        suggestions.router,
        prefix=f"{settings.api_prefix}/suggestions",
        tags=["suggestions"]
    )
    app.include_router(
        appointments.router,
        prefix=f"{settings.api_prefix}/appointments",
        tags=["appointments"]
    )
    app.include_router(
        bookings.router,
        prefix=f"{settings.api_prefix}/bookings",
        tags=["bookings"]
    )

    return app


# Create app instance
app = create_app()
