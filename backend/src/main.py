"""
FastAPI application entry point for the event scheduler backend.

This module initializes the FastAPI application with:
- Logging configuration
- CORS middleware for browser clients
- Exception handlers shaping every failure into the response envelope
- Health check and API routers
- The server-rendered client view

Environment Variables:
    EVSCHED_DB_URL: SQLAlchemy database URL (default: sqlite:///./event_scheduler.db)
    EVSCHED_ENV: Environment (production/development, default: development)
    EVSCHED_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
    EVSCHED_CORS_ORIGINS: Comma-separated allowed origins
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.src.config.settings import get_settings
from backend.src.db.database import check_connection, dispose_engine, get_db, init_db
from backend.src.services.exceptions import DependencyUnavailableError
from backend.src.utils.logging_config import init_logging, get_logger


SERVICE_NAME = "event-scheduler-backend"
VERSION = "1.0.0"

ERROR_LABELS = {
    status.HTTP_400_BAD_REQUEST: "Validation error",
    status.HTTP_404_NOT_FOUND: "Not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    status.HTTP_409_CONFLICT: "Conflict",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal server error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "Service unavailable",
}


def error_response(status_code: int, message: str, errors: Any = None) -> JSONResponse:
    """Build the failure envelope."""
    content = {
        "success": False,
        "error": ERROR_LABELS.get(status_code, "Error"),
        "message": message,
    }
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup creates missing tables on a non-production SQLite database
    (everything else is migrated with Alembic); shutdown disposes the pool.
    """
    logger = get_logger("api")
    settings = get_settings()
    logger.info(f"Starting event scheduler backend ({settings.environment})")

    if settings.is_sqlite and not settings.is_production:
        logger.info("Creating SQLite tables for development")
        init_db()

    yield

    logger.info("Shutting down event scheduler backend")
    dispose_engine()


# Initialize logging before creating app
init_logging()

# Create FastAPI application
app = FastAPI(
    title="Event Scheduler API",
    description="Schedule events across profiles in different timezones, "
                "with a field-level audit trail of every update.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Shape HTTPExceptions raised by routes into the envelope.

    A dict detail carries {"message", "errors"} from service validation.
    """
    if isinstance(exc.detail, dict):
        message = exc.detail.get("message", "Request failed")
        errors = exc.detail.get("errors")
    else:
        message = str(exc.detail)
        errors = None

    get_logger("api").info(
        f"{request.method} {request.url.path} -> {exc.status_code}: {message}"
    )
    return error_response(exc.status_code, message, errors)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request body/query schema failures as 400.

    Args:
        request: HTTP request
        exc: FastAPI RequestValidationError

    Returns:
        Envelope with one entry per failing field
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or "body",
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    logger = get_logger("api")
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        }
    )

    message = errors[0]["message"] if errors else "Request validation failed"
    if errors and errors[0]["field"] != "body":
        message = f"{errors[0]['field']}: {message}"
    return error_response(status.HTTP_400_BAD_REQUEST, message, errors)


@app.exception_handler(DependencyUnavailableError)
async def dependency_unavailable_handler(
    request: Request, exc: DependencyUnavailableError
) -> JSONResponse:
    """Handle an unreachable persistence layer."""
    get_logger("db").error(
        "Dependency unavailable",
        extra={"path": request.url.path, "method": request.method, "dependency": exc.dependency},
    )
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """
    Handle SQLAlchemy database errors.

    Connection failures map to 503, everything else to 500.

    Args:
        request: HTTP request
        exc: SQLAlchemy exception

    Returns:
        JSON envelope with database error message
    """
    logger = get_logger("db")
    logger.error(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    unavailable = isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    if unavailable:
        return await dependency_unavailable_handler(
            request, DependencyUnavailableError("database", detail=str(exc))
        )

    message = "An error occurred while accessing the database. Please try again later."
    if not get_settings().is_production:
        message = f"{message} ({exc})"
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    The exception text is only returned outside production.
    """
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    if get_settings().is_production:
        message = "An unexpected error occurred. Please try again later."
    else:
        message = f"{type(exc).__name__}: {exc}"
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


# Health check endpoint


@app.get("/health", tags=["Health"])
async def health_check(db: Session = Depends(get_db)) -> Any:
    """
    Health check endpoint.

    Returns:
        200 with service information when the database answers, 503 otherwise
    """
    if not check_connection(db):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "service": SERVICE_NAME,
                "database": "unavailable",
            },
        )

    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "database": "connected",
    }


# API routers
from backend.src.api import events, profiles, views

app.include_router(profiles.router, prefix="/api")
app.include_router(events.router, prefix="/api")

# Client view (HTML)
app.include_router(views.router)
