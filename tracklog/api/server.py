"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Dict, List
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tracklog.api.routes import router
from tracklog.api.metrics_routes import router as metrics_router
from tracklog.api.middleware import setup_cors, setup_rate_limiting
from tracklog.config import LOG_LEVEL, validate_config
from tracklog.db.connection import db
from tracklog.db.schema import ensure_schema
from tracklog.exceptions import (
    AuthorizationError,
    InvalidIdError,
    RecordNotFoundError,
    TrackLogError,
    ValidationFailedError,
)
from tracklog.monitoring import capture_exception, init_sentry
from tracklog.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

# First match wins; anything else is a 500
ERROR_STATUS_CODES = (
    (ValidationFailedError, 400),
    (InvalidIdError, 400),
    (AuthorizationError, 403),
    (RecordNotFoundError, 404),
)


def status_code_for(exc: TrackLogError) -> int:
    """HTTP status for a service exception"""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def request_validation_error(exc: RequestValidationError) -> ValidationFailedError:
    """
    Convert FastAPI's request parsing errors into a ValidationFailedError.

    The leading "body"/"query"/"path" part of each error location is dropped
    so keys match entry field paths ("data", "limit", "peeLog.time").
    """
    field_errors: Dict[str, List[str]] = {}
    errors: List[str] = []

    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        key = ".".join(loc) or "request"
        field_errors.setdefault(key, []).append(error.get("msg", "Invalid value"))
        errors.append(f"{key}: {error.get('msg', 'Invalid value')}")

    return ValidationFailedError(
        message="Validation failed",
        field_errors=field_errors,
        errors=errors
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    validate_config()
    init_sentry()
    await db.init_pool()
    logger.info("Database pool initialized")

    await ensure_schema()
    init_container(db)

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await db.close_pool()
    logger.info("Database pool closed")


def create_api_application() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Tracklog API",
        description="Schema-driven trackers and log entries",
        version="1.0.0",
        lifespan=lifespan
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(TrackLogError)
    async def tracklog_exception_handler(request: Request, exc: TrackLogError):
        status_code = status_code_for(exc)
        if status_code == 500:
            capture_exception(exc, request_id=exc.request_id, path=request.url.path)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        error = request_validation_error(exc)
        return JSONResponse(status_code=400, content=error.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        capture_exception(exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info("FastAPI application created")

    return app
