"""
FastAPI application entry point for the EventCore backend.

This module initializes the FastAPI application with:
- Database table creation and the auto-transition scheduler (lifespan)
- CORS middleware for frontend development
- Exception handlers for consistent error responses
- Logging configuration

Environment Variables:
    EVENTCORE_DB_URL: Database URL (default: local SQLite file)
    EVENTCORE_ENV: Environment (production/development, default: development)
    EVENTCORE_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
    EVENTCORE_SWEEP_ENABLED: Start the auto-transition scheduler (default: true)
    EVENTCORE_COLLATION_LOCALE: LC_COLLATE for series name ordering (default: environment)
"""

from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from eventcore.src.config.settings import get_settings
from eventcore.src.db.database import SessionLocal, init_db
from eventcore.src.services.auto_transition_service import AutoTransitionScheduler
from eventcore.src.services.sequence_service import configure_collation
from eventcore.src.utils.logging_config import init_logging, get_logger


APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
    - Startup: Create missing tables, set series name collation,
      start the auto-transition scheduler
    - Shutdown: Stop the scheduler

    Args:
        app: FastAPI application instance

    Yields:
        Control to the application
    """
    logger = get_logger("api")
    logger.info("Starting EventCore backend application")

    init_db()

    settings = get_settings()
    configure_collation(settings.collation_locale)

    app.state.scheduler = None
    if settings.sweep_enabled:
        app.state.scheduler = AutoTransitionScheduler(SessionLocal, settings=settings)
        await app.state.scheduler.start()
    else:
        logger.info("Auto-transition sweep disabled")

    logger.info("EventCore backend started successfully")

    yield

    logger.info("Shutting down EventCore backend application")
    if app.state.scheduler is not None:
        await app.state.scheduler.stop()


# Initialize logging before creating app
init_logging()

# Create FastAPI application
app = FastAPI(
    title="EventCore API",
    description="Event lifecycle management and series scheduling. "
                "Drives event publication status, time-based auto transitions, "
                "and validation and ordering of series inside an event.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# Configure CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # React dev server
        "http://127.0.0.1:3000",  # React dev server (alternative)
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers


@app.exception_handler(ValidationError)
async def validation_exception_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors raised outside request parsing.

    Args:
        request: HTTP request
        exc: Pydantic ValidationError

    Returns:
        JSON response with validation error details
    """
    logger = get_logger("api")
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": exc.errors(include_url=False, include_context=False),
        }
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """
    Handle SQLAlchemy database errors.

    Args:
        request: HTTP request
        exc: SQLAlchemy exception

    Returns:
        JSON response with database error message
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

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Database Error",
            "message": "An error occurred while accessing the database. "
                      "Please try again later.",
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    Args:
        request: HTTP request
        exc: Unhandled exception

    Returns:
        JSON response with generic error message
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

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


# Health check endpoint


@app.get("/health", tags=["Health"])
async def health_check(request: Request) -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status, application information and scheduler state
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "service": "eventcore-backend",
        "version": APP_VERSION,
        "sweep_running": bool(scheduler and scheduler.is_running),
    }


# API routers
from eventcore.src.api import lifecycle, series

app.include_router(lifecycle.router, prefix="/api")
app.include_router(series.router, prefix="/api")
