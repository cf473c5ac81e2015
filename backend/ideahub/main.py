"""
IdeaHub Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn ideahub.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware (outermost first):                           │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐     │
    │  │   CORS   │→│  Req ID  │→│ Logging  │→│   GZip   │     │
    │  └──────────┘ └──────────┘ └──────────┘ └──────────┘     │
    │                                                          │
    │  Routes (ApiKeyAuth dependency on /ideas and /profile):  │
    │  ┌──────────────────┐ ┌──────────────┐ ┌─────────────┐   │
    │  │ /ideas[/{id}]    │ │ GET /profile │ │ GET /health │   │
    │  └──────────────────┘ └──────────────┘ └─────────────┘   │
    │                                                          │
    │  Exception Handlers → {"error": ..., "details"?: [...]}  │
    │  401 Auth │ 403 Perm │ 400 Validation │ 404 │ 405 │ 429  │
    │  500 Database / Internal / unexpected                    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging, configuration check, ready banner
    Shutdown:  dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideahub import __version__
from ideahub.auth.api_key_auth import drain_usage_tasks
from ideahub.config import settings
from ideahub.database import async_session_factory, dispose_engine
from ideahub.exceptions import (
    AuthenticationError,
    DatabaseError,
    IdeaHubError,
    InternalServerError,
    MethodNotAllowedError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationError,
)
from ideahub.middleware.cors import FixedCORSMiddleware
from ideahub.middleware.logging import RequestLoggingMiddleware
from ideahub.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware
from ideahub.routes import health, ideas, profile
from ideahub.stores.rate_limit import SqlRateLimiter

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    The request id comes from RequestIDLogFilter, attached to the handler so
    records from every logger (uvicorn, sqlalchemy) get the attribute.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("IdeaHub Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: local development runs on the placeholder secret
        logger.error("Configuration error: %s", str(e))

    logger.info("Rate limit backend: %s", settings.rate_limit_backend)
    if settings.rate_limit_backend != "memory":
        # Unsupported database dialects fail here rather than on the first request
        SqlRateLimiter(async_session_factory)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("IdeaHub Backend shutting down...")
    await drain_usage_tasks()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    details: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, object] = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared error body.

    Handler hierarchy:
        AuthenticationError     → 401
        PermissionDeniedError   → 403
        ValidationError         → 400 (with details when present)
        NotFoundError           → 404
        MethodNotAllowedError   → 405
        RateLimitExceededError  → 429 + Retry-After
        DatabaseError           → 500 (fixed per-operation message)
        InternalServerError     → 500
        IdeaHubError (base)     → 500
        HTTPException           → its own status (unknown path, unmatched verb)
        Exception (fallback)    → 500 "Internal server error"

    Context dicts and stack traces are logged, never returned.
    """

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.info("Authentication rejected: %s", exc.message)
        return _error_response(401, exc.message)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        return _error_response(403, exc.message)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s %s", exc.message, exc.details)
        return _error_response(400, exc.message, details=exc.details)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.message)

    @app.exception_handler(MethodNotAllowedError)
    async def handle_method_not_allowed(request: Request, exc: MethodNotAllowedError):
        return _error_response(405, exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429, exc.message, headers={"Retry-After": str(exc.retry_after)}
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(InternalServerError)
    async def handle_internal_error(request: Request, exc: InternalServerError):
        logger.error("Internal error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(IdeaHubError)
    async def handle_ideahub_error(request: Request, exc: IdeaHubError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return _error_response(400, "Validation failed", details=details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return _error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error_response(500, "Internal server error")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="IdeaHub API",
        description=(
            "API-key gateway over personal idea records. Clients (typically AI "
            "assistants) list, read, create, update and archive ideas with a "
            "scoped, rate-limited `x-api-key`."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added = outermost)

    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Outermost: preflights never reach logging or routing, and every
    # response (errors included) leaves with the CORS headers
    app.add_middleware(FixedCORSMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(ideas.router)
    app.include_router(profile.router)
    app.include_router(health.router)

    return app


app = create_app()
