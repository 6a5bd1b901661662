"""
Shipment Service Backend - FastAPI Application Factory
=======================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       Process-scoped collaborators (database, identity resolver, usage
       notifier, statistics client) live on app.state; any that are not
       injected are built from settings during startup.
Who:   uvicorn (`uvicorn app.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                     FastAPI App                          │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  ┌────────────┐ ┌─────────┐ ┌─────────┐ ┌────────────┐   │
    │  │ CommandLog │→│ Req ID  │→│ Logging │→│ GZip/CORS  │   │
    │  └────────────┘ └─────────┘ └─────────┘ └────────────┘   │
    │                                                          │
    │  Routes:                                                 │
    │  /api/shipments  /graphql  /api/statistics  /api/health  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Auth→401/403 │ Validation→400 │ NotFound→404 │ DB→500   │
    │  Upstream→503 │ anything else→500                        │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, config validation, build missing collaborators,
              optional create_all (DB_AUTO_CREATE)
    Shutdown: drain usage notifications, close HTTP clients, dispose engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import Database
from app.exceptions import (
    AuthenticationError,
    DatabaseError,
    PermissionDeniedError,
    ShipmentServiceError,
    UpstreamServiceError,
    ValidationError,
)
from app.middleware.command_log import CommandLogMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import graphql, health, shipments, statistics
from app.services.identity_service import IdentityResolver
from app.services.statistics_client import StatisticsClient
from app.services.usage_notifier import UsageNotifier

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level comes from LOG_LEVEL. Everything goes to stdout (container logs).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every request/statement at INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "strawberry"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Shipment service starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks still work and every authenticated
        # request is rejected with 403 until the secret is configured
        logger.error("Configuration error: %s", str(e))

    state = app.state
    if state.database is None:
        state.database = Database.from_settings(settings)
    if state.identity_resolver is None:
        state.identity_resolver = IdentityResolver.from_settings(settings)
    if state.usage_notifier is None:
        state.usage_notifier = UsageNotifier.from_settings(state.database, settings)
    if state.statistics_client is None:
        state.statistics_client = StatisticsClient.from_settings(settings)

    if settings.db_auto_create:
        logger.info("DB_AUTO_CREATE set; creating missing tables")
        await state.database.create_all()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shipment service shutting down...")
    await state.usage_notifier.aclose()
    await state.statistics_client.aclose()
    await state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(
    error: str, message: str, details: Optional[Any] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def _describe_validation_errors(errors: List[Dict[str, Any]]) -> tuple:
    details = []
    missing = []
    for err in errors:
        # loc is ("body", "field") / ("path", "shipment_id"); drop the source
        loc = [str(part) for part in err.get("loc", ())[1:]]
        field = ".".join(loc) or "body"
        details.append({"field": field, "message": err.get("msg", "")})
        if err.get("type") == "missing":
            missing.append(field)

    if missing:
        message = "Missing required field(s): " + ", ".join(missing)
    elif details:
        message = f"Invalid value for {details[0]['field']}: {details[0]['message']}"
    else:
        message = "Invalid request"
    return message, details


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        AuthenticationError      → 401 (missing/expired) or 403 (invalid)
        PermissionDeniedError    → 403
        ValidationError          → 400
        RequestValidationError   → 400 (FastAPI body/path validation)
        DatabaseError            → 500, generic message
        UpstreamServiceError     → 503
        ShipmentServiceError     → exc.status_code
        Exception (fallback)     → 500

    Bodies: {"error", "message", "details"?, "request_id"}. Context dicts
    are logged, and only field-level details are echoed back.
    """

    @app.exception_handler(AuthenticationError)
    async def handle_auth_error(request: Request, exc: AuthenticationError):
        logger.warning(
            "[%s] Authentication failed (%s): %s",
            request_id_var.get(""),
            exc.error_code,
            exc.context or exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body(exc.error_code, exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        message, details = _describe_validation_errors(exc.errors())
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, details),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                exc.error_code, "An internal error occurred. Please try again later."
            ),
        )

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error(
            "[%s] Upstream service error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=503,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(ShipmentServiceError)
    async def handle_service_error(request: Request, exc: ShipmentServiceError):
        if exc.status_code >= 500:
            logger.error("[%s] %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace goes to the log only, never into the response."""
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    database: Optional[Database] = None,
    identity_resolver: Optional[IdentityResolver] = None,
    usage_notifier: Optional[UsageNotifier] = None,
    statistics_client: Optional[StatisticsClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators passed in are used as-is (tests inject a SQLite database,
    a resolver with a known secret, and notifiers on mock transports).
    Missing ones are created from settings by the lifespan.
    """
    app = FastAPI(
        title="Shipment Service API",
        description=(
            "Per-user shipment tracking records. Every operation is scoped to "
            "the recipient email carried by the caller's bearer token."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.database = database
    app.state.identity_resolver = identity_resolver
    app.state.usage_notifier = usage_notifier
    app.state.statistics_client = statistics_client

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CommandLog → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(CommandLogMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(shipments.router)
    app.include_router(statistics.router)
    app.include_router(health.router)
    app.include_router(graphql.router, prefix="/graphql", tags=["GraphQL"])

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
