"""
CodeVault Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   create_app(settings) validates the settings, builds the shared
       components (Database, TokenService, AuthService, SnippetService),
       stores them on app.state and wires middleware, handlers and routes.
Who:   uvicorn (`uvicorn codevault.main:create_app --factory`), the
       `codevault` console script, and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Request ID  │→│ RateLim  │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐ ┌────────────┐   │
    │  │ /api/auth/*  │ │/api/snippets*│ │ GET /health│   │
    │  └──────────────┘ └──────────────┘ └────────────┘   │
    │                                                     │
    │  Exception Handlers:                                │
    │  400 validation/conflict │ 401 │ 403 │ 404 │ 500    │
    └─────────────────────────────────────────────────────┘

Startup:
    Configuration is validated BEFORE anything is built. A missing or short
    JWT_SECRET, or no database location, raises ConfigurationError and the
    process never starts serving.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from codevault import __version__
from codevault.config import Settings, load_settings
from codevault.database import Database
from codevault.exceptions import (
    AuthError,
    CodeVaultError,
    DatabaseError,
    ValidationError,
)
from codevault.middleware.logging import RequestLoggingMiddleware
from codevault.middleware.rate_limit import RateLimitMiddleware
from codevault.middleware.request_id import RequestIDMiddleware, request_id_var
from codevault.routes import auth, health, snippets
from codevault.services.auth_service import AuthService
from codevault.services.snippet_service import SnippetService
from codevault.services.token_service import TokenService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout
    (containers capture stdout).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  optionally create tables (DB_AUTO_CREATE), log readiness.
    Shutdown: dispose the engine so PostgreSQL frees its connections.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database

    logger.info("CodeVault Backend %s starting up...", __version__)
    if settings.db_auto_create:
        await database.create_all()
        logger.info("Database tables ensured (DB_AUTO_CREATE)")
    logger.info("Token lifetime: %d days", settings.jwt_expiration_days)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("CodeVault Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # The fallback handler runs in ServerErrorMiddleware, outside the context
    # RequestIDMiddleware set the ContextVar in; request.state is shared
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def _error_body(request: Request, message: str, code: str, details: Optional[dict] = None) -> dict:
    body = {"error": message, "code": code, "request_id": _request_id(request)}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to status codes and the shared JSON error body.

    Handler hierarchy:
        RequestValidationError  → 400 (FastAPI's default would be 422)
        ValidationError         → 400 with details
        AuthError               → 401 with WWW-Authenticate: Bearer
        DatabaseError           → 500, generic message
        CodeVaultError (others) → exc.status_code (Conflict 400, Forbidden 403, NotFound 404)
        Exception (fallback)    → 500, generic message

    Security: handlers never put stack traces or SQL in the response.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        first = problems[0] if problems else {"field": "", "message": "Invalid request"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        logger.warning("[%s] Request validation failed: %s", _request_id(request), message)
        return JSONResponse(
            status_code=400,
            content=_error_body(request, message, "validation_error", {"errors": problems}),
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.code, exc.context),
        )

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.code),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        # Full context server-side only
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "An internal error occurred. Please try again later.", exc.code
            ),
        )

    @app.exception_handler(CodeVaultError)
    async def handle_app_error(request: Request, exc: CodeVaultError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.code),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "An unexpected error occurred. Please try again or contact support.",
                "internal_server_error",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: pre-built configuration (tests); loaded from the
                  environment when omitted.

    Raises:
        ConfigurationError: the configuration is unusable. Nothing is built.
    """
    if settings is None:
        settings = load_settings()
    else:
        settings.validate_required()

    setup_logging(settings.log_level)

    app = FastAPI(
        title="CodeVault API",
        description="Personal code-snippet storage: register, then create, tag and organize snippets.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared Components ─────────────────────────────────────────────────
    token_service = TokenService.from_settings(settings)
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.token_service = token_service
    app.state.auth_service = AuthService(token_service)
    app.state.snippet_service = SnippetService(max_code_length=settings.max_code_length)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    # Don't compress small responses (overhead > savings)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(snippets.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """
    Console entry point (`codevault`): load settings once and serve.

    A ConfigurationError here ends the process with a non-zero status.
    """
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.backend_host,
        port=settings.backend_port,
        log_config=None,  # keep setup_logging's configuration
    )


if __name__ == "__main__":
    run()
