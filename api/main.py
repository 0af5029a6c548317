"""
api/main.py -- FastAPI application factory for Formdesk.

Run with:      python main.py
               uvicorn api.main:create_app --factory --reload

create_app(settings) is the single place where configuration meets
components. Lifespan builds the stores (with startup retry), the password
hasher, the token service and the auth service from the injected Settings
and hangs them on app.state. Routes and the session gate read them from
there, so nothing depends on import-time globals.

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- allowed browser origins, credentials (cookies) allowed
  2. log_requests    -- one INFO line per request with latency, 500s included
  3. limit_body_size -- 413 when Content-Length exceeds max_body_bytes

Errors: every AppError subclass carries an ErrorKind; STATUS_BY_KIND is the
one place kinds become HTTP status codes. All error responses share the
ErrorResponse envelope.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.business import router as business_router
from api.routes.dashboard import router as dashboard_router
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.db import connect_with_retry
from core.errors import AppError, ErrorKind, PayloadTooLarge
from forms.store import FormStore

VERSION = "0.1.0"

logger = logging.getLogger("formdesk.api")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.validation: 400,
    ErrorKind.duplicate: 400,
    ErrorKind.unauthenticated: 401,
    ErrorKind.invalid_credentials: 401,
    ErrorKind.forbidden: 403,
    ErrorKind.not_found: 404,
    ErrorKind.payload_too_large: 413,
    ErrorKind.internal: 500,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build every component from app.state.settings; dispose stores on shutdown.

    Startup order matters:
      1. Stores first -- retried with backoff because the database may still
         be starting. If retries run out, startup fails and the server exits.
      2. Hasher and token service -- pure configuration, cannot fail.
      3. Auth service last -- it composes the three above.
    """
    settings: Settings = app.state.settings
    logger.info("Formdesk API starting up (environment=%s)", settings.environment)

    app.state.user_store = connect_with_retry(
        lambda: UserStore(settings.database_url),
        attempts=settings.db_connect_attempts,
        backoff_seconds=settings.db_connect_backoff_seconds,
    )
    app.state.form_store = connect_with_retry(
        lambda: FormStore(settings.database_url),
        attempts=settings.db_connect_attempts,
        backoff_seconds=settings.db_connect_backoff_seconds,
    )
    logger.info("Database initialized")

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenService(settings.secret_key, ttl_seconds=settings.token_expire_seconds)
    app.state.auth_service = AuthService(app.state.user_store, hasher, app.state.tokens)
    logger.info("Auth initialized (bcrypt_rounds=%d, token_ttl=%ds)", hasher.rounds, settings.token_expire_seconds)

    yield

    app.state.form_store.close()
    app.state.user_store.close()
    logger.info("Formdesk API shutdown complete")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Assemble the ASGI app. settings defaults to the environment-derived Settings."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(
        title="Formdesk API",
        description="User registration, cookie sessions and business form submission.",
        version=VERSION,
        lifespan=lifespan,
        # Interactive docs are a development convenience only.
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )
    app.state.settings = settings

    # ------------------------------------------------------------------
    # Middleware (registered innermost first; the last one added runs first)
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > settings.max_body_bytes:
            err = PayloadTooLarge(detail=f"limit is {settings.max_body_bytes} bytes")
            return _error_response(STATUS_BY_KIND[err.kind], err.kind.value, err.message, err.detail)
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500  # unless call_next returns a response
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %d %.1fms %s",
                request.method,
                request.url.path,
                status_code,
                ms,
                request.client.host if request.client else "unknown",
            )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,  # the session travels in a cookie
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        max_age=3600,
    )

    # ------------------------------------------------------------------
    # Routers
    # ------------------------------------------------------------------

    app.include_router(auth_router, tags=["Auth"])
    app.include_router(dashboard_router, tags=["Dashboard"])
    app.include_router(business_router, tags=["Business"])

    # ------------------------------------------------------------------
    # Exception handlers
    #
    # All handlers return the same ErrorResponse envelope so clients can
    # parse errors uniformly without inspecting status codes first.
    # ------------------------------------------------------------------

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        status_code = STATUS_BY_KIND[exc.kind]
        if status_code >= 500:
            logger.error("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message)
        return _error_response(status_code, exc.kind.value, exc.message, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Return 400 with a structured error when the body or query params fail validation."""
        return _error_response(
            STATUS_BY_KIND[ErrorKind.validation],
            ErrorKind.validation.value,
            "Request validation failed.",
            str(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Wrap routing errors (unknown path, wrong method) in the standard envelope."""
        return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unexpected server errors.

        The traceback always goes to the log. The client sees the exception
        text only outside production, where it helps local debugging.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        detail = None if settings.is_production else f"{type(exc).__name__}: {exc}"
        return _error_response(
            STATUS_BY_KIND[ErrorKind.internal],
            ErrorKind.internal.value,
            "An unexpected error occurred.",
            detail,
        )

    # ------------------------------------------------------------------
    # Health
    #
    # Public and defined on the app itself so it is reachable regardless of
    # router registration state.
    # ------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(request: Request) -> HealthResponse:
        """Return liveness, version, and whether the database answers."""
        try:
            db_ok = await asyncio.to_thread(request.app.state.user_store.ping)
        except SQLAlchemyError:
            logger.warning("Health check: database unreachable", exc_info=True)
            db_ok = False
        return HealthResponse(
            status="ok" if db_ok else "degraded",
            version=VERSION,
            database="ok" if db_ok else "error",
        )

    return app
