"""
api/main.py -- FastAPI application entry point for AccessGate.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests    -- method, path, status and latency for every request
  2. CORSMiddleware  -- credentials allowed so browsers send the jwt cookie

Lifespan owns the two process-wide resources: the UserStore and the
TokenService. The signing key is read from Settings exactly once, frozen into
a TokenConfig, and never touched again while the process runs.

Exception handlers are the only place where an auth ErrorKind becomes an
HTTP status code.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth import lifecycle
from auth.errors import AuthFailure, ErrorKind
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenService
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("accessgate.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.DUPLICATE_IDENTITY: 400,
    ErrorKind.INVALID_DATA: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_NOT_APPROVED: 401,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
}


def status_for(kind: ErrorKind) -> int:
    """Return the HTTP status for an error kind. Unmapped kinds are server errors."""
    return _STATUS_BY_KIND.get(kind, 500)


# ---------------------------------------------------------------------------
# Startup helpers
# ---------------------------------------------------------------------------


def build_token_service(settings: Settings) -> TokenService:
    """Freeze the token-related settings into a TokenConfig and wrap it."""
    return TokenService(
        TokenConfig(
            secret_key=settings.secret_key,
            expire_seconds=settings.token_expire_seconds,
            algorithm=settings.jwt_algorithm,
            cookie_secure=settings.cookie_secure,
            cookie_samesite=settings.cookie_samesite,
        )
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the store and token service on startup; dispose the store on shutdown."""
    settings = get_settings()
    logger.info("AccessGate API starting up (debug=%s)", settings.debug)

    app.state.token_service = build_token_service(settings)
    app.state.user_store = UserStore(settings.database_url)
    logger.info("User store initialized")

    if settings.bootstrap_admin_enabled:
        lifecycle.bootstrap_admin(
            app.state.user_store,
            settings.bootstrap_admin_name,
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password,
        )

    yield

    app.state.user_store.close()
    logger.info("AccessGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AccessGate API",
    description="Registration, login, bearer tokens, role checks and account approval.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same ErrorResponse envelope: {message, code}.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, stack: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code, stack=stack).model_dump(exclude_none=True),
    )


@app.exception_handler(AuthFailure)
async def auth_failure_handler(request: Request, exc: AuthFailure) -> JSONResponse:
    """Map a classified domain failure to its status code."""
    failure = exc.failure
    response = _error(status_for(failure.kind), failure.kind.value, failure.message)
    response.headers["Cache-Control"] = "no-store"
    if failure.kind is ErrorKind.UNAUTHENTICATED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a client error like any other validation failure: 400."""
    problems = ", ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return _error(400, ErrorKind.VALIDATION_FAILED.value, problems or "Request validation failed.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing-level errors (404 unknown path, 405 wrong method) in the same envelope."""
    response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback is always logged. It is only echoed to the client when
    DEBUG is on; production responses carry a generic message.
    """
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if get_settings().debug else None
    return _error(500, "internal_error", "An unexpected error occurred.", stack)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly here (not in a router) so it is always reachable.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and whether the user store answers."""
    components = {"app": "ok"}
    try:
        request.app.state.user_store.ping()
        components["database"] = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        components["database"] = "error"
    status = "healthy" if components["database"] == "ok" else "degraded"
    return HealthResponse(status=status, version=__version__, components=components)
