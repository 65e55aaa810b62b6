"""
api/main.py -- FastAPI application entry point for authflow.

Exposes the active authentication profile to sign-in pages and guards the
identity layer's endpoints (mounted under the profile's server.base_path,
/api/auth by default) so that a request can only complete sign-in through a
method the active profile sanctions.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- one log line per request with latency
  2. enforce_auth_method   -- fail-closed method gate for {base_path}/...
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan resolves the active profile once at startup and stores it on
app.state.auth_profile. Profiles are immutable, so every request handler reads
the same object without locking. If the lifespan did not run, the profile is
resolved on the first request (api/dependencies.py); the gate never runs
without one.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.dependencies import get_request_profile
from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.enforcement import evaluate_request_path
from auth.models import AuthenticationProfile
from auth.resolve import ProfileConfigError, get_active_profile, profile_storage_key
from core.config import get_settings

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authflow.api")
enforcement_logger = logging.getLogger("authflow.enforcement")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Resolve the active profile before any request arrives.

    get_active_profile() raises ProfileConfigError only in strict mode, which
    aborts startup -- that is the point of strict mode.
    """
    logger.info("authflow API starting up")
    app.state.auth_profile = get_active_profile()
    logger.info("Authentication profile active: %s", profile_storage_key(app.state.auth_profile))

    yield

    logger.info("authflow API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="authflow API",
    description="Authentication-flow profiles and server-side sign-in method enforcement.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps the most recently added middleware outermost, so the
# @app.middleware("http") functions registered below run before these two.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=get_settings().allowed_hosts,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Sign-in method enforcement middleware
#
# Every request under the profile's base_path is checked before the identity
# layer sees it. Denials are 403 with the standard error envelope; the reason
# code is logged but not returned, so a client cannot probe which paths the
# enforcement table knows about.
# ---------------------------------------------------------------------------


def _denied() -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content=ErrorResponse(
            error=ErrorDetail(
                code="auth_method_not_allowed",
                message="This sign-in method is not available.",
            )
        ).model_dump(),
    )


@app.middleware("http")
async def enforce_auth_method(request: Request, call_next):
    try:
        profile = get_request_profile(request)
    except ProfileConfigError:
        # Strict mode with a bad value and no lifespan: nothing is sanctioned.
        enforcement_logger.error(
            "No usable authentication profile; denying %s %s", request.method, request.url.path[:128]
        )
        return _denied()

    path = request.url.path
    base_path = profile.server.base_path.rstrip("/")
    if path != base_path and not path.startswith(base_path + "/"):
        return await call_next(request)

    decision = evaluate_request_path(profile, path[len(base_path) :] or "/")
    if decision.allowed:
        return await call_next(request)

    enforcement_logger.warning(
        "Denied %s %s (profile=%s reason=%s method=%s)",
        request.method,
        path[:128],
        profile.id,
        decision.reason,
        decision.method,
    )
    return _denied()


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all HTTP exceptions, including routing 404s."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit applied -- health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(profile: AuthenticationProfile = Depends(get_request_profile)) -> HealthResponse:
    """Return API liveness, version, and the active profile's stable id."""
    return HealthResponse(version=API_VERSION, profile=profile_storage_key(profile))
