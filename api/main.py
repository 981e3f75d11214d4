"""
api/main.py -- FastAPI application entry point for CrudAdmin.

Run with:  uvicorn asgi:app --reload

This module owns process-wide concerns only: configuration, logging, the
lifespan (stores, session store, rate limiter, sweep task), response
headers, exception handlers, and the health endpoint. The HTML routes live in
web/ and are mounted by asgi.py.

Middleware (outermost to innermost):
  1. log_requests      -- method, path, status, latency, client
  2. security_headers  -- frame/sniff/referrer/permissions headers, CSP in production

Lifespan handles startup (settings, stores, sweep task) and shutdown (cancel
sweep task, dispose engines) symmetrically. Invalid configuration raises out
of startup so the server never accepts a request with a bad secret.
"""

from __future__ import annotations

import asyncio
import html
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import RateLimiter
from api.models import HealthResponse
from auth.dependencies import LoginRequired
from auth.session import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.db import ping
from customers.store import CustomerStore

APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("crudadmin.api")

# Applied to every response. [M4]
_SECURITY_HEADERS: dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

_CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: https:; "
    "font-src 'self' https:; "
    "connect-src 'self';"
)

# ---------------------------------------------------------------------------
# Background sweep task
# ---------------------------------------------------------------------------


async def _sweep_loop(app: FastAPI, interval: float) -> None:
    """Drop expired rate-limit windows every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        app.state.limiter.sweep()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Settings first -- a pydantic ValidationError here aborts startup.
      2. Stores second -- they create their tables on first connect.
      3. Session store and limiter -- pure in-memory objects.
      4. Sweep task last -- references app.state.limiter. Skipped under
         APP_ENV=test so tests control the limiter explicitly.
    """
    settings = get_settings()
    logger.info("CrudAdmin starting up (app_env=%s)", settings.app_env)

    app.state.settings = settings
    app.state.user_store = UserStore(settings.database_url)
    app.state.customer_store = CustomerStore(settings.database_url)
    app.state.session_store = SessionStore.from_settings(settings)
    app.state.limiter = RateLimiter()
    app.state.sweep_task = None
    if settings.app_env != "test":
        app.state.sweep_task = asyncio.create_task(_sweep_loop(app, settings.rate_limit_sweep_seconds))

    yield

    if app.state.sweep_task is not None:
        app.state.sweep_task.cancel()
    app.state.customer_store.close()
    app.state.user_store.close()
    logger.info("CrudAdmin shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CrudAdmin",
    description="Server-rendered admin panel for users and customers.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Security headers middleware
#
# CSP is production-only: the development toolchain may inject inline
# scripts that a strict policy would block.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.is_production:
        response.headers["Content-Security-Policy"] = _CONTENT_SECURITY_POLICY
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered last so it is the outermost layer and times the whole stack.
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
# Exception handlers
#
# The web UI is HTML, so errors render as small HTML pages. Nothing from the
# exception itself reaches the response body except an HTTPException's
# explicit detail string.
# ---------------------------------------------------------------------------


def _error_page(status_code: int, message: str) -> HTMLResponse:
    body = (
        "<!doctype html><html><head><meta charset='utf-8'>"
        f"<title>{status_code}</title></head><body>"
        f"<h1>{status_code}</h1><p>{html.escape(message)}</p>"
        "<p><a href='/'>Back to home</a></p></body></html>"
    )
    return HTMLResponse(body, status_code=status_code)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
    """Send unauthenticated visitors to the login page, remembering where they were going."""
    return RedirectResponse(exc.location, status_code=302)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> HTMLResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    response = _error_page(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> HTMLResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. Stack traces can leak implementation details.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_page(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth and no rate limit -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and a database connectivity check."""
    database_ok = ping(request.app.state.user_store.engine)
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=APP_VERSION,
        components={"app": "ok", "database": "ok" if database_ok else "error"},
    )
