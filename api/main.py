"""
api/main.py -- FastAPI application entry point for the content site.

Install deps:  pip install -e .
Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency for every request
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. SessionMiddleware     -- signed-cookie storage for one-shot flash messages
                              (no server-side state for anonymous visitors)
asgi.py adds the web layer's locale middleware on top.

Lifespan handles startup (stores, session purge task) and shutdown (cancel
purge task, dispose engines) symmetrically.

This module is also the single error boundary: stores and auth helpers raise
core.errors types, and the exception handlers below map each kind to a
transport response. Internal error text is logged, never returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.items import router as items_router
from auth.sessions import SessionStore
from auth.store import UserStore
from content.store import ContentStore
from core.config import get_settings
from core.errors import InternalError, NotFound, Unauthenticated

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("contentsite.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Evict expired sessions every SESSION_PURGE_INTERVAL_SECONDS.

    asyncio.sleep yields to the event loop between iterations; the purge
    itself runs in a worker thread so a slow DELETE never stalls requests.
    A failed sweep is logged and retried on the next tick. CancelledError
    from task.cancel() during shutdown is the only way out of the loop.
    """
    while True:
        await asyncio.sleep(_settings.session_purge_interval_seconds)
        try:
            removed = await asyncio.to_thread(app.state.session_store.purge_expired)
        except Exception:
            logger.exception("Session purge failed")
            continue
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores on startup and release them on shutdown.

    All three stores share DATABASE_URL; each owns its own tables.
    The purge task is started last because it references the session store.
    """
    logger.info("Content site starting up")
    app.state.user_store = UserStore()
    app.state.session_store = SessionStore()
    app.state.content_store = ContentStore()
    logger.info("Stores initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await app.state.purge_task
    app.state.content_store.close()
    app.state.session_store.close()
    app.state.user_store.close()
    logger.info("Content site shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Content Site",
    description="Accounts, session login, and a read-only listing of live content items.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the last one registered is
# the outermost. Register innermost first: Session, then TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(
    SessionMiddleware,
    secret_key=_settings.secret_key,
    session_cookie="flash",
    same_site="lax",
    https_only=_settings.secure_cookies,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)


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

app.include_router(items_router, tags=["Items"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# JSON errors share the ErrorResponse envelope. Unauthenticated is the one
# kind that is not an error page: it sends the browser to the entry page.
# ---------------------------------------------------------------------------


@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> RedirectResponse:
    return RedirectResponse("/", status_code=302)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    """404 with a short fixed message. Tombstoned and unknown ids look the same."""
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(error=ErrorDetail(code="not_found", message="Item not found.")).model_dump(),
    )


@app.exception_handler(InternalError)
async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    """Log the storage/hashing failure in full; return only a generic 500."""
    logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return _internal_error_response()


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (e.g. unknown routes)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _internal_error_response()


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="Internal Server Error",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Touches no store.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness and the current server time."""
    return HealthResponse()
