"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The session cookie is the only auth method. The token is looked up in the
SessionStore on app.state; a hit yields the SessionUser projection.

try_get_session_user() is the soft variant (returns None on failure).
require_session_user() wraps it and raises Unauthenticated, which the error
boundary in api/main.py turns into a redirect to the entry page.

The gate only distinguishes "has a valid session" from "does not". What the
is_privileged flag unlocks is up to the view layer.

Layer rule: no imports from web/ or content/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import SessionUser
from auth.sessions import SessionStore
from core.config import get_settings
from core.errors import Unauthenticated


def session_token(request: Request) -> str | None:
    """Return the raw session token from the request cookie, if any."""
    return request.cookies.get(get_settings().session_cookie_name)


def try_get_session_user(request: Request) -> SessionUser | None:
    """Return the SessionUser bound to the request's session cookie, or None.

    Never raises for a missing, unknown, or expired token. Storage failures
    propagate as InternalError.
    """
    token = session_token(request)
    if not token:
        return None
    session_store: SessionStore = request.app.state.session_store
    return session_store.validate(token)


def require_session_user(request: Request) -> SessionUser:
    """Require a valid session. Raises Unauthenticated otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: SessionUser = Depends(require_session_user)): ...
    """
    user = try_get_session_user(request)
    if user is None:
        raise Unauthenticated()
    return user
