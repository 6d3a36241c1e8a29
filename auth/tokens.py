"""
auth/tokens.py -- Password hashing, credential checks, and session token utilities.

Security design decisions:
  Passwords: bcrypt with a fresh salt per hash. The cost factor comes from
       Settings.bcrypt_rounds and is never request-supplied. Two hashes of the
       same password differ, so hashes are compared only through
       verify_password(). The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether a username exists.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The
       raw token lives only in the client's cookie. The sessions table is
       keyed by HMAC-SHA256(SECRET_KEY, token), so a leaked sessions table
       cannot be replayed without also knowing SECRET_KEY.

  Cookies: httpOnly, samesite=lax, secure when SECURE_COOKIES=true, max_age
       equal to the server-side session TTL so both expire together.

bcrypt is CPU-bound. Callers in the HTTP layer are plain def handlers, which
FastAPI runs in its worker thread pool, so a slow hash never blocks the event
loop.

Layer rule: no imports from api/, web/, or content/.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings
from core.errors import InvalidCredentials

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("contentsite.auth")

_settings = get_settings()

# bcrypt only looks at the first 72 bytes of input; newer releases reject
# anything longer outright.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError for an empty password or one longer than 72 UTF-8 bytes.
    """
    if not plain:
        raise ValueError("password is required")
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=_settings.bcrypt_rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises: a malformed stored hash, empty input, or oversize input all
    yield False.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("contentsite_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User:
    """Check a username/password pair and return the matching User.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Raises InvalidCredentials on any mismatch. Storage failures propagate as
    InternalError from the store.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a new opaque session token (256 bits, URL-safe)."""
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, token) as a hex string.

    Deterministic, so the session row can be found by primary key.
    """
    return hmac.new(
        _settings.secret_key.encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response."""
    response.set_cookie(
        _settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_ttl_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(_settings.session_cookie_name)
