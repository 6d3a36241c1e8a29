"""
web/routes.py -- Jinja2 template routes for the content site's web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same user, session, and content stores).

Every handler that hashes or verifies a password is a plain def, so FastAPI
runs it in its worker thread pool and bcrypt never blocks the event loop.

Routes:
  GET  /                 -- entry page (login form)
  POST /login            -- check credentials, issue session, redirect /main
  GET  /signup           -- signup form
  POST /signup           -- create account, redirect / with success message
  GET  /logout           -- destroy session, redirect /
  GET  /main             -- landing page (valid session required)
  GET  /change-language  -- switch locale, redirect back to the referring page

Messages between a POST and the page it redirects to travel as flash entries
in the signed "flash" cookie (Starlette SessionMiddleware). They hold catalog
keys only, never user input.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import require_session_user, session_token, try_get_session_user
from auth.models import SessionUser, User
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_session_cookie, hash_password, set_session_cookie
from core.config import get_settings
from core.errors import DuplicateUsername, InternalError, InvalidCredentials
from web.i18n import normalize_locale, text_direction, translate

logger = logging.getLogger("contentsite.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# ---------------------------------------------------------------------------
# Flash messages
# ---------------------------------------------------------------------------

_FLASH_KEY = "_flashes"


def _flash(request: Request, kind: str, message_key: str) -> None:
    """Queue a catalog message for the next rendered page. kind is "success" or "error"."""
    flashes = request.session.get(_FLASH_KEY) or {}
    flashes.setdefault(kind, []).append(message_key)
    request.session[_FLASH_KEY] = flashes


def _pop_flashes(request: Request, locale: str) -> dict[str, list[str]]:
    flashes = request.session.pop(_FLASH_KEY, None) or {}
    return {
        "success": [translate(k, locale) for k in flashes.get("success", [])],
        "error": [translate(k, locale) for k in flashes.get("error", [])],
    }


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(request: Request, name: str, user: Optional[SessionUser] = None, **context) -> HTMLResponse:
    """Render a template with the context every page gets: user, locale, and pending messages."""
    locale = getattr(request.state, "locale", None) or get_settings().default_locale
    flashes = _pop_flashes(request, locale)
    return templates.TemplateResponse(
        request,
        name,
        {
            "user": user,
            "locale": locale,
            "dir": text_direction(locale),
            "t": lambda key: translate(key, locale),
            "success_messages": flashes["success"],
            "error_messages": flashes["error"],
            **context,
        },
    )


def _safe_referrer(request: Request) -> str:
    """Return the same-origin path of the Referer header, or "/".

    Off-site and protocol-relative referrers are rejected (open-redirect
    prevention). A lang= query parameter is dropped so it cannot override the
    locale that was just chosen.
    """
    referrer = request.headers.get("referer")
    if not referrer:
        return "/"
    parts = urlsplit(referrer)
    if parts.netloc and parts.netloc != request.url.netloc:
        return "/"
    path = parts.path or "/"
    if not path.startswith("/") or path.startswith("//"):
        return "/"
    query = urlencode([(k, v) for k, v in parse_qsl(parts.query) if k != "lang"])
    return f"{path}?{query}" if query else path


# ---------------------------------------------------------------------------
# Entry page and login
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return _render(request, "login.html", user=try_get_session_user(request))


@router.post("/login")
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Check credentials; on success bind a fresh session and go to /main."""
    user_store: UserStore = request.app.state.user_store
    session_store: SessionStore = request.app.state.session_store
    logger.info("Login attempt for username=%r", username[:100])

    try:
        user = authenticate_user(user_store, username.strip(), password)
    except InvalidCredentials:
        _flash(request, "error", "bad_credentials")
        return RedirectResponse("/", status_code=302)

    # Never reuse a token that existed before authentication.
    session_store.destroy(session_token(request))
    token = session_store.issue(user)
    resp = RedirectResponse("/main", status_code=302)
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


@router.get("/signup", response_class=HTMLResponse)
def signup_form(request: Request) -> HTMLResponse:
    return _render(request, "signup.html", user=try_get_session_user(request))


@router.post("/signup")
def signup_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Create an account.

    Uniqueness is decided by the store's single INSERT. A concurrent signup
    for the same name surfaces here as DuplicateUsername.
    """
    user_store: UserStore = request.app.state.user_store
    username = username.strip()

    if not username or not password:
        _flash(request, "error", "missing_fields")
        return RedirectResponse("/signup", status_code=302)

    try:
        hashed = hash_password(password)
    except ValueError:
        _flash(request, "error", "password_too_long")
        return RedirectResponse("/signup", status_code=302)

    try:
        user_store.create_user(User(username=username, hashed_password=hashed))
    except DuplicateUsername:
        _flash(request, "error", "duplicate_username")
        return RedirectResponse("/signup", status_code=302)
    except InternalError:
        logger.exception("Error during sign-up for username=%r", username[:100])
        _flash(request, "error", "signup_failed")
        return RedirectResponse("/signup", status_code=302)

    logger.info("Account created for username=%r", username[:100])
    _flash(request, "success", "signup_success")
    return RedirectResponse("/", status_code=302)


# ---------------------------------------------------------------------------
# Logout and landing page
# ---------------------------------------------------------------------------


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    """Destroy the server-side session and clear the cookie. Safe to call when logged out."""
    session_store: SessionStore = request.app.state.session_store
    session_store.destroy(session_token(request))
    resp = RedirectResponse("/", status_code=302)
    clear_session_cookie(resp)
    return resp


@router.get("/main", response_class=HTMLResponse)
def main_page(request: Request, user: SessionUser = Depends(require_session_user)) -> HTMLResponse:
    """Landing page. The projection's username and privilege flag go to the template as-is."""
    return _render(
        request,
        "main.html",
        user=user,
        username=user.username,
        is_privileged=user.is_privileged,
    )


# ---------------------------------------------------------------------------
# Locale
# ---------------------------------------------------------------------------


@router.get("/change-language")
def change_language(request: Request, lang: str = "") -> RedirectResponse:
    """Switch the UI language. The locale middleware writes the lang cookie."""
    request.state.locale = normalize_locale(lang) or get_settings().default_locale
    return RedirectResponse(_safe_referrer(request), status_code=302)
