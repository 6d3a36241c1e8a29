"""
web/i18n.py -- Locale selection and the message catalog for the web UI.

Locale resolution order for every request:
  1. ?lang= query parameter
  2. lang cookie
  3. Settings.default_locale

Only SUPPORTED_LOCALES are accepted; anything else falls back to the default,
so the cookie never carries arbitrary client text back into templates.

The middleware stores the resolved locale on request.state.locale and
refreshes the lang cookie (max-age 15 minutes, httpOnly) on the way out.

Flash messages are stored as catalog keys and translated at render time, so a
user who switches language between redirect and render sees the new language.
"""

from __future__ import annotations

from fastapi import Request

from core.config import get_settings

SUPPORTED_LOCALES: tuple[str, ...] = ("en", "fa", "ru")
LANG_COOKIE = "lang"
LANG_COOKIE_MAX_AGE = 900  # seconds (15 minutes)

MESSAGES: dict[str, dict[str, str]] = {
    "bad_credentials": {
        "en": "Wrong username or password, please try again.",
        "fa": "نام کاربری یا رمز عبور اشتباه است، لطفاً دوباره تلاش کنید.",
        "ru": "Неверное имя пользователя или пароль, попробуйте ещё раз.",
    },
    "duplicate_username": {
        "en": "Username already exists. Please choose another.",
        "fa": "این نام کاربری قبلاً ثبت شده است. لطفاً نام دیگری انتخاب کنید.",
        "ru": "Имя пользователя уже занято. Выберите другое.",
    },
    "signup_failed": {
        "en": "An error occurred. Please try again.",
        "fa": "خطایی رخ داد. لطفاً دوباره تلاش کنید.",
        "ru": "Произошла ошибка. Попробуйте ещё раз.",
    },
    "signup_success": {
        "en": "Account created successfully. Please log in.",
        "fa": "حساب با موفقیت ایجاد شد. لطفاً وارد شوید.",
        "ru": "Аккаунт успешно создан. Пожалуйста, войдите.",
    },
    "missing_fields": {
        "en": "Username and password are required.",
        "fa": "نام کاربری و رمز عبور الزامی است.",
        "ru": "Требуются имя пользователя и пароль.",
    },
    "password_too_long": {
        "en": "Password is too long.",
        "fa": "رمز عبور بیش از حد طولانی است.",
        "ru": "Пароль слишком длинный.",
    },
    "login": {"en": "Log in", "fa": "ورود", "ru": "Войти"},
    "logout": {"en": "Log out", "fa": "خروج", "ru": "Выйти"},
    "signup": {"en": "Sign up", "fa": "ثبت نام", "ru": "Регистрация"},
    "username": {"en": "Username", "fa": "نام کاربری", "ru": "Имя пользователя"},
    "password": {"en": "Password", "fa": "رمز عبور", "ru": "Пароль"},
    "welcome": {"en": "Welcome", "fa": "خوش آمدید", "ru": "Добро пожаловать"},
    "privileged": {"en": "Administrator", "fa": "مدیر", "ru": "Администратор"},
}


def normalize_locale(value: str | None) -> str | None:
    """Return value if it is a supported locale code, else None."""
    if not value:
        return None
    value = value.strip().lower()
    return value if value in SUPPORTED_LOCALES else None


def resolve_locale(request: Request) -> str:
    return (
        normalize_locale(request.query_params.get("lang"))
        or normalize_locale(request.cookies.get(LANG_COOKIE))
        or get_settings().default_locale
    )


def set_lang_cookie(response, locale: str) -> None:
    response.set_cookie(LANG_COOKIE, locale, max_age=LANG_COOKIE_MAX_AGE, httponly=True, samesite="lax")


def translate(key: str, locale: str) -> str:
    """Look up key in the catalog. Unknown locales use English; unknown keys echo the key."""
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    return entry.get(locale) or entry["en"]


def text_direction(locale: str) -> str:
    return "rtl" if locale == "fa" else "ltr"


async def locale_middleware(request: Request, call_next):
    """Resolve the request locale and re-set the lang cookie on the response.

    Handlers may overwrite request.state.locale (see /change-language); the
    cookie carries whatever value is there when the response comes back.
    """
    request.state.locale = resolve_locale(request)
    response = await call_next(request)
    set_lang_cookie(response, request.state.locale)
    return response
