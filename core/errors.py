"""
core/errors.py -- Error taxonomy shared by every layer.

Stores and auth helpers raise these; the web handlers recover the
user-facing kinds (DuplicateUsername, InvalidCredentials) into flash
messages, and api/main.py maps the rest to transport responses in one place.

InternalError carries the server-side detail in its message. That message is
logged, never echoed to a client.
"""


class AppError(Exception):
    """Base class for all domain errors raised by the content site."""


class DuplicateUsername(AppError):
    """A user with this username already exists."""

    def __init__(self, username: str) -> None:
        super().__init__(f"username {username!r} is already taken")
        self.username = username


class InvalidCredentials(AppError):
    """Username/password pair did not match a user."""


class NotFound(AppError):
    """Requested record does not exist or is not visible."""


class Unauthenticated(AppError):
    """Request carries no valid session."""


class InternalError(AppError):
    """Storage or hashing failure. The message is for logs only."""
