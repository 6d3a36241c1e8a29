"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Dataclasses own domain shape; stores and routes do the
work. The only logic here is constructor validation of required fields, so an
invalid record cannot be built in the first place.

Layer rule: no imports from api/, web/, or content/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    username is unique across the users table; the store enforces that with a
    UNIQUE constraint, not with a lookup before insert.

    hashed_password is an opaque bcrypt string. created_at is stamped by the
    store on insert and never changes afterwards.
    """

    username: str
    hashed_password: str
    is_privileged: bool = False
    id: int | None = None
    created_at: str | None = None

    def __post_init__(self) -> None:
        self.username = (self.username or "").strip()
        if not self.username:
            raise ValueError("username is required")
        if not self.hashed_password:
            raise ValueError("hashed_password is required")


@dataclass(frozen=True)
class SessionUser:
    """The projection of a User cached in a server-side session.

    Captured at login. It is not refreshed if the underlying User changes;
    it simply expires with the session.
    """

    user_id: int
    username: str
    is_privileged: bool = False

    @classmethod
    def from_user(cls, user: User) -> SessionUser:
        if user.id is None:
            raise ValueError("cannot project a user that has not been stored")
        return cls(user_id=user.id, username=user.username, is_privileged=user.is_privileged)
