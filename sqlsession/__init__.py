"""Cookie-addressed server-side sessions stored in a relational table."""

from .errors import (
    CodecError,
    InvalidTimestamp,
    SessionExpired,
    SessionNotFound,
    SessionStoreError,
)
from .session import CookieOptions, Session, SessionMiddleware, SessionStore

__version__ = "0.1.0"

__all__ = [
    "CodecError",
    "CookieOptions",
    "InvalidTimestamp",
    "Session",
    "SessionExpired",
    "SessionMiddleware",
    "SessionNotFound",
    "SessionStore",
    "SessionStoreError",
]
