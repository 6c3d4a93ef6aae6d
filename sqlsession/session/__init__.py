from .executor import SQLAlchemyExecutor, StatementExecutor
from .middleware import SessionMiddleware
from .model import CookieOptions, LookupOutcome, Session
from .rwlock import ReadWriteLock
from .schema import SessionRecord
from .store import SessionStore

__all__ = [
    "CookieOptions",
    "LookupOutcome",
    "ReadWriteLock",
    "SQLAlchemyExecutor",
    "Session",
    "SessionMiddleware",
    "SessionRecord",
    "SessionStore",
    "StatementExecutor",
]
