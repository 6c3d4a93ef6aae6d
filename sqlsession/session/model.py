"""Runtime session objects and cookie rendering."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from email.utils import formatdate
from typing import Any

DEFAULT_PATH = "/"
DEFAULT_MAX_AGE = 14 * 24 * 3600  # 14 days

# Timestamps carried through Session.values; never persisted in the blob.
CREATED_ON = "created_on"
MODIFIED_ON = "modified_on"
EXPIRES_ON = "expires_on"
RESERVED_KEYS = (CREATED_ON, MODIFIED_ON, EXPIRES_ON)


class LookupOutcome(str, enum.Enum):
    """Why a lookup produced the session it did. Diagnostic only."""

    LOADED = "loaded"
    NO_COOKIE = "no_cookie"
    INVALID_COOKIE = "invalid_cookie"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CORRUPT = "corrupt"


@dataclass
class CookieOptions:
    """Cookie attributes, and the lifetime used for expires_on.

    ``max_age`` > 0 keeps the cookie for that many seconds, 0 makes it a
    browser-session cookie, and < 0 expires it immediately. Saving a
    session whose max_age is <= 0 deletes it.
    """

    path: str = DEFAULT_PATH
    max_age: int = DEFAULT_MAX_AGE
    domain: str | None = None
    secure: bool = False
    http_only: bool = True
    same_site: str | None = "lax"

    def copy(self, **changes: Any) -> "CookieOptions":
        return replace(self, **changes)


@dataclass
class Session:
    name: str
    options: CookieOptions = field(default_factory=CookieOptions)
    id: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    is_new: bool = True
    outcome: LookupOutcome = LookupOutcome.NO_COOKIE
    # Creation time of the backing row, kept across saves within a request.
    created_on: datetime | None = field(default=None, repr=False)

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.values[key] = value

    def __delitem__(self, key: str) -> None:
        del self.values[key]

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def clear(self) -> None:
        self.values.clear()


def new_cookie(name: str, value: str, options: CookieOptions) -> str:
    """Render a Set-Cookie header value."""
    parts = [f"{name}={value}"]
    if options.max_age > 0:
        parts.append(f"Max-Age={options.max_age}")
        parts.append(f"Expires={formatdate(time.time() + options.max_age, usegmt=True)}")
    elif options.max_age < 0:
        parts.append("Max-Age=0")
        parts.append(f"Expires={formatdate(1, usegmt=True)}")
    parts.append(f"Path={options.path}")
    if options.domain:
        parts.append(f"Domain={options.domain}")
    if options.http_only:
        parts.append("HttpOnly")
    if options.same_site:
        parts.append(f"SameSite={options.same_site}")
    if options.secure:
        parts.append("Secure")
    return "; ".join(parts)
