"""Helpers shared by the test modules."""

from __future__ import annotations

from datetime import datetime, timezone

from starlette.requests import Request
from starlette.responses import Response

COOKIE_NAME = "session"
T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_request(cookie: str = "") -> Request:
    """A bare GET request, optionally carrying a Cookie header."""
    headers = []
    if cookie:
        headers.append((b"cookie", cookie.encode("latin-1")))
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "query_string": b"",
            "headers": headers,
        }
    )


def cookie_from(response: Response) -> str:
    """The name=value part of the response's Set-Cookie header."""
    return response.headers["set-cookie"].split(";")[0]
