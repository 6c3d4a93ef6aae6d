"""ASGI session middleware backed by a SessionStore.

The cookie carries only a signed row id; values live in the database. The
middleware looks the session up before the app runs, attaches it to
``request.state.session`` and, when the response starts, saves it back (or
deletes it if the app marked it destroyed).

Store calls are blocking, so they run in Starlette's threadpool.
"""

from __future__ import annotations

import copy
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .model import Session
from .store import SessionStore

COOKIE_NAME = "session"


class SessionMiddleware:
    """ASGI middleware for database-backed sessions.

    The app can set ``request.state.session_destroyed = True`` to delete the
    session on the way out, or ``request.state.session_modified = True`` to
    save (and so renew) it without changing values. Otherwise a session is
    written back only when its values changed.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        cookie_name: str = COOKIE_NAME,
    ) -> None:
        self.app = app
        self.store = store
        self.cookie_name = cookie_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        conn = HTTPConnection(scope)
        session: Session = await run_in_threadpool(self.store.new, conn, self.cookie_name)
        initial_values: dict[str, Any] = copy.deepcopy(session.values)

        # Attach session to scope so request.state.session works
        scope["state"] = scope.get("state", {})
        scope["state"]["session"] = session
        scope["state"]["session_destroyed"] = False
        scope["state"]["session_modified"] = False

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                destroyed: bool = scope["state"].get("session_destroyed", False)
                headers = MutableHeaders(scope=message)

                if destroyed:
                    cookie = await run_in_threadpool(self.store.destroy, session)
                    headers.append("set-cookie", cookie)
                elif (
                    scope["state"].get("session_modified", False)
                    or session.values != initial_values
                ):
                    cookie = await run_in_threadpool(self.store.commit, session)
                    headers.append("set-cookie", cookie)

            await send(message)

        await self.app(scope, receive, send_wrapper)
