"""FastAPI app exposing database-backed sessions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import get_settings
from .routes import health, logout, session_ep
from .session import SessionMiddleware, SessionStore

logger = logging.getLogger(__name__)


def create_app(*, session_store: SessionStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_store: Custom session store (default: built from settings).
    """
    s = get_settings()
    store = session_store or SessionStore.from_settings(s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.close()
        logger.info("Session store closed")

    app = FastAPI(title="sqlsession", lifespan=lifespan)
    app.state.session_store = store

    app.add_middleware(
        SessionMiddleware,
        store=store,
        cookie_name=s.session_cookie_name,
    )

    app.include_router(session_ep.router)
    app.include_router(logout.router)
    app.include_router(health.router)

    return app
