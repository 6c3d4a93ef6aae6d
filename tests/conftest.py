"""Shared fixtures for the sqlsession test suite."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from starlette.responses import Response

from sqlsession.config import Settings, override_settings
from sqlsession.main import create_app
from sqlsession.session import SQLAlchemyExecutor, SessionStore

from helpers import COOKIE_NAME, cookie_from, make_request

# ── Database & store ──────────────────────────────────────────────────────

@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'sessions.db'}"


@pytest.fixture
def engine(database_url):
    eng = create_engine(database_url, connect_args={"check_same_thread": False})
    yield eng
    eng.dispose()


@pytest.fixture
def executor(engine) -> SQLAlchemyExecutor:
    return SQLAlchemyExecutor(engine)


@pytest.fixture
def store(executor) -> SessionStore:
    return SessionStore(executor, "test-hash-key")


@pytest.fixture
def saved_session(store):
    """Persist a session with one value; returns (session, cookie)."""
    session = store.new(make_request(), COOKIE_NAME)
    session["user"] = "alice"
    response = Response()
    store.save(response, session)
    return session, cookie_from(response)


# ── App & client ──────────────────────────────────────────────────────────

@pytest.fixture
def test_settings(database_url) -> Settings:
    return Settings(
        database_url=database_url,
        session_secret="test-secret-key-for-sessions",
        session_cookie_name=COOKIE_NAME,
    )


@pytest.fixture
def app(test_settings, store):
    override_settings(test_settings)
    return create_app(session_store=store)


@pytest.fixture
def client(app) -> TestClient:
    """TestClient with cookie persistence."""
    return TestClient(app, cookies={})
