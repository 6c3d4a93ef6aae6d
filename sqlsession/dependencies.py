"""FastAPI dependency injection: session access."""

from __future__ import annotations

from fastapi import Request

from .session import Session


def get_session(request: Request) -> Session:
    """Get the session from request state."""
    return request.state.session


def touch_session(request: Request) -> None:
    """Save the session on the way out even if no value changed."""
    request.state.session_modified = True


def destroy_session(request: Request) -> None:
    """Mark the session for destruction."""
    request.state.session_destroyed = True
    request.state.session.clear()
