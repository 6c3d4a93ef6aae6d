"""GET/PUT /session: Read and update session values."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder

from ..dependencies import get_session, touch_session
from ..session import Session

router = APIRouter()


@router.get("/session")
async def read_session(session: Session = Depends(get_session)):
    return {
        "is_new": session.is_new,
        "outcome": session.outcome.value,
        "values": jsonable_encoder(session.values),
    }


@router.put("/session")
async def update_session(
    body: dict[str, Any],
    session: Session = Depends(get_session),
    max_age: int | None = Query(default=None),
):
    """Merge ``body`` into the session values.

    ``max_age`` overrides the lifetime for this session only; a value <= 0
    deletes the session when the response is sent.
    """
    session.values.update(body)
    if max_age is not None:
        session.options.max_age = max_age
    return {"success": True}


@router.post("/session/renew")
async def renew_session(request: Request):
    touch_session(request)
    return {"success": True}
