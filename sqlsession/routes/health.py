"""GET /health: Liveness check."""

from fastapi import APIRouter, Request
from sqlalchemy import text

router = APIRouter()


@router.get("/health")
def health(request: Request):
    engine = getattr(request.app.state.session_store.executor, "engine", None)
    database = "unknown"
    if engine is not None:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            database = "ready"
        except Exception:
            database = "unavailable"
    return {"status": "ok", "database": database}
