"""Structured session lifecycle events.

Events are logged to the ``sqlsession.audit`` logger as one-line JSON.
Consumers attach their own handlers (JSON formatter, log shipper, etc.).

Usage::

    from sqlsession import audit
    audit.session_event(
        activity_id=audit.SessionActivity.CREATE,
        activity_name="Create",
        status_id=audit.Status.SUCCESS,
        severity_id=audit.Severity.INFORMATIONAL,
        cookie_name="session",
        session_id="42",
        message="Session created",
    )
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

logger = logging.getLogger("sqlsession.audit")

# ── Constants ──────────────────────────────────────────────────────────────


class SessionActivity:
    CREATE = 1
    RENEW = 2
    LOAD = 3
    REJECT = 4  # Cookie present but no usable session behind it
    DESTROY = 5


class Status:
    SUCCESS = 1
    FAILURE = 2


class Severity:
    INFORMATIONAL = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    CRITICAL = 5


_SEVERITY_NAMES = {
    Severity.INFORMATIONAL: "Informational",
    Severity.LOW: "Low",
    Severity.MEDIUM: "Medium",
    Severity.HIGH: "High",
    Severity.CRITICAL: "Critical",
}

_PRODUCT = {
    "name": "sqlsession",
    "version": "0.1.0",
}


# ── Core emit ──────────────────────────────────────────────────────────────


def emit(event: dict[str, Any]) -> None:
    """Log an event as JSON.  Never raises; errors are silently caught."""
    try:
        logger.info(json.dumps(event, default=str))
    except Exception:
        pass


# ── Event builders ─────────────────────────────────────────────────────────


def session_event(
    *,
    activity_id: int,
    activity_name: str,
    status_id: int,
    severity_id: int,
    cookie_name: str,
    session_id: str | None = None,
    outcome: str | None = None,
    message: str = "",
    extra_metadata: dict[str, Any] | None = None,
) -> None:
    """Emit a session lifecycle event."""
    event: dict[str, Any] = {
        "activity_id": activity_id,
        "activity_name": activity_name,
        "severity_id": severity_id,
        "severity": _SEVERITY_NAMES.get(severity_id, "Unknown"),
        "status_id": status_id,
        "status": "Success" if status_id == Status.SUCCESS else "Failure",
        "time": int(time.time() * 1000),
        "metadata": {
            "product": _PRODUCT,
            **(extra_metadata or {}),
        },
        "session": {"cookie_name": cookie_name},
        "message": message,
    }
    if session_id:
        event["session"]["uid"] = session_id
    if outcome:
        event["session"]["outcome"] = outcome
    emit(event)
