"""Session lifecycle engine.

The store owns the statement executor, the codecs and the readers-writer
lock. Requests go through four entry points:

- ``new`` / ``lookup``: build a Session from the request cookie. Never
  fails for a bad, unknown or expired cookie; those start a fresh session.
- ``get``: like ``new`` but returns the same Session for repeated calls
  within one request.
- ``save`` / ``commit``: insert or update the row and produce the cookie.
  A max_age <= 0 deletes instead.
- ``delete`` / ``destroy``: remove the row and expire the cookie.

Expiry is only checked on load. Expired rows stay in the table until
something external prunes them (see ``scripts/prune_sessions.py``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from .. import audit
from ..codec import (
    DEFAULT_TOKEN_MAX_AGE,
    SecureCookieCodec,
    codecs_from_pairs,
    decode_multi,
    encode_multi,
)
from ..config import Settings
from ..errors import (
    CodecError,
    InvalidTimestamp,
    SessionExpired,
    SessionNotFound,
    SessionStoreError,
)
from .executor import SQLAlchemyExecutor, StatementExecutor
from .model import (
    CREATED_ON,
    EXPIRES_ON,
    MODIFIED_ON,
    RESERVED_KEYS,
    CookieOptions,
    LookupOutcome,
    Session,
    new_cookie,
)
from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp_override(values: dict[str, Any], key: str) -> datetime | None:
    value = values.get(key)
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise InvalidTimestamp(f"{key} must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _strip_reserved(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if k not in RESERVED_KEYS}


class SessionStore:
    """Cookie-addressed sessions persisted through a StatementExecutor.

    Args:
        executor: Database access (see ``SQLAlchemyExecutor``).
        *key_pairs: Alternating hash and block keys for ``codecs_from_pairs``.
        codecs: Prebuilt codecs, instead of ``key_pairs``.
        options: Default cookie options, copied into every new Session.
        token_max_age: Validity window of signed tokens, in seconds.
    """

    def __init__(
        self,
        executor: StatementExecutor,
        *key_pairs: str | bytes | None,
        codecs: Sequence[SecureCookieCodec] | None = None,
        options: CookieOptions | None = None,
        token_max_age: int | None = DEFAULT_TOKEN_MAX_AGE,
    ) -> None:
        if codecs is None:
            codecs = codecs_from_pairs(*key_pairs, max_age=token_max_age)
        if not codecs:
            raise ValueError("SessionStore needs at least one key")
        self._executor = executor
        self._lock = ReadWriteLock()
        self.codecs = list(codecs)
        self.options = options or CookieOptions()

    @classmethod
    def from_url(
        cls,
        database_url: str,
        *key_pairs: str | bytes | None,
        options: CookieOptions | None = None,
        token_max_age: int | None = DEFAULT_TOKEN_MAX_AGE,
        **engine_kwargs: Any,
    ) -> "SessionStore":
        executor = SQLAlchemyExecutor.from_url(database_url, **engine_kwargs)
        return cls(executor, *key_pairs, options=options, token_max_age=token_max_age)

    @classmethod
    def from_settings(cls, s: Settings, **engine_kwargs: Any) -> "SessionStore":
        options = CookieOptions(
            path=s.session_path,
            max_age=s.session_max_age,
            domain=s.session_domain or None,
            secure=s.session_https_only,
            same_site=s.session_same_site,
        )
        return cls.from_url(
            s.database_url,
            *s.key_pairs,
            options=options,
            token_max_age=s.session_token_max_age,
            **engine_kwargs,
        )

    @property
    def executor(self) -> StatementExecutor:
        return self._executor

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    def close(self) -> None:
        self._executor.close()

    # ── Lookup ─────────────────────────────────────────────────────────────

    def get(self, request: Any, name: str) -> Session:
        """Return the request's session ``name``, looking it up once."""
        registry = getattr(request.state, "sessions", None)
        if registry is None:
            registry = {}
            request.state.sessions = registry
        if name not in registry:
            registry[name] = self.new(request, name)
        return registry[name]

    def new(self, request: Any, name: str) -> Session:
        """Build a session from the request's ``name`` cookie.

        A missing, tampered, unknown or expired cookie yields a fresh empty
        session with ``is_new`` set; ``session.outcome`` records which.
        Database connectivity errors still propagate.
        """
        return self.from_cookie(name, request.cookies.get(name))

    lookup = new

    def from_cookie(self, name: str, token: str | None) -> Session:
        session = Session(name=name, options=self.options.copy())
        if not token:
            return session

        try:
            # The token must stay valid for as long as the cookie it rides in.
            session.id = str(
                decode_multi(name, token, self.codecs, min_age_window=session.options.max_age)
            )
        except CodecError as e:
            return self._reject(session, LookupOutcome.INVALID_COOKIE, e)

        try:
            self.load(session)
        except SessionNotFound as e:
            return self._reject(session, LookupOutcome.NOT_FOUND, e)
        except SessionExpired as e:
            return self._reject(session, LookupOutcome.EXPIRED, e)
        except (SessionStoreError, ValueError) as e:
            return self._reject(session, LookupOutcome.CORRUPT, e)

        session.is_new = False
        session.outcome = LookupOutcome.LOADED
        audit.session_event(
            activity_id=audit.SessionActivity.LOAD,
            activity_name="Load",
            status_id=audit.Status.SUCCESS,
            severity_id=audit.Severity.INFORMATIONAL,
            cookie_name=name,
            session_id=session.id,
            outcome=session.outcome.value,
            message="Session loaded",
        )
        return session

    def _reject(self, session: Session, outcome: LookupOutcome, error: Exception) -> Session:
        logger.debug("Starting new session %s (%s): %s", session.name, outcome.value, error)
        audit.session_event(
            activity_id=audit.SessionActivity.REJECT,
            activity_name="Reject",
            status_id=audit.Status.FAILURE,
            severity_id=(
                audit.Severity.LOW
                if outcome in (LookupOutcome.EXPIRED, LookupOutcome.NOT_FOUND)
                else audit.Severity.MEDIUM
            ),
            cookie_name=session.name,
            session_id=session.id or None,
            outcome=outcome.value,
            message=f"Cookie rejected: {outcome.value}",
        )
        session.id = ""
        session.values = {}
        session.is_new = True
        session.created_on = None
        session.outcome = outcome
        return session

    def load(self, session: Session) -> None:
        """Fill ``session.values`` from its row.

        Raises:
            ValueError: the session id is not an integer.
            SessionNotFound: no row for the id.
            SessionExpired: the row's expires_on has passed.
            CodecError: the stored blob does not decode to a mapping.
        """
        row_id = int(session.id)
        with self._lock.read_locked():
            record = self._executor.select(row_id)
        if record is None:
            raise SessionNotFound(f"No session row {row_id}")
        if _utcnow() > record.expires_on:
            raise SessionExpired(f"Session {row_id} expired at {record.expires_on.isoformat()}")

        # The row's expires_on governs the blob, not the token age.
        values = decode_multi(session.name, record.data, self.codecs, check_age=False)
        if not isinstance(values, dict):
            raise CodecError(f"Session {row_id} data is not a mapping")
        values[CREATED_ON] = record.created_on
        values[MODIFIED_ON] = record.modified_on
        values[EXPIRES_ON] = record.expires_on
        session.values = values
        session.created_on = record.created_on

    # ── Save ───────────────────────────────────────────────────────────────

    def save(self, response: Any, session: Session) -> None:
        """Persist ``session`` and append its Set-Cookie header to ``response``."""
        response.headers.append("set-cookie", self.commit(session))

    def commit(self, session: Session) -> str:
        """Persist ``session`` and return the Set-Cookie header value.

        Codec, timestamp and database errors propagate.
        """
        if session.options.max_age <= 0:
            return self.destroy(session)

        try:
            if not session.id or session.is_new:
                self._insert(session)
                activity_id, activity_name = audit.SessionActivity.CREATE, "Create"
            else:
                self._update(session)
                activity_id, activity_name = audit.SessionActivity.RENEW, "Renew"
            encoded = encode_multi(session.name, session.id, self.codecs)
        except Exception as e:
            logger.error("Saving session %s failed: %s", session.name, e)
            audit.session_event(
                activity_id=audit.SessionActivity.RENEW if session.id else audit.SessionActivity.CREATE,
                activity_name="Save",
                status_id=audit.Status.FAILURE,
                severity_id=audit.Severity.HIGH,
                cookie_name=session.name,
                session_id=session.id or None,
                message=f"Session save failed: {type(e).__name__}",
            )
            raise

        audit.session_event(
            activity_id=activity_id,
            activity_name=activity_name,
            status_id=audit.Status.SUCCESS,
            severity_id=audit.Severity.INFORMATIONAL,
            cookie_name=session.name,
            session_id=session.id,
            message=f"Session saved ({activity_name.lower()})",
        )
        return new_cookie(session.name, encoded, session.options)

    def _insert(self, session: Session) -> None:
        with self._lock.write_locked():
            now = _utcnow()
            created_on = _timestamp_override(session.values, CREATED_ON) or now
            modified_on = created_on
            expires_on = _timestamp_override(session.values, EXPIRES_ON) or (
                now + timedelta(seconds=session.options.max_age)
            )
            data = encode_multi(session.name, _strip_reserved(session.values), self.codecs)
            row_id = self._executor.insert(data, created_on, modified_on, expires_on)

        for key in RESERVED_KEYS:
            session.values.pop(key, None)
        session.id = str(row_id)
        session.is_new = False
        session.created_on = created_on
        logger.debug("Inserted session %s row %d, expires %s", session.name, row_id, expires_on)

    def _update(self, session: Session) -> None:
        row_id = int(session.id)
        with self._lock.write_locked():
            now = _utcnow()
            created_on = (
                _timestamp_override(session.values, CREATED_ON) or session.created_on or now
            )
            # Every save pushes expiry at least a full window out.
            floor = now + timedelta(seconds=session.options.max_age)
            expires_on = _timestamp_override(session.values, EXPIRES_ON)
            if expires_on is None or expires_on < floor:
                expires_on = floor
            data = encode_multi(session.name, _strip_reserved(session.values), self.codecs)
            self._executor.update(data, created_on, expires_on, row_id)

        for key in RESERVED_KEYS:
            session.values.pop(key, None)
        session.created_on = created_on
        logger.debug("Updated session %s row %d, expires %s", session.name, row_id, expires_on)

    # ── Delete ─────────────────────────────────────────────────────────────

    def delete(self, response: Any, session: Session) -> None:
        """Delete ``session`` and append an expiring Set-Cookie header to ``response``."""
        response.headers.append("set-cookie", self.destroy(session))

    def destroy(self, session: Session) -> str:
        """Delete the row, clear values and return an expiring Set-Cookie value.

        A session that was never persisted only has its values cleared.
        """
        cookie = new_cookie(session.name, "", session.options.copy(max_age=-1))
        session.clear()

        if session.id:
            row_id = int(session.id)
            with self._lock.write_locked():
                self._executor.delete(row_id)
            logger.debug("Deleted session %s row %d", session.name, row_id)

        audit.session_event(
            activity_id=audit.SessionActivity.DESTROY,
            activity_name="Destroy",
            status_id=audit.Status.SUCCESS,
            severity_id=audit.Severity.INFORMATIONAL,
            cookie_name=session.name,
            session_id=session.id or None,
            message="Session destroyed",
        )
        session.id = ""
        session.is_new = True
        session.created_on = None
        return cookie
