"""Exceptions raised by the session store."""

from __future__ import annotations


class SessionStoreError(Exception):
    """Base class for session store failures."""


class CodecError(SessionStoreError):
    """A token or value blob could not be encoded or decoded.

    Covers bad signatures, expired tokens, failed decryption and payloads
    that are not valid structured values.
    """


class SessionNotFound(SessionStoreError):
    """No row exists for the session identifier."""


class SessionExpired(SessionStoreError):
    """The row exists but its expires_on has passed."""


class InvalidTimestamp(SessionStoreError):
    """A reserved timestamp key holds something other than a datetime."""
