"""Signed, optionally encrypted tokens for cookies and session blobs.

A codec turns a structured value into an opaque URL-safe string and back.
Tokens are signed with itsdangerous, bound to a name (the cookie name is
used as the signing salt, so a token minted for one cookie never validates
under another) and timestamped so stale tokens are rejected. When a block
key is configured the serialized payload is additionally encrypted with
Fernet before signing.

Several codecs can be chained for key rotation: encoding always uses the
first one, decoding tries each in turn::

    codecs = codecs_from_pairs(new_hash_key, new_block_key, old_hash_key, None)
    token = encode_multi("session", {"user": "alice"}, codecs)
    value = decode_multi("session", token, codecs)

Supported values are str, int, float, bool, None, datetime, lists and
nested dicts with string keys.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime
from typing import Any, Sequence

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from itsdangerous import BadData, URLSafeTimedSerializer

from .errors import CodecError

DEFAULT_TOKEN_MAX_AGE = 30 * 24 * 3600  # 30 days

_DATETIME_TAG = "__datetime__"
_DICT_TAG = "__dict__"
_TAGS = (_DATETIME_TAG, _DICT_TAG)
_HKDF_INFO = b"sqlsession cookie encryption"


def _tag(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return {_DATETIME_TAG: obj.isoformat()}
    if isinstance(obj, dict):
        tagged = {k: _tag(v) for k, v in obj.items()}
        # A lone tag-shaped key would be mistaken for a tag on decode.
        if len(tagged) == 1 and next(iter(tagged)) in _TAGS:
            return {_DICT_TAG: [[k, v] for k, v in tagged.items()]}
        return tagged
    if isinstance(obj, (list, tuple)):
        return [_tag(v) for v in obj]
    return obj


def _reject_value(obj: Any) -> Any:
    raise TypeError(f"Object of type {type(obj).__name__} is not a session value")


def _untag(obj: dict[str, Any]) -> Any:
    if len(obj) == 1:
        if _DATETIME_TAG in obj:
            return datetime.fromisoformat(obj[_DATETIME_TAG])
        if _DICT_TAG in obj:
            return dict(obj[_DICT_TAG])
    return obj


class ValueSerializer:
    """JSON with tagged datetimes."""

    def dumps(self, obj: Any) -> str:
        return json.dumps(_tag(obj), default=_reject_value, separators=(",", ":"))

    def loads(self, payload: str | bytes) -> Any:
        return json.loads(payload, object_hook=_untag)


class EncryptedValueSerializer(ValueSerializer):
    """ValueSerializer whose output is a Fernet token."""

    def __init__(self, fernet: Fernet) -> None:
        self._fernet = fernet

    def dumps(self, obj: Any) -> str:
        plaintext = super().dumps(obj).encode("utf-8")
        return self._fernet.encrypt(plaintext).decode("ascii")

    def loads(self, payload: str | bytes) -> Any:
        if isinstance(payload, str):
            payload = payload.encode("ascii")
        return super().loads(self._fernet.decrypt(payload))


def _as_bytes(key: str | bytes) -> bytes:
    return key.encode("utf-8") if isinstance(key, str) else key


def _derive_fernet(block_key: bytes) -> Fernet:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_HKDF_INFO)
    return Fernet(base64.urlsafe_b64encode(hkdf.derive(block_key)))


class SecureCookieCodec:
    """One signing key, an optional encryption key, and a token lifetime."""

    def __init__(
        self,
        hash_key: str | bytes,
        block_key: str | bytes | None = None,
        *,
        max_age: int | None = DEFAULT_TOKEN_MAX_AGE,
    ) -> None:
        if not hash_key:
            raise ValueError("hash_key must not be empty")
        self._hash_key = _as_bytes(hash_key)
        if block_key:
            self._serializer: ValueSerializer = EncryptedValueSerializer(
                _derive_fernet(_as_bytes(block_key))
            )
        else:
            self._serializer = ValueSerializer()
        self.max_age = max_age or None
        self.encrypted = bool(block_key)

    def _signer(self, name: str) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(
            self._hash_key, salt=name, serializer=self._serializer
        )

    def encode(self, name: str, value: Any) -> str:
        try:
            return self._signer(name).dumps(value)
        except (TypeError, ValueError) as e:
            raise CodecError(f"Cannot encode value for {name!r}: {e}") from e

    def decode(
        self,
        name: str,
        token: str,
        *,
        check_age: bool = True,
        min_age_window: int = 0,
    ) -> Any:
        """Verify and decode ``token``.

        ``check_age=False`` skips the token age check. ``min_age_window``
        widens the accepted age to at least that many seconds.
        """
        max_age = self.max_age if check_age else None
        if max_age is not None:
            max_age = max(max_age, min_age_window)
        try:
            return self._signer(name).loads(token, max_age=max_age)
        except BadData as e:
            raise CodecError(f"Invalid token for {name!r}: {e}") from e


def codecs_from_pairs(
    *keys: str | bytes | None,
    max_age: int | None = DEFAULT_TOKEN_MAX_AGE,
) -> list[SecureCookieCodec]:
    """Build codecs from alternating hash and block keys.

    ``codecs_from_pairs(hash1, block1, hash2)`` yields two codecs, the
    second without encryption. Pass ``None`` as a block key to skip
    encryption for that pair.
    """
    codecs = []
    for i in range(0, len(keys), 2):
        hash_key = keys[i]
        block_key = keys[i + 1] if i + 1 < len(keys) else None
        if hash_key is None:
            raise ValueError(f"hash key at position {i} is missing")
        codecs.append(SecureCookieCodec(hash_key, block_key, max_age=max_age))
    return codecs


def encode_multi(name: str, value: Any, codecs: Sequence[SecureCookieCodec]) -> str:
    """Encode with the first codec."""
    if not codecs:
        raise CodecError("No codecs configured")
    return codecs[0].encode(name, value)


def decode_multi(
    name: str,
    token: str,
    codecs: Sequence[SecureCookieCodec],
    **options: Any,
) -> Any:
    """Decode with the first codec that accepts the token.

    ``options`` are passed to ``SecureCookieCodec.decode``.
    """
    if not codecs:
        raise CodecError("No codecs configured")
    errors = []
    for codec in codecs:
        try:
            return codec.decode(name, token, **options)
        except CodecError as e:
            errors.append(str(e))
    raise CodecError("; ".join(errors))
