"""
Notes Keyset API — Cursor Codec
================================

What:  Converts a pagination position (the sort key of the last row a client
       saw) to and from an opaque, URL-safe token.
Why:   Clients must be able to resume a listing without the server keeping
       any per-client state, and without learning or depending on how the
       position is represented.
How:   SortKey → compact JSON → URL-safe base64 without padding.
       With a signing key, an HMAC-SHA256 tag over the payload segment is
       appended after a '.' separator.

Token layout:
    unsigned:  <payload>
    signed:    <payload>.<tag>

    payload = b64url(JSON {"created_at": "<ISO-8601 UTC>", "id": "<uuid>"})
    tag     = b64url(HMAC-SHA256(signing_key, payload))

    Both segments use the alphabet [A-Za-z0-9_-] only, so tokens need no
    escaping in a query string. Tokens are stable within one deployed version;
    they are not a public format.

Failure contract:
    decode() raises InvalidCursorError for every structurally invalid token.
    It never lets a binascii, UnicodeDecodeError, or pydantic ValidationError
    escape. It does NOT check that the referenced row still exists.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.exceptions import InvalidCursorError

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"[A-Za-z0-9_-]+")
_SEPARATOR = "."


class SortKey(BaseModel):
    """
    The (created_at, id) pair that totally orders the notes listing.

    Strict and closed: decoding a payload with extra, missing, or mistyped
    fields fails. Timestamps must carry a timezone and are normalized to UTC,
    so two keys naming the same instant compare equal.
    """

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    created_at: AwareDatetime
    id: uuid.UUID

    @field_validator("created_at")
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        return v.astimezone(timezone.utc)

    @classmethod
    def from_values(cls, created_at: datetime, id: uuid.UUID) -> "SortKey":
        """
        Builds a key from column values read off a stored row.

        Naive datetimes are read as UTC; that is how every timestamp is
        written (SQLite drops the offset on the way back).
        """
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(created_at=created_at, id=id)


class Cursor(BaseModel):
    """
    "The last row returned in the previous page."

    Immutable. Built by the planner from a row it actually returned, or by
    decoding a token the client sent back.
    """

    model_config = ConfigDict(frozen=True)

    key: SortKey


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _check_segment(segment: str) -> None:
    # fullmatch: `$` would also accept a trailing newline
    if not _SEGMENT_RE.fullmatch(segment):
        raise InvalidCursorError("bad_encoding")


def _b64decode(segment: str) -> bytes:
    # urlsafe_b64decode silently skips characters outside the alphabet,
    # so the alphabet is checked first
    _check_segment(segment)
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError):
        raise InvalidCursorError("bad_encoding")


class CursorCodec:
    """
    Encodes and decodes cursor tokens.

    Stateless apart from the optional signing key, so one instance is shared
    by every request.

    Args:
        signing_key: HMAC key. Empty string disables signing.
    """

    def __init__(self, signing_key: str = ""):
        self._signing_key: Optional[bytes] = (
            signing_key.encode("utf-8") if signing_key else None
        )

    @property
    def signed(self) -> bool:
        return self._signing_key is not None

    def _tag(self, payload_segment: str) -> str:
        digest = hmac.new(
            self._signing_key, payload_segment.encode("ascii"), hashlib.sha256
        ).digest()
        return _b64encode(digest)

    def encode(self, key: SortKey) -> str:
        """Serializes a sort key into an opaque token (deterministic)."""
        payload = _b64encode(key.model_dump_json().encode("utf-8"))
        if self._signing_key is None:
            return payload
        return f"{payload}{_SEPARATOR}{self._tag(payload)}"

    def encode_cursor(self, cursor: Cursor) -> str:
        return self.encode(cursor.key)

    def decode(self, token: str) -> SortKey:
        """
        Parses a token back into a sort key.

        Raises:
            InvalidCursorError: token is blank, badly encoded, unsigned or
                wrongly signed (when signing is enabled), or carries a payload
                that is not exactly {"created_at": aware datetime, "id": uuid}.
        """
        if not isinstance(token, str) or not token.strip():
            raise InvalidCursorError("empty")

        payload_segment = token
        if self._signing_key is not None:
            payload_segment, sep, tag = token.partition(_SEPARATOR)
            if not sep or not tag:
                raise InvalidCursorError("missing_signature")
            # Both segments must be ASCII before they reach hmac
            _check_segment(payload_segment)
            _check_segment(tag)
            if not hmac.compare_digest(tag, self._tag(payload_segment)):
                raise InvalidCursorError("bad_signature")
        elif _SEPARATOR in token:
            raise InvalidCursorError("unexpected_signature")

        raw = _b64decode(payload_segment)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidCursorError("bad_payload")

        try:
            return SortKey.model_validate_json(text)
        except PydanticValidationError as e:
            logger.debug("Rejected cursor payload: %s", e.errors(include_url=False))
            raise InvalidCursorError("bad_payload")

    def decode_cursor(self, token: str) -> Cursor:
        return Cursor(key=self.decode(token))


# ── Singleton Instance ────────────────────────────────────────────────────
cursor_codec = CursorCodec(settings.cursor_signing_key)
