"""
Notes Keyset API — Cursor Codec Unit Tests
===========================================

What:  Tests for CursorCodec encode/decode and the SortKey value object.
Why:   The cursor is the only state that crosses requests. A decode bug
       either crashes the list endpoint or lets a client seek to a position
       it was never given.

What we test:
    ✅ decode(encode(k)) == k, including microseconds and non-UTC offsets
    ✅ Tokens are deterministic and URL-safe (no padding, no '+' or '/')
    ✅ Garbage is rejected with InvalidCursorError, never another exception
    ✅ Signed tokens: round trip, tampering, wrong key, missing tag
"""

import base64
import json
import re
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import InvalidCursorError, ValidationError
from app.services.cursor_codec import Cursor, CursorCodec, SortKey

URL_SAFE = re.compile(r"[A-Za-z0-9_.-]+")


def b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64_json(obj) -> str:
    return b64(json.dumps(obj).encode("utf-8"))


@pytest.fixture
def key():
    return SortKey(
        created_at=datetime(2024, 3, 1, 8, 30, 15, 123456, tzinfo=timezone.utc),
        id=uuid.UUID("0b7e8a52-6f0e-4c1e-9d2a-3f4b5c6d7e8f"),
    )


class TestSortKey:
    """Tests for the SortKey value object."""

    def test_offsets_are_normalized_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        k = SortKey(created_at=datetime(2024, 1, 1, 14, 0, tzinfo=plus_two), id=uuid.uuid4())
        assert k.created_at.utcoffset() == timedelta(0)
        assert k.created_at.hour == 12

    def test_naive_datetime_rejected(self):
        with pytest.raises(Exception):
            SortKey(created_at=datetime(2024, 1, 1), id=uuid.uuid4())

    def test_from_values_reads_naive_as_utc(self):
        k = SortKey.from_values(datetime(2024, 1, 1, 12, 0), uuid.UUID(int=1))
        assert k.created_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_immutable(self, key):
        with pytest.raises(Exception):
            key.id = uuid.uuid4()


class TestRoundTrip:
    """decode(encode(k)) == k."""

    def setup_method(self):
        self.codec = CursorCodec()

    def test_round_trip(self, key):
        assert self.codec.decode(self.codec.encode(key)) == key

    @pytest.mark.parametrize(
        "created_at",
        [
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(1999, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc),
            datetime(2030, 6, 15, 3, 4, 5, 1, tzinfo=timezone(timedelta(hours=-7))),
        ],
    )
    def test_round_trip_preserves_instant(self, created_at):
        k = SortKey(created_at=created_at, id=uuid.uuid4())
        decoded = self.codec.decode(self.codec.encode(k))
        assert decoded == k
        assert decoded.created_at == created_at

    def test_cursor_wrapper_round_trip(self, key):
        cursor = Cursor(key=key)
        assert self.codec.decode_cursor(self.codec.encode_cursor(cursor)) == cursor

    def test_encoding_is_deterministic(self, key):
        assert self.codec.encode(key) == self.codec.encode(key)

    def test_token_is_url_safe_and_unpadded(self, key):
        token = self.codec.encode(key)
        assert URL_SAFE.fullmatch(token)
        assert "=" not in token
        assert "." not in token

    def test_distinct_keys_distinct_tokens(self, key):
        other = SortKey(created_at=key.created_at, id=uuid.UUID(int=key.id.int + 1))
        assert self.codec.encode(key) != self.codec.encode(other)


class TestDecodeRejectsGarbage:
    """Every malformed token raises InvalidCursorError, and nothing else."""

    def setup_method(self):
        self.codec = CursorCodec()

    def assert_rejected(self, token, reason=None):
        with pytest.raises(InvalidCursorError) as info:
            self.codec.decode(token)
        if reason:
            assert info.value.reason == reason
        return info.value

    @pytest.mark.parametrize("token", ["", " ", "   \t\n"])
    def test_blank(self, token):
        self.assert_rejected(token, "empty")

    @pytest.mark.parametrize("token", ["not base64!!", "abc+def/", "a b c", "abcde", "%%%%"])
    def test_not_base64(self, token):
        self.assert_rejected(token, "bad_encoding")

    def test_base64_of_non_json(self):
        self.assert_rejected(b64(b"hello world"), "bad_payload")

    def test_base64_of_non_utf8(self):
        self.assert_rejected(b64(b"\xff\xfe\xfd\xfc"), "bad_payload")

    @pytest.mark.parametrize("payload", [[1, 2], "text", 42, None])
    def test_json_not_an_object(self, payload):
        self.assert_rejected(b64_json(payload), "bad_payload")

    def test_missing_id(self):
        self.assert_rejected(b64_json({"created_at": "2024-01-01T00:00:00Z"}), "bad_payload")

    def test_missing_created_at(self):
        self.assert_rejected(b64_json({"id": str(uuid.uuid4())}), "bad_payload")

    def test_extra_field(self):
        self.assert_rejected(
            b64_json({
                "created_at": "2024-01-01T00:00:00Z",
                "id": str(uuid.uuid4()),
                "offset": 40,
            }),
            "bad_payload",
        )

    def test_mistyped_created_at(self):
        self.assert_rejected(
            b64_json({"created_at": [2024, 1, 1], "id": str(uuid.uuid4())}), "bad_payload"
        )

    def test_mistyped_id(self):
        self.assert_rejected(
            b64_json({"created_at": "2024-01-01T00:00:00Z", "id": "not-a-uuid"}), "bad_payload"
        )

    def test_naive_timestamp(self):
        self.assert_rejected(
            b64_json({"created_at": "2024-01-01T00:00:00", "id": str(uuid.uuid4())}),
            "bad_payload",
        )

    @pytest.mark.parametrize("suffix", ["\n", "\r\n", " "])
    def test_trailing_whitespace_rejected(self, key, suffix):
        self.assert_rejected(self.codec.encode(key) + suffix, "bad_encoding")

    def test_signature_on_unsigned_codec(self, key):
        token = CursorCodec("secret").encode(key)
        self.assert_rejected(token, "unexpected_signature")

    def test_error_is_a_client_error(self):
        error = self.assert_rejected("%%%%")
        assert isinstance(error, ValidationError)
        assert error.field == "cursor"


class TestSignedTokens:
    """HMAC-tagged tokens when a signing key is configured."""

    def setup_method(self):
        self.codec = CursorCodec("s3cret-key")

    def test_signed_round_trip(self, key):
        token = self.codec.encode(key)
        assert self.codec.signed
        assert token.count(".") == 1
        assert URL_SAFE.fullmatch(token)
        assert self.codec.decode(token) == key

    def test_unsigned_token_rejected(self, key):
        token = CursorCodec().encode(key)
        with pytest.raises(InvalidCursorError) as info:
            self.codec.decode(token)
        assert info.value.reason == "missing_signature"

    def test_tampered_payload_rejected(self, key):
        _, tag = self.codec.encode(key).split(".")
        forged = SortKey(created_at=key.created_at - timedelta(days=365), id=key.id)
        forged_payload = CursorCodec().encode(forged)
        with pytest.raises(InvalidCursorError) as info:
            self.codec.decode(f"{forged_payload}.{tag}")
        assert info.value.reason == "bad_signature"

    def test_tampered_tag_rejected(self, key):
        payload, tag = self.codec.encode(key).split(".")
        flipped = ("A" if tag[0] != "A" else "B") + tag[1:]
        with pytest.raises(InvalidCursorError):
            self.codec.decode(f"{payload}.{flipped}")

    def test_other_key_rejected(self, key):
        token = CursorCodec("another-key").encode(key)
        with pytest.raises(InvalidCursorError) as info:
            self.codec.decode(token)
        assert info.value.reason == "bad_signature"

    def test_empty_tag_rejected(self, key):
        payload = self.codec.encode(key).split(".")[0]
        with pytest.raises(InvalidCursorError):
            self.codec.decode(f"{payload}.")

    @pytest.mark.parametrize("token", ["abc.éé", "ébc.abc", "é.é", "abc.ab c"])
    def test_non_ascii_segments_rejected(self, token):
        with pytest.raises(InvalidCursorError) as info:
            self.codec.decode(token)
        assert info.value.reason == "bad_encoding"

    def test_trailing_newline_on_signed_token_rejected(self, key):
        with pytest.raises(InvalidCursorError):
            self.codec.decode(self.codec.encode(key) + "\n")
