"""Tests for request signing: canonical string, headers, and body handling."""

from __future__ import annotations

import base64
import dataclasses
import hashlib
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from cryptography.exceptions import InvalidSignature

from certkit_agent.exceptions import (
    BodyReadError,
    KeyDecodeError,
    KeyLengthError,
    RequestValidationError,
    SigningError,
)
from certkit_agent.identity import decode_private_key, encode_base64url, public_key_from_bytes
from certkit_agent.signing import (
    SIGNED_FIELDS,
    SigningContext,
    build_signing_string,
    canonical_host,
    canonical_path_and_query,
    compute_body_sha256,
    sign_request,
    unix_seconds,
)

# RFC 8032 section 7.1, TEST 1 keypair
FIXED_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
FIXED_PUBLIC = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
FIXED_PRIVATE_B64 = encode_base64url(FIXED_SEED + FIXED_PUBLIC)

EMPTY_SHA256 = "47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU"
ABC_SHA256 = "ungWv48Bz-pBQUDeXa4iI7ADYaOWF3qctBD_YfIAFa0"

# Ed25519 signature of the GET /api/v1/ping canonical string at TS under the TEST 1 key
GOLDEN_PING_SIGNATURE = (
    "HGg3IE46P7IuwbeKiVjPzgx7P8xIRQBzWkHJj1QWVGzAlHBdrYgj97E062XYMypXYxX2Wm4HdiEccznybAwkCw"
)

TS = 1700000000
AGENT_ID = "agent-123"


@pytest.fixture
def private_key() -> bytes:
    return decode_private_key(FIXED_PRIVATE_B64)


def _ping() -> httpx.Request:
    return httpx.Request("GET", "https://app.example.com/api/v1/ping")


def _verify(request: httpx.Request, signature_b64: str, ts: int) -> None:
    """Independently rebuild the canonical string and verify the signature."""
    context = SigningContext.from_request(request, ts)
    padded = signature_b64 + "=" * (-len(signature_b64) % 4)
    public_key_from_bytes(FIXED_PUBLIC).verify(
        base64.urlsafe_b64decode(padded), context.canonical_string().encode("utf-8")
    )


# ---------------------------------------------------------------------------
# Canonicalization
# ---------------------------------------------------------------------------


class TestCanonicalization:
    """Building blocks of the canonical signing string."""

    def test_signing_string_layout(self):
        s = build_signing_string("get", "/a?b=1", "App.Example.com", TS, EMPTY_SHA256)

        assert s == (
            "method: GET\n"
            "path: /a?b=1\n"
            "host: app.example.com\n"
            "ts: 1700000000\n"
            f"body_sha256: {EMPTY_SHA256}"
        )
        assert not s.endswith("\n")

    def test_empty_path_defaults_to_slash(self):
        assert canonical_path_and_query(httpx.URL("https://app.example.com")) == "/"

    def test_none_url(self):
        assert canonical_path_and_query(None) == "/"

    def test_query_kept_as_built(self):
        url = httpx.URL("https://app.example.com/search?b=2&a=1")

        assert canonical_path_and_query(url) == "/search?b=2&a=1"

    def test_empty_query_dropped(self):
        url = httpx.URL("https://app.example.com/search?")

        assert canonical_path_and_query(url) == "/search"

    def test_host_header_preferred_and_lowercased(self):
        request = httpx.Request(
            "GET", "https://app.example.com/", headers={"Host": "Edge.Example.COM:8443"}
        )

        assert canonical_host(request) == "edge.example.com:8443"

    def test_host_falls_back_to_url(self):
        request = httpx.Request("GET", "https://App.Example.com:8443/x")
        del request.headers["Host"]

        assert canonical_host(request) == "app.example.com:8443"

    def test_body_hash_empty(self):
        assert compute_body_sha256(_ping()) == EMPTY_SHA256

    def test_body_hash_content(self):
        request = httpx.Request("POST", "https://app.example.com/", content=b"abc")

        assert compute_body_sha256(request) == ABC_SHA256

    def test_body_hash_matches_hashlib(self):
        body = b'{"hostname": "web-01"}'
        request = httpx.Request("POST", "https://app.example.com/", content=body)

        assert compute_body_sha256(request) == encode_base64url(hashlib.sha256(body).digest())


# ---------------------------------------------------------------------------
# sign_request
# ---------------------------------------------------------------------------


class TestSignRequest:
    """End-to-end signing of httpx requests."""

    def test_golden_ping(self, private_key):
        request = _ping()

        signed = sign_request(request, AGENT_ID, private_key, TS)

        context = SigningContext.from_request(request, TS)
        assert context.canonical_string() == (
            "method: GET\n"
            "path: /api/v1/ping\n"
            "host: app.example.com\n"
            "ts: 1700000000\n"
            "body_sha256: 47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU"
        )
        assert request.headers["X-Agent-Id"] == AGENT_ID
        assert request.headers["X-Agent-Timestamp"] == "1700000000"
        assert request.headers["X-Agent-Content-SHA256"] == EMPTY_SHA256
        assert signed.signature == GOLDEN_PING_SIGNATURE
        assert request.headers["Authorization"] == (
            'AgentSig keyId="agent-123", alg="ed25519", '
            'sig="HGg3IE46P7IuwbeKiVjPzgx7P8xIRQBzWkHJj1QWVGzAlHBdrYgj97E062XYMypXYxX2Wm4HdiEccznybAwkCw", '
            'signed="method path host ts body_sha256"'
        )
        _verify(request, signed.signature, TS)

    def test_deterministic(self, private_key):
        first = sign_request(_ping(), AGENT_ID, private_key, TS)
        second = sign_request(_ping(), AGENT_ID, private_key, TS)

        assert first == second
        assert first.as_dict() == second.as_dict()

    def test_timestamp_changes_signature(self, private_key):
        first = sign_request(_ping(), AGENT_ID, private_key, TS)
        later = sign_request(_ping(), AGENT_ID, private_key, TS + 1)

        assert first.signature != later.signature

    def test_post_body_preserved(self, private_key):
        body = b'{"public_key": "abc", "hostname": "web-01"}'
        request = httpx.Request(
            "POST", "https://app.example.com/api/agent/v1/register-agent", content=body
        )

        signed = sign_request(request, AGENT_ID, private_key, TS)

        assert request.read() == body
        assert b"".join(request.stream) == body
        assert signed.body_sha256 == encode_base64url(hashlib.sha256(body).digest())
        _verify(request, signed.signature, TS)

    def test_streaming_body_restored(self, private_key):
        def chunks():
            yield b"a"
            yield b"bc"

        request = httpx.Request("PUT", "https://app.example.com/upload", content=chunks())

        signed = sign_request(request, AGENT_ID, private_key, TS)

        assert signed.body_sha256 == ABC_SHA256
        assert b"".join(request.stream) == b"abc"
        assert b"".join(request.stream) == b"abc"

    def test_body_read_error_signs_nothing(self, private_key):
        def broken():
            yield b"partial"
            raise OSError("connection reset")

        request = httpx.Request("POST", "https://app.example.com/", content=broken())

        with pytest.raises(BodyReadError, match="read request body"):
            sign_request(request, AGENT_ID, private_key, TS)

        assert "Authorization" not in request.headers
        assert "X-Agent-Id" not in request.headers

    def test_only_signing_headers_change(self, private_key):
        request = httpx.Request(
            "POST",
            "https://app.example.com/api/v1/items?id=7",
            headers={"Content-Type": "application/json", "Authorization": "Bearer old"},
            content=b"{}",
        )
        before = {k: v for k, v in request.headers.items() if k.lower() != "authorization"}
        url_before = request.url

        sign_request(request, AGENT_ID, private_key, TS)

        after = {
            k: v
            for k, v in request.headers.items()
            if k.lower()
            not in ("authorization", "x-agent-id", "x-agent-timestamp", "x-agent-content-sha256")
        }
        assert after == before
        assert request.url == url_before
        assert request.method == "POST"
        assert request.headers["Authorization"].startswith("AgentSig ")
        assert request.headers.get_list("Authorization") == [request.headers["Authorization"]]

    def test_signed_fields_constant(self):
        assert SIGNED_FIELDS == "method path host ts body_sha256"


class TestSignRequestPreconditions:
    """Invalid inputs fail distinctly and leave the request untouched."""

    def test_none_request(self, private_key):
        with pytest.raises(RequestValidationError, match="request is None"):
            sign_request(None, AGENT_ID, private_key, TS)

    def test_wrong_request_type(self, private_key):
        with pytest.raises(RequestValidationError, match="expected httpx.Request"):
            sign_request("https://app.example.com/", AGENT_ID, private_key, TS)

    @pytest.mark.parametrize("size", [0, 32, 63, 65])
    def test_wrong_key_length(self, size):
        request = _ping()

        with pytest.raises(KeyLengthError, match=f"got {size}"):
            sign_request(request, AGENT_ID, b"\x01" * size, TS)

        assert "Authorization" not in request.headers

    def test_none_key(self):
        with pytest.raises(KeyLengthError):
            sign_request(_ping(), AGENT_ID, None, TS)

    def test_inconsistent_key(self):
        request = _ping()

        with pytest.raises(KeyDecodeError):
            sign_request(request, AGENT_ID, FIXED_SEED + b"\x00" * 32, TS)

        assert "Authorization" not in request.headers

    def test_empty_agent_id(self, private_key):
        request = _ping()

        with pytest.raises(RequestValidationError, match="agent_id is required"):
            sign_request(request, "", private_key, TS)

        assert "X-Agent-Id" not in request.headers

    def test_signing_errors_share_base(self):
        assert issubclass(RequestValidationError, SigningError)
        assert issubclass(BodyReadError, SigningError)


class TestTamperSensitivity:
    """Changing any signed attribute invalidates the signature."""

    @pytest.mark.parametrize(
        "change",
        [
            {"method": "POST"},
            {"path": "/api/v1/pong"},
            {"path": "/api/v1/ping?x=1"},
            {"host": "evil.example.com"},
            {"timestamp": TS + 1},
            {"body_sha256": ABC_SHA256},
        ],
    )
    def test_tampered_context_rejected(self, private_key, change):
        request = _ping()
        signed = sign_request(request, AGENT_ID, private_key, TS)
        original = SigningContext.from_request(request, TS)

        tampered = dataclasses.replace(original, **change)

        assert tampered.canonical_string() != original.canonical_string()
        with pytest.raises(InvalidSignature):
            _verify_context(tampered, signed.signature)

    def test_tampered_request_rejected(self, private_key):
        request = httpx.Request("POST", "https://app.example.com/api/v1/items?id=7", content=b"abc")
        signed = sign_request(request, AGENT_ID, private_key, TS)

        forged = httpx.Request("POST", "https://app.example.com/api/v1/items?id=8", content=b"abc")

        with pytest.raises(InvalidSignature):
            _verify(forged, signed.signature, TS)


def _verify_context(context: SigningContext, signature_b64: str) -> None:
    padded = signature_b64 + "=" * (-len(signature_b64) % 4)
    public_key_from_bytes(FIXED_PUBLIC).verify(
        base64.urlsafe_b64decode(padded), context.canonical_string().encode("utf-8")
    )


class TestUnixSeconds:
    """Signing time normalization."""

    def test_aware_datetime(self):
        assert unix_seconds(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)) == TS

    def test_non_utc_datetime(self):
        tz = timezone(timedelta(hours=2))
        assert unix_seconds(datetime(2023, 11, 15, 0, 13, 20, tzinfo=tz)) == TS

    def test_naive_datetime_is_utc(self):
        assert unix_seconds(datetime(2023, 11, 14, 22, 13, 20)) == TS

    def test_truncates_fraction(self):
        assert unix_seconds(TS + 0.999) == TS
        assert unix_seconds(datetime(2023, 11, 14, 22, 13, 20, 999999, tzinfo=timezone.utc)) == TS

    def test_defaults_to_now(self):
        before = int(datetime.now(timezone.utc).timestamp())
        assert unix_seconds() >= before

    def test_rejects_bool(self):
        with pytest.raises(RequestValidationError):
            unix_seconds(True)
