"""
Request Signer

Signs outgoing control-plane requests with the agent's Ed25519 key and
attaches the authentication headers:

- X-Agent-Id
- X-Agent-Timestamp
- X-Agent-Content-SHA256
- Authorization: AgentSig keyId=..., alg=..., sig=..., signed=...

Signing holds no shared state and is safe to call concurrently as long as
each call gets its own request.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import httpx

from certkit_agent.exceptions import KeyLengthError, RequestValidationError
from certkit_agent.identity.keypair import (
    PRIVATE_KEY_SIZE,
    encode_base64url,
    load_signing_key,
)
from certkit_agent.signing.canonical import SigningContext

logger = logging.getLogger(__name__)

HEADER_AGENT_ID = "X-Agent-Id"
HEADER_TIMESTAMP = "X-Agent-Timestamp"
HEADER_CONTENT_SHA256 = "X-Agent-Content-SHA256"
HEADER_AUTHORIZATION = "Authorization"

AUTH_SCHEME = "AgentSig"
SIGNATURE_ALGORITHM = "ed25519"
SIGNED_FIELDS = "method path host ts body_sha256"

Timestamp = Union[datetime, int, float]


@dataclass(frozen=True)
class SignedHeaders:
    """Header values produced by signing one request."""

    agent_id: str
    timestamp: int
    body_sha256: str
    signature: str

    @property
    def authorization(self) -> str:
        return (
            f'{AUTH_SCHEME} keyId="{self.agent_id}", alg="{SIGNATURE_ALGORITHM}", '
            f'sig="{self.signature}", signed="{SIGNED_FIELDS}"'
        )

    def as_dict(self) -> dict[str, str]:
        return {
            HEADER_AGENT_ID: self.agent_id,
            HEADER_TIMESTAMP: str(self.timestamp),
            HEADER_CONTENT_SHA256: self.body_sha256,
            HEADER_AUTHORIZATION: self.authorization,
        }


def unix_seconds(now: Optional[Timestamp] = None) -> int:
    """Truncate ``now`` to unix seconds (UTC).

    Naive datetimes are taken to be UTC. ``None`` means the current time.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if isinstance(now, datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return math.floor(now.timestamp())
    if isinstance(now, bool) or not isinstance(now, (int, float)):
        raise RequestValidationError(f"invalid timestamp: {now!r}")
    return math.floor(now)


def sign_request(
    request: httpx.Request,
    agent_id: str,
    private_key: bytes,
    now: Optional[Timestamp] = None,
) -> SignedHeaders:
    """Sign ``request`` in place and return the header values that were set.

    Args:
        request: The outgoing request. Its body is read for hashing and left
            re-readable.
        agent_id: Server-issued ID for this agent.
        private_key: Raw 64-byte Ed25519 private key.
        now: Signing time; defaults to the current time.

    Returns:
        The signed header values.

    Raises:
        RequestValidationError: If the request, its URL/host or ``agent_id``
            is missing.
        KeyLengthError: If ``private_key`` is not 64 bytes.
        KeyDecodeError: If ``private_key`` is internally inconsistent.
        BodyReadError: If the body cannot be read.
    """
    if request is None:
        raise RequestValidationError("request is None")
    if not isinstance(request, httpx.Request):
        raise RequestValidationError(
            f"expected httpx.Request, got {type(request).__name__}"
        )
    if getattr(request, "url", None) is None:
        raise RequestValidationError("request URL is None")
    if private_key is None or len(private_key) != PRIVATE_KEY_SIZE:
        got = 0 if private_key is None else len(private_key)
        raise KeyLengthError(f"invalid ed25519 private key length: got {got}")
    if not agent_id:
        raise RequestValidationError("agent_id is required")

    signing_key = load_signing_key(private_key)
    ts = unix_seconds(now)

    context = SigningContext.from_request(request, ts)
    signature = signing_key.sign(context.canonical_string().encode("utf-8"))

    signed = SignedHeaders(
        agent_id=agent_id,
        timestamp=ts,
        body_sha256=context.body_sha256,
        signature=encode_base64url(signature),
    )
    for name, value in signed.as_dict().items():
        request.headers[name] = value

    logger.debug(
        "Signed %s %s host=%s ts=%d",
        context.method,
        context.path,
        context.host,
        ts,
    )
    return signed
