"""
Canonical signing string for agent requests.

The string built here is the wire contract between the agent and any
verifier: both sides must derive it byte-for-byte from the request as
sent. Query strings are used exactly as built by the caller; nothing is
re-encoded or sorted.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional

import httpx

from certkit_agent.exceptions import BodyReadError, RequestValidationError
from certkit_agent.identity.keypair import encode_base64url


def compute_body_sha256(request: httpx.Request) -> str:
    """Hash the exact body bytes that will be sent.

    ``request.read()`` buffers the body and leaves the request re-readable,
    so it can still be sent afterwards. An absent body hashes as ``b""``.

    Raises:
        BodyReadError: If the body stream cannot be read.
    """
    try:
        body = request.read()
    except Exception as exc:
        raise BodyReadError(f"read request body: {exc}") from exc
    return encode_base64url(hashlib.sha256(body).digest())


def canonical_path_and_query(url: Optional[httpx.URL]) -> str:
    """Return the escaped ``path?query`` exactly as it goes on the wire."""
    if url is None:
        return "/"
    path, _, query = url.raw_path.decode("ascii").partition("?")
    if not path:
        path = "/"
    if query:
        return f"{path}?{query}"
    return path


def canonical_host(request: httpx.Request) -> str:
    """Return the host to sign: the Host header, else the URL's host."""
    host = request.headers.get("Host", "").strip()
    if host:
        return host.lower()
    if request.url is not None:
        return request.url.netloc.decode("ascii").lower()
    return ""


def build_signing_string(
    method: str,
    path_query: str,
    host: str,
    ts: int,
    body_hash: str,
) -> str:
    """Build the exact string that gets signed.

    Newline-delimited ``key: value`` lines, no trailing newline. Method is
    upper-cased and host lower-cased. Keep this stable across client and
    server.
    """
    return "\n".join(
        [
            f"method: {method.upper()}",
            f"path: {path_query}",
            f"host: {host.lower()}",
            f"ts: {int(ts)}",
            f"body_sha256: {body_hash}",
        ]
    )


@dataclass(frozen=True)
class SigningContext:
    """The authenticated attributes of one request. Never persisted."""

    method: str
    path: str
    host: str
    timestamp: int
    body_sha256: str

    @classmethod
    def from_request(cls, request: httpx.Request, timestamp: int) -> "SigningContext":
        """Derive the signing context, reading (and restoring) the body.

        Raises:
            BodyReadError: If the body cannot be read.
            RequestValidationError: If the request has no host.
        """
        body_sha256 = compute_body_sha256(request)
        host = canonical_host(request)
        if not host:
            raise RequestValidationError(
                "missing host (Host header and URL host both empty)"
            )
        return cls(
            method=request.method,
            path=canonical_path_and_query(request.url),
            host=host,
            timestamp=timestamp,
            body_sha256=body_sha256,
        )

    def canonical_string(self) -> str:
        return build_signing_string(
            self.method, self.path, self.host, self.timestamp, self.body_sha256
        )
