"""
Request Signing

Ed25519 request signatures binding method, path, host, timestamp and body
to the agent's identity.
"""

from .canonical import (
    SigningContext,
    build_signing_string,
    canonical_host,
    canonical_path_and_query,
    compute_body_sha256,
)
from .signer import (
    AUTH_SCHEME,
    HEADER_AGENT_ID,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_SHA256,
    HEADER_TIMESTAMP,
    SIGNED_FIELDS,
    SignedHeaders,
    sign_request,
    unix_seconds,
)
from .auth import AgentSigAuth

__all__ = [
    "SigningContext",
    "build_signing_string",
    "canonical_host",
    "canonical_path_and_query",
    "compute_body_sha256",
    "AUTH_SCHEME",
    "HEADER_AGENT_ID",
    "HEADER_AUTHORIZATION",
    "HEADER_CONTENT_SHA256",
    "HEADER_TIMESTAMP",
    "SIGNED_FIELDS",
    "SignedHeaders",
    "sign_request",
    "unix_seconds",
    "AgentSigAuth",
]
