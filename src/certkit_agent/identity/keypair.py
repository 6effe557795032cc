"""
Agent Identity Keypair

Ed25519 keypair generation and the base64url encode/decode boundary that
every key read from disk or network must pass through before use.

Encoded form (unpadded base64url):
- public key:  32 raw bytes
- private key: 64 raw bytes (32-byte seed followed by the public key)
"""

from __future__ import annotations

import base64
import logging
import re

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from pydantic import BaseModel, Field

from certkit_agent.exceptions import (
    KeyDecodeError,
    KeyEncodingError,
    KeyGenerationError,
    KeyLengthError,
)

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = 64
SEED_SIZE = 32
SIGNATURE_SIZE = 64

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def encode_base64url(raw: bytes) -> str:
    """Encode bytes as unpadded base64url (keys, digests and signatures)."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_base64url(encoded: str, what: str) -> bytes:
    """Strictly decode unpadded base64url.

    Padding, characters outside the URL-safe alphabet and impossible
    lengths are rejected rather than coerced.
    """
    if not isinstance(encoded, str):
        raise KeyEncodingError(f"decode {what}: expected str, got {type(encoded).__name__}")
    if not _BASE64URL_RE.match(encoded):
        raise KeyEncodingError(f"decode {what}: illegal base64url data")
    if len(encoded) % 4 == 1:
        raise KeyEncodingError(f"decode {what}: illegal base64url length {len(encoded)}")

    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except ValueError as exc:
        raise KeyEncodingError(f"decode {what}: {exc}") from exc


def decode_private_key(encoded: str) -> bytes:
    """Decode a base64url private key into its 64 raw bytes.

    Args:
        encoded: Unpadded base64url private key.

    Returns:
        The raw 64-byte private key (seed followed by public key).

    Raises:
        KeyEncodingError: If ``encoded`` is not valid unpadded base64url.
        KeyLengthError: If the decoded key is not exactly 64 bytes.
    """
    raw = _decode_base64url(encoded, "private key")
    if len(raw) != PRIVATE_KEY_SIZE:
        raise KeyLengthError(f"invalid private key length: {len(raw)}")
    return raw


def decode_public_key(encoded: str) -> bytes:
    """Decode a base64url public key into its 32 raw bytes.

    Raises:
        KeyEncodingError: If ``encoded`` is not valid unpadded base64url.
        KeyLengthError: If the decoded key is not exactly 32 bytes.
    """
    raw = _decode_base64url(encoded, "public key")
    if len(raw) != PUBLIC_KEY_SIZE:
        raise KeyLengthError(f"invalid public key length: {len(raw)}")
    return raw


def _raw_public_bytes(public_key: ed25519.Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def load_signing_key(raw: bytes) -> ed25519.Ed25519PrivateKey:
    """Build a signing key from a raw 64-byte private key.

    The trailing 32 bytes must be the public key derived from the seed;
    a mismatch means the stored key is corrupt.

    Raises:
        KeyLengthError: If ``raw`` is not 64 bytes.
        KeyDecodeError: If the embedded public key does not match the seed.
    """
    if len(raw) != PRIVATE_KEY_SIZE:
        raise KeyLengthError(f"invalid ed25519 private key length: got {len(raw)}")

    private_key = ed25519.Ed25519PrivateKey.from_private_bytes(bytes(raw[:SEED_SIZE]))
    if _raw_public_bytes(private_key.public_key()) != bytes(raw[SEED_SIZE:]):
        raise KeyDecodeError("private key does not match its embedded public key")
    return private_key


def public_key_from_bytes(raw: bytes) -> ed25519.Ed25519PublicKey:
    """Build a verification key from 32 raw public key bytes."""
    if len(raw) != PUBLIC_KEY_SIZE:
        raise KeyLengthError(f"invalid public key length: {len(raw)}")
    return ed25519.Ed25519PublicKey.from_public_bytes(bytes(raw))


class KeyPair(BaseModel):
    """Ed25519 keypair in encoded form, suitable for the config document."""

    public_key: str = Field(default="", description="base64url encoded (32 bytes)")
    private_key: str = Field(default="", description="base64url encoded (64 bytes)")

    def is_complete(self) -> bool:
        """True when both halves of the keypair are present."""
        return bool(self.public_key) and bool(self.private_key)

    def public_key_bytes(self) -> bytes:
        return decode_public_key(self.public_key)

    def private_key_bytes(self) -> bytes:
        return decode_private_key(self.private_key)


def create_new_keypair() -> KeyPair:
    """Generate a new Ed25519 keypair.

    The returned keys are base64url-encoded (no padding), safe for JSON
    storage and transport.

    Raises:
        KeyGenerationError: If the underlying random source fails. There is
            no safe retry for this; callers should treat it as fatal.
    """
    try:
        private_key = ed25519.Ed25519PrivateKey.generate()
    except Exception as exc:
        raise KeyGenerationError(f"generate ed25519 keypair: {exc}") from exc

    seed = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = _raw_public_bytes(private_key.public_key())

    logger.info("Generated new ed25519 keypair")
    return KeyPair(
        public_key=encode_base64url(public),
        private_key=encode_base64url(seed + public),
    )
