"""
Agent Identity

Ed25519 keypair lifecycle for the agent:
- Keypair generation from the OS random source
- Strict base64url encode/decode with length validation
- Signing/verification key construction from raw bytes
"""

from .keypair import (
    KeyPair,
    PRIVATE_KEY_SIZE,
    PUBLIC_KEY_SIZE,
    SIGNATURE_SIZE,
    create_new_keypair,
    decode_private_key,
    decode_public_key,
    encode_base64url,
    load_signing_key,
    public_key_from_bytes,
)

__all__ = [
    "KeyPair",
    "PRIVATE_KEY_SIZE",
    "PUBLIC_KEY_SIZE",
    "SIGNATURE_SIZE",
    "create_new_keypair",
    "decode_private_key",
    "decode_public_key",
    "encode_base64url",
    "load_signing_key",
    "public_key_from_bytes",
]
