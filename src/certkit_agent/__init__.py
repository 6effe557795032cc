# Copyright (c) CertKit Contributors. All rights reserved.
# Licensed under the MIT License.
"""
CertKit Agent - Identity & Request Authentication

The agent proves its identity to the CertKit control plane on every
request with an Ed25519 signature over a canonical description of the
request, instead of replayable bearer tokens or mutual TLS.

Version: 0.1.0
"""

__version__ = "0.1.0"

# Identity
from .identity import (
    KeyPair,
    create_new_keypair,
    decode_private_key,
    decode_public_key,
)

# Credential/config lifecycle
from .config import (
    AgentConfig,
    AgentCreds,
    BootstrapCreds,
    ProvisioningSettings,
    VersionInfo,
    create_initial_config,
    load_config,
    save_config,
)

# Request signing
from .signing import (
    AgentSigAuth,
    SignedHeaders,
    sign_request,
)

# Exceptions
from .exceptions import (
    CertkitAgentError,
    IdentityError,
    KeyDecodeError,
    SigningError,
    ConfigError,
    StorageError,
)

__all__ = [
    # Version
    "__version__",

    # Identity
    "KeyPair",
    "create_new_keypair",
    "decode_private_key",
    "decode_public_key",

    # Config
    "AgentConfig",
    "AgentCreds",
    "BootstrapCreds",
    "ProvisioningSettings",
    "VersionInfo",
    "create_initial_config",
    "load_config",
    "save_config",

    # Signing
    "AgentSigAuth",
    "SignedHeaders",
    "sign_request",

    # Exceptions
    "CertkitAgentError",
    "IdentityError",
    "KeyDecodeError",
    "SigningError",
    "ConfigError",
    "StorageError",
]
