# Copyright (c) CertKit Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for the CertKit agent.

All agent exceptions inherit from CertkitAgentError, so callers can treat
configuration errors as fatal at startup while handling per-request
signing errors individually.
"""


class CertkitAgentError(Exception):
    """Base exception for all CertKit agent errors."""


class IdentityError(CertkitAgentError):
    """Errors related to the agent's Ed25519 identity."""


class KeyGenerationError(IdentityError):
    """The random source failed while generating a keypair."""


class KeyDecodeError(IdentityError):
    """Stored key material could not be decoded into a usable key."""


class KeyEncodingError(KeyDecodeError):
    """Key material is not valid unpadded base64url."""


class KeyLengthError(KeyDecodeError):
    """Decoded key material has the wrong length."""


class SigningError(CertkitAgentError):
    """Errors raised while signing an outgoing request."""


class RequestValidationError(SigningError):
    """The request or signing inputs are missing required parts."""


class BodyReadError(SigningError):
    """The request body could not be read for hashing."""


class ConfigError(CertkitAgentError):
    """Errors related to the on-disk credential document."""


class ConfigPathError(ConfigError):
    """No config path was provided."""


class ConfigNotFoundError(ConfigError):
    """The config file does not exist."""


class ConfigReadError(ConfigError):
    """The config file exists but could not be read."""


class ConfigEmptyError(ConfigError):
    """The config file contains only whitespace."""


class ConfigParseError(ConfigError):
    """The config file is not a valid credential document."""


class BootstrapCredentialsError(ConfigError):
    """Bootstrap access/secret keys are missing at first install."""


class StorageError(CertkitAgentError):
    """Errors related to persisting files on disk."""


class AtomicWriteError(StorageError):
    """An atomic write failed; the target file was left untouched."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


__all__ = [
    "CertkitAgentError",
    "IdentityError",
    "KeyGenerationError",
    "KeyDecodeError",
    "KeyEncodingError",
    "KeyLengthError",
    "SigningError",
    "RequestValidationError",
    "BodyReadError",
    "ConfigError",
    "ConfigPathError",
    "ConfigNotFoundError",
    "ConfigReadError",
    "ConfigEmptyError",
    "ConfigParseError",
    "BootstrapCredentialsError",
    "StorageError",
    "AtomicWriteError",
]
