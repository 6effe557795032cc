"""
Credential/Config Lifecycle

Creates, loads and persists the agent's credential document. Loading
provisions an Ed25519 identity the first time it finds none, holding an
exclusive lock across the read-generate-persist sequence so concurrent
processes cannot silently discard each other's keys.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from certkit_agent.config.models import (
    AgentConfig,
    BootstrapCreds,
    IdentityCreds,
    VersionInfo,
)
from certkit_agent.config.settings import ProvisioningSettings
from certkit_agent.exceptions import (
    BootstrapCredentialsError,
    ConfigEmptyError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigPathError,
    ConfigReadError,
    KeyDecodeError,
    StorageError,
)
from certkit_agent.identity.keypair import SEED_SIZE, create_new_keypair, load_signing_key
from certkit_agent.storage.atomic import exclusive_lock, write_file_atomic

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CONFIG_FILE_MODE = 0o600
CONFIG_DIR_MODE = 0o755


def create_initial_config(
    path: PathLike,
    settings: Optional[ProvisioningSettings] = None,
) -> AgentConfig:
    """Write a first-install document holding only bootstrap credentials.

    Args:
        path: Where to write the document. The parent directory is created
            if needed.
        settings: Provisioning inputs; read from the environment if omitted.

    Returns:
        The document that was written.

    Raises:
        ConfigPathError: If ``path`` is empty.
        BootstrapCredentialsError: If the access or secret key is missing.
        StorageError: If the directory or file cannot be written.
    """
    if not path:
        raise ConfigPathError("config path is empty")

    settings = settings or ProvisioningSettings()
    if not settings.has_bootstrap_credentials():
        raise BootstrapCredentialsError(
            "ACCESS_KEY and SECRET_KEY are required for first install"
        )

    config = AgentConfig(
        api_base=settings.api_base,
        bootstrap=BootstrapCreds(
            access_key=settings.access_key,
            secret_key=settings.secret_key,
        ),
    )

    parent = Path(path).parent
    try:
        parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(f"failed to create config directory {parent}: {exc}") from exc

    save_config(config, path)
    logger.info("Created initial config at %s (api_base=%s)", path, config.api_base)
    return config


def save_config(config: AgentConfig, path: PathLike) -> None:
    """Persist the document as indented JSON with a trailing newline.

    The write is atomic and the file is owner read/write only.

    Raises:
        ConfigPathError: If ``path`` is empty.
        AtomicWriteError: If the write, sync or rename fails.
    """
    if not path:
        raise ConfigPathError("config path is empty")

    payload = json.dumps(config.to_document(), indent=2) + "\n"
    write_file_atomic(path, payload.encode("utf-8"), CONFIG_FILE_MODE)
    logger.info("Saved config to %s", path)


def load_config(path: PathLike, version: Optional[VersionInfo] = None) -> AgentConfig:
    """Load the credential document, provisioning an identity if missing.

    Not purely read-only: the first load without a keypair generates one
    and saves the document before returning. Later loads reuse it.

    Args:
        path: Path to the JSON document.
        version: Build information to attach to the returned config.

    Returns:
        The loaded document.

    Raises:
        ConfigPathError: If ``path`` is empty.
        ConfigNotFoundError: If the file does not exist.
        ConfigReadError: If the file cannot be read.
        ConfigEmptyError: If the file is empty after trimming whitespace.
        ConfigParseError: If the file is not a valid document.
        KeyDecodeError: If a stored keypair is present but malformed.
    """
    if not path:
        raise ConfigPathError("config path is empty")

    config = _read_config(path)
    if config.has_key_pair():
        _validate_key_pair(config, path)
    else:
        config = _provision_identity(path)

    _check_registration_state(config, path)

    if version is not None:
        config.version = version
    return config


def _read_config(path: PathLike) -> AgentConfig:
    try:
        raw = Path(path).read_bytes()
    except FileNotFoundError as exc:
        raise ConfigNotFoundError(f"config file does not exist: {path}") from exc
    except OSError as exc:
        raise ConfigReadError(f"failed to read config file {path}: {exc}") from exc

    if not raw.strip():
        raise ConfigEmptyError(f"config file {path} is empty")

    try:
        return AgentConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigParseError(f"failed to parse config file {path}: {exc}") from exc


def _provision_identity(path: PathLike) -> AgentConfig:
    with exclusive_lock(path):
        # Another process may have provisioned while we waited for the lock.
        config = _read_config(path)
        if config.has_key_pair():
            logger.info("Adopting keypair provisioned concurrently in %s", path)
            _validate_key_pair(config, path)
            return config

        logger.info("Generating new keypair...")
        config.identity = IdentityCreds(key_pair=create_new_keypair())
        save_config(config, path)
    return config


def _validate_key_pair(config: AgentConfig, path: PathLike) -> None:
    key_pair = config.key_pair
    try:
        private_raw = key_pair.private_key_bytes()
        public_raw = key_pair.public_key_bytes()
        load_signing_key(private_raw)
    except KeyDecodeError as exc:
        raise type(exc)(f"config {path}: identity.key_pair: {exc}") from exc

    if private_raw[SEED_SIZE:] != public_raw:
        raise KeyDecodeError(
            f"config {path}: identity.key_pair: public_key does not match private_key"
        )


def _check_registration_state(config: AgentConfig, path: PathLike) -> None:
    if config.bootstrap is not None and config.agent is not None:
        logger.warning(
            "Config %s has both bootstrap and agent credentials; using agent", path
        )
    elif config.bootstrap is None and config.agent is None:
        logger.warning("Config %s has neither bootstrap nor agent credentials", path)
