"""
Agent configuration: the on-disk credential document and its lifecycle.
"""

from .models import (
    DEFAULT_API_BASE,
    DEFAULT_CONFIG_PATH,
    AgentConfig,
    AgentCreds,
    BootstrapCreds,
    IdentityCreds,
    VersionInfo,
)
from .settings import DEFAULT_VERSION, ProvisioningSettings
from .lifecycle import create_initial_config, load_config, save_config

__all__ = [
    "DEFAULT_API_BASE",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_VERSION",
    "AgentConfig",
    "AgentCreds",
    "BootstrapCreds",
    "IdentityCreds",
    "VersionInfo",
    "ProvisioningSettings",
    "create_initial_config",
    "load_config",
    "save_config",
]
