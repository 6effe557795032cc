"""
Provisioning settings read from the environment at install time.

Environment Variables:
- ACCESS_KEY / SECRET_KEY: bootstrap credentials (required together)
- CERTKIT_API_BASE: control plane override (empty falls back to default)
- VERSION: release tag override
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from certkit_agent.config.models import DEFAULT_API_BASE

DEFAULT_VERSION = "v0.0.1"


class ProvisioningSettings(BaseSettings):
    """Environment-style inputs consumed when the config is first created."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    access_key: str = Field(default="", validation_alias="ACCESS_KEY")
    secret_key: str = Field(default="", validation_alias="SECRET_KEY")
    api_base: str = Field(default=DEFAULT_API_BASE, validation_alias="CERTKIT_API_BASE")
    version: str = Field(default=DEFAULT_VERSION, validation_alias="VERSION")

    @field_validator("api_base")
    @classmethod
    def _api_base_default(cls, value: str) -> str:
        return value.strip() or DEFAULT_API_BASE

    @field_validator("version")
    @classmethod
    def _version_default(cls, value: str) -> str:
        return value.strip() or DEFAULT_VERSION

    def has_bootstrap_credentials(self) -> bool:
        return bool(self.access_key) and bool(self.secret_key)
