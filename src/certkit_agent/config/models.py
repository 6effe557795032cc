"""
Credential Document

Pydantic models for the agent's on-disk configuration: control-plane
endpoint, bootstrap credentials, server-issued agent credentials, the
Ed25519 identity and the opaque desired-state payload.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from certkit_agent.exceptions import IdentityError
from certkit_agent.identity.keypair import KeyPair

DEFAULT_API_BASE = "https://app.certkit.io"
DEFAULT_CONFIG_PATH = "/etc/certkit-agent/config.json"


class BootstrapCreds(BaseModel):
    """One-time install credentials, used only for the first registration."""

    access_key: str = ""
    secret_key: str = ""


class AgentCreds(BaseModel):
    """Server-issued identity assigned after registration."""

    agent_id: str = ""
    access_token: str = ""
    refresh_token: str = ""


class IdentityCreds(BaseModel):
    """Wrapper for the agent's keypair within the document."""

    key_pair: Optional[KeyPair] = None


class VersionInfo(BaseModel):
    """Build information for the running agent. Never persisted."""

    version: str = ""
    commit: str = ""
    date: str = ""


class AgentConfig(BaseModel):
    """
    The agent's credential document.

    Exactly one of ``bootstrap`` / ``agent`` is expected once the agent is
    installed: ``bootstrap`` before registration, ``agent`` after. Loading
    is permissive about this; when both are present ``agent`` wins.
    """

    model_config = ConfigDict(extra="ignore")

    api_base: str = Field(default=DEFAULT_API_BASE, description="Control plane base URL")
    bootstrap: Optional[BootstrapCreds] = Field(None)
    agent: Optional[AgentCreds] = Field(None)
    desired_state: Optional[Any] = Field(None, description="Opaque orchestration payload")
    identity: Optional[IdentityCreds] = Field(None)

    version: VersionInfo = Field(default_factory=VersionInfo, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _ignore_runtime_fields(cls, data: Any) -> Any:
        # Build info is attached at runtime, never read from the document.
        if isinstance(data, dict) and "version" in data:
            data = {k: v for k, v in data.items() if k != "version"}
        return data

    @property
    def registration_state(self) -> str:
        """One of ``"registered"``, ``"bootstrap"`` or ``"unprovisioned"``."""
        if self.agent is not None:
            return "registered"
        if self.bootstrap is not None:
            return "bootstrap"
        return "unprovisioned"

    @property
    def key_pair(self) -> Optional[KeyPair]:
        if self.identity is None:
            return None
        return self.identity.key_pair

    def has_key_pair(self) -> bool:
        """True when the document holds both halves of a keypair."""
        return self.key_pair is not None and self.key_pair.is_complete()

    def signing_key(self) -> bytes:
        """Return the decoded 64-byte private key.

        Raises:
            IdentityError: If the document has no keypair.
            KeyDecodeError: If the stored private key is malformed.
        """
        if not self.has_key_pair():
            raise IdentityError("config has no identity keypair")
        return self.key_pair.private_key_bytes()

    def complete_registration(self, agent: AgentCreds) -> None:
        """Record the server-issued identity and drop bootstrap credentials."""
        self.agent = agent
        self.bootstrap = None

    def to_document(self) -> dict:
        """Return the JSON-ready document with absent fields omitted.

        ``desired_state`` is passed through exactly as loaded, including an
        explicit ``null``.
        """
        doc = self.model_dump(mode="json", exclude_none=True, exclude={"desired_state"})
        if self.desired_state is not None or "desired_state" in self.model_fields_set:
            doc["desired_state"] = self.desired_state
        return doc
