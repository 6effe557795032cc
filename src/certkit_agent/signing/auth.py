"""
httpx integration for request signing.

Attach ``AgentSigAuth`` to an ``httpx.Client`` or ``httpx.AsyncClient`` to
sign every outgoing request at send time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Generator, Optional

import httpx

from certkit_agent.config.models import AgentConfig
from certkit_agent.exceptions import IdentityError, RequestValidationError
from certkit_agent.identity.keypair import load_signing_key
from certkit_agent.signing.signer import sign_request


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AgentSigAuth(httpx.Auth):
    """Sign each request with the agent's Ed25519 key.

    Args:
        agent_id: Server-issued agent identifier.
        private_key: Raw 64-byte Ed25519 private key.
        clock: Returns the signing time; defaults to the current UTC time.

    Example:
        >>> auth = AgentSigAuth.from_config(config)  # doctest: +SKIP
        >>> with httpx.Client(base_url=config.api_base, auth=auth) as client:
        ...     client.get("/api/v1/ping")
    """

    # httpx buffers the body (sync or async) before auth_flow runs.
    requires_request_body = True

    def __init__(
        self,
        agent_id: str,
        private_key: bytes,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not agent_id:
            raise RequestValidationError("agent_id is required")
        load_signing_key(private_key)

        self.agent_id = agent_id
        self._private_key = bytes(private_key)
        self._clock = clock or _utc_now

    @classmethod
    def from_config(
        cls,
        config: AgentConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "AgentSigAuth":
        """Build the auth flow from a loaded, registered config.

        Raises:
            IdentityError: If the agent is not registered or has no keypair.
        """
        if config.agent is None or not config.agent.agent_id:
            raise IdentityError("agent is not registered; no agent_id to sign with")
        return cls(config.agent.agent_id, config.signing_key(), clock=clock)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        sign_request(request, self.agent_id, self._private_key, self._clock())
        yield request
