"""
Credential strategies for the email client.

A client holds exactly one credential. Each credential exposes a single
capability, ``apply_auth(request)``, which the client calls once per
outgoing request:

    - SharedKeyCredential: stateless, HMAC-signs every request with the
      access key. Never contacts a token endpoint.
    - ServicePrincipalCredential: client-credentials flow against Azure AD,
      token cached in a TokenCell and sent as ``Authorization: Bearer``.
    - ManagedIdentityCredential: platform-assigned identity, same caching
      and header as the service principal.

Example:
    >>> credential = SharedKeyCredential.from_connection_string(conn_str)
    >>> await credential.apply_auth(request)   # adds x-ms-date etc.

    >>> credential = ServicePrincipalCredential(tenant_id, client_id, secret)
    >>> await credential.apply_auth(request)   # adds Authorization: Bearer ...
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ecs_email.auth.connection_string import parse_connection_string
from ecs_email.auth.providers import (
    BaseTokenProvider,
    managed_identity_provider,
    service_principal_provider,
)
from ecs_email.auth.signing import sign_request
from ecs_email.auth.token_cache import DEFAULT_REFRESH_BUFFER_SECONDS, TokenCell, utc_now
from ecs_email.errors.exceptions import ConfigError
from ecs_email.transport.http_client import HttpRequest
from ecs_email.types import AuthMode

logger = logging.getLogger(__name__)


class Credential(ABC):
    """Authentication strategy applied to every outgoing request."""

    auth_mode: AuthMode

    @abstractmethod
    async def apply_auth(self, request: HttpRequest) -> None:
        """
        Add authentication headers to request in place.

        Raises:
            InvalidKeyError / EncodingError: Shared-key signing failed
            AuthError: Bearer token could not be acquired
        """

    async def close(self) -> None:
        """Release resources held by the credential."""

    def get_diagnostics(self) -> dict[str, Any]:
        return {"auth_mode": self.auth_mode.value}


class SharedKeyCredential(Credential):
    """
    Access-key credential. Re-signs every request, holds no mutable state.

    Attributes:
        account_name: Communication resource name (for diagnostics)
    """

    auth_mode = AuthMode.SHARED_KEY

    def __init__(self, account_name: str, account_key: str):
        self.account_name = account_name
        self._account_key = account_key

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "SharedKeyCredential":
        parsed = parse_connection_string(connection_string)
        account_name = parsed.host.split(".", 1)[0]
        return cls(account_name=account_name, account_key=parsed.access_key)

    async def apply_auth(self, request: HttpRequest) -> None:
        sign_request(request, self._account_key)

    def __repr__(self) -> str:
        return f"SharedKeyCredential(account_name={self.account_name!r})"


class BearerTokenCredential(Credential):
    """Credential that sends a cached Azure AD token as a Bearer header."""

    def __init__(
        self,
        provider: BaseTokenProvider,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.token_cell = TokenCell(provider, refresh_buffer_seconds, clock=clock)

    async def get_token(self, force_refresh: bool = False) -> str:
        return await self.token_cell.get_token(force_refresh=force_refresh)

    async def apply_auth(self, request: HttpRequest) -> None:
        token = await self.token_cell.get_token()
        request.headers["Authorization"] = f"Bearer {token}"

    async def close(self) -> None:
        await self.token_cell.close()

    def get_diagnostics(self) -> dict[str, Any]:
        diag = super().get_diagnostics()
        diag["refresh_buffer_seconds"] = self.token_cell.refresh_buffer_seconds
        diag["token"] = self.token_cell.get_cached_token_info()
        return diag


class ServicePrincipalCredential(BearerTokenCredential):
    """Azure AD application identity (tenant, client id, client secret)."""

    auth_mode = AuthMode.SERVICE_PRINCIPAL

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        provider: BaseTokenProvider | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not all(v and v.strip() for v in (tenant_id, client_id, client_secret)):
            raise ConfigError("tenant_id, client_id, and client_secret are required")
        self.tenant_id = tenant_id
        self.client_id = client_id
        provider = provider or service_principal_provider(tenant_id, client_id, client_secret)
        super().__init__(provider, refresh_buffer_seconds, clock=clock)

    def get_diagnostics(self) -> dict[str, Any]:
        diag = super().get_diagnostics()
        diag["tenant_id"] = self.tenant_id
        diag["client_id"] = self.client_id
        return diag

    def __repr__(self) -> str:
        return (
            f"ServicePrincipalCredential(tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r})"
        )


class ManagedIdentityCredential(BearerTokenCredential):
    """Platform-assigned identity. ``client_id`` selects a user-assigned identity."""

    auth_mode = AuthMode.MANAGED_IDENTITY

    def __init__(
        self,
        client_id: str | None = None,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        provider: BaseTokenProvider | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client_id = client_id
        provider = provider or managed_identity_provider(client_id)
        super().__init__(provider, refresh_buffer_seconds, clock=clock)

    def __repr__(self) -> str:
        return f"ManagedIdentityCredential(client_id={self.client_id!r})"


__all__ = [
    "Credential",
    "SharedKeyCredential",
    "BearerTokenCredential",
    "ServicePrincipalCredential",
    "ManagedIdentityCredential",
]
