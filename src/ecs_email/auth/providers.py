"""
Identity provider adapters.

A provider exchanges a configured identity (service principal secret or the
platform-assigned managed identity) for a bearer token. Retry policy for
token acquisition belongs to the identity SDK; nothing here retries.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from azure.core.credentials import TokenCredential
from azure.identity import ClientSecretCredential, ManagedIdentityCredential

from ecs_email.auth.models import AuthToken
from ecs_email.errors.exceptions import AuthError, ConfigError

logger = logging.getLogger(__name__)

COMMUNICATION_SCOPE = "https://communication.azure.com/.default"


class BaseTokenProvider(ABC):
    """Source of fresh bearer tokens."""

    @abstractmethod
    async def acquire_token(self) -> AuthToken:
        """
        Acquire a new token from the identity provider.

        Raises:
            AuthError: If the provider rejects the credentials
        """

    async def close(self) -> None:
        """Release provider resources. Default: nothing to release."""


class AzureIdentityTokenProvider(BaseTokenProvider):
    """
    Adapts a synchronous azure-identity credential to BaseTokenProvider.

    The SDK call blocks on network I/O, so it runs in a worker thread to keep
    the event loop free.
    """

    def __init__(self, credential: TokenCredential, scopes: list[str] | None = None):
        self._credential = credential
        self.scopes = scopes or [COMMUNICATION_SCOPE]

    async def acquire_token(self) -> AuthToken:
        try:
            access_token = await asyncio.to_thread(self._credential.get_token, *self.scopes)
        except Exception as e:
            logger.error(
                "Failed to acquire token from identity provider",
                extra={"credential_type": type(self._credential).__name__, "error": str(e)},
            )
            raise AuthError(f"Token acquisition failed: {e}", cause=e) from e

        token = AuthToken.from_expires_on(access_token.token, access_token.expires_on)
        logger.debug(
            "Acquired token from identity provider",
            extra={
                "credential_type": type(self._credential).__name__,
                "expires_at": token.expires_at.isoformat(),
            },
        )
        return token

    async def close(self) -> None:
        close = getattr(self._credential, "close", None)
        if close is not None:
            await asyncio.to_thread(close)


def service_principal_provider(
    tenant_id: str,
    client_id: str,
    client_secret: str,
    scopes: list[str] | None = None,
) -> AzureIdentityTokenProvider:
    """
    Token provider for the client-credentials flow.

    Raises:
        ConfigError: If any of tenant_id, client_id, client_secret is blank
    """
    if not all(v and v.strip() for v in (tenant_id, client_id, client_secret)):
        raise ConfigError("tenant_id, client_id, and client_secret are required")

    # Don't log the secret
    logger.debug(
        "Using client secret Service Principal authentication",
        extra={"tenant_id": tenant_id, "client_id": client_id},
    )
    credential = ClientSecretCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
    )
    return AzureIdentityTokenProvider(credential, scopes)


def managed_identity_provider(
    client_id: str | None = None,
    scopes: list[str] | None = None,
) -> AzureIdentityTokenProvider:
    """Token provider for the system- or user-assigned managed identity."""
    logger.debug(
        "Using Managed Identity authentication",
        extra={"client_id": client_id or "system-assigned"},
    )
    if client_id:
        credential = ManagedIdentityCredential(client_id=client_id)
    else:
        credential = ManagedIdentityCredential()
    return AzureIdentityTokenProvider(credential, scopes)


__all__ = [
    "COMMUNICATION_SCOPE",
    "BaseTokenProvider",
    "AzureIdentityTokenProvider",
    "service_principal_provider",
    "managed_identity_provider",
]
