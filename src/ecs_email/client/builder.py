"""
Builder for EmailClient.

Exactly one credential must be chosen: connection_string(),
service_principal() or managed_identity(). build() raises ConfigError when
none or several are configured, or when an AAD credential has no host.

Example:
    >>> client = (
    ...     EmailClientBuilder()
    ...     .host("contoso.communication.azure.com")
    ...     .service_principal(tenant_id, client_id, client_secret)
    ...     .build()
    ... )
"""

import aiohttp

from ecs_email.auth.credentials import Credential
from ecs_email.auth.token_cache import DEFAULT_REFRESH_BUFFER_SECONDS
from ecs_email.client.email_client import EmailClient, create_credential
from ecs_email.config import DEFAULT_API_VERSION, ClientConfig, select_auth_mode
from ecs_email.errors.exceptions import ConfigError
from ecs_email.transport.http_client import DEFAULT_TIMEOUT_SECONDS


class EmailClientBuilder:
    """Collects client options and validates them on build()."""

    def __init__(self):
        self._host: str | None = None
        self._connection_string: str | None = None
        self._service_principal: tuple[str, str, str] | None = None
        self._managed_identity = False
        self._managed_identity_client_id: str | None = None
        self._api_version = DEFAULT_API_VERSION
        self._refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS
        self._timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
        self._session: aiohttp.ClientSession | None = None
        self._credential: Credential | None = None

    def host(self, host: str) -> "EmailClientBuilder":
        """Service host or endpoint URL. Required for AAD credentials."""
        self._host = host
        return self

    def connection_string(self, connection_string: str) -> "EmailClientBuilder":
        """Use shared-key auth from 'endpoint=...;accesskey=...'."""
        self._connection_string = connection_string
        return self

    def service_principal(
        self, tenant_id: str, client_id: str, client_secret: str
    ) -> "EmailClientBuilder":
        """Use the Azure AD client-credentials flow."""
        self._service_principal = (tenant_id, client_id, client_secret)
        return self

    def managed_identity(self, client_id: str | None = None) -> "EmailClientBuilder":
        """Use the managed identity (user-assigned when client_id is given)."""
        self._managed_identity = True
        self._managed_identity_client_id = client_id
        return self

    def api_version(self, api_version: str) -> "EmailClientBuilder":
        self._api_version = api_version
        return self

    def token_refresh_buffer(self, seconds: float) -> "EmailClientBuilder":
        """Margin before expiry at which a cached token is refreshed."""
        self._refresh_buffer_seconds = seconds
        return self

    def timeout(self, seconds: float) -> "EmailClientBuilder":
        self._timeout_seconds = seconds
        return self

    def session(self, session: aiohttp.ClientSession) -> "EmailClientBuilder":
        """Borrow an existing aiohttp session (the client will not close it)."""
        self._session = session
        return self

    def credential(self, credential: Credential) -> "EmailClientBuilder":
        """
        Use a pre-built credential of the selected mode instead of creating one.

        A credential-selecting method must still be called so the auth mode
        is explicit; the supplied credential must match it.
        """
        self._credential = credential
        return self

    def build_config(self) -> ClientConfig:
        """
        Validate the options and return the resulting ClientConfig.

        Raises:
            ConfigError: If zero or several credentials are configured, or a
                required field (host, service principal field) is missing
        """
        auth_mode = select_auth_mode(
            connection_string=self._connection_string is not None,
            service_principal=self._service_principal is not None,
            managed_identity=self._managed_identity,
        )
        tenant_id, client_id, client_secret = self._service_principal or (None, None, None)

        config = ClientConfig(
            auth_mode=auth_mode,
            endpoint=self._host or "",
            connection_string=self._connection_string,
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            managed_identity_client_id=self._managed_identity_client_id,
            api_version=self._api_version,
            token_refresh_buffer_seconds=self._refresh_buffer_seconds,
            timeout_seconds=self._timeout_seconds,
        )
        config.validate()
        return config

    def build(self) -> EmailClient:
        """
        Build the client.

        Raises:
            ConfigError: See build_config()
        """
        config = self.build_config()
        if self._credential is not None and self._credential.auth_mode is not config.auth_mode:
            raise ConfigError(
                f"Supplied credential is {self._credential.auth_mode.value}, "
                f"but builder is configured for {config.auth_mode.value}"
            )
        credential = self._credential or create_credential(config)
        return EmailClient.from_config(config, session=self._session, credential=credential)


__all__ = ["EmailClientBuilder"]
