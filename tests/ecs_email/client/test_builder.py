"""Tests for EmailClientBuilder credential selection and validation."""

from unittest.mock import MagicMock, patch

import pytest

from ecs_email.auth.credentials import ManagedIdentityCredential, SharedKeyCredential
from ecs_email.client.builder import EmailClientBuilder
from ecs_email.client.email_client import EmailClient
from ecs_email.errors.exceptions import ConfigError
from ecs_email.types import AuthMode

HOST = "contoso.communication.azure.com"
TENANT_ID = "00000000-0000-0000-0000-000000000001"
CLIENT_ID = "00000000-0000-0000-0000-000000000002"


@pytest.fixture(autouse=True)
def no_azure_identity():
    """Keep azure-identity credential construction out of builder tests."""
    with patch("ecs_email.auth.providers.ClientSecretCredential") as sp, \
         patch("ecs_email.auth.providers.ManagedIdentityCredential") as mi:
        yield sp, mi


class TestCredentialSelection:
    def test_no_credential(self):
        with pytest.raises(ConfigError, match="No credential configured"):
            EmailClientBuilder().host(HOST).build()

    def test_two_credentials(self, connection_string):
        builder = (
            EmailClientBuilder()
            .host(HOST)
            .connection_string(connection_string)
            .managed_identity()
        )

        with pytest.raises(ConfigError, match="Multiple credentials configured"):
            builder.build()

    def test_three_credentials(self, connection_string):
        builder = (
            EmailClientBuilder()
            .host(HOST)
            .connection_string(connection_string)
            .service_principal(TENANT_ID, CLIENT_ID, "secret")
            .managed_identity()
        )

        with pytest.raises(ConfigError, match="Multiple credentials configured"):
            builder.build()

    def test_connection_string_only(self, connection_string):
        client = EmailClientBuilder().connection_string(connection_string).build()

        assert isinstance(client, EmailClient)
        assert client.auth_mode is AuthMode.SHARED_KEY
        assert isinstance(client.credential, SharedKeyCredential)
        assert client.endpoint == "https://contoso.communication.azure.com"

    def test_host_overrides_connection_string_endpoint(self, connection_string):
        client = (
            EmailClientBuilder()
            .host("https://other.communication.azure.com/")
            .connection_string(connection_string)
            .build()
        )

        assert client.endpoint == "https://other.communication.azure.com"

    def test_service_principal(self, no_azure_identity):
        sp_cls, _ = no_azure_identity
        client = (
            EmailClientBuilder()
            .host(HOST)
            .service_principal(TENANT_ID, CLIENT_ID, "secret")
            .token_refresh_buffer(120)
            .build()
        )

        assert client.auth_mode is AuthMode.SERVICE_PRINCIPAL
        assert client.credential.token_cell.refresh_buffer_seconds == 120
        sp_cls.assert_called_once_with(
            tenant_id=TENANT_ID, client_id=CLIENT_ID, client_secret="secret"
        )

    def test_managed_identity_user_assigned(self, no_azure_identity):
        _, mi_cls = no_azure_identity
        client = EmailClientBuilder().host(HOST).managed_identity(CLIENT_ID).build()

        assert client.auth_mode is AuthMode.MANAGED_IDENTITY
        assert client.credential.client_id == CLIENT_ID
        mi_cls.assert_called_once_with(client_id=CLIENT_ID)


class TestRequiredFields:
    def test_service_principal_requires_host(self):
        builder = EmailClientBuilder().service_principal(TENANT_ID, CLIENT_ID, "secret")

        with pytest.raises(ConfigError, match="endpoint"):
            builder.build()

    def test_managed_identity_requires_host(self):
        with pytest.raises(ConfigError, match="endpoint"):
            EmailClientBuilder().managed_identity().build()

    @pytest.mark.parametrize(
        "tenant_id,client_id,client_secret,missing",
        [
            ("", CLIENT_ID, "secret", "tenant_id"),
            (TENANT_ID, "", "secret", "client_id"),
            (TENANT_ID, CLIENT_ID, "", "client_secret"),
        ],
    )
    def test_service_principal_blank_field(self, tenant_id, client_id, client_secret, missing):
        builder = EmailClientBuilder().host(HOST).service_principal(
            tenant_id, client_id, client_secret
        )

        with pytest.raises(ConfigError, match=missing):
            builder.build()

    def test_malformed_connection_string(self):
        with pytest.raises(ConfigError):
            EmailClientBuilder().connection_string("endpoint=https://x").build()

    def test_invalid_key_accepted_at_build(self):
        # Key decoding happens when a request is signed
        client = (
            EmailClientBuilder()
            .connection_string("endpoint=https://x.communication.azure.com;accesskey=???")
            .build()
        )

        assert client.auth_mode is AuthMode.SHARED_KEY

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_non_positive_timeout(self, connection_string, timeout):
        with pytest.raises(ConfigError, match="timeout"):
            EmailClientBuilder().connection_string(connection_string).timeout(timeout).build()

    def test_negative_refresh_buffer(self):
        builder = EmailClientBuilder().host(HOST).managed_identity().token_refresh_buffer(-1)

        with pytest.raises(ConfigError, match="token_refresh_buffer_seconds"):
            builder.build()

    def test_empty_api_version(self, connection_string):
        with pytest.raises(ConfigError, match="api_version"):
            EmailClientBuilder().connection_string(connection_string).api_version("").build()


class TestOptions:
    def test_api_version_and_timeout(self, connection_string):
        config = (
            EmailClientBuilder()
            .connection_string(connection_string)
            .api_version("2024-07-01-preview")
            .timeout(5)
            .build_config()
        )

        assert config.api_version == "2024-07-01-preview"
        assert config.timeout_seconds == 5

    def test_supplied_credential_used(self, fake_provider):
        credential = ManagedIdentityCredential(provider=fake_provider)

        client = EmailClientBuilder().host(HOST).managed_identity().credential(credential).build()

        assert client.credential is credential

    def test_supplied_credential_must_match_mode(self, connection_string, fake_provider):
        credential = ManagedIdentityCredential(provider=fake_provider)
        builder = EmailClientBuilder().connection_string(connection_string).credential(credential)

        with pytest.raises(ConfigError, match="managed_identity"):
            builder.build()

    @pytest.mark.asyncio
    async def test_borrowed_session_not_closed(self, connection_string):
        session = MagicMock()
        client = EmailClientBuilder().connection_string(connection_string).session(session).build()

        await client.close()

        session.close.assert_not_called()
