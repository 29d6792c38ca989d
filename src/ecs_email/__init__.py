"""
Async client for the Azure Communication Services Email REST API.

Basic Usage:
    from ecs_email import EmailClientBuilder, EmailMessage, EmailContent, Recipients, EmailAddress

    client = EmailClientBuilder().connection_string(os.getenv("ACS_CONNECTION_STRING")).build()

    async with client:
        message_id = await client.send_email(
            EmailMessage(
                sender_address="DoNotReply@contoso.com",
                content=EmailContent(subject="Hello", plain_text="Hi there"),
                recipients=Recipients(to=[EmailAddress(address="jane@example.com")]),
            )
        )
        status = await client.get_email_status(message_id)

Azure AD:
    client = (
        EmailClientBuilder()
        .host("contoso.communication.azure.com")
        .service_principal(tenant_id, client_id, client_secret)   # or .managed_identity()
        .build()
    )
"""

from ecs_email.auth import (
    ManagedIdentityCredential,
    ServicePrincipalCredential,
    SharedKeyCredential,
    sign,
)
from ecs_email.client import EmailClient, EmailClientBuilder
from ecs_email.config import ClientConfig, load_config
from ecs_email.errors import (
    ApiError,
    AuthError,
    ConfigError,
    EmailClientError,
    EncodingError,
    ErrorCategory,
    InvalidKeyError,
    TransportError,
    ValidationError,
)
from ecs_email.models import (
    EmailAddress,
    EmailAttachment,
    EmailContent,
    EmailMessage,
    EmailSendStatus,
    Recipients,
    SendEmailResult,
)
from ecs_email.types import AuthMode

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "EmailClient",
    "EmailClientBuilder",
    "ClientConfig",
    "load_config",
    "AuthMode",
    # Credentials
    "SharedKeyCredential",
    "ServicePrincipalCredential",
    "ManagedIdentityCredential",
    "sign",
    # Models
    "EmailAddress",
    "EmailAttachment",
    "EmailContent",
    "EmailMessage",
    "EmailSendStatus",
    "Recipients",
    "SendEmailResult",
    # Errors
    "ErrorCategory",
    "EmailClientError",
    "ConfigError",
    "InvalidKeyError",
    "EncodingError",
    "AuthError",
    "ValidationError",
    "ApiError",
    "TransportError",
]
