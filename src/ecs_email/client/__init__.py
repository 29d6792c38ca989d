"""Email API client and its builder."""

from ecs_email.client.builder import EmailClientBuilder
from ecs_email.client.email_client import EmailClient, create_credential

__all__ = ["EmailClient", "EmailClientBuilder", "create_credential"]
