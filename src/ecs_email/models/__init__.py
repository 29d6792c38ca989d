"""Request and response models for the email service."""

from ecs_email.models.email import (
    EmailAddress,
    EmailAttachment,
    EmailContent,
    EmailMessage,
    Recipients,
)
from ecs_email.models.status import (
    EmailSendStatus,
    ErrorDetail,
    ErrorResponse,
    SendEmailResult,
)

__all__ = [
    "EmailAddress",
    "EmailAttachment",
    "EmailContent",
    "EmailMessage",
    "Recipients",
    "EmailSendStatus",
    "ErrorDetail",
    "ErrorResponse",
    "SendEmailResult",
]
