"""
Email request models.

Pydantic models for the send-email request body. Field names are snake_case
in Python and camelCase on the wire (``senderAddress``, ``plainText``,
``contentInBase64`` ...). Structural typing is enforced by pydantic at
construction; the semantic invariants (content present, at least one
recipient, ...) are checked by EmailMessage.ensure_valid() so that the
client can reject a message before any network call.

Example:
    >>> message = EmailMessage(
    ...     sender_address="DoNotReply@contoso.com",
    ...     content=EmailContent(subject="Hello", plain_text="Hi there"),
    ...     recipients=Recipients(to=[EmailAddress(address="jane@example.com")]),
    ... )
    >>> message.to_wire()["recipients"]["to"][0]["address"]
    'jane@example.com'
"""

import base64
import binascii
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ecs_email.attachments import guess_content_type
from ecs_email.errors.exceptions import ValidationError


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EmailAddress(_WireModel):
    """Recipient or reply-to address."""

    address: str = Field(..., description="Email address")
    display_name: str | None = Field(
        default=None, alias="displayName", description="Display name"
    )


class EmailContent(_WireModel):
    """Subject and body. At least one of plain_text or html is required to send."""

    subject: str | None = None
    plain_text: str | None = Field(default=None, alias="plainText")
    html: str | None = None

    @property
    def has_body(self) -> bool:
        return bool(self.plain_text) or bool(self.html)


class Recipients(_WireModel):
    """To/Cc/Bcc recipient lists."""

    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] | None = None
    bcc: list[EmailAddress] | None = None

    def all(self) -> list[EmailAddress]:
        return [*self.to, *(self.cc or []), *(self.bcc or [])]


class EmailAttachment(_WireModel):
    """File attached to the email, content base64-encoded."""

    name: str
    content_type: str = Field(..., alias="contentType")
    content_in_base64: str = Field(..., alias="contentInBase64")

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        content_type: str | None = None,
    ) -> "EmailAttachment":
        """Build from raw bytes, detecting the content type when not given."""
        return cls(
            name=name,
            content_type=content_type or guess_content_type(data, name),
            content_in_base64=base64.b64encode(data).decode("ascii"),
        )

    @classmethod
    def from_file(cls, path: str | Path, content_type: str | None = None) -> "EmailAttachment":
        """
        Read a file and build an attachment named after it.

        Raises:
            ValidationError: If the file does not exist or cannot be read
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise ValidationError(f"Attachment file does not exist: {file_path}")
        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise ValidationError(f"Failed to read attachment file: {file_path}", cause=e) from e
        return cls.from_bytes(file_path.name, data, content_type)


class EmailMessage(_WireModel):
    """
    Email to send.

    Attributes:
        sender_address: Verified sender (MailFrom) address
        content: Subject and plain-text/html body
        recipients: To/Cc/Bcc lists
        attachments: Optional attachments
        reply_to: Optional reply-to addresses
        headers: Optional custom email headers
        user_engagement_tracking_disabled: Disable open/click tracking
    """

    sender_address: str = Field(..., alias="senderAddress")
    content: EmailContent
    recipients: Recipients
    attachments: list[EmailAttachment] | None = None
    reply_to: list[EmailAddress] | None = Field(default=None, alias="replyTo")
    headers: dict[str, str] | None = None
    user_engagement_tracking_disabled: bool | None = Field(
        default=None, alias="userEngagementTrackingDisabled"
    )

    def ensure_valid(self) -> None:
        """
        Check the invariants the service requires.

        Raises:
            ValidationError: On the first violated invariant
        """
        if not self.sender_address or not self.sender_address.strip():
            raise ValidationError("Sender address is required")

        if not self.content.has_body:
            raise ValidationError("Email content requires plain_text or html")

        recipients = self.recipients.all()
        if not recipients:
            raise ValidationError("At least one recipient (to, cc or bcc) is required")

        for address in [*recipients, *(self.reply_to or [])]:
            if not address.address or not address.address.strip():
                raise ValidationError("Email address cannot be empty")

        for attachment in self.attachments or []:
            if not attachment.name or not attachment.content_type:
                raise ValidationError("Attachment requires a name and a content type")
            try:
                base64.b64decode(attachment.content_in_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValidationError(
                    f"Attachment '{attachment.name}' content is not valid base64", cause=e
                ) from e

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON body of the send-email request."""
        return self.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "EmailAddress",
    "EmailContent",
    "Recipients",
    "EmailAttachment",
    "EmailMessage",
]
