"""
Email status and response models.

Unknown status strings map to EmailSendStatus.UNKNOWN instead of failing, so
a service that adds new states does not break existing callers.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EmailSendStatus(str, Enum):
    """Delivery status of a sent email."""

    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> "EmailSendStatus":
        return cls.UNKNOWN

    @classmethod
    def from_wire(cls, value: Any) -> "EmailSendStatus":
        """Map a wire status string, unmapped values to UNKNOWN."""
        return cls(value)

    @property
    def is_terminal(self) -> bool:
        return self not in (EmailSendStatus.NOT_STARTED, EmailSendStatus.RUNNING)

    def __str__(self) -> str:
        return self.value


class ErrorAdditionalInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    info: Any = None
    info_type: str | None = Field(default=None, alias="type")


class ErrorDetail(BaseModel):
    """Error object embedded in service responses."""

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = None
    message: str | None = None
    target: str | None = None
    additional_info: list[ErrorAdditionalInfo] | None = Field(
        default=None, alias="additionalInfo"
    )


class ErrorResponse(BaseModel):
    """Body of a non-2xx response: ``{"error": {...}}``."""

    error: ErrorDetail | None = None


class SendEmailResult(BaseModel):
    """Body of the send and status responses: ``{id, status, error}``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    status: EmailSendStatus = EmailSendStatus.UNKNOWN
    error: ErrorDetail | None = None

    @field_validator("status", mode="before")
    @classmethod
    def map_status(cls, v: Any) -> EmailSendStatus:
        if v is None:
            return EmailSendStatus.UNKNOWN
        return EmailSendStatus.from_wire(v)


__all__ = [
    "EmailSendStatus",
    "ErrorAdditionalInfo",
    "ErrorDetail",
    "ErrorResponse",
    "SendEmailResult",
]
