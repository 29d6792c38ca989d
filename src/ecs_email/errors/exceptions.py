"""
Unified exception hierarchy for the email client.

Every error the library raises derives from EmailClientError and carries an
ErrorCategory so callers can build their own retry policy. The client never
retries on its own.
"""

from ecs_email.types import ErrorCategory


class EmailClientError(Exception):
    """
    Base exception for all email client errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for caller retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (ErrorCategory.TRANSIENT, ErrorCategory.UNKNOWN)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Configuration and Input Errors (Permanent)
# =============================================================================


class ConfigError(EmailClientError):
    """Missing, conflicting or malformed client configuration."""

    category = ErrorCategory.PERMANENT


class InvalidKeyError(EmailClientError):
    """Shared access key is empty or not valid base64."""

    category = ErrorCategory.PERMANENT


class EncodingError(EmailClientError):
    """Request body could not be hashed for signing."""

    category = ErrorCategory.PERMANENT


class ValidationError(EmailClientError):
    """Email message violates a local invariant. Raised before any network call."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(EmailClientError):
    """Identity provider rejected the credentials or returned no token."""

    category = ErrorCategory.AUTH


# =============================================================================
# Remote Errors
# =============================================================================


class TransportError(EmailClientError):
    """Network failure or timeout before a response was received."""

    category = ErrorCategory.TRANSIENT


class ApiError(EmailClientError):
    """
    Non-2xx response from the email service.

    Attributes:
        status: HTTP status code
        code: Service error code from the response body (e.g. "Unauthorized")
        retry_after: Seconds from the Retry-After header, if the service sent one
    """

    def __init__(
        self,
        status: int,
        code: str | None = None,
        message: str | None = None,
        retry_after: float | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.status = status
        self.code = code
        self.retry_after = retry_after
        super().__init__(message or f"HTTP {status}", cause, context)

    @property
    def category(self) -> ErrorCategory:
        return classify_http_status(self.status)

    def __str__(self) -> str:
        text = super().__str__()
        return f"{self.code}: {text}" if self.code else text


# =============================================================================
# Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT  # Timed out or rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT  # Client errors, won't fix with retry

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: Exception) -> bool:
    """
    Check if a caller could reasonably retry after this exception.

    Retryable: transient errors (network, timeouts, 408/429/5xx) and
    unclassified errors. Auth, validation and configuration errors are not.
    """
    if isinstance(exc, EmailClientError):
        return exc.is_retryable
    return False


__all__ = [
    "EmailClientError",
    "ConfigError",
    "InvalidKeyError",
    "EncodingError",
    "ValidationError",
    "AuthError",
    "TransportError",
    "ApiError",
    "classify_http_status",
    "is_retryable_error",
]
