"""
Error taxonomy for the email client.

Provides:
- ErrorCategory enum for classifying errors
- EmailClientError hierarchy for typed exceptions
- HTTP status classification
"""

from ecs_email.errors.exceptions import (
    ApiError,
    AuthError,
    ConfigError,
    EmailClientError,
    EncodingError,
    InvalidKeyError,
    TransportError,
    ValidationError,
    classify_http_status,
    is_retryable_error,
)
from ecs_email.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base class
    "EmailClientError",
    # Errors
    "ConfigError",
    "InvalidKeyError",
    "EncodingError",
    "ValidationError",
    "AuthError",
    "TransportError",
    "ApiError",
    # Classification utilities
    "classify_http_status",
    "is_retryable_error",
]
