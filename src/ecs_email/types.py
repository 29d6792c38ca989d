"""
Core enums shared across the client library.

Kept in one module so every component compares against the same enum class
(enums from different classes never compare equal).
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of errors for caller-side handling decisions.

    The client itself never retries. The category only tells the caller
    what a retry policy could reasonably do with the error.

    Categories:
        TRANSIENT: Temporary failures (network timeouts, 429/5xx responses)
        AUTH: Credential rejected or token could not be acquired (401)
        PERMANENT: Won't succeed on retry (bad config, invalid message, 4xx)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class AuthMode(Enum):
    """Credential variant selected for a client. Exactly one per client."""

    SHARED_KEY = "shared_key"
    SERVICE_PRINCIPAL = "service_principal"
    MANAGED_IDENTITY = "managed_identity"

    @property
    def uses_bearer_token(self) -> bool:
        return self is not AuthMode.SHARED_KEY


__all__ = ["ErrorCategory", "AuthMode"]
