"""Bearer token model with expiration tracking."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


@dataclass(frozen=True)
class AuthToken:
    """
    Bearer token issued by the identity provider.

    Attributes:
        token: The access token string
        expires_at: UTC timestamp when the token expires
    """

    token: str
    expires_at: datetime

    @classmethod
    def from_expires_on(cls, token: str, expires_on: int | float | datetime) -> "AuthToken":
        """
        Build from an azure-core AccessToken style expiry.

        Azure SDK returns expires_on as a Unix timestamp; datetimes are
        accepted as-is (naive ones are taken as UTC).
        """
        if isinstance(expires_on, datetime):
            expires_at = expires_on if expires_on.tzinfo else expires_on.replace(tzinfo=UTC)
        else:
            expires_at = datetime.fromtimestamp(expires_on, UTC)
        return cls(token=token, expires_at=expires_at)

    def is_expired(self, buffer_seconds: float = 0, now: datetime | None = None) -> bool:
        """
        Check if token is expired or within buffer_seconds of expiry.

        Args:
            buffer_seconds: Safety margin before actual expiry
            now: Reference instant (default: current UTC time)

        Returns:
            True if token should be refreshed
        """
        now = now or datetime.now(UTC)
        return now >= self.expires_at - timedelta(seconds=buffer_seconds)

    def remaining_lifetime(self, now: datetime | None = None) -> timedelta:
        return self.expires_at - (now or datetime.now(UTC))

    def __repr__(self) -> str:
        return f"AuthToken(token='***', expires_at={self.expires_at.isoformat()})"


__all__ = ["AuthToken"]
