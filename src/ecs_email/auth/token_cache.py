"""
Guarded single-token cache with coalesced refresh.

One TokenCell belongs to one client. States:

    Unresolved -> Valid(token, expiry) -> Expired -> Valid(...)

get_token() returns the cached token while it is outside the refresh buffer.
Otherwise it asks the provider for a new one. Refresh is serialized with an
asyncio.Lock and re-checked after the lock is taken, so N coroutines that all
see an expired token issue exactly one provider request and share its result.
No background refresh: an expired token is replaced lazily on the next call.

Example:
    >>> cell = TokenCell(provider, refresh_buffer_seconds=300)
    >>> token = await cell.get_token()
    >>> headers = {"Authorization": f"Bearer {token}"}
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ecs_email.auth.models import AuthToken
from ecs_email.auth.providers import BaseTokenProvider
from ecs_email.errors.exceptions import AuthError

logger = logging.getLogger(__name__)

# Default token refresh buffer (5 minutes before expiry)
DEFAULT_REFRESH_BUFFER_SECONDS = 300


def utc_now() -> datetime:
    return datetime.now(UTC)


class TokenCell:
    """
    Cache for one bearer token with refresh coalescing.

    Attributes:
        refresh_buffer_seconds: Seconds before expiry at which the cached
            token is treated as stale
    """

    def __init__(
        self,
        provider: BaseTokenProvider,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        if refresh_buffer_seconds < 0:
            raise ValueError("refresh_buffer_seconds must be >= 0")
        self._provider = provider
        self._clock = clock
        self._token: AuthToken | None = None
        self._lock = threading.Lock()
        self._refresh_lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self.refresh_count = 0

    @property
    def provider(self) -> BaseTokenProvider:
        return self._provider

    def _get_refresh_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to one loop; a cell reused under a new loop gets a new lock
        loop = asyncio.get_running_loop()
        if self._refresh_lock is None or self._lock_loop is not loop:
            self._refresh_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._refresh_lock

    def _valid_cached(self) -> AuthToken | None:
        with self._lock:
            token = self._token
        if token and not token.is_expired(self.refresh_buffer_seconds, now=self._clock()):
            return token
        return None

    async def get_token(self, force_refresh: bool = False) -> str:
        """
        Return a valid access token, acquiring one if needed.

        Args:
            force_refresh: Skip the cache and acquire a fresh token

        Returns:
            Access token string

        Raises:
            AuthError: If the identity provider rejects the credentials
        """
        if not force_refresh:
            cached = self._valid_cached()
            if cached:
                return cached.token

        async with self._get_refresh_lock():
            # Double-check after acquiring lock (another coroutine may have refreshed)
            if not force_refresh:
                cached = self._valid_cached()
                if cached:
                    logger.debug("Token was refreshed by another coroutine")
                    return cached.token

            try:
                new_token = await self._provider.acquire_token()
            except AuthError:
                raise
            except Exception as e:
                raise AuthError(f"Token acquisition failed: {e}", cause=e) from e

            with self._lock:
                self._token = new_token
                self.refresh_count += 1

            logger.info(
                "Acquired bearer token",
                extra={"expires_at": new_token.expires_at.isoformat()},
            )
            return new_token.token

    def clear(self) -> None:
        """Drop the cached token; the next get_token() acquires a new one."""
        with self._lock:
            self._token = None

    def get_cached_token_info(self) -> dict[str, Any] | None:
        """Token info for diagnostics (never the token itself)."""
        with self._lock:
            token = self._token
        if not token:
            return None
        now = self._clock()
        return {
            "expires_at": token.expires_at.isoformat(),
            "remaining_seconds": token.remaining_lifetime(now).total_seconds(),
            "is_expired": token.is_expired(self.refresh_buffer_seconds, now=now),
            "refresh_count": self.refresh_count,
        }

    async def close(self) -> None:
        self.clear()
        await self._provider.close()


__all__ = ["TokenCell", "DEFAULT_REFRESH_BUFFER_SECONDS", "utc_now"]
