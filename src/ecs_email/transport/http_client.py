"""
HTTP transport for the email client using aiohttp.

Issues one request per call and returns status, headers and body. No retry,
no redirect policy beyond aiohttp defaults: retry/backoff is the caller's
decision. Network failures and timeouts surface as TransportError.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import aiohttp

from ecs_email.errors.exceptions import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


@dataclass
class HttpRequest:
    """Outgoing request. Credentials decorate ``headers`` before it is sent."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def host(self) -> str:
        """Host (and port, if any) as sent in the Host header."""
        return urlsplit(self.url).netloc

    @property
    def path_and_query(self) -> str:
        parts = urlsplit(self.url)
        path = parts.path or "/"
        if parts.query:
            return f"{path}?{parts.query}"
        return path


@dataclass
class HttpResponse:
    """Response from the service with lower-cased header names."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json(self) -> Any:
        """Decode body as JSON. Empty body decodes to None."""
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


def create_session(
    max_connections: int = 100,
    max_connections_per_host: int = 10,
    enable_ssl: bool = True,
    timeout_total: int = DEFAULT_TIMEOUT_SECONDS,
    timeout_connect: int = 10,
) -> aiohttp.ClientSession:
    """
    Create aiohttp ClientSession with connection pooling and timeouts.

    Args:
        max_connections: Total connection pool size (default: 100)
        max_connections_per_host: Per-host connection limit (default: 10)
        enable_ssl: Enable SSL verification (default: True)
        timeout_total: Total timeout per request in seconds (default: 30)
        timeout_connect: Connection timeout in seconds (default: 10)

    Returns:
        Configured aiohttp.ClientSession

    Note:
        Caller is responsible for session lifecycle management.
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
        ssl=enable_ssl,
        ttl_dns_cache=300,
    )

    timeout = aiohttp.ClientTimeout(total=timeout_total, connect=timeout_connect)

    return aiohttp.ClientSession(connector=connector, timeout=timeout)


class HttpTransport:
    """
    Thin async transport over an aiohttp session.

    A session passed in by the caller is borrowed and never closed here.
    Without one, a session is created lazily on first request and closed by
    close().
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        enable_ssl: bool = True,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout_seconds = timeout_seconds
        self.enable_ssl = enable_ssl

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session(
                enable_ssl=self.enable_ssl,
                timeout_total=int(self.timeout_seconds),
            )
        return self._session

    async def request(self, request: HttpRequest) -> HttpResponse:
        """
        Execute a single HTTP request.

        Args:
            request: Fully decorated request (auth headers already applied)

        Returns:
            HttpResponse for any HTTP status, including non-2xx

        Raises:
            TransportError: On connection failure or timeout
        """
        session = self._get_session()
        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body or None,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                body = await response.read()
                headers = {k.lower(): v for k, v in response.headers.items()}
                logger.debug(
                    "HTTP request completed",
                    extra={
                        "http_method": request.method,
                        "http_url": request.url,
                        "http_status": response.status,
                    },
                )
                return HttpResponse(status=response.status, headers=headers, body=body)

        except TimeoutError as e:
            raise TransportError(
                f"Request timeout after {self.timeout_seconds}s",
                cause=e,
                context={"http_method": request.method, "http_url": request.url},
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(
                f"Connection error: {e}",
                cause=e,
                context={"http_method": request.method, "http_url": request.url},
            ) from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "HttpRequest",
    "HttpResponse",
    "HttpTransport",
    "create_session",
]
