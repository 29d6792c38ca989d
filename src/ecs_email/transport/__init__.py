"""Async HTTP transport (aiohttp)."""

from ecs_email.transport.http_client import (
    DEFAULT_TIMEOUT_SECONDS,
    HttpRequest,
    HttpResponse,
    HttpTransport,
    create_session,
)

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "HttpRequest",
    "HttpResponse",
    "HttpTransport",
    "create_session",
]
