"""Shared fixtures: test access key, fake identity provider, mocked aiohttp session."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from ecs_email.auth.models import AuthToken
from ecs_email.auth.providers import BaseTokenProvider
from ecs_email.errors.exceptions import AuthError

# base64("test-access-key-0123456789abcdef")
TEST_ACCESS_KEY = "dGVzdC1hY2Nlc3Mta2V5LTAxMjM0NTY3ODlhYmNkZWY="
TEST_HOST = "contoso.communication.azure.com"
TEST_ENDPOINT = f"https://{TEST_HOST}"
TEST_CONNECTION_STRING = f"endpoint={TEST_ENDPOINT}/;accesskey={TEST_ACCESS_KEY}"


class FakeTokenProvider(BaseTokenProvider):
    """Identity provider double that counts acquisitions."""

    def __init__(self, lifetime_seconds: int = 3600, delay: float = 0.0, clock=None):
        self.acquire_count = 0
        self.lifetime_seconds = lifetime_seconds
        self.delay = delay
        self.should_fail = False
        self.closed = False
        self._clock = clock or (lambda: datetime.now(UTC))

    async def acquire_token(self) -> AuthToken:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.should_fail:
            self.acquire_count += 1
            raise AuthError("AADSTS7000215: Invalid client secret provided")
        self.acquire_count += 1
        return AuthToken(
            token=f"token_{self.acquire_count}",
            expires_at=self._clock() + timedelta(seconds=self.lifetime_seconds),
        )

    async def close(self) -> None:
        self.closed = True


def _make_response(status: int = 200, body=None, headers: dict | None = None) -> AsyncMock:
    """Mock aiohttp response usable as an async context manager."""
    if body is None:
        raw = b""
    elif isinstance(body, (bytes, str)):
        raw = body.encode("utf-8") if isinstance(body, str) else body
    else:
        raw = json.dumps(body).encode("utf-8")

    response = AsyncMock()
    response.status = status
    response.headers = headers or {}
    response.read = AsyncMock(return_value=raw)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _make_session(*responses) -> MagicMock:
    """Mock aiohttp session returning the given responses in order."""
    session = MagicMock()
    session.request = MagicMock(side_effect=list(responses))
    session.close = AsyncMock()
    return session


@pytest.fixture
def access_key():
    return TEST_ACCESS_KEY


@pytest.fixture
def connection_string():
    return TEST_CONNECTION_STRING


@pytest.fixture
def fake_provider():
    return FakeTokenProvider()


@pytest.fixture
def endpoint():
    return TEST_ENDPOINT


@pytest.fixture
def provider_factory():
    """Build FakeTokenProvider instances with custom lifetime/delay/clock."""
    return FakeTokenProvider


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def make_session():
    return _make_session
