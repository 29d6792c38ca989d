"""
Tests for AuthToken expiry and TokenCell refresh behavior.

Time is driven by an injected clock so boundary cases are exact.
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from ecs_email.auth.models import AuthToken
from ecs_email.auth.token_cache import TokenCell
from ecs_email.errors.exceptions import AuthError

START = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class TestAuthToken:
    def test_not_expired_before_buffer(self):
        token = AuthToken(token="t", expires_at=START + timedelta(seconds=600))

        assert not token.is_expired(buffer_seconds=300, now=START)

    def test_expired_at_buffer_boundary(self):
        token = AuthToken(token="t", expires_at=START + timedelta(seconds=300))

        assert token.is_expired(buffer_seconds=300, now=START)

    def test_expired_after_expiry(self):
        token = AuthToken(token="t", expires_at=START - timedelta(seconds=1))

        assert token.is_expired(now=START)

    def test_from_unix_timestamp(self):
        token = AuthToken.from_expires_on("t", int(START.timestamp()))

        assert token.expires_at == START

    def test_from_naive_datetime(self):
        token = AuthToken.from_expires_on("t", datetime(2024, 1, 1, 12, 0))

        assert token.expires_at == START

    def test_remaining_lifetime(self):
        token = AuthToken(token="t", expires_at=START + timedelta(minutes=5))

        assert token.remaining_lifetime(now=START) == timedelta(minutes=5)

    def test_repr_hides_token(self):
        token = AuthToken(token="eyJ0eXAiOiJKV1Qi", expires_at=START)

        assert "eyJ0eXAiOiJKV1Qi" not in repr(token)


class TestTokenCellRefresh:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def provider(self, provider_factory, clock):
        # Tokens live 3600s from the clock's current time
        return provider_factory(lifetime_seconds=3600, clock=clock)

    @pytest.fixture
    def cell(self, provider, clock):
        return TokenCell(provider, refresh_buffer_seconds=300, clock=clock)

    @pytest.mark.asyncio
    async def test_first_call_acquires(self, cell, provider):
        token = await cell.get_token()

        assert token == "token_1"
        assert provider.acquire_count == 1
        assert cell.refresh_count == 1

    @pytest.mark.asyncio
    async def test_reuses_token_one_second_before_buffer(self, cell, provider, clock):
        await cell.get_token()

        # expiry T = START+3600, buffer M = 300: at T-M-1 the token is still fresh
        clock.advance(3600 - 300 - 1)
        token = await cell.get_token()

        assert token == "token_1"
        assert provider.acquire_count == 1

    @pytest.mark.asyncio
    async def test_refreshes_one_second_inside_buffer(self, cell, provider, clock):
        await cell.get_token()

        clock.advance(3600 - 300 + 1)
        token = await cell.get_token()

        assert token == "token_2"
        assert provider.acquire_count == 2

    @pytest.mark.asyncio
    async def test_zero_buffer_refreshes_only_at_expiry(self, provider, clock):
        cell = TokenCell(provider, refresh_buffer_seconds=0, clock=clock)
        await cell.get_token()

        clock.advance(3599)
        assert await cell.get_token() == "token_1"

        clock.advance(1)
        assert await cell.get_token() == "token_2"

    @pytest.mark.asyncio
    async def test_force_refresh(self, cell, provider):
        await cell.get_token()
        token = await cell.get_token(force_refresh=True)

        assert token == "token_2"
        assert provider.acquire_count == 2

    @pytest.mark.asyncio
    async def test_clear_forces_reacquire(self, cell, provider):
        await cell.get_token()
        cell.clear()
        await cell.get_token()

        assert provider.acquire_count == 2

    def test_negative_buffer_rejected(self, provider):
        with pytest.raises(ValueError):
            TokenCell(provider, refresh_buffer_seconds=-1)

    @pytest.mark.asyncio
    async def test_cached_token_info(self, cell, clock):
        assert cell.get_cached_token_info() is None

        await cell.get_token()
        info = cell.get_cached_token_info()

        assert info["remaining_seconds"] == 3600
        assert info["is_expired"] is False
        assert info["refresh_count"] == 1
        assert "token" not in info

    @pytest.mark.asyncio
    async def test_close_closes_provider(self, cell, provider):
        await cell.get_token()
        await cell.close()

        assert provider.closed
        assert cell.get_cached_token_info() is None


class TestTokenCellConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_acquisition(self, provider_factory):
        provider = provider_factory(delay=0.05)
        cell = TokenCell(provider)

        tokens = await asyncio.gather(*(cell.get_token() for _ in range(20)))

        assert provider.acquire_count == 1
        assert set(tokens) == {"token_1"}

    @pytest.mark.asyncio
    async def test_concurrent_callers_on_expired_token(self, provider_factory):
        clock = FakeClock()
        provider = provider_factory(lifetime_seconds=3600, delay=0.05, clock=clock)
        cell = TokenCell(provider, refresh_buffer_seconds=300, clock=clock)
        await cell.get_token()

        clock.advance(3600)
        tokens = await asyncio.gather(*(cell.get_token() for _ in range(10)))

        assert provider.acquire_count == 2
        assert set(tokens) == {"token_2"}


class TestTokenCellErrors:
    @pytest.mark.asyncio
    async def test_auth_error_propagates_without_retry(self, provider_factory):
        provider = provider_factory()
        provider.should_fail = True
        cell = TokenCell(provider)

        with pytest.raises(AuthError, match="Invalid client secret"):
            await cell.get_token()

        assert provider.acquire_count == 1
        assert cell.get_cached_token_info() is None

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped_as_auth_error(self, provider_factory):
        provider = provider_factory()

        async def boom():
            raise RuntimeError("socket closed")

        provider.acquire_token = boom
        cell = TokenCell(provider)

        with pytest.raises(AuthError) as exc_info:
            await cell.get_token()

        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self, provider_factory):
        provider = provider_factory()
        provider.should_fail = True
        cell = TokenCell(provider)

        with pytest.raises(AuthError):
            await cell.get_token()

        provider.should_fail = False
        assert await cell.get_token() == "token_2"


class TestTokenCellEventLoops:
    def test_reused_across_event_loops(self, provider_factory):
        provider = provider_factory(delay=0.01)
        cell = TokenCell(provider)

        async def burst():
            return await asyncio.gather(*(cell.get_token(force_refresh=True) for _ in range(3)))

        first = asyncio.run(burst())
        second = asyncio.run(burst())

        assert len(first) == len(second) == 3
        assert provider.acquire_count == 6
