"""Tests for the bounded retry utility."""

from unittest.mock import AsyncMock

import pytest

from yieldpilot.errors import RetryExhaustedError, ServiceError
from yieldpilot.retry import RetryPolicy, retry_async


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_delay_doubles(self):
        policy = RetryPolicy(attempts=5, base_delay=1.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.parametrize("kwargs", [{"attempts": 0}, {"base_delay": -1}])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, fake_sleep, sleeps):
        func = AsyncMock(return_value="ok")
        assert await retry_async(func, RetryPolicy(3, 1.0), sleep=fake_sleep) == "ok"
        assert func.await_count == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, fake_sleep, sleeps):
        func = AsyncMock(side_effect=[ServiceError("a"), ServiceError("b"), "ok"])
        result = await retry_async(func, RetryPolicy(5, 0.5), retry_on=(ServiceError,), sleep=fake_sleep)
        assert result == "ok"
        assert sleeps == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_typed_error(self, fake_sleep, sleeps):
        func = AsyncMock(side_effect=ServiceError("down"))
        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_async(func, RetryPolicy(3, 1.0), retry_on=(ServiceError,), sleep=fake_sleep)

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ServiceError)
        assert func.await_count == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates(self, fake_sleep, sleeps):
        func = AsyncMock(side_effect=KeyError("bug"))
        with pytest.raises(KeyError):
            await retry_async(func, RetryPolicy(3, 1.0), retry_on=(ServiceError,), sleep=fake_sleep)
        assert func.await_count == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_single_attempt_policy(self, fake_sleep):
        func = AsyncMock(side_effect=ServiceError("down"))
        with pytest.raises(RetryExhaustedError):
            await retry_async(func, RetryPolicy(1, 1.0), sleep=fake_sleep)
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_plain_callable_returning_coroutine_is_awaited(self, fake_sleep, sleeps):
        calls = []

        async def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise ServiceError("not yet")
            return "done"

        result = await retry_async(
            lambda: flaky(), RetryPolicy(5, 1.0), retry_on=(ServiceError,), sleep=fake_sleep
        )

        assert result == "done"
        assert len(calls) == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_plain_callable_exhaustion(self, fake_sleep):
        func = AsyncMock(side_effect=ServiceError("down"))
        with pytest.raises(RetryExhaustedError):
            await retry_async(lambda: func(), RetryPolicy(2, 1.0), retry_on=(ServiceError,), sleep=fake_sleep)
        assert func.await_count == 2
