"""Bounded retry with exponential backoff.

Wraps tenacity so every retrying call site shares one policy shape:
a capped attempt count, a base delay that doubles after each failure,
and a typed, recoverable error once the budget is spent.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from .errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between.

    Attributes:
        attempts: Total attempts, including the first one.
        base_delay: Seconds to wait after the first failure; doubles each time.
    """

    attempts: int = 3
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay applied after the given (1-based) failed attempt."""
        return self.base_delay * (2 ** (attempt - 1))


async def retry_async(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``func`` until it succeeds or the policy is exhausted.

    Args:
        func: Zero-argument coroutine factory, called once per attempt.
        policy: Attempt cap and base delay.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        label: Name used in log lines.
        sleep: Sleep coroutine, replaceable in tests.

    Returns:
        Whatever ``func`` returned on the first successful attempt.

    Raises:
        RetryExhaustedError: Every attempt failed with a retryable error.
    """

    def _log_retry(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s attempt %d/%d failed: %s",
            label,
            state.attempt_number,
            policy.attempts,
            error,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=lambda state: policy.delay_for(state.attempt_number),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        sleep=sleep,
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await func()
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error("%s failed after %d attempts: %s", label, policy.attempts, last_error)
        raise RetryExhaustedError(policy.attempts, last_error) from last_error
