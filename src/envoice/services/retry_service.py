"""
Bounded retry combinator shared by session acquisition and status polling.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

from envoice.exceptions import RetryExhaustedError
from envoice.utils.error_classifier import is_retryable_error

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry bounds for one operation.

    Attributes:
        max_attempts: Total number of calls, including the first one
        initial_delay: Seconds slept before the first retry
        backoff_factor: Multiplier applied to the delay after each sleep (1.0 = fixed interval)
        max_delay: Upper bound for any single delay
        delay_first: Also sleep before the first call
    """

    max_attempts: int
    initial_delay: float
    backoff_factor: float = 1.0
    max_delay: Optional[float] = None
    delay_first: bool = False

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")

    def get_delay(self, sleeps_done: int) -> float:
        """Delay for the next sleep, given how many sleeps already happened."""
        delay = self.initial_delay * (self.backoff_factor**sleeps_done)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    @property
    def max_duration(self) -> float:
        """Total time spent sleeping when every attempt is used."""
        sleeps = self.max_attempts if self.delay_first else self.max_attempts - 1
        return sum(self.get_delay(i) for i in range(sleeps))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: Callable[[Exception], bool] = is_retryable_error,
    accept: Optional[Callable[[T], bool]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    description: str = "operation",
) -> Optional[T]:
    """
    Run ``operation`` until it succeeds or the policy runs out of attempts.

    Args:
        operation: Zero-argument coroutine factory
        policy: Retry bounds
        retry_on: Predicate deciding whether an exception is retried; others propagate
        accept: Predicate on a returned value; rejected values are retried like failures
        sleep: Awaitable sleep function
        description: Name used in logs and in RetryExhaustedError

    Returns:
        The first accepted value, or the last value returned when every attempt
        produced an unaccepted one

    Raises:
        RetryExhaustedError: If the final attempt raised a retryable exception
    """
    last_error: Optional[Exception] = None
    last_value: Optional[T] = None
    sleeps_done = 0

    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1 or policy.delay_first:
            await sleep(policy.get_delay(sleeps_done))
            sleeps_done += 1

        try:
            value = await operation()
        except Exception as e:
            if not retry_on(e):
                raise
            last_error = e
            logger.warning(
                f"{description} attempt {attempt}/{policy.max_attempts} failed: {e}"
            )
            continue

        if accept is None or accept(value):
            return value

        last_error = None
        last_value = value
        logger.debug(
            f"{description} attempt {attempt}/{policy.max_attempts} not accepted yet"
        )

    if last_error is not None:
        raise RetryExhaustedError(description, policy.max_attempts, last_error) from last_error
    return last_value
