"""
Bounded retry with exponential backoff.

Used for lifecycle writes: a transient database failure during an
auto-advance, pause or override is retried a few times before the caller
gives up and flags the order as out of sync.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

from .. import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 4.0

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            attempts=config.SYNC_RETRY_ATTEMPTS,
            base_delay=config.SYNC_RETRY_BASE_DELAY,
            max_delay=config.SYNC_RETRY_MAX_DELAY,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based): base, 2*base, 4*base, ..."""
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...],
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call fn, retrying on the given exception types.

    Args:
        fn: Zero-argument callable to run
        policy: Number of attempts and backoff delays
        retry_on: Exception types that count as transient
        description: Used in log messages
        sleep: Injected so tests do not wait

    Returns:
        Whatever fn returns

    Raises:
        The last exception once every attempt has failed. Exceptions not
        listed in retry_on propagate immediately.
    """
    attempts = max(1, policy.attempts)
    attempt = 1
    while True:
        try:
            return fn()
        except retry_on as exc:
            if attempt >= attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description,
                attempt,
                attempts,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1
