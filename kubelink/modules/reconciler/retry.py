"""Bounded retry for optimistic-concurrency conflicts."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional, TypeVar

from kubelink.errors import ConflictError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff schedule for conflict retries.

    Attributes:
        steps: Maximum number of attempts, including the first one
        duration: Delay in seconds before the second attempt
        factor: Multiplier applied to the delay after each retry
        jitter: Extra random fraction of the delay added to each sleep
        cap: Upper bound in seconds for a single delay (before jitter)
    """

    steps: int = 5
    duration: float = 0.01
    factor: float = 2.0
    jitter: float = 0.1
    cap: float = 1.0

    def __post_init__(self):
        if self.steps < 1:
            raise ValueError("steps must be at least 1")
        if self.duration < 0 or self.factor < 1 or self.jitter < 0 or self.cap < 0:
            raise ValueError("invalid backoff parameters")

    def delays(self) -> Iterator[float]:
        """Yield the sleep before each retry (steps - 1 values)."""
        delay = self.duration
        for _ in range(self.steps - 1):
            base = min(delay, self.cap)
            yield base + base * random.uniform(0, self.jitter)
            delay *= self.factor


DEFAULT_RETRY = RetryPolicy()


async def retry_on_conflict(
    fn: Callable[[int], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY,
    log: Optional[logging.Logger] = None,
) -> T:
    """
    Run ``fn`` until it stops raising ConflictError or the budget is spent.

    ``fn`` receives the zero-based attempt number so it can refetch state
    on retries. Any exception other than ConflictError propagates at once.

    Args:
        fn: Async callable performing one fetch-merge-submit attempt
        policy: Attempt budget and backoff schedule
        log: Logger for retry notices

    Returns:
        Whatever ``fn`` returns on its first non-conflicting attempt

    Raises:
        ConflictError: Every attempt conflicted
    """
    log = log or logger
    delays = policy.delays()
    attempt = 0
    while True:
        try:
            return await fn(attempt)
        except ConflictError as e:
            delay = next(delays, None)
            if delay is None:
                log.debug(f"conflict retry budget of {policy.steps} attempts spent")
                raise
            log.debug(f"conflict on attempt {attempt + 1}, retrying in {delay:.3f}s: {e}")
        await asyncio.sleep(delay)
        attempt += 1
