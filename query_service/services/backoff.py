"""
Backoff policies for request retries and job status polling.

Retry backoff is exponential with jitter, since many clients may be retrying
against the same overloaded service. Poll backoff grows geometrically without
jitter, since each client only polls its own job.
"""

import random
from dataclasses import dataclass, field
from typing import Callable, Iterator

from ..core.exceptions import ConfigurationError

# 2 ** 32 * base already exceeds any sensible cap
MAX_EXPONENT = 32


@dataclass(frozen=True)
class RetryBackoff:
    """Configuration for delays between retries of a failed request."""
    base_delay: float = 0.1
    max_delay: float = 10.0
    max_jitter: float = 0.1
    random_source: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def __post_init__(self):
        if self.base_delay < 0:
            raise ConfigurationError("retry_base_delay", "must not be negative")
        if self.max_delay < 0:
            raise ConfigurationError("retry_max_delay", "must not be negative")
        if self.max_jitter < 0:
            raise ConfigurationError("retry_max_jitter", "must not be negative")

    def delay(self, attempt: int) -> float:
        """
        Seconds to wait after the given failed attempt.

        Args:
            attempt: Zero-based index of the attempt that just failed

        Returns:
            min(2^attempt * base_delay, max_delay) plus jitter in [0, max_jitter)
        """
        exponent = min(max(attempt, 0), MAX_EXPONENT)
        delay = min(self.base_delay * (2 ** exponent), self.max_delay)
        return delay + self.random_source() * self.max_jitter


@dataclass(frozen=True)
class PollBackoff:
    """Configuration for the interval between job status polls."""
    start: float = 0.1
    maximum: float = 2.0
    factor: float = 1.5

    def __post_init__(self):
        if self.start < 0:
            raise ConfigurationError("poll_interval_start", "must not be negative")
        if self.maximum < 0:
            raise ConfigurationError("poll_interval_max", "must not be negative")
        if self.factor < 1:
            raise ConfigurationError("poll_factor", "must be at least 1")

    def next_interval(self, current: float) -> float:
        return min(current * self.factor, self.maximum)

    def intervals(self) -> Iterator[float]:
        """Yield successive poll intervals: start, start * factor, ... capped at maximum."""
        interval = min(self.start, self.maximum)
        while True:
            yield interval
            interval = self.next_interval(interval)
