"""Per-platform request pacing.

Every fan-out worker of a provider draws from the same bucket, so the
platform sees at most ``rate`` requests per second regardless of how many
repositories are being fetched in parallel.
"""

import threading
import time
from collections.abc import Callable
from typing import Protocol


class RateLimiterProtocol(Protocol):
    """Anything that can pace a request before it is sent."""

    def acquire(self) -> float:
        """Block until a request may be sent; return seconds spent waiting."""
        ...


class TokenBucketRateLimiter:
    """Thread-safe token bucket.

    The bucket starts full with ``burst`` tokens and refills continuously at
    ``rate`` tokens per second. ``clock`` and ``sleep`` can be replaced to
    drive the bucket deterministically.
    """

    def __init__(
        self,
        rate: float,
        burst: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            msg = f"rate must be positive, got {rate}"
            raise ValueError(msg)
        self.rate = rate
        self.burst = burst if burst and burst > 0 else rate
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._available = self.burst
        self._stamp = clock()
        self._waits = 0
        self._waited_seconds = 0.0

    def _take(self) -> float:
        """Take one token if possible; otherwise return the time until one exists.

        Caller holds the lock.
        """
        now = self._clock()
        self._available = min(
            self.burst, self._available + (now - self._stamp) * self.rate
        )
        self._stamp = now
        if self._available >= 1:
            self._available -= 1
            return 0.0
        return (1 - self._available) / self.rate

    def acquire(self) -> float:
        """Wait for a token.

        Returns:
            Total seconds spent sleeping.
        """
        slept = 0.0
        while True:
            with self._lock:
                delay = self._take()
                if delay == 0.0:
                    if slept:
                        self._waits += 1
                        self._waited_seconds += slept
                    return slept
            self._sleep(delay)
            slept += delay

    @property
    def waits(self) -> int:
        """Number of acquisitions that had to sleep."""
        with self._lock:
            return self._waits

    @property
    def waited_seconds(self) -> float:
        """Total time callers spent sleeping for tokens."""
        with self._lock:
            return self._waited_seconds


_limiters: dict[str, TokenBucketRateLimiter] = {}
_limiters_lock = threading.Lock()


def get_platform_rate_limiter(platform: str, max_qps: float) -> TokenBucketRateLimiter:
    """Return the bucket shared by every provider instance of ``platform``.

    The first caller fixes the rate; later calls reuse the existing bucket.
    """
    with _limiters_lock:
        limiter = _limiters.get(platform)
        if limiter is None:
            limiter = _limiters[platform] = TokenBucketRateLimiter(max_qps)
        return limiter


def reset_platform_rate_limiters() -> None:
    """Forget all shared buckets."""
    with _limiters_lock:
        _limiters.clear()


def platform_rate_limit_waits() -> dict[str, dict[str, float]]:
    """Report how long each shared bucket made its callers sleep.

    Returns:
        Mapping of platform name to ``waits`` and ``waited_seconds``.
    """
    with _limiters_lock:
        limiters = dict(_limiters)
    return {
        platform: {
            "waits": limiter.waits,
            "waited_seconds": round(limiter.waited_seconds, 3),
        }
        for platform, limiter in sorted(limiters.items())
    }
