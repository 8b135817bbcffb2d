"""
================================================================================
Request Pacing and Rate-Limit Cooldown
================================================================================

Freshservice enforces a per-minute request budget per account. When the budget
is exhausted the API answers HTTP 429 with a Retry-After header (seconds).

This limiter does two things:
1. Paces consecutive requests at least `min_interval` seconds apart
2. After a 429, blocks the next request until Retry-After + safety margin
   has elapsed, so the caller can simply retry the same page

Retrying after a 429 is the only retry the sync performs; any other failed
request aborts the current stream.

Usage:
------
    limiter = RateLimiter(name="Freshservice", safety_margin=1.0)

    # Before making request:
    limiter.wait()
    response = requests.get(url)

    # After response:
    if response.status_code == 429:
        limiter.on_rate_limit(int(response.headers.get("Retry-After", 1)))
    else:
        limiter.on_success()
"""

import threading
import time
from typing import Optional

from .logger import get_logger

logger = get_logger("fssync.rate_limiter")


class RateLimiter:
    """
    Fixed-interval pacer with server-directed cooldown.

    Thread-safe: the slot reservation happens under a lock, the sleep happens
    outside of it.
    """

    def __init__(
        self,
        name: str = "API",
        min_interval: float = 0.0,
        safety_margin: float = 1.0,
        default_retry_after: float = 1.0,
    ):
        """
        Initialize the rate limiter.

        Args:
            name: Identifier for this limiter (used in log messages)
            min_interval: Minimum delay between two requests in seconds
            safety_margin: Seconds added on top of the server's Retry-After
            default_retry_after: Cooldown used when a 429 carries no Retry-After
        """
        self.name = name
        self.min_interval = min_interval
        self.safety_margin = safety_margin
        self.default_retry_after = default_retry_after

        self._lock = threading.Lock()

        self._next_allowed_time: float = 0.0  # Earliest time next request may fire
        self._total_requests: int = 0
        self._total_successes: int = 0
        self._total_rate_limits: int = 0

    @property
    def stats(self) -> dict:
        """Counters for monitoring and the end-of-run summary."""
        with self._lock:
            return {
                "total_requests": self._total_requests,
                "total_successes": self._total_successes,
                "rate_limits_hit": self._total_rate_limits,
            }

    def wait(self):
        """
        Block until the next request is allowed.

        Call this BEFORE every API request.
        """
        with self._lock:
            now = time.time()
            if self._next_allowed_time < now:
                self._next_allowed_time = now

            my_slot = self._next_allowed_time
            self._next_allowed_time += self.min_interval
            self._total_requests += 1

        sleep_time = my_slot - time.time()
        if sleep_time > 0:
            if sleep_time > 1.0:
                logger.debug(f"[{self.name}] Rate limiting: waiting {sleep_time:.1f}s")
            time.sleep(sleep_time)

    def on_success(self):
        """Call this AFTER a request that was not rate limited."""
        with self._lock:
            self._total_successes += 1

    def on_rate_limit(self, retry_after: Optional[float] = None) -> float:
        """
        Call this when receiving a 429 Too Many Requests response.

        Pushes the next allowed request time to now + Retry-After + margin.
        Does NOT sleep here; the following wait() enforces the cooldown.

        Args:
            retry_after: Server-provided wait time in seconds (Retry-After header)

        Returns:
            The cooldown in seconds that the next wait() will honour
        """
        if retry_after is None or retry_after < 0:
            retry_after = self.default_retry_after
        cooldown = retry_after + self.safety_margin

        with self._lock:
            self._total_rate_limits += 1
            self._next_allowed_time = max(self._next_allowed_time, time.time() + cooldown)

        logger.warning(f"[{self.name}] Rate limit hit #{self._total_rate_limits}! "
                       f"Cooldown {cooldown:.1f}s before retrying.")
        return cooldown

