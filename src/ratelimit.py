"""Client-side throttling for Kubernetes API calls."""

import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Generator

from metrics import RATE_LIMIT_WAIT_SECONDS

logger = logging.getLogger(__name__)


class RateLimiter:
    """Thread-safe limiter for concurrent calls and calls per second.

    Wildcard rules can fan out into one list call per namespace and one
    delete call per pod; this keeps a large cull from flooding the API
    server. It only delays calls, it never retries them.
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        requests_per_second: float = 20.0,
    ) -> None:
        """Initialize rate limiter.

        Args:
            max_concurrent: Maximum number of in-flight API calls
            requests_per_second: Maximum calls started per second (0 disables)
        """
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._interval = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self._next_start = 0.0
        self._lock = threading.Lock()
        self.max_concurrent = max_concurrent
        self.requests_per_second = requests_per_second

        logger.info(
            "Kubernetes API rate limiter: max_concurrent=%d, requests_per_second=%.1f",
            max_concurrent,
            requests_per_second,
        )

    def _reserve_start(self) -> float:
        """Reserve the next start time and return how long to sleep for it."""
        with self._lock:
            now = time.monotonic()
            start = max(now, self._next_start)
            self._next_start = start + self._interval
            return start - now

    @contextmanager
    def acquire(self) -> Generator[None, None, None]:
        """Hold a rate limit slot for the duration of the block.

        Usage:
            with rate_limiter.acquire():
                api.list_namespace()
        """
        waited_from = time.monotonic()
        self._slots.acquire()
        try:
            delay = self._reserve_start()
            if delay > 0:
                time.sleep(delay)

            waited = time.monotonic() - waited_from
            if waited > 0.001:
                RATE_LIMIT_WAIT_SECONDS.observe(waited)

            yield
        finally:
            self._slots.release()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(max_concurrent={self.max_concurrent}, "
            f"requests_per_second={self.requests_per_second})"
        )


def rate_limiter_from_env() -> RateLimiter:
    """Build a rate limiter from the environment.

    Configuration via environment variables:
        KUBE_MAX_CONCURRENT_CALLS: Max concurrent API calls (default: 10)
        KUBE_REQUESTS_PER_SECOND: Max requests/second (default: 20)
    """
    return RateLimiter(
        max_concurrent=int(os.environ.get("KUBE_MAX_CONCURRENT_CALLS", "10")),
        requests_per_second=float(os.environ.get("KUBE_REQUESTS_PER_SECOND", "20")),
    )
