"""Requeue delay policies for failed reconciles.

The reconciler never retries on its own. The handlers ask a RetryPolicy how
long Kopf should wait before calling them again.
"""

import logging
import os
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class RetryPolicy(Protocol):
    """Decides the delay before the next attempt after a failure."""

    def delay(self, error: Exception, retry: int) -> float:
        """Return seconds to wait; ``retry`` is 0 for the first failure."""
        ...


@dataclass(frozen=True)
class FixedDelay:
    """Always wait the same amount of time."""

    seconds: float = 60.0

    def delay(self, error: Exception, retry: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialBackoff:
    """Wait base * factor**retry seconds, capped at maximum."""

    base: float = 5.0
    factor: float = 2.0
    maximum: float = 300.0

    def delay(self, error: Exception, retry: int) -> float:
        try:
            delay = self.base * self.factor ** max(retry, 0)
        except OverflowError:
            return self.maximum
        return min(delay, self.maximum)


def get_retry_policy() -> RetryPolicy:
    """Build the retry policy from the environment.

    Configuration via environment variables:
        RETRY_POLICY: "exponential" (default) or "fixed"
        RETRY_BASE_DELAY_SECONDS: First delay, or the fixed delay (default: 5)
        RETRY_BACKOFF_FACTOR: Growth factor per retry (default: 2)
        RETRY_MAX_DELAY_SECONDS: Upper bound on the delay (default: 300)
    """
    kind = os.environ.get("RETRY_POLICY", "exponential").lower()
    base = float(os.environ.get("RETRY_BASE_DELAY_SECONDS", "5"))

    if kind == "fixed":
        return FixedDelay(seconds=base)
    if kind != "exponential":
        logger.warning(f"Unknown RETRY_POLICY {kind!r}, using exponential backoff")

    return ExponentialBackoff(
        base=base,
        factor=float(os.environ.get("RETRY_BACKOFF_FACTOR", "2")),
        maximum=float(os.environ.get("RETRY_MAX_DELAY_SECONDS", "300")),
    )
