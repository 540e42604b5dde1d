"""Retry eligibility and backoff for PCO requests.

The scheduler is stateless: the dispatcher tells it which attempt just
failed and how, and it answers whether to try again and how long to wait.
Attempts are numbered from 1, so a request makes at most
``max_retries + 1`` attempts.
"""

from __future__ import annotations

from pco_client.api.exceptions import Classification
from pco_client.config import RetryConfig


class RetryScheduler:
    """Decides retries and computes backoff delays.

    Usage:
        scheduler = RetryScheduler(RetryConfig(max_retries=3))

        if scheduler.should_retry(attempt, classification):
            await asyncio.sleep(scheduler.wait_for(attempt, retry_after))
    """

    def __init__(self, config: RetryConfig | None = None) -> None:
        self._config = config or RetryConfig()

    @property
    def config(self) -> RetryConfig:
        """Get the retry configuration."""
        return self._config

    @property
    def max_attempts(self) -> int:
        """Upper bound on attempts for one request."""
        if not self._config.enabled:
            return 1
        return self._config.max_retries + 1

    def should_retry(self, attempt: int, classification: Classification) -> bool:
        """Whether another attempt may follow the failed ``attempt``.

        ``AUTH_EXPIRED`` is never retried here; token refresh owns it.
        """
        if not self._config.enabled:
            return False
        if attempt > self._config.max_retries:
            return False
        return classification.retryable

    def delay(self, attempt: int) -> float:
        """Backoff in seconds after the failed ``attempt``.

        linear:      min(base * attempt, max)
        exponential: min(base * 2 ** (attempt - 1), max)
        """
        attempt = max(1, attempt)
        base = self._config.base_delay
        if self._config.backoff == "linear":
            raw = base * attempt
        else:
            raw = base * 2 ** (attempt - 1)
        return min(raw, self._config.max_delay)

    def wait_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to sleep, honouring a server hint when it is longer."""
        return max(self.delay(attempt), retry_after or 0.0)
