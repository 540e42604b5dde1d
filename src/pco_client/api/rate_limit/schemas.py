"""Pydantic schemas for PCO API rate limit data.

PCO reports throttling state on every response through these headers:
- X-PCO-API-Request-Rate-Count (requests made in the current window)
- X-PCO-API-Request-Rate-Limit (requests allowed per window)
- X-PCO-API-Request-Rate-Period (window length in seconds)
- Retry-After (seconds to wait, sent with 429 responses)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RateLimitHeader(StrEnum):
    """Rate limit header names, lower-cased for case-insensitive lookup."""

    RETRY_AFTER = "retry-after"
    COUNT = "x-pco-api-request-rate-count"
    LIMIT = "x-pco-api-request-rate-limit"
    PERIOD = "x-pco-api-request-rate-period"


class RateLimitSnapshot(BaseModel):
    """Observed throttling state.

    Every field is ``None`` until the matching header has been seen once.
    Snapshots are immutable; the tracker replaces the whole object so a
    reader never sees a half-applied response.
    """

    model_config = ConfigDict(frozen=True)

    limit: int | None = Field(default=None, ge=0, description="Requests allowed per window")
    count: int | None = Field(default=None, ge=0, description="Requests used in the window")
    period: int | None = Field(default=None, ge=0, description="Window length in seconds")
    retry_after: float | None = Field(
        default=None, ge=0, description="Last server-provided wait hint in seconds"
    )
    reset_at: datetime | None = Field(
        default=None, description="UTC datetime the last Retry-After hint expires"
    )
    window_started_at: datetime | None = Field(
        default=None, description="UTC datetime the current window was first observed"
    )
    updated_at: datetime | None = Field(default=None, description="When last updated")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining(self) -> int | None:
        """Requests left in the window (None until limit and count are known)."""
        if self.limit is None or self.count is None:
            return None
        return max(0, self.limit - self.count)

    @property
    def is_known(self) -> bool:
        """Whether any rate limit header has ever been observed."""
        return self.updated_at is not None

    @property
    def is_exhausted(self) -> bool:
        """Whether the tracked window has no requests left."""
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> float:
        """Seconds until the last Retry-After hint expires (0 if past/unknown)."""
        if self.reset_at is None:
            return 0.0
        delta = self.reset_at - datetime.now(UTC)
        return max(0.0, delta.total_seconds())

    @property
    def window_ends_at(self) -> datetime | None:
        """End of the current window, when its start and period are known.

        None as well when the period is too long to represent.
        """
        if self.window_started_at is None or self.period is None:
            return None
        try:
            return self.window_started_at + timedelta(seconds=self.period)
        except OverflowError:
            return None
