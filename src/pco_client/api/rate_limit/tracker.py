"""Rate limit tracking for the PCO API.

Passive tracking from response headers (zero API cost). The tracker never
raises on missing or malformed headers: a header that cannot be parsed is
treated as absent, and absence never clears a previously known value.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import Any

from pco_client.config import RateLimitConfig
from pco_client.logging import get_logger

from .schemas import RateLimitHeader, RateLimitSnapshot

logger = get_logger(__name__)

_RATE_LIMIT_DETAIL = re.compile(
    r"Rate limit exceeded: (\d+) of (\d+) requests per (\d+) seconds"
)

# Longer Retry-After hints are treated as absent
MAX_RETRY_AFTER = 7 * 24 * 3600.0


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After value into seconds.

    Accepts delta-seconds (integer or float) and HTTP-dates. Returns None
    for missing, negative, non-finite or unparseable values, and for hints
    longer than ``MAX_RETRY_AFTER``.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError, OverflowError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = max(0.0, (when - (now or datetime.now(UTC))).total_seconds())

    if not math.isfinite(seconds) or seconds < 0 or seconds > MAX_RETRY_AFTER:
        return None
    return seconds


def _parse_non_negative_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def parse_rate_limit_detail(detail: str) -> tuple[int, int, int] | None:
    """Parse PCO's 429 error detail into ``(count, limit, period)``.

    Example detail: "Rate limit exceeded: 118 of 100 requests per 20 seconds"
    """
    match = _RATE_LIMIT_DETAIL.search(detail)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


class RateLimitTracker:
    """Tracks PCO rate limit state from response headers.

    Usage:
        tracker = RateLimitTracker()
        tracker.update_from_headers(response.headers)

        if tracker.snapshot.is_exhausted:
            await asyncio.sleep(tracker.recommended_delay())

    One tracker lives for the lifetime of a client and is shared by all of
    its requests.
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self._config = config or RateLimitConfig()
        self._snapshot = RateLimitSnapshot()

    @property
    def config(self) -> RateLimitConfig:
        """Get the rate limit configuration."""
        return self._config

    @property
    def snapshot(self) -> RateLimitSnapshot:
        """Latest observed state (fields None until first seen)."""
        return self._snapshot

    @property
    def retry_after(self) -> float | None:
        """Last server-provided wait hint in seconds."""
        return self._snapshot.retry_after

    # -------------------------------------------------------------------------
    # Passive Tracking (from Response Headers)
    # -------------------------------------------------------------------------
    def update_from_headers(self, headers: Mapping[str, str] | None) -> RateLimitSnapshot:
        """Apply one response's rate limit headers.

        Header names are matched case-insensitively. Only present and
        parseable headers overwrite the matching field; the new snapshot is
        swapped in with a single assignment.

        Args:
            headers: Response headers (httpx.Headers or any str mapping)

        Returns:
            The snapshot after the update
        """
        if not self._config.track_from_headers or not headers:
            return self._snapshot

        lowered = {str(k).lower(): str(v) for k, v in headers.items()}
        now = datetime.now(UTC)
        current = self._snapshot
        changes: dict[str, Any] = {}

        limit = _parse_non_negative_int(lowered.get(RateLimitHeader.LIMIT))
        if limit is not None:
            changes["limit"] = limit

        count = _parse_non_negative_int(lowered.get(RateLimitHeader.COUNT))
        if count is not None:
            changes["count"] = count
            window_end = current.window_ends_at
            if (
                current.window_started_at is None
                or (current.count is not None and count < current.count)
                or (window_end is not None and now >= window_end)
            ):
                changes["window_started_at"] = now

        period = _parse_non_negative_int(lowered.get(RateLimitHeader.PERIOD))
        if period is not None:
            changes["period"] = period

        retry_after = parse_retry_after(lowered.get(RateLimitHeader.RETRY_AFTER), now)
        if retry_after is not None:
            try:
                reset_at = now + timedelta(seconds=retry_after)
            except OverflowError:
                reset_at = None
            if reset_at is not None:
                changes["retry_after"] = retry_after
                changes["reset_at"] = reset_at

        if not changes:
            return current

        changes["updated_at"] = now
        self._snapshot = current.model_copy(update=changes)
        logger.debug(
            "Rate limit updated (count={}, limit={}, period={}, retry_after={})",
            self._snapshot.count,
            self._snapshot.limit,
            self._snapshot.period,
            self._snapshot.retry_after,
        )
        return self._snapshot

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def is_exhausted(self) -> bool:
        """Whether the tracked window has no requests left."""
        return self._snapshot.is_exhausted

    def recommended_delay(self) -> float:
        """Seconds to wait before the next send when throttling preemptively.

        Non-zero only while an unexpired Retry-After hint is pending, or
        while the tracked window is exhausted and its end is known.
        """
        snapshot = self._snapshot
        delay = snapshot.seconds_until_reset

        if snapshot.is_exhausted:
            window_end = snapshot.window_ends_at
            if window_end is not None:
                delay = max(delay, (window_end - datetime.now(UTC)).total_seconds())

        return max(0.0, delay)

    def reset(self) -> None:
        """Forget everything observed so far."""
        self._snapshot = RateLimitSnapshot()

    def to_dict(self) -> dict[str, Any]:
        """Export current state as dictionary (for logging/metrics)."""
        snapshot = self._snapshot
        return {
            "limit": snapshot.limit,
            "count": snapshot.count,
            "remaining": snapshot.remaining,
            "period": snapshot.period,
            "retry_after": snapshot.retry_after,
            "reset_at": snapshot.reset_at.isoformat() if snapshot.reset_at else None,
            "seconds_until_reset": round(snapshot.seconds_until_reset, 2),
            "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
        }
