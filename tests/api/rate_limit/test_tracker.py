"""Unit tests for RateLimitTracker.

These tests verify header parsing, the keep-prior-values rule, and the
delay advice used for preemptive throttling.
"""

from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest
from pydantic import ValidationError

from pco_client.api.rate_limit import (
    RateLimitSnapshot,
    RateLimitTracker,
    parse_rate_limit_detail,
    parse_retry_after,
)
from pco_client.api.rate_limit.tracker import MAX_RETRY_AFTER
from pco_client.config import RateLimitConfig
from tests.fixtures import (
    HEADERS_EXHAUSTED,
    HEADERS_HEALTHY,
    HEADERS_LOWERCASE,
    HEADERS_MALFORMED,
    HEADERS_PARTIAL,
    HEADERS_THROTTLED,
    RATE_LIMIT_DETAIL,
    make_rate_limit_headers,
)


class TestUpdateFromHeaders:
    """Tests for applying response headers."""

    def test_initial_snapshot_unknown(self) -> None:
        """A fresh tracker knows nothing."""
        tracker = RateLimitTracker()
        snapshot = tracker.snapshot

        assert snapshot.limit is None
        assert snapshot.count is None
        assert snapshot.remaining is None
        assert snapshot.is_known is False

    def test_healthy_headers(self) -> None:
        """All three window headers are parsed."""
        tracker = RateLimitTracker()
        snapshot = tracker.update_from_headers(HEADERS_HEALTHY)

        assert snapshot.count == 10
        assert snapshot.limit == 100
        assert snapshot.period == 20
        assert snapshot.remaining == 90
        assert snapshot.retry_after is None
        assert snapshot.is_known is True

    def test_header_names_case_insensitive(self) -> None:
        """Lower-case header names are recognized."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_LOWERCASE)

        assert tracker.snapshot.count == 42
        assert tracker.snapshot.limit == 100

    def test_httpx_headers_accepted(self) -> None:
        """httpx.Headers work as input."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(httpx.Headers(HEADERS_HEALTHY))

        assert tracker.snapshot.remaining == 90

    def test_retry_after_sets_reset(self) -> None:
        """Retry-After is stored in seconds with an expiry time."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_THROTTLED)

        assert tracker.retry_after == 2.0
        assert tracker.snapshot.reset_at is not None
        assert 0 < tracker.snapshot.seconds_until_reset <= 2.0

    def test_remaining_never_negative(self) -> None:
        """Count above limit clamps remaining to zero."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_THROTTLED)

        assert tracker.snapshot.remaining == 0
        assert tracker.is_exhausted is True


class TestKeepsPriorValues:
    """Absent or malformed headers never clear known values."""

    def test_missing_headers_keep_snapshot(self) -> None:
        """A response with no rate limit headers changes nothing."""
        tracker = RateLimitTracker()
        before = tracker.update_from_headers(HEADERS_HEALTHY)
        after = tracker.update_from_headers({"Content-Type": "application/json"})

        assert after is before

    def test_partial_headers_overwrite_only_present(self) -> None:
        """Only the limit header is applied; count and period survive."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(make_rate_limit_headers(count=5, limit=50, period=10))
        tracker.update_from_headers(HEADERS_PARTIAL)

        assert tracker.snapshot.limit == 100
        assert tracker.snapshot.count == 5
        assert tracker.snapshot.period == 10

    def test_malformed_headers_ignored(self) -> None:
        """Non-numeric and negative values are treated as absent."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_HEALTHY)
        tracker.update_from_headers(HEADERS_MALFORMED)

        assert tracker.snapshot.count == 10
        assert tracker.snapshot.limit == 100
        assert tracker.snapshot.period == 20
        assert tracker.snapshot.retry_after is None

    def test_malformed_headers_never_raise(self) -> None:
        """Garbage input on a fresh tracker leaves it unknown."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_MALFORMED)
        tracker.update_from_headers(None)
        tracker.update_from_headers({})

        assert tracker.snapshot.is_known is False

    @pytest.mark.parametrize("value", ["inf", "1e12", "1e400", "Infinity"])
    def test_unrepresentable_retry_after_ignored(self, value: str) -> None:
        """Huge or infinite Retry-After values are dropped without raising."""
        tracker = RateLimitTracker()
        tracker.update_from_headers({"Retry-After": "3"})

        snapshot = tracker.update_from_headers(
            {"Retry-After": value, "X-PCO-API-Request-Rate-Limit": "100"}
        )

        assert snapshot.limit == 100
        assert snapshot.retry_after == 3.0
        assert tracker.recommended_delay() <= 3.0

    def test_unrepresentable_period_never_raises(self) -> None:
        """A period too long for a datetime leaves the window end unknown."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(make_rate_limit_headers(count=5, period=10**15))

        snapshot = tracker.update_from_headers(make_rate_limit_headers(count=6, period=10**15))

        assert snapshot.count == 6
        assert snapshot.window_ends_at is None

    def test_snapshot_replaced_not_mutated(self) -> None:
        """Updates swap in a new snapshot object."""
        tracker = RateLimitTracker()
        first = tracker.update_from_headers(HEADERS_HEALTHY)
        second = tracker.update_from_headers(HEADERS_EXHAUSTED)

        assert first is not second
        assert first.count == 10
        assert second.count == 100

    def test_snapshot_is_frozen(self) -> None:
        """Snapshots cannot be modified in place."""
        snapshot = RateLimitSnapshot(limit=100, count=1)
        with pytest.raises(ValidationError):
            snapshot.count = 2  # type: ignore[misc]

    def test_tracking_disabled(self) -> None:
        """With track_from_headers off, headers are ignored."""
        tracker = RateLimitTracker(RateLimitConfig(track_from_headers=False))
        tracker.update_from_headers(HEADERS_HEALTHY)

        assert tracker.snapshot.is_known is False


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("2", 2.0), ("0", 0.0), ("1.5", 1.5), (" 7 ", 7.0)],
    )
    def test_delta_seconds(self, value: str, expected: float) -> None:
        """Integer and float seconds are accepted."""
        assert parse_retry_after(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "-3", "nan"])
    def test_invalid_values(self, value: str | None) -> None:
        """Missing, negative and junk values return None."""
        assert parse_retry_after(value) is None

    @pytest.mark.parametrize("value", ["inf", "-inf", "1e400", "1e12"])
    def test_non_finite_and_huge_values(self, value: str) -> None:
        """Infinite values and hints past MAX_RETRY_AFTER return None."""
        assert parse_retry_after(value) is None

    def test_ceiling_is_inclusive(self) -> None:
        """A hint exactly at the ceiling is kept."""
        assert parse_retry_after(str(int(MAX_RETRY_AFTER))) == MAX_RETRY_AFTER

    def test_far_future_http_date(self) -> None:
        """An HTTP-date years ahead is treated as absent."""
        now = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)

        assert parse_retry_after("Fri, 31 Dec 9999 23:59:59 GMT", now=now) is None

    def test_http_date(self) -> None:
        """An HTTP-date is converted to seconds from now."""
        now = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
        value = format_datetime(now + timedelta(seconds=30), usegmt=True)

        assert parse_retry_after(value, now=now) == pytest.approx(30.0)

    def test_http_date_in_past(self) -> None:
        """A past HTTP-date means no wait."""
        now = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
        value = format_datetime(now - timedelta(seconds=30), usegmt=True)

        assert parse_retry_after(value, now=now) == 0.0


class TestParseRateLimitDetail:
    """Tests for the 429 error detail parser."""

    def test_parses_detail(self) -> None:
        """Count, limit and period are extracted."""
        assert parse_rate_limit_detail(RATE_LIMIT_DETAIL) == (118, 100, 20)

    def test_unrelated_detail(self) -> None:
        """Other messages return None."""
        assert parse_rate_limit_detail("Something else went wrong") is None


class TestRecommendedDelay:
    """Tests for preemptive throttling advice."""

    def test_no_delay_when_unknown(self) -> None:
        """Nothing observed means no delay."""
        assert RateLimitTracker().recommended_delay() == 0.0

    def test_no_delay_when_healthy(self) -> None:
        """A window with room left needs no delay."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_HEALTHY)

        assert tracker.recommended_delay() == 0.0

    def test_delay_while_retry_after_pending(self) -> None:
        """An unexpired Retry-After hint is honoured."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_THROTTLED)

        assert 0 < tracker.recommended_delay() <= 20.0

    def test_delay_until_window_end_when_exhausted(self) -> None:
        """An exhausted window waits until the period elapses."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_EXHAUSTED)

        delay = tracker.recommended_delay()
        assert 19.0 < delay <= 20.0

    def test_reset_forgets_state(self) -> None:
        """reset() returns to the unknown snapshot."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_EXHAUSTED)
        tracker.reset()

        assert tracker.snapshot.is_known is False
        assert tracker.recommended_delay() == 0.0


class TestToDict:
    """Tests for dictionary export."""

    def test_to_dict_fields(self) -> None:
        """Export carries every tracked field."""
        tracker = RateLimitTracker()
        tracker.update_from_headers(HEADERS_HEALTHY)
        data = tracker.to_dict()

        assert data["limit"] == 100
        assert data["count"] == 10
        assert data["remaining"] == 90
        assert data["period"] == 20
        assert data["retry_after"] is None
        assert data["updated_at"] is not None
