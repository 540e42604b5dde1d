"""Per-operation timing and error-rate aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class OperationStats:
    """Running totals for one operation key."""

    count: int = 0
    errors: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    @property
    def average_time(self) -> float:
        return self.total_time / self.count if self.count else 0.0

    @property
    def error_rate(self) -> float:
        return self.errors / self.count if self.count else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "average_time": self.average_time,
            "min_time": self.min_time if self.count else 0.0,
            "max_time": self.max_time,
            "error_rate": self.error_rate,
        }


class PerformanceMetrics:
    """Aggregates request durations keyed by ``"METHOD endpoint"``.

    Usage:
        metrics = PerformanceMetrics()
        metrics.record("GET /people", 0.12, success=True)
        metrics.get_metrics()["GET /people"]["average_time"]
    """

    def __init__(self) -> None:
        self._stats: dict[str, OperationStats] = {}

    def record(self, operation: str, duration: float, success: bool) -> None:
        """Record one finished logical request."""
        stats = self._stats.setdefault(operation, OperationStats())
        stats.count += 1
        stats.total_time += duration
        stats.min_time = min(stats.min_time, duration)
        stats.max_time = max(stats.max_time, duration)
        if not success:
            stats.errors += 1

    def get_metrics(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every operation's stats."""
        return {operation: stats.to_dict() for operation, stats in self._stats.items()}

    def reset(self) -> None:
        self._stats.clear()
