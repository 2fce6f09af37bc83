"""
SessionStatistics: running totals over the accepted-sample stream of one
active tracking lifetime.
"""
from __future__ import annotations

import dataclasses
from collections import deque

from .const import MAX_LOCATION_HISTORY
from .geo import haversine_m
from .models import LocationSample


@dataclasses.dataclass(frozen=True)
class HistoryPoint:
    """Accepted position kept in the session history."""

    latitude: float
    longitude: float
    timestamp: int


@dataclasses.dataclass(frozen=True)
class StatisticsSnapshot:
    """Read-only copy of the aggregator state at one instant."""

    sample_count: int = 0
    distance_m: float = 0.0
    duration_ms: int = 0
    average_speed: float = 0.0      # m/s
    max_speed: float = 0.0          # m/s, as reported by the provider


class SessionStatistics:
    """
    Accumulates distance, duration and speed over accepted samples.

    Distance is the sum of haversine legs between consecutive accepted
    samples.  Call reset() at the start of every tracking lifetime.
    """

    def __init__(self, max_history: int = MAX_LOCATION_HISTORY) -> None:
        self._max_history = max_history
        self._started_at: int | None = None
        self._stopped_at: int | None = None
        self._sample_count = 0
        self._distance_m = 0.0
        self._max_speed = 0.0
        self._last: LocationSample | None = None
        self._history: deque[HistoryPoint] = deque(maxlen=max_history)

    def reset(self, started_at: int | None = None) -> None:
        self._started_at = started_at
        self._stopped_at = None
        self._sample_count = 0
        self._distance_m = 0.0
        self._max_speed = 0.0
        self._last = None
        self._history = deque(maxlen=self._max_history)

    def mark_started(self, started_at: int) -> None:
        self._started_at = started_at
        self._stopped_at = None

    def mark_stopped(self, stopped_at: int) -> None:
        """Freeze the elapsed duration at stopped_at."""
        if self._started_at is not None:
            self._stopped_at = stopped_at

    def add(self, sample: LocationSample) -> None:
        """Fold one accepted sample into the totals."""
        if self._last is not None:
            self._distance_m += haversine_m(
                self._last.latitude, self._last.longitude,
                sample.latitude, sample.longitude,
            )
        self._last = sample
        self._sample_count += 1
        self._max_speed = max(self._max_speed, sample.speed)
        self._history.append(HistoryPoint(sample.latitude, sample.longitude, sample.timestamp))

    def snapshot(self, now: int) -> StatisticsSnapshot:
        end = self._stopped_at if self._stopped_at is not None else now
        duration_ms = max(0, end - self._started_at) if self._started_at is not None else 0
        average_speed = self._distance_m / (duration_ms / 1000.0) if duration_ms > 0 else 0.0
        return StatisticsSnapshot(
            sample_count=self._sample_count,
            distance_m=self._distance_m,
            duration_ms=duration_ms,
            average_speed=average_speed,
            max_speed=self._max_speed,
        )

    def history(self) -> list[HistoryPoint]:
        return list(self._history)
