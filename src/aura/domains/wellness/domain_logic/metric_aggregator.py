"""Bucket a user's measurement history by hour of day and day of week.

Buckets are fixed-size lists indexed by hour (0-23) or weekday
(0=Sunday .. 6=Saturday). A point that did not record the metric contributes
nothing to that metric's buckets.
"""

from __future__ import annotations

import statistics
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from aura.core.storage.models import HealthDataPoint
from aura.domains.wellness.domain_logic.pattern_models import DAYS_PER_WEEK, HOURS_PER_DAY

AGGREGATED_METRICS = ("stress_level", "sleep_quality")


@dataclass(frozen=True)
class BucketStat:
    """Mean and sample count of one non-empty bucket."""

    index: int
    mean: float
    count: int


def to_local(timestamp: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Express a timestamp in the analysis time zone.

    Naive timestamps are assumed to already be in ``tz``.
    """
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=tz)
    return timestamp.astimezone(tz)


def day_of_week(timestamp: datetime) -> int:
    """Weekday index with 0=Sunday (``datetime.weekday`` counts from Monday)."""
    return (timestamp.weekday() + 1) % DAYS_PER_WEEK


def _metric_value(point: HealthDataPoint, metric: str) -> float | None:
    if metric not in AGGREGATED_METRICS:
        raise ValueError(f"Unsupported metric {metric!r}; expected one of {AGGREGATED_METRICS}")
    return getattr(point, metric)


def group_by_hour(
    points: Iterable[HealthDataPoint],
    metric: str,
    tz: tzinfo = timezone.utc,
) -> list[list[float]]:
    """Collect a metric's values into 24 hour-of-day buckets."""
    buckets: list[list[float]] = [[] for _ in range(HOURS_PER_DAY)]
    for point in points:
        value = _metric_value(point, metric)
        if value is None:
            continue
        buckets[to_local(point.timestamp, tz).hour].append(value)
    return buckets


def group_by_day_of_week(
    points: Iterable[HealthDataPoint],
    metric: str,
    tz: tzinfo = timezone.utc,
) -> list[list[float]]:
    """Collect a metric's values into 7 day-of-week buckets (0=Sunday)."""
    buckets: list[list[float]] = [[] for _ in range(DAYS_PER_WEEK)]
    for point in points:
        value = _metric_value(point, metric)
        if value is None:
            continue
        buckets[day_of_week(to_local(point.timestamp, tz))].append(value)
    return buckets


def summarize(buckets: list[list[float]]) -> list[BucketStat]:
    """Per-bucket mean and count, skipping empty buckets."""
    return [
        BucketStat(index=i, mean=statistics.mean(values), count=len(values))
        for i, values in enumerate(buckets)
        if values
    ]


def baseline(stats: list[BucketStat]) -> float:
    """Mean of the per-bucket means.

    Every populated bucket weighs the same regardless of its sample count.
    Returns 0.0 when there are no populated buckets.
    """
    if not stats:
        return 0.0
    return statistics.mean(s.mean for s in stats)
