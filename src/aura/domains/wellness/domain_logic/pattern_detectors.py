"""Pattern detectors: time of day, day of week, and lagged correlations.

Each detector is a pure function of the history (plus the run instant that
stamps ``discovered_at``) and returns patterns with deterministic ids, so a
re-run overwrites rather than duplicates stored patterns.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone, tzinfo

from aura.core.storage.models import HealthDataPoint, WellnessPattern
from aura.domains.wellness.domain_logic.metric_aggregator import (
    baseline,
    group_by_day_of_week,
    group_by_hour,
    summarize,
)
from aura.domains.wellness.domain_logic.pattern_models import (
    ACTIVE_STEPS_ABOVE,
    CORR_MAX_CONFIDENCE,
    CORR_MAX_GAP_HOURS,
    CORR_MIN_GAP_HOURS,
    CORR_MIN_RATIO,
    CORR_MIN_TRIGGERS,
    DAY_NAMES,
    DOW_CONFIDENCE_SAMPLES,
    DOW_MAX_CONFIDENCE,
    DOW_MIN_SAMPLES,
    DOW_SLEEP_RATIO,
    DOW_STRESS_RATIO,
    GOOD_SLEEP_ABOVE,
    HIGH_STRESS_ABOVE,
    POOR_SLEEP_BELOW,
    TOD_CONFIDENCE_SAMPLES,
    TOD_ELEVATION_RATIO,
    TOD_MAX_CONFIDENCE,
    TOD_MIN_SAMPLES,
    format_hour,
)

logger = logging.getLogger(__name__)


def detect_time_of_day_patterns(
    points: Sequence[HealthDataPoint],
    *,
    discovered_at: datetime,
    tz: tzinfo = timezone.utc,
) -> list[WellnessPattern]:
    """Find hours whose mean stress is well above the user's hourly baseline.

    e.g. "Your stress tends to spike around 3 PM".
    """
    stats = summarize(group_by_hour(points, "stress_level", tz))
    overall = baseline(stats)

    patterns = []
    for hour in stats:
        if hour.count >= TOD_MIN_SAMPLES and hour.mean > overall * TOD_ELEVATION_RATIO:
            patterns.append(WellnessPattern(
                id=f"tod_stress_{hour.index}",
                type="time_of_day",
                description=f"Your stress tends to spike around {format_hour(hour.index)}",
                confidence=min(hour.count / TOD_CONFIDENCE_SAMPLES, TOD_MAX_CONFIDENCE),
                metric="stress",
                hour_of_day=hour.index,
                discovered_at=discovered_at,
                occurrences=hour.count,
            ))
    return patterns


def detect_day_of_week_patterns(
    points: Sequence[HealthDataPoint],
    *,
    discovered_at: datetime,
    tz: tzinfo = timezone.utc,
) -> list[WellnessPattern]:
    """Find weekdays with elevated stress or depressed sleep quality.

    The two checks are independent; one weekday can produce both.
    """
    patterns = []

    stress_stats = summarize(group_by_day_of_week(points, "stress_level", tz))
    stress_baseline = baseline(stress_stats)
    for day in stress_stats:
        if day.count >= DOW_MIN_SAMPLES and day.mean > stress_baseline * DOW_STRESS_RATIO:
            patterns.append(WellnessPattern(
                id=f"dow_stress_{day.index}",
                type="day_of_week",
                description=f"{DAY_NAMES[day.index]}s tend to be more stressful for you",
                confidence=min(day.count / DOW_CONFIDENCE_SAMPLES, DOW_MAX_CONFIDENCE),
                metric="stress",
                day_of_week=day.index,
                discovered_at=discovered_at,
                occurrences=day.count,
            ))

    sleep_stats = summarize(group_by_day_of_week(points, "sleep_quality", tz))
    sleep_baseline = baseline(sleep_stats)
    for day in sleep_stats:
        if day.count >= DOW_MIN_SAMPLES and day.mean < sleep_baseline * DOW_SLEEP_RATIO:
            patterns.append(WellnessPattern(
                id=f"dow_sleep_{day.index}",
                type="day_of_week",
                description=f"You tend to sleep poorly on {DAY_NAMES[day.index]} nights",
                confidence=min(day.count / DOW_CONFIDENCE_SAMPLES, DOW_MAX_CONFIDENCE),
                metric="sleep",
                day_of_week=day.index,
                discovered_at=discovered_at,
                occurrences=day.count,
            ))

    return patterns


def _correlation_confidence(co_occurrences: int, triggers: int) -> float | None:
    """Ratio-based confidence, or None when the evidence is too thin or too weak."""
    if triggers < CORR_MIN_TRIGGERS:
        return None
    ratio = co_occurrences / triggers
    if ratio <= CORR_MIN_RATIO:
        return None
    return min(ratio, CORR_MAX_CONFIDENCE)


def detect_correlation_patterns(
    points: Sequence[HealthDataPoint],
    *,
    discovered_at: datetime,
) -> list[WellnessPattern]:
    """Find lagged cross-metric relationships between consecutive readings.

    Only the sleep -> next-day stress check restricts pairs to readings
    8-36 hours apart; steps -> next sleep looks at every adjacent pair.
    """
    ordered = sorted(points, key=lambda p: p.timestamp)
    pairs = list(zip(ordered, ordered[1:]))
    min_gap = timedelta(hours=CORR_MIN_GAP_HOURS)
    max_gap = timedelta(hours=CORR_MAX_GAP_HOURS)

    patterns = []

    # Sleep -> next-day stress
    poor_sleep = 0
    poor_sleep_high_stress = 0
    for current, nxt in pairs:
        gap = nxt.timestamp - current.timestamp
        if gap < min_gap or gap > max_gap:
            continue
        if current.sleep_quality is not None and current.sleep_quality < POOR_SLEEP_BELOW:
            poor_sleep += 1
            if nxt.stress_level is not None and nxt.stress_level > HIGH_STRESS_ABOVE:
                poor_sleep_high_stress += 1

    confidence = _correlation_confidence(poor_sleep_high_stress, poor_sleep)
    if confidence is not None:
        patterns.append(WellnessPattern(
            id="corr_sleep_stress",
            type="correlation",
            description="Poor sleep nights are followed by higher stress the next day",
            confidence=confidence,
            metric="sleep_stress",
            trigger="poor_sleep",
            discovered_at=discovered_at,
            occurrences=poor_sleep_high_stress,
        ))

    # Steps -> next sleep quality
    active = 0
    active_good_sleep = 0
    for current, nxt in pairs:
        if current.steps is not None and current.steps > ACTIVE_STEPS_ABOVE:
            active += 1
            if nxt.sleep_quality is not None and nxt.sleep_quality > GOOD_SLEEP_ABOVE:
                active_good_sleep += 1

    confidence = _correlation_confidence(active_good_sleep, active)
    if confidence is not None:
        patterns.append(WellnessPattern(
            id="corr_steps_sleep",
            type="correlation",
            description="Days with 8,000+ steps lead to better sleep quality",
            confidence=confidence,
            metric="steps_sleep",
            trigger="high_steps",
            discovered_at=discovered_at,
            occurrences=active_good_sleep,
        ))

    logger.debug(
        "Correlation scan: %d pairs, poor sleep %d/%d, active %d/%d",
        len(pairs),
        poor_sleep_high_stress,
        poor_sleep,
        active_good_sleep,
        active,
    )
    return patterns
