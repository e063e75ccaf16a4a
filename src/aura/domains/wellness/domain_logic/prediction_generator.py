"""Turn freshly discovered patterns into short-lived, actionable predictions."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone, tzinfo

from aura.core.storage.models import WellnessPattern, WellnessPrediction
from aura.domains.wellness.domain_logic.metric_aggregator import day_of_week, to_local
from aura.domains.wellness.domain_logic.pattern_models import (
    CHECKIN_TTL_HOURS,
    PREDICTION_LOOKAHEAD_HOURS,
    PREDICTION_MIN_CONFIDENCE,
    SLEEP_PREP_TTL_HOURS,
)


def generate_predictions(
    patterns: Iterable[WellnessPattern],
    *,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> list[WellnessPrediction]:
    """Emit predictions for patterns that are about to become relevant.

    Rules, for patterns with confidence >= 0.5:

    * time_of_day: the flagged hour is 1-2 hours ahead of the current local
      hour; the prediction expires when that hour arrives.
    * day_of_week: the flagged weekday is today; stress patterns prompt a
      check-in (24h), sleep patterns a wind-down routine (12h).
    * correlation: never predicts.
    """
    local_now = to_local(now, tz)
    current_hour = local_now.hour
    today = day_of_week(local_now)

    predictions: list[WellnessPrediction] = []
    for pattern in patterns:
        if pattern.confidence < PREDICTION_MIN_CONFIDENCE:
            continue

        if pattern.type == "time_of_day" and pattern.hour_of_day is not None:
            hours_until = pattern.hour_of_day - current_hour
            if 0 < hours_until <= PREDICTION_LOOKAHEAD_HOURS:
                predictions.append(WellnessPrediction(
                    description=(
                        f"{pattern.description}. Let's prepare with a quick breathing exercise."
                    ),
                    type="proactive_wellness",
                    confidence=pattern.confidence,
                    suggested_action="breathing_exercise",
                    expires_at=now + timedelta(hours=hours_until),
                    created_at=now,
                ))

        elif pattern.type == "day_of_week" and pattern.day_of_week == today:
            if pattern.metric == "stress":
                predictions.append(WellnessPrediction(
                    description=f"{pattern.description}. I'm here if you need to talk.",
                    type="proactive_checkin",
                    confidence=pattern.confidence,
                    suggested_action="check_in",
                    expires_at=now + timedelta(hours=CHECKIN_TTL_HOURS),
                    created_at=now,
                ))
            elif pattern.metric == "sleep":
                predictions.append(WellnessPrediction(
                    description=f"{pattern.description}. Try winding down earlier tonight.",
                    type="sleep_preparation",
                    confidence=pattern.confidence,
                    suggested_action="sleep_routine",
                    expires_at=now + timedelta(hours=SLEEP_PREP_TTL_HOURS),
                    created_at=now,
                ))

    return predictions
