"""Predictive wellness pattern engine: one analysis run per user.

Fetches the recent history, runs the three detectors, derives predictions
from the fresh patterns, and persists the run's results as one write set.
The read path (:meth:`PatternEngine.get_profile`) only queries what earlier
runs stored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone, tzinfo

from aura.core.storage.models import AnalysisResult
from aura.domains.wellness.connectors import HealthHistorySource, PatternStore
from aura.domains.wellness.domain_logic.pattern_detectors import (
    detect_correlation_patterns,
    detect_day_of_week_patterns,
    detect_time_of_day_patterns,
)
from aura.domains.wellness.domain_logic.pattern_models import (
    PROFILE_MIN_CONFIDENCE,
    WellnessProfile,
)
from aura.domains.wellness.domain_logic.prediction_generator import generate_predictions
from aura.domains.wellness.domain_logic.wellness_profile import (
    build_profile_summary,
    classify_profile_strength,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 30
DEFAULT_MIN_DATA_POINTS = 7


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_instant(value: datetime) -> datetime:
    """Naive instants are UTC, as in storage."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PatternEngine:
    """Discovers patterns and predictions from a user's health history.

    Usage::

        engine = PatternEngine(history=repository, store=repository)
        result = engine.analyze("user-1")
        profile = engine.get_profile("user-1")

    Runs share no mutable state, so different users can be analysed in
    parallel against a thread-safe store.
    """

    def __init__(
        self,
        history: HealthHistorySource,
        store: PatternStore,
        *,
        tz: tzinfo = timezone.utc,
        history_days: int = DEFAULT_HISTORY_DAYS,
        min_data_points: int = DEFAULT_MIN_DATA_POINTS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._history = history
        self._store = store
        self._tz = tz
        self._history_days = history_days
        self._min_data_points = min_data_points
        self._clock = clock

    def analyze(self, user_id: str, *, now: datetime | None = None) -> AnalysisResult:
        """Run a full analysis for one user and persist the results.

        Fewer than ``min_data_points`` points in the window is a normal
        outcome: an empty result is returned and nothing is written.

        Raises:
            RepositoryError: If the store fails; no partial results are kept.
        """
        now = _as_instant(now or self._clock())
        since = now - timedelta(days=self._history_days)
        points = self._history.fetch_health_data(user_id, since)

        if len(points) < self._min_data_points:
            logger.info(
                "Not enough data for pattern analysis (%d points, need %d)",
                len(points),
                self._min_data_points,
            )
            return AnalysisResult()

        patterns = [
            *detect_time_of_day_patterns(points, discovered_at=now, tz=self._tz),
            *detect_day_of_week_patterns(points, discovered_at=now, tz=self._tz),
            *detect_correlation_patterns(points, discovered_at=now),
        ]
        predictions = generate_predictions(patterns, now=now, tz=self._tz)

        self._store.save_analysis(user_id, patterns, predictions)

        logger.info(
            "Pattern analysis over %d points: %d patterns, %d predictions",
            len(points),
            len(patterns),
            len(predictions),
        )
        return AnalysisResult(patterns=patterns, predictions=predictions)

    def get_profile(self, user_id: str, *, now: datetime | None = None) -> WellnessProfile:
        """Summarise stored patterns and active predictions without recomputing.

        Raises:
            RepositoryError: If the store cannot be read.
        """
        now = _as_instant(now or self._clock())
        data_points = self._store.count_health_data(user_id)
        patterns = self._store.query_patterns(user_id, min_confidence=PROFILE_MIN_CONFIDENCE)
        predictions = self._store.query_predictions(user_id, now=now)

        return WellnessProfile(
            patterns=patterns,
            predictions=predictions,
            summary=build_profile_summary(patterns),
            data_points=data_points,
            profile_strength=classify_profile_strength(data_points),
        )
