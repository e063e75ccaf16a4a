"""Wellness data collaborators: the interfaces the pattern engine consumes."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from aura.core.storage.models import HealthDataPoint, WellnessPattern, WellnessPrediction


@runtime_checkable
class HealthHistorySource(Protocol):
    """Where a user's raw measurement history comes from.

    The engine does not care whether points were entered manually, synced
    from a wearable, or generated for a test.
    """

    def fetch_health_data(self, user_id: str, since: datetime) -> list[HealthDataPoint]:
        """Points with ``timestamp > since``, in any order."""
        ...


@runtime_checkable
class PatternStore(Protocol):
    """Durable per-user store for derived patterns and predictions."""

    def save_analysis(
        self,
        user_id: str,
        patterns: list[WellnessPattern],
        predictions: list[WellnessPrediction],
    ) -> None:
        """Upsert patterns by id and insert predictions, all or nothing."""
        ...

    def count_health_data(self, user_id: str | None = None) -> int:
        """Total historical data points for the user."""
        ...

    def query_patterns(
        self, user_id: str, *, min_confidence: float = 0.5
    ) -> list[WellnessPattern]:
        """Patterns with confidence above the floor, strongest first."""
        ...

    def query_predictions(self, user_id: str, *, now: datetime) -> list[WellnessPrediction]:
        """Predictions that have not expired at ``now``."""
        ...
