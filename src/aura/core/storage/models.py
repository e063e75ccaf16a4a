"""Data models for the wellness persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

PatternType = Literal["time_of_day", "day_of_week", "pre_event", "correlation"]
PredictionType = Literal["proactive_wellness", "proactive_checkin", "sleep_preparation"]
SuggestedAction = Literal["breathing_exercise", "check_in", "sleep_routine"]
DataSourceType = Literal["apple_health", "google_fit", "manual"]

# Measurement fields held in the encrypted blob of a health_data row
MEASUREMENT_FIELDS = (
    "heart_rate",
    "steps",
    "stress_level",
    "sleep_quality",
    "sleep_duration",
    "mood",
)


@dataclass(frozen=True)
class HealthDataPoint:
    """A single time-stamped measurement event.

    Every metric is optional: ``None`` means "not measured at this instant",
    never zero. Measurements are stored encrypted; ``timestamp`` and
    ``source`` stay in the clear for indexed range queries.
    """

    timestamp: datetime
    heart_rate: float | None = None        # beats/min
    steps: int | None = None
    stress_level: float | None = None      # 0-100
    sleep_quality: float | None = None     # 0-100
    mood: float | None = None              # 1-10
    sleep_duration: float | None = None    # hours
    source: DataSourceType = "manual"
    id: str = ""
    created_at: str = ""

    def measurements(self) -> dict[str, Any]:
        """Return the recorded measurements, omitting unmeasured fields."""
        values = {name: getattr(self, name) for name in MEASUREMENT_FIELDS}
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class WellnessPattern:
    """A recurring regularity in one user's metrics.

    ``id`` is derived from the pattern kind and its discriminator
    (e.g. ``tod_stress_15``), so a recomputed pattern overwrites the stored one.
    """

    id: str
    type: PatternType
    description: str
    confidence: float                      # 0-1
    metric: str                            # 'stress', 'sleep', 'sleep_stress', 'steps_sleep'
    discovered_at: datetime
    occurrences: int
    trigger: str | None = None
    day_of_week: int | None = None         # 0=Sunday .. 6=Saturday
    hour_of_day: int | None = None         # 0-23

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "confidence": round(self.confidence, 4),
            "metric": self.metric,
            "discovered_at": self.discovered_at.isoformat(),
            "occurrences": self.occurrences,
        }
        if self.trigger is not None:
            data["trigger"] = self.trigger
        if self.day_of_week is not None:
            data["day_of_week"] = self.day_of_week
        if self.hour_of_day is not None:
            data["hour_of_day"] = self.hour_of_day
        return data


@dataclass
class WellnessPrediction:
    """A short-lived, actionable inference derived from an active pattern.

    Predictions have no identity beyond their creation; ``id`` is a surrogate
    assigned by the store on insert.
    """

    description: str
    type: PredictionType
    confidence: float
    suggested_action: SuggestedAction
    expires_at: datetime
    created_at: datetime
    id: str = ""

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type,
            "confidence": round(self.confidence, 4),
            "suggested_action": self.suggested_action,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AnalysisResult:
    """Output of one analysis run for one user."""

    patterns: list[WellnessPattern] = field(default_factory=list)
    predictions: list[WellnessPrediction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "predictions": [p.to_dict() for p in self.predictions],
        }
