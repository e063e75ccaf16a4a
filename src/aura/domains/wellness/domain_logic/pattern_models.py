"""Wellness pattern domain constants and read-side result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from aura.core.storage.models import WellnessPattern, WellnessPrediction

ProfileStrength = Literal["building", "emerging", "established", "strong"]

# 0=Sunday .. 6=Saturday
DAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

# ---------------------------------------------------------------------------
# Detector thresholds
# ---------------------------------------------------------------------------

# Time of day: two weeks of daily readings (~14) gives near-maximal confidence
TOD_MIN_SAMPLES = 5
TOD_ELEVATION_RATIO = 1.3
TOD_CONFIDENCE_SAMPLES = 14
TOD_MAX_CONFIDENCE = 0.95

# Day of week
DOW_MIN_SAMPLES = 3
DOW_STRESS_RATIO = 1.25
DOW_SLEEP_RATIO = 0.8
DOW_CONFIDENCE_SAMPLES = 8
DOW_MAX_CONFIDENCE = 0.9

# Correlations
CORR_MIN_TRIGGERS = 5
CORR_MIN_RATIO = 0.6
CORR_MAX_CONFIDENCE = 0.9
CORR_MIN_GAP_HOURS = 8
CORR_MAX_GAP_HOURS = 36
POOR_SLEEP_BELOW = 40
HIGH_STRESS_ABOVE = 60
ACTIVE_STEPS_ABOVE = 8000
GOOD_SLEEP_ABOVE = 70

# Predictions
PREDICTION_MIN_CONFIDENCE = 0.5
PREDICTION_LOOKAHEAD_HOURS = 2
CHECKIN_TTL_HOURS = 24
SLEEP_PREP_TTL_HOURS = 12

# Read side
PROFILE_MIN_CONFIDENCE = 0.5
PROFILE_SUMMARY_PATTERNS = 3


def format_hour(hour: int) -> str:
    """Render an hour 0-23 on a 12-hour clock ("12 AM", "3 PM")."""
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


@dataclass
class WellnessProfile:
    """Read-side aggregate of what has been learned about one user."""

    patterns: list[WellnessPattern] = field(default_factory=list)
    predictions: list[WellnessPrediction] = field(default_factory=list)
    summary: str = ""
    data_points: int = 0
    profile_strength: ProfileStrength = "building"

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "predictions": [p.to_dict() for p in self.predictions],
            "summary": self.summary,
            "data_points": self.data_points,
            "profile_strength": self.profile_strength,
        }
