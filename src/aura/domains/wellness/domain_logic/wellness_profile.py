"""Profile strength classification and the wellness profile summary text."""

from __future__ import annotations

from aura.core.storage.models import WellnessPattern
from aura.domains.wellness.domain_logic.pattern_models import (
    PROFILE_SUMMARY_PATTERNS,
    ProfileStrength,
)

STILL_LEARNING_SUMMARY = (
    "I'm still learning your patterns. Keep tracking and I'll have insights "
    "for you within a week or two!"
)


def classify_profile_strength(data_points: int) -> ProfileStrength:
    """Map the total number of stored data points to a maturity label."""
    if data_points < 14:
        return "building"
    if data_points < 30:
        return "emerging"
    if data_points < 60:
        return "established"
    return "strong"


def build_profile_summary(patterns: list[WellnessPattern]) -> str:
    """Plain-language summary of the strongest known patterns.

    ``patterns`` is expected to be sorted strongest first.
    """
    if not patterns:
        return STILL_LEARNING_SUMMARY

    plural = "s" if len(patterns) > 1 else ""
    highlights = ". ".join(p.description for p in patterns[:PROFILE_SUMMARY_PATTERNS])
    return (
        f"I've discovered {len(patterns)} pattern{plural} in your wellness data. "
        f"{highlights}."
    )
