"""Tests for the PatternEngine analysis and profile paths."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from aura.core.storage.models import HealthDataPoint
from aura.core.storage.repository import RepositoryError
from aura.domains.wellness.connectors import HealthHistorySource, PatternStore
from aura.domains.wellness.domain_logic.pattern_engine import PatternEngine
from aura.domains.wellness.domain_logic.wellness_profile import STILL_LEARNING_SUMMARY

# Sunday, 13:00 UTC: two hours before the seeded 3 PM stress spike
NOW = datetime(2026, 3, 1, 13, 0, tzinfo=timezone.utc)


def _seed_afternoon_spike(repository, user_id: str = "u1", days: int = 14) -> None:
    points = []
    for d in range(1, days + 1):
        day = (NOW - timedelta(days=d)).replace(hour=0)
        points.append(HealthDataPoint(timestamp=day.replace(hour=15), stress_level=90))
        points.append(HealthDataPoint(timestamp=day.replace(hour=9), stress_level=30))
    repository.save_health_data_batch(user_id, points)


def _engine(repository, **kwargs) -> PatternEngine:
    return PatternEngine(repository, repository, clock=lambda: NOW, **kwargs)


class _ListHistory:
    def __init__(self, points):
        self.points = points

    def fetch_health_data(self, user_id, since):
        return [p for p in self.points if p.timestamp > since]


class _FailingStore:
    def save_analysis(self, user_id, patterns, predictions):
        raise RepositoryError("save_analysis failed: disk I/O error")

    def count_health_data(self, user_id=None):
        return 0

    def query_patterns(self, user_id, *, min_confidence=0.5):
        return []

    def query_predictions(self, user_id, *, now):
        return []


class TestCollaborators:
    def test_repository_satisfies_both_roles(self, wellness_repository):
        assert isinstance(wellness_repository, HealthHistorySource)
        assert isinstance(wellness_repository, PatternStore)


class TestAnalyze:
    def test_too_little_data_returns_empty_and_writes_nothing(self, wellness_repository):
        wellness_repository.save_health_data_batch("u1", [
            HealthDataPoint(timestamp=NOW - timedelta(hours=h), stress_level=90)
            for h in range(1, 7)
        ])

        result = _engine(wellness_repository).analyze("u1")

        assert result.patterns == []
        assert result.predictions == []
        assert wellness_repository.query_patterns("u1", min_confidence=0.0) == []
        assert wellness_repository.query_predictions("u1", now=NOW) == []

    def test_points_outside_window_not_counted(self, wellness_repository):
        wellness_repository.save_health_data_batch("u1", [
            HealthDataPoint(timestamp=NOW - timedelta(days=40, hours=h), stress_level=90)
            for h in range(20)
        ])
        assert _engine(wellness_repository).analyze("u1").patterns == []

    def test_minimum_reached_without_patterns(self, wellness_repository):
        wellness_repository.save_health_data_batch("u1", [
            HealthDataPoint(timestamp=NOW - timedelta(hours=h), steps=1000)
            for h in range(1, 8)
        ])
        result = _engine(wellness_repository).analyze("u1")
        assert result.to_dict() == {"patterns": [], "predictions": []}

    def test_discovers_and_persists(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)

        result = _engine(wellness_repository).analyze("u1")

        assert [p.id for p in result.patterns] == ["tod_stress_15"]
        assert result.patterns[0].discovered_at == NOW
        [prediction] = result.predictions
        assert prediction.suggested_action == "breathing_exercise"
        assert prediction.expires_at == NOW + timedelta(hours=2)
        assert prediction.id

        stored = wellness_repository.query_patterns("u1")
        assert [p.id for p in stored] == ["tod_stress_15"]

    def test_rerun_keeps_pattern_ids_and_accumulates_predictions(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        engine = _engine(wellness_repository)

        engine.analyze("u1")
        engine.analyze("u1")

        assert len(wellness_repository.query_patterns("u1")) == 1
        assert len(wellness_repository.query_predictions("u1", now=NOW)) == 2

    def test_explicit_now_overrides_clock(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        result = _engine(wellness_repository).analyze("u1", now=NOW.replace(hour=10))
        assert result.predictions == []

    def test_users_analysed_independently(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository, user_id="u1")
        engine = _engine(wellness_repository)

        assert engine.analyze("u2").patterns == []
        assert wellness_repository.query_patterns("u2") == []

    def test_store_failure_propagates(self):
        history = _ListHistory([
            HealthDataPoint(timestamp=NOW - timedelta(hours=h), stress_level=50)
            for h in range(1, 10)
        ])
        engine = PatternEngine(history, _FailingStore(), clock=lambda: NOW)

        with pytest.raises(RepositoryError):
            engine.analyze("u1")

    def test_custom_thresholds(self, wellness_repository):
        wellness_repository.save_health_data_batch("u1", [
            HealthDataPoint(timestamp=NOW - timedelta(hours=h), stress_level=50)
            for h in range(1, 8)
        ])
        engine = _engine(wellness_repository, min_data_points=10)
        assert engine.analyze("u1").to_dict() == {"patterns": [], "predictions": []}


class TestProfile:
    def test_empty_profile(self, wellness_repository):
        profile = _engine(wellness_repository).get_profile("u1")

        assert profile.patterns == []
        assert profile.predictions == []
        assert profile.data_points == 0
        assert profile.profile_strength == "building"
        assert profile.summary == STILL_LEARNING_SUMMARY

    def test_established_user_without_patterns(self, wellness_repository):
        wellness_repository.save_health_data_batch("u1", [
            HealthDataPoint(timestamp=NOW - timedelta(hours=h), steps=500)
            for h in range(1, 51)
        ])

        profile = _engine(wellness_repository).get_profile("u1")

        assert profile.data_points == 50
        assert profile.profile_strength == "established"
        assert profile.summary == STILL_LEARNING_SUMMARY

    def test_profile_after_analysis(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        engine = _engine(wellness_repository)
        engine.analyze("u1")

        profile = engine.get_profile("u1")

        assert profile.data_points == 28
        assert profile.profile_strength == "emerging"
        assert [p.id for p in profile.patterns] == ["tod_stress_15"]
        assert len(profile.predictions) == 1
        assert profile.summary == (
            "I've discovered 1 pattern in your wellness data. "
            "Your stress tends to spike around 3 PM."
        )

    def test_expired_predictions_hidden(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        engine = _engine(wellness_repository)
        engine.analyze("u1")

        profile = engine.get_profile("u1", now=NOW + timedelta(hours=3))
        assert profile.predictions == []
        assert len(profile.patterns) == 1

    def test_profile_does_not_recompute(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        profile = _engine(wellness_repository).get_profile("u1")
        assert profile.patterns == []
        assert profile.data_points == 28

    def test_to_dict_shape(self, wellness_repository):
        data = _engine(wellness_repository).get_profile("u1").to_dict()
        assert set(data) == {"patterns", "predictions", "summary", "data_points", "profile_strength"}


class TestUnavailableStore:
    def test_analyze_on_closed_store(self, wellness_repository, wellness_db):
        wellness_db.close()
        with pytest.raises(RepositoryError):
            _engine(wellness_repository).analyze("u1")

    def test_profile_on_closed_store(self, wellness_repository, wellness_db):
        wellness_db.close()
        with pytest.raises(RepositoryError):
            _engine(wellness_repository).get_profile("u1")


class TestNaiveNow:
    def test_naive_now_is_utc_in_every_step(self, wellness_repository):
        # 15:00 UTC readings land on 10 AM in New York
        points = []
        for d in range(1, 15):
            day = NOW - timedelta(days=d)
            points.append(HealthDataPoint(timestamp=day.replace(hour=15), stress_level=90))
            points.append(HealthDataPoint(timestamp=day.replace(hour=3), stress_level=30))
        wellness_repository.save_health_data_batch("u1", points)
        engine = _engine(wellness_repository, tz=ZoneInfo("America/New_York"))

        # 13:00 UTC is 8 AM in New York, two hours before the spike
        result = engine.analyze("u1", now=NOW.replace(tzinfo=None))

        assert [p.id for p in result.patterns] == ["tod_stress_10"]
        [prediction] = result.predictions
        assert prediction.expires_at == NOW + timedelta(hours=2)
        assert result.patterns[0].discovered_at == NOW

    def test_naive_now_in_profile(self, wellness_repository):
        _seed_afternoon_spike(wellness_repository)
        engine = _engine(wellness_repository)
        engine.analyze("u1")

        profile = engine.get_profile("u1", now=(NOW + timedelta(hours=1)).replace(tzinfo=None))
        assert len(profile.predictions) == 1
