"""Unit tests for the retention, deletion and audit trail MCP tools."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest
from fastmcp import Client

from aura.core.server.app import create_app
from aura.core.storage.models import HealthDataPoint, WellnessPattern, WellnessPrediction

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _call(client, tool: str, args: dict | None = None) -> dict:
    result = await client.call_tool(tool, args or {})
    return json.loads(result.content[0].text)


def _prediction(expires_in_hours: float) -> WellnessPrediction:
    return WellnessPrediction(
        description="Sundays tend to be more stressful for you. I'm here if you need to talk.",
        type="proactive_checkin",
        confidence=0.7,
        suggested_action="check_in",
        expires_at=NOW + timedelta(hours=expires_in_hours),
        created_at=NOW - timedelta(days=1),
    )


def _pattern() -> WellnessPattern:
    return WellnessPattern(
        id="dow_stress_0",
        type="day_of_week",
        description="Sundays tend to be more stressful for you",
        confidence=0.7,
        metric="stress",
        day_of_week=0,
        discovered_at=NOW,
        occurrences=5,
    )


@pytest.fixture
def client(wellness_db, wellness_repository):
    mcp = create_app(
        database_override=wellness_db,
        repository_override=wellness_repository,
        clock_override=lambda: NOW,
    )
    return Client(mcp)


class TestPurgeOldHealthData:
    def test_deletes_only_older_points(self, client, wellness_repository, audit_logger):
        wellness_repository.save_health_data_batch("local", [
            HealthDataPoint(timestamp=NOW - timedelta(days=100), steps=1),
            HealthDataPoint(timestamp=NOW - timedelta(days=5), steps=2),
        ])

        async def _check():
            async with client:
                return await _call(client, "purge_old_health_data", {"older_than_days": 90})
        data = _run(_check())

        assert data["status"] == "purged"
        assert data["points_deleted"] == 1
        assert wellness_repository.count_health_data("local") == 1

        [event] = audit_logger.get_events(action="data_delete")
        assert json.loads(event["metadata_json"])["records_deleted"] == 1

    def test_rejects_non_positive_days(self, client):
        async def _check():
            async with client:
                return await _call(client, "purge_old_health_data", {"older_than_days": 0})
        data = _run(_check())
        assert data["status"] == "error"

    def test_nothing_to_delete_is_not_audited(self, client, audit_logger):
        async def _check():
            async with client:
                return await _call(client, "purge_old_health_data")
        assert _run(_check())["points_deleted"] == 0
        assert audit_logger.get_events(action="data_delete") == []


class TestPurgeExpiredPredictions:
    def test_removes_expired_only(self, client, wellness_repository):
        wellness_repository.insert_prediction("local", _prediction(-2))
        wellness_repository.insert_prediction("local", _prediction(6))

        async def _check():
            async with client:
                return await _call(client, "purge_expired_predictions")
        data = _run(_check())

        assert data == {"status": "purged", "predictions_deleted": 1}
        assert len(wellness_repository.query_predictions("local", now=NOW)) == 1


class TestDeleteAllWellnessData:
    def test_requires_confirmation(self, client, wellness_repository):
        wellness_repository.save_health_data("local", HealthDataPoint(timestamp=NOW, mood=6))

        async def _check():
            async with client:
                return await _call(client, "delete_all_wellness_data", {"confirm": "yes"})
        data = _run(_check())

        assert data["status"] == "cancelled"
        assert wellness_repository.count_health_data("local") == 1

    def test_deletes_everything_for_user(self, client, wellness_repository):
        wellness_repository.save_health_data("local", HealthDataPoint(timestamp=NOW, mood=6))
        wellness_repository.save_health_data("other", HealthDataPoint(timestamp=NOW, mood=6))
        wellness_repository.save_analysis("local", [_pattern()], [_prediction(6)])

        async def _check():
            async with client:
                return await _call(client, "delete_all_wellness_data", {"confirm": "DELETE_ALL"})
        data = _run(_check())

        assert data["status"] == "all_deleted"
        assert data["points_deleted"] == 1
        assert data["patterns_deleted"] == 1
        assert data["predictions_deleted"] == 1
        assert wellness_repository.count_health_data("local") == 0
        assert wellness_repository.count_health_data("other") == 1
        assert wellness_repository.query_patterns("local") == []


class TestAuditSummary:
    def test_summarises_recent_calls(self, client):
        async def _check():
            async with client:
                await _call(client, "record_health_data", {"mood": 7})
                await _call(client, "latest_health_data")
                return await _call(client, "audit_summary")
        data = _run(_check())

        assert data["status"] == "ok"
        assert data["total_events"] == 1
        assert data["failed_events"] == 0
        assert data["recent_events"][0]["tool_name"] == "record_health_data"
        assert "no health data" in data["note"]
