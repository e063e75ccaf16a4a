"""MCP tools for recording and reviewing raw health measurements.

Measurements come from wearables (Apple Health, Google Fit) or manual entry
and are persisted to the encrypted wellness data bank, where the pattern
engine picks them up.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Annotated

from fastmcp import Context, FastMCP
from pydantic import BaseModel, Field

from aura.core.storage.models import DataSourceType, HealthDataPoint

if TYPE_CHECKING:
    from aura.core.audit.logger import AuditLogger
    from aura.core.storage.repository import WellnessRepository

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100
MAX_LIST_RESULTS = 500

HeartRate = Annotated[float | None, Field(ge=30, le=250, description="Heart rate in BPM.")]
Steps = Annotated[int | None, Field(ge=0, description="Step count.")]
StressLevel = Annotated[float | None, Field(ge=0, le=100, description="Stress level 0-100.")]
SleepQuality = Annotated[float | None, Field(ge=0, le=100, description="Sleep quality 0-100.")]
SleepDuration = Annotated[float | None, Field(ge=0, le=24, description="Sleep duration in hours.")]
Mood = Annotated[float | None, Field(ge=1, le=10, description="Mood 1-10.")]
Source = DataSourceType


class HealthDataEntry(BaseModel):
    """One measurement event in a batch upload."""

    heart_rate: HeartRate = None
    steps: Steps = None
    stress_level: StressLevel = None
    sleep_quality: SleepQuality = None
    sleep_duration: SleepDuration = None
    mood: Mood = None
    source: Source = "manual"
    timestamp: datetime | None = None

    def to_point(self, default_timestamp: datetime) -> HealthDataPoint:
        return HealthDataPoint(
            timestamp=self.timestamp or default_timestamp,
            heart_rate=self.heart_rate,
            steps=self.steps,
            stress_level=self.stress_level,
            sleep_quality=self.sleep_quality,
            sleep_duration=self.sleep_duration,
            mood=self.mood,
            source=self.source,
        )


def stress_label(level: float) -> str:
    """Coarse label for a 0-100 stress level."""
    if level < 25:
        return "low"
    if level < 50:
        return "moderate"
    if level < 75:
        return "high"
    return "very_high"


def sleep_label(quality: float) -> str:
    """Coarse label for a 0-100 sleep quality score."""
    if quality < 25:
        return "poor"
    if quality < 50:
        return "fair"
    if quality < 75:
        return "good"
    return "excellent"


def _parse_timestamp(value: str, default: datetime) -> datetime:
    """Parse an ISO 8601 timestamp; empty means ``default``. Naive values are UTC."""
    if not value:
        return default
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _point_to_dict(point: HealthDataPoint) -> dict:
    return {
        "id": point.id,
        "timestamp": point.timestamp.isoformat(),
        "source": point.source,
        **point.measurements(),
    }


def register_health_data_tools(
    mcp: FastMCP,
    repository: WellnessRepository,
    *,
    default_user_id: str,
    clock: Callable[[], datetime],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register health data entry and review tools on the MCP server."""

    @mcp.tool
    async def record_health_data(
        ctx: Context,
        heart_rate: HeartRate = None,
        steps: Steps = None,
        stress_level: StressLevel = None,
        sleep_quality: SleepQuality = None,
        sleep_duration: SleepDuration = None,
        mood: Mood = None,
        source: Source = "manual",
        timestamp: str = "",
        user_id: str | None = None,
    ) -> str:
        """Record one health measurement in your wellness data bank.

        Any subset of measurements may be given; at least one is required.

        Args:
            heart_rate: Heart rate in BPM (30-250).
            steps: Step count.
            stress_level: Stress level (0-100).
            sleep_quality: Sleep quality score (0-100).
            sleep_duration: Hours slept (0-24).
            mood: Mood rating (1-10).
            source: Where the reading came from: 'apple_health', 'google_fit', 'manual'.
            timestamp: When it was measured (ISO 8601). Defaults to now.
            user_id: Optional user override (defaults to the local user).
        """
        start_time = time.monotonic()
        uid = user_id or default_user_id

        try:
            measured_at = _parse_timestamp(timestamp, clock())
        except ValueError:
            return json.dumps({
                "status": "error",
                "message": f"Invalid timestamp {timestamp!r}; expected ISO 8601.",
            })

        point = HealthDataPoint(
            timestamp=measured_at,
            heart_rate=heart_rate,
            steps=steps,
            stress_level=stress_level,
            sleep_quality=sleep_quality,
            sleep_duration=sleep_duration,
            mood=mood,
            source=source,
        )
        recorded = list(point.measurements().keys())
        if not recorded:
            return json.dumps({"status": "error", "message": "No measurements provided"})

        pid = repository.save_health_data(uid, point)

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="record_health_data",
                tool_input={"fields": recorded, "source": source},
                user_id=uid,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )

        logger.info("Health data saved: %s from %s (point %s)", recorded, source, pid)
        return json.dumps({
            "status": "saved",
            "point_id": pid,
            "recorded": recorded,
            "timestamp": measured_at.isoformat(),
        })

    @mcp.tool
    async def record_health_data_batch(
        ctx: Context,
        entries: Annotated[list[HealthDataEntry], Field(max_length=MAX_BATCH_SIZE)],
        user_id: str | None = None,
    ) -> str:
        """Record up to 100 health measurements at once (e.g. a wearable sync).

        The batch is stored all-or-nothing.

        Args:
            entries: Measurement events; entries without a timestamp are stamped now.
            user_id: Optional user override (defaults to the local user).
        """
        start_time = time.monotonic()
        uid = user_id or default_user_id
        now = clock()

        points = [entry.to_point(now) for entry in entries]
        ids = repository.save_health_data_batch(uid, points)

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="record_health_data_batch",
                tool_input={"count": len(ids)},
                user_id=uid,
                duration_ms=(time.monotonic() - start_time) * 1000,
                metadata={"count": len(ids)},
            )

        return json.dumps({"status": "saved", "count": len(ids)})

    @mcp.tool
    async def list_health_data(
        ctx: Context,
        days: Annotated[int, Field(ge=1)] = 7,
        user_id: str | None = None,
    ) -> str:
        """List recorded health measurements, newest first.

        Args:
            days: How many days back to look (default: 7).
            user_id: Optional user override (defaults to the local user).
        """
        uid = user_id or default_user_id
        since = clock() - timedelta(days=days)
        points = repository.get_recent_health_data(uid, since=since, limit=MAX_LIST_RESULTS)

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="list_health_data",
                tool_input={"days": days},
                user_id=uid,
                metadata={"count": len(points)},
            )

        return json.dumps({
            "status": "ok",
            "count": len(points),
            "data": [_point_to_dict(p) for p in points],
        }, indent=2)

    @mcp.tool
    async def latest_health_data(
        ctx: Context,
        user_id: str | None = None,
    ) -> str:
        """Show your most recent measurement with plain-language stress and sleep labels.

        Args:
            user_id: Optional user override (defaults to the local user).
        """
        uid = user_id or default_user_id
        point = repository.get_latest_health_data(uid)
        if point is None:
            return json.dumps({"status": "ok", "data": None})

        data = _point_to_dict(point)
        if point.stress_level is not None:
            data["stress_label"] = stress_label(point.stress_level)
        if point.sleep_quality is not None:
            data["sleep_label"] = sleep_label(point.sleep_quality)
        return json.dumps({"status": "ok", "data": data}, indent=2)
