"""MCP tools for wellness data management (deletion, purge, retention).

These tools implement the user's right to delete their data. All deletions
are audit-logged.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from aura.core.audit.logger import AuditLogger
    from aura.core.storage.repository import WellnessRepository

logger = logging.getLogger(__name__)


def register_data_management_tools(
    mcp: FastMCP,
    repository: WellnessRepository,
    *,
    default_user_id: str,
    clock: Callable[[], datetime],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data management tools on the MCP server."""

    @mcp.tool
    async def purge_old_health_data(
        ctx: Context,
        older_than_days: int = 365,
        user_id: str | None = None,
    ) -> str:
        """Delete recorded measurements older than a number of days.

        Patterns already learned from that data stay until the next analysis.

        Args:
            older_than_days: Delete data older than this many days (default: 365).
            user_id: Optional user override (defaults to the local user).
        """
        if older_than_days < 1:
            return json.dumps({
                "status": "error",
                "message": "older_than_days must be at least 1.",
            })

        start_time = time.monotonic()
        uid = user_id or default_user_id
        count = repository.purge_health_data_before_days(uid, older_than_days, now=clock())
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None and count > 0:
            audit_logger.log_data_delete(
                tool_name="purge_old_health_data",
                user_id=uid,
                count=count,
                metadata={"older_than_days": older_than_days},
            )

        return json.dumps({
            "status": "purged",
            "points_deleted": count,
            "older_than_days": older_than_days,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def purge_expired_predictions(
        ctx: Context,
        user_id: str | None = None,
    ) -> str:
        """Delete predictions that have already expired.

        Args:
            user_id: Optional user override (defaults to the local user).
        """
        uid = user_id or default_user_id
        count = repository.purge_expired_predictions(uid, now=clock())

        if audit_logger is not None and count > 0:
            audit_logger.log_data_delete(
                tool_name="purge_expired_predictions",
                user_id=uid,
                count=count,
            )

        return json.dumps({"status": "purged", "predictions_deleted": count})

    @mcp.tool
    async def delete_all_wellness_data(
        ctx: Context,
        confirm: str = "",
        user_id: str | None = None,
    ) -> str:
        """Permanently delete ALL of your measurements, patterns and predictions.

        This cannot be undone.

        Args:
            confirm: Must be exactly 'DELETE_ALL' to proceed. Safety gate.
            user_id: Optional user override (defaults to the local user).
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete all wellness data, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        start_time = time.monotonic()
        uid = user_id or default_user_id
        counts = repository.delete_all_user_data(uid)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_all_wellness_data",
                user_id=uid,
                count=sum(counts.values()),
                metadata={"confirmed": True, **counts},
            )

        return json.dumps({
            "status": "all_deleted",
            "points_deleted": counts["health_data"],
            "patterns_deleted": counts["wellness_patterns"],
            "predictions_deleted": counts["wellness_predictions"],
            "duration_ms": round(elapsed_ms, 1),
            "message": "All wellness data has been permanently deleted.",
        })
