"""MCP tools for the predictive wellness pattern engine.

``analyze_wellness_patterns`` recomputes patterns from the last 30 days of
history and stores them; ``wellness_profile`` only reads what earlier runs
stored.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from aura.core.storage.repository import RepositoryError

if TYPE_CHECKING:
    from aura.core.audit.logger import AuditLogger
    from aura.domains.wellness.domain_logic.pattern_engine import PatternEngine

logger = logging.getLogger(__name__)


def register_pattern_tools(
    mcp: FastMCP,
    engine: PatternEngine,
    *,
    default_user_id: str,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register pattern analysis and wellness profile tools on the MCP server."""

    @mcp.tool
    async def analyze_wellness_patterns(
        ctx: Context,
        user_id: str | None = None,
    ) -> str:
        """Discover recurring wellness patterns and upcoming predictions.

        Looks at the last 30 days of recorded data for stress spikes by hour,
        difficult weekdays, and links between sleep, activity and stress.
        Needs at least 7 data points; with fewer, nothing is returned yet.

        Args:
            user_id: Optional user override (defaults to the local user).
        """
        start_time = time.monotonic()
        uid = user_id or default_user_id

        try:
            result = engine.analyze(uid)
        except RepositoryError as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name="analyze_wellness_patterns",
                    tool_input={"user_id": uid},
                    user_id=uid,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            logger.error("Pattern analysis failed in the store: %s", exc)
            raise

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="analyze_wellness_patterns",
                tool_input={"user_id": uid},
                user_id=uid,
                duration_ms=(time.monotonic() - start_time) * 1000,
                metadata={
                    "patterns": len(result.patterns),
                    "predictions": len(result.predictions),
                },
            )

        return json.dumps(result.to_dict(), indent=2)

    @mcp.tool
    async def wellness_profile(
        ctx: Context,
        user_id: str | None = None,
    ) -> str:
        """Show what has been learned so far: patterns, active predictions, and profile strength.

        Does not re-run the analysis.

        Args:
            user_id: Optional user override (defaults to the local user).
        """
        start_time = time.monotonic()
        uid = user_id or default_user_id

        try:
            profile = engine.get_profile(uid)
        except RepositoryError as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name="wellness_profile",
                    tool_input={"user_id": uid},
                    user_id=uid,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            logger.error("Wellness profile could not be read: %s", exc)
            raise

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="wellness_profile",
                tool_input={"user_id": uid},
                user_id=uid,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )

        return json.dumps(profile.to_dict(), indent=2)
