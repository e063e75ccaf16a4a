"""Aura Wellness MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastmcp import FastMCP

from aura.core.audit.logger import AuditLogger
from aura.core.config.settings import get_settings
from aura.core.storage.database import WellnessDatabase
from aura.core.storage.encryption import EncryptionError, MeasurementEncryptor
from aura.core.storage.repository import WellnessRepository

logger = logging.getLogger(__name__)

SERVER_VERSION = "0.1.0"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    *,
    database_override: WellnessDatabase | None = None,
    repository_override: WellnessRepository | None = None,
    clock_override: Callable[[], datetime] | None = None,
) -> FastMCP:
    """Create and configure the Aura Wellness MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted storage layer (wellness data bank)
    3. Creates the audit logger and the pattern engine
    4. Registers all tools

    ``database_override`` and ``repository_override`` are used together by
    tests to run against an in-memory store; ``clock_override`` pins "now".
    """
    settings = get_settings()
    clock = clock_override or _utc_now

    # --- Server instance ---
    server = FastMCP(
        "Aura Wellness",
        instructions=(
            "Aura predictive wellness server. Records time-stamped health "
            "measurements, discovers recurring stress and sleep patterns, and "
            "surfaces short-lived predictions with a suggested action."
        ),
    )

    # --- Initialize encrypted storage (wellness data bank) ---
    database: WellnessDatabase | None = database_override
    repository: WellnessRepository | None = None
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = MeasurementEncryptor(settings.encryption_key)
            database = WellnessDatabase(settings.db_path)
            database.initialize()
            repository = WellnessRepository(database, encryptor)
            logger.info(
                "Wellness data bank initialized: %s (schema v%d)",
                settings.db_path,
                database.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence — wellness tools disabled")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured — running without persistence. "
            "Set ENCRYPTION_KEY to enable the wellness data bank."
        )

    audit_logger = AuditLogger(database) if database is not None else None

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "Aura Wellness",
            "version": SERVER_VERSION,
            "storage_enabled": repository is not None,
            "analysis_timezone": settings.analysis_timezone,
        }
        if repository is not None:
            status["data_points_stored"] = repository.count_health_data()
        return status

    if repository is None:
        return server

    from aura.domains.wellness.domain_logic.pattern_engine import PatternEngine
    from aura.domains.wellness.tools.data_management_tools import (
        register_data_management_tools,
    )
    from aura.domains.wellness.tools.health_data_tools import register_health_data_tools
    from aura.domains.wellness.tools.pattern_tools import register_pattern_tools

    # --- Health data entry tools ---
    register_health_data_tools(
        server,
        repository,
        default_user_id=settings.default_user_id,
        clock=clock,
        audit_logger=audit_logger,
    )
    logger.info("Health data tools registered")

    # --- Pattern engine tools ---
    engine = PatternEngine(
        history=repository,
        store=repository,
        tz=ZoneInfo(settings.analysis_timezone),
        history_days=settings.history_window_days,
        min_data_points=settings.min_data_points,
        clock=clock,
    )
    register_pattern_tools(
        server,
        engine,
        default_user_id=settings.default_user_id,
        audit_logger=audit_logger,
    )
    logger.info("Wellness pattern tools registered")

    # --- Data management tools ---
    register_data_management_tools(
        server,
        repository,
        default_user_id=settings.default_user_id,
        clock=clock,
        audit_logger=audit_logger,
    )

    if audit_logger is not None:
        from aura.domains.wellness.tools.audit_tools import register_audit_tools

        register_audit_tools(server, audit_logger)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this attribute is accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
