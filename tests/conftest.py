"""Shared test fixtures for Aura Wellness tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("ANALYSIS_TIMEZONE", "UTC")
    monkeypatch.setenv("DEFAULT_USER_ID", "local")
    monkeypatch.setenv("HISTORY_WINDOW_DAYS", "30")
    monkeypatch.setenv("MIN_DATA_POINTS", "7")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

# Sunday 2026-03-01, 12:00 UTC. Anchor for deterministic "now".
FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def wellness_db():
    """Create an in-memory WellnessDatabase for testing."""
    from aura.core.storage.database import WellnessDatabase

    db = WellnessDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def measurement_encryptor():
    """Create a MeasurementEncryptor with a freshly generated key."""
    from aura.core.storage.encryption import MeasurementEncryptor

    return MeasurementEncryptor(MeasurementEncryptor.generate_key())


@pytest.fixture
def wellness_repository(wellness_db, measurement_encryptor):
    """Create a WellnessRepository backed by in-memory SQLite."""
    from aura.core.storage.repository import WellnessRepository

    return WellnessRepository(wellness_db, measurement_encryptor)


@pytest.fixture
def audit_logger(wellness_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from aura.core.audit.logger import AuditLogger

    return AuditLogger(wellness_db)
