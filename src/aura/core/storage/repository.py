"""Wellness repository: history, pattern and prediction storage.

The repository mediates between domain objects (HealthDataPoint,
WellnessPattern, WellnessPrediction) and the SQLite database, using
MeasurementEncryptor to encrypt/decrypt raw measurements. It plays both
collaborator roles of the pattern engine: the history source
(:meth:`fetch_health_data`) and the pattern/prediction store.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

from aura.core.storage.database import DatabaseError, WellnessDatabase
from aura.core.storage.encryption import MeasurementEncryptor
from aura.core.storage.models import (
    HealthDataPoint,
    WellnessPattern,
    WellnessPrediction,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail (store unavailable, write rejected)."""


def to_storage_time(value: datetime) -> str:
    """Render an instant as a fixed-width UTC ISO 8601 string.

    Naive datetimes are taken to be UTC. The fixed width keeps lexical
    ordering in SQLite equal to chronological ordering.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_storage_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WellnessRepository:
    """Per-user repository for encrypted health history and derived insights.

    Usage::

        db = WellnessDatabase(":memory:")
        db.initialize()
        repo = WellnessRepository(db, MeasurementEncryptor(key="..."))

        repo.save_health_data("user-1", point)
        history = repo.fetch_health_data("user-1", since=thirty_days_ago)
        repo.save_analysis("user-1", patterns, predictions)
    """

    def __init__(self, database: WellnessDatabase, encryptor: MeasurementEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return to_storage_time(datetime.now(timezone.utc))

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run a write set that commits as a whole or not at all."""
        try:
            conn = self._db.connection
            with conn:
                yield conn
        except (sqlite3.Error, DatabaseError) as exc:
            logger.error("Wellness store %s failed: %s", operation, exc)
            raise RepositoryError(f"{operation} failed: {exc}") from exc

    @contextmanager
    def _reading(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Read from the store, reporting an unavailable or failing store as RepositoryError."""
        try:
            yield self._db.connection
        except (sqlite3.Error, DatabaseError) as exc:
            logger.error("Wellness store %s failed: %s", operation, exc)
            raise RepositoryError(f"{operation} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Health history
    # ------------------------------------------------------------------

    def _insert_health_data(
        self, conn: sqlite3.Connection, user_id: str, point: HealthDataPoint
    ) -> str:
        pid = point.id or self._new_id()
        conn.execute(
            """INSERT INTO health_data (id, user_id, timestamp, source, measurements_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                pid,
                user_id,
                to_storage_time(point.timestamp),
                point.source,
                self._enc.encrypt(point.measurements()),
                point.created_at or self._now_iso(),
            ),
        )
        return pid

    def save_health_data(self, user_id: str, point: HealthDataPoint) -> str:
        """Persist one measurement event.

        Returns:
            The stored point ID (generated when ``point.id`` is empty).
        """
        with self._transaction("save_health_data") as conn:
            pid = self._insert_health_data(conn, user_id, point)
        logger.debug("Saved health data point %s (source=%s)", pid, point.source)
        return pid

    def save_health_data_batch(
        self, user_id: str, points: Iterable[HealthDataPoint]
    ) -> list[str]:
        """Persist several measurement events in one transaction."""
        with self._transaction("save_health_data_batch") as conn:
            ids = [self._insert_health_data(conn, user_id, p) for p in points]
        logger.info("Saved batch of %d health data points", len(ids))
        return ids

    def fetch_health_data(self, user_id: str, since: datetime) -> list[HealthDataPoint]:
        """Return a user's points with ``timestamp > since``, oldest first."""
        with self._reading("fetch_health_data") as conn:
            rows = conn.execute(
                """SELECT * FROM health_data
                   WHERE user_id = ? AND timestamp > ?
                   ORDER BY timestamp ASC""",
                (user_id, to_storage_time(since)),
            ).fetchall()
        return [self._row_to_point(row) for row in rows]

    def get_recent_health_data(
        self,
        user_id: str,
        *,
        since: datetime,
        limit: int = 500,
    ) -> list[HealthDataPoint]:
        """Return a user's points with ``timestamp > since``, newest first."""
        with self._reading("get_recent_health_data") as conn:
            rows = conn.execute(
                """SELECT * FROM health_data
                   WHERE user_id = ? AND timestamp > ?
                   ORDER BY timestamp DESC LIMIT ?""",
                (user_id, to_storage_time(since), limit),
            ).fetchall()
        return [self._row_to_point(row) for row in rows]

    def get_latest_health_data(self, user_id: str) -> HealthDataPoint | None:
        with self._reading("get_latest_health_data") as conn:
            row = conn.execute(
                "SELECT * FROM health_data WHERE user_id = ? ORDER BY timestamp DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        return self._row_to_point(row) if row is not None else None

    def count_health_data(self, user_id: str | None = None) -> int:
        """Count stored points for one user, or for everyone when ``user_id`` is None."""
        with self._reading("count_health_data") as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) FROM health_data").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM health_data WHERE user_id = ?", (user_id,)
                ).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Patterns and predictions
    # ------------------------------------------------------------------

    @staticmethod
    def _upsert_pattern(
        conn: sqlite3.Connection, user_id: str, pattern: WellnessPattern
    ) -> None:
        conn.execute(
            """INSERT INTO wellness_patterns (
                   user_id, pattern_id, type, description, confidence, metric,
                   trigger_tag, day_of_week, hour_of_day, discovered_at, occurrences
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id, pattern_id) DO UPDATE SET
                   type = excluded.type,
                   description = excluded.description,
                   confidence = excluded.confidence,
                   metric = excluded.metric,
                   trigger_tag = excluded.trigger_tag,
                   day_of_week = excluded.day_of_week,
                   hour_of_day = excluded.hour_of_day,
                   discovered_at = excluded.discovered_at,
                   occurrences = excluded.occurrences""",
            (
                user_id,
                pattern.id,
                pattern.type,
                pattern.description,
                pattern.confidence,
                pattern.metric,
                pattern.trigger,
                pattern.day_of_week,
                pattern.hour_of_day,
                to_storage_time(pattern.discovered_at),
                pattern.occurrences,
            ),
        )

    def _insert_prediction(
        self, conn: sqlite3.Connection, user_id: str, prediction: WellnessPrediction
    ) -> str:
        pred_id = self._new_id()
        conn.execute(
            """INSERT INTO wellness_predictions (
                   id, user_id, description, type, confidence,
                   suggested_action, expires_at, created_at
               ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                pred_id,
                user_id,
                prediction.description,
                prediction.type,
                prediction.confidence,
                prediction.suggested_action,
                to_storage_time(prediction.expires_at),
                to_storage_time(prediction.created_at),
            ),
        )
        return pred_id

    def upsert_pattern(self, user_id: str, pattern: WellnessPattern) -> None:
        """Insert a pattern, or overwrite the stored one with the same id."""
        with self._transaction("upsert_pattern") as conn:
            self._upsert_pattern(conn, user_id, pattern)

    def insert_prediction(self, user_id: str, prediction: WellnessPrediction) -> str:
        """Insert a prediction as a new record and return its surrogate id."""
        with self._transaction("insert_prediction") as conn:
            return self._insert_prediction(conn, user_id, prediction)

    def save_analysis(
        self,
        user_id: str,
        patterns: list[WellnessPattern],
        predictions: list[WellnessPrediction],
    ) -> None:
        """Persist one run's patterns and predictions atomically.

        Either every upsert and insert is committed or, on failure, none is.

        Raises:
            RepositoryError: If the store rejects any write.
        """
        with self._transaction("save_analysis") as conn:
            for pattern in patterns:
                self._upsert_pattern(conn, user_id, pattern)
            prediction_ids = [
                self._insert_prediction(conn, user_id, prediction) for prediction in predictions
            ]
        for prediction, pred_id in zip(predictions, prediction_ids):
            prediction.id = pred_id
        logger.info(
            "Stored analysis: %d patterns upserted, %d predictions inserted",
            len(patterns),
            len(predictions),
        )

    def query_patterns(
        self, user_id: str, *, min_confidence: float = 0.5
    ) -> list[WellnessPattern]:
        """Stored patterns with ``confidence > min_confidence``, strongest first."""
        with self._reading("query_patterns") as conn:
            rows = conn.execute(
                """SELECT * FROM wellness_patterns
                   WHERE user_id = ? AND confidence > ?
                   ORDER BY confidence DESC, pattern_id ASC""",
                (user_id, min_confidence),
            ).fetchall()
        return [self._row_to_pattern(row) for row in rows]

    def query_predictions(self, user_id: str, *, now: datetime) -> list[WellnessPrediction]:
        """Stored predictions with ``expires_at > now``, soonest expiry first."""
        with self._reading("query_predictions") as conn:
            rows = conn.execute(
                """SELECT * FROM wellness_predictions
                   WHERE user_id = ? AND expires_at > ?
                   ORDER BY expires_at ASC""",
                (user_id, to_storage_time(now)),
            ).fetchall()
        return [self._row_to_prediction(row) for row in rows]

    # ------------------------------------------------------------------
    # Deletion / data retention
    # ------------------------------------------------------------------

    def purge_health_data_before(self, user_id: str, before: datetime) -> int:
        """Delete a user's points with ``timestamp < before``.

        Returns:
            Number of points deleted.
        """
        with self._transaction("purge_health_data_before") as conn:
            cursor = conn.execute(
                "DELETE FROM health_data WHERE user_id = ? AND timestamp < ?",
                (user_id, to_storage_time(before)),
            )
        count = cursor.rowcount
        logger.info("Purged %d health data points older than %s", count, before.isoformat())
        return count

    def purge_health_data_before_days(
        self, user_id: str, days: int, *, now: datetime | None = None
    ) -> int:
        """Convenience wrapper around :meth:`purge_health_data_before`."""
        now = now or datetime.now(timezone.utc)
        return self.purge_health_data_before(user_id, now - timedelta(days=days))

    def purge_expired_predictions(self, user_id: str, *, now: datetime) -> int:
        """Delete predictions that are no longer actionable (``expires_at <= now``)."""
        with self._transaction("purge_expired_predictions") as conn:
            cursor = conn.execute(
                "DELETE FROM wellness_predictions WHERE user_id = ? AND expires_at <= ?",
                (user_id, to_storage_time(now)),
            )
        return cursor.rowcount

    def delete_all_user_data(self, user_id: str) -> dict[str, int]:
        """Delete ALL of a user's history, patterns and predictions.

        Returns:
            Rows deleted per table.
        """
        counts: dict[str, int] = {}
        with self._transaction("delete_all_user_data") as conn:
            for table in ("health_data", "wellness_patterns", "wellness_predictions"):
                # Table names come from the fixed tuple above
                cursor = conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
                counts[table] = cursor.rowcount
        logger.warning("Deleted all wellness data for a user: %s", counts)
        return counts

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_point(self, row: Any) -> HealthDataPoint:
        """Convert a database row to a HealthDataPoint with decrypted measurements."""
        measurements = self._enc.decrypt(row["measurements_enc"])
        return HealthDataPoint(
            timestamp=from_storage_time(row["timestamp"]),
            heart_rate=measurements.get("heart_rate"),
            steps=measurements.get("steps"),
            stress_level=measurements.get("stress_level"),
            sleep_quality=measurements.get("sleep_quality"),
            mood=measurements.get("mood"),
            sleep_duration=measurements.get("sleep_duration"),
            source=row["source"],
            id=row["id"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_pattern(row: Any) -> WellnessPattern:
        return WellnessPattern(
            id=row["pattern_id"],
            type=row["type"],
            description=row["description"],
            confidence=row["confidence"],
            metric=row["metric"],
            discovered_at=from_storage_time(row["discovered_at"]),
            occurrences=row["occurrences"],
            trigger=row["trigger_tag"],
            day_of_week=row["day_of_week"],
            hour_of_day=row["hour_of_day"],
        )

    @staticmethod
    def _row_to_prediction(row: Any) -> WellnessPrediction:
        return WellnessPrediction(
            id=row["id"],
            description=row["description"],
            type=row["type"],
            confidence=row["confidence"],
            suggested_action=row["suggested_action"],
            expires_at=from_storage_time(row["expires_at"]),
            created_at=from_storage_time(row["created_at"]),
        )
