from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from infrastructure.database.pagination import validate_pagination
from infrastructure.database.utils import row_to_dict

logger = logging.getLogger(__name__)


class SensorOperations:
    """Sensor and moisture-reading helpers mixed into the SQLite handler.

    These helpers let ``sqlite3.Error`` propagate; ``SensorRepository`` turns
    them into ``PersistenceFailure``.
    """

    # --- Sensors ---------------------------------------------------------------
    def sensor_exists(self, sensor_id: str) -> bool:
        db = self.get_db()
        cur = db.execute("SELECT 1 FROM Sensor WHERE sensor_id = ? LIMIT 1", (sensor_id,))
        return cur.fetchone() is not None

    def insert_sensor_if_absent(
        self,
        *,
        sensor_id: str,
        location: str,
        sensor_type: str,
        calibration_min: float,
        calibration_max: float,
        status: str,
    ) -> bool:
        """Create the sensor row unless it already exists. Returns True if a row was inserted."""
        db = self.get_db()
        try:
            cur = db.execute(
                """
                INSERT OR IGNORE INTO Sensor (
                    sensor_id, location, type, calibration_min, calibration_max, status
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (sensor_id, location, sensor_type, calibration_min, calibration_max, status),
            )
            db.commit()
        except sqlite3.Error:
            db.rollback()
            raise
        return cur.rowcount > 0

    def get_sensor_row(self, sensor_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        row = db.execute("SELECT * FROM Sensor WHERE sensor_id = ?", (sensor_id,)).fetchone()
        return row_to_dict(row) if row is not None else None

    def get_sensor_rows(self) -> List[Dict[str, Any]]:
        """All sensors with their reading count and last reading time."""
        db = self.get_db()
        cur = db.execute(
            """
            SELECT
                s.*,
                COUNT(md.id) AS readings_count,
                MAX(md.timestamp) AS last_reading_at
            FROM Sensor s
            LEFT JOIN MoistureData md ON md.sensor_id = s.sensor_id
            GROUP BY s.sensor_id
            ORDER BY s.sensor_id
            """
        )
        return [row_to_dict(row) for row in cur.fetchall()]

    def delete_sensor_with_readings(self, sensor_ids: List[str]) -> Dict[str, int]:
        """Remove sensors and their readings in one transaction (maintenance only)."""
        db = self.get_db()
        deleted_readings = 0
        deleted_sensors = 0
        try:
            for sensor_id in sensor_ids:
                deleted_readings += db.execute(
                    "DELETE FROM MoistureData WHERE sensor_id = ?", (sensor_id,)
                ).rowcount
                deleted_sensors += db.execute("DELETE FROM Sensor WHERE sensor_id = ?", (sensor_id,)).rowcount
            db.commit()
        except sqlite3.Error:
            db.rollback()
            raise
        logger.info("Deleted %s sensors and %s readings", deleted_sensors, deleted_readings)
        return {"sensors": deleted_sensors, "readings": deleted_readings}

    # --- Moisture readings -------------------------------------------------------
    def insert_moisture_reading(
        self,
        *,
        sensor_id: str,
        moisture_value: float,
        timestamp: str,
        temperature: Optional[float] = None,
        humidity: Optional[float] = None,
    ) -> int:
        db = self.get_db()
        try:
            cur = db.execute(
                """
                INSERT INTO MoistureData (sensor_id, moisture_value, temperature, humidity, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (sensor_id, moisture_value, temperature, humidity, timestamp),
            )
            db.commit()
        except sqlite3.Error:
            db.rollback()
            raise
        return int(cur.lastrowid)

    def get_moisture_readings(
        self,
        sensor_id: str,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Readings for one sensor in insertion order."""
        limit, offset = validate_pagination(limit, offset)
        db = self.get_db()
        cur = db.execute(
            """
            SELECT * FROM MoistureData
            WHERE sensor_id = ?
            ORDER BY id ASC
            LIMIT ? OFFSET ?
            """,
            (sensor_id, limit, offset),
        )
        return [row_to_dict(row) for row in cur.fetchall()]

    def count_moisture_readings(self, sensor_id: Optional[str] = None) -> int:
        db = self.get_db()
        if sensor_id is None:
            row = db.execute("SELECT COUNT(*) FROM MoistureData").fetchone()
        else:
            row = db.execute("SELECT COUNT(*) FROM MoistureData WHERE sensor_id = ?", (sensor_id,)).fetchone()
        return int(row[0])
