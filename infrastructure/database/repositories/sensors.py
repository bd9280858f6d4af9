from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any

from fieldsense.domain.exceptions import PersistenceFailure
from fieldsense.domain.sensors import MoistureReading, Sensor, SensorDefaultsSpec
from infrastructure.database.ops.sensors import SensorOperations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorRepository:
    """SQLite-backed ``PersistenceGateway`` plus read helpers for admin tooling."""

    _backend: SensorOperations

    # --- PersistenceGateway ----------------------------------------------------
    def sensor_exists(self, sensor_id: str) -> bool:
        try:
            return self._backend.sensor_exists(sensor_id)
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Failed to look up sensor {sensor_id}", detail={"sensor_id": sensor_id, "error": str(exc)}
            ) from exc

    def create_sensor(self, sensor_id: str, defaults: SensorDefaultsSpec) -> None:
        try:
            created = self._backend.insert_sensor_if_absent(
                sensor_id=sensor_id,
                location=defaults.location,
                sensor_type=defaults.type,
                calibration_min=defaults.calibration_min,
                calibration_max=defaults.calibration_max,
                status=defaults.status.value,
            )
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Failed to create sensor {sensor_id}", detail={"sensor_id": sensor_id, "error": str(exc)}
            ) from exc
        if not created:
            logger.debug("Sensor %s already existed; create was a no-op", sensor_id)

    def insert_reading(
        self,
        sensor_id: str,
        value: float,
        timestamp: str,
        *,
        temperature: float | None = None,
        humidity: float | None = None,
    ) -> int:
        try:
            return self._backend.insert_moisture_reading(
                sensor_id=sensor_id,
                moisture_value=value,
                timestamp=timestamp,
                temperature=temperature,
                humidity=humidity,
            )
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Failed to insert reading for {sensor_id}", detail={"sensor_id": sensor_id, "error": str(exc)}
            ) from exc

    # --- Read helpers ----------------------------------------------------------
    def get_sensor(self, sensor_id: str) -> Sensor | None:
        row = self._backend.get_sensor_row(sensor_id)
        return Sensor.from_row(row) if row else None

    def list_sensors(self) -> list[dict[str, Any]]:
        """Sensors with ``readings_count`` and ``last_reading_at``."""
        return self._backend.get_sensor_rows()

    def list_readings(self, sensor_id: str, limit: int | None = None, offset: int | None = None) -> list[MoistureReading]:
        rows = self._backend.get_moisture_readings(sensor_id, limit=limit, offset=offset)
        return [MoistureReading.from_row(row) for row in rows]

    def count_readings(self, sensor_id: str | None = None) -> int:
        return self._backend.count_moisture_readings(sensor_id)

    def delete_sensors(self, sensor_ids: list[str]) -> dict[str, int]:
        try:
            return self._backend.delete_sensor_with_readings(sensor_ids)
        except sqlite3.Error as exc:
            raise PersistenceFailure("Failed to delete sensors", detail={"error": str(exc)}) from exc
