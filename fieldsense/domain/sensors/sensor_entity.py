"""
Sensor Domain Entity
====================
A soil-moisture sensor as stored in the ``Sensor`` table. The ``sensor_id`` is
assigned by the device firmware and never changes once the row exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from fieldsense.constants import SensorDefaults
from fieldsense.enums.device import SensorStatus


@dataclass(frozen=True)
class SensorDefaultsSpec:
    """Attributes applied when a sensor row is created without operator input."""

    location: str = SensorDefaults.LOCATION
    type: str = SensorDefaults.TYPE
    calibration_min: float = SensorDefaults.CALIBRATION_MIN
    calibration_max: float = SensorDefaults.CALIBRATION_MAX
    status: SensorStatus = SensorStatus.ACTIVE


AUTO_PROVISION_DEFAULTS = SensorDefaultsSpec()


@dataclass
class Sensor:
    sensor_id: str
    location: str
    type: str
    calibration_min: float = 0.0
    calibration_max: float = 0.0
    status: SensorStatus = SensorStatus.ACTIVE
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == SensorStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Sensor":
        return cls(
            sensor_id=row["sensor_id"],
            location=row["location"],
            type=row["type"],
            calibration_min=float(row["calibration_min"] or 0.0),
            calibration_max=float(row["calibration_max"] or 0.0),
            status=SensorStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sensor_id": self.sensor_id,
            "location": self.location,
            "type": self.type,
            "calibration_min": self.calibration_min,
            "calibration_max": self.calibration_max,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
