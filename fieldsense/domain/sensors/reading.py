"""
Moisture Reading Value Object
=============================
Immutable value object representing one persisted soil-moisture reading.
Readings are append-only: there is no update path.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class MoistureReading:
    """A single point-in-time moisture reading from a sensor."""

    sensor_id: str
    moisture_value: float
    timestamp: str
    temperature: float | None = None
    humidity: float | None = None
    id: int | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MoistureReading":
        return cls(
            id=row["id"],
            sensor_id=row["sensor_id"],
            moisture_value=row["moisture_value"],
            timestamp=row["timestamp"],
            temperature=row["temperature"],
            humidity=row["humidity"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "sensor_id": self.sensor_id,
            "moisture_value": self.moisture_value,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.timestamp,
        }
