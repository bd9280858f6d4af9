from fieldsense.domain.sensors.reading import MoistureReading
from fieldsense.domain.sensors.sensor_entity import (
    AUTO_PROVISION_DEFAULTS,
    Sensor,
    SensorDefaultsSpec,
)

__all__ = [
    "AUTO_PROVISION_DEFAULTS",
    "MoistureReading",
    "Sensor",
    "SensorDefaultsSpec",
]
