from fieldsense.schemas.admin import AllowedSensorRequest
from fieldsense.schemas.telemetry import MoisturePayload, parse_moisture_payload

__all__ = ["AllowedSensorRequest", "MoisturePayload", "parse_moisture_payload"]
