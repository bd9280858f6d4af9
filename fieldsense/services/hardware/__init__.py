from fieldsense.services.hardware.ingestion_handlers import IngestionHandlers
from fieldsense.services.hardware.ingestion_stats import IngestionStats
from fieldsense.services.hardware.reading_writer import ReadingWriter
from fieldsense.services.hardware.sensor_authorization import AuthorizationFilter
from fieldsense.services.hardware.telemetry_router import SUBSCRIPTION_TOPICS, TelemetryRouter

__all__ = [
    "AuthorizationFilter",
    "IngestionHandlers",
    "IngestionStats",
    "ReadingWriter",
    "SUBSCRIPTION_TOPICS",
    "TelemetryRouter",
]
