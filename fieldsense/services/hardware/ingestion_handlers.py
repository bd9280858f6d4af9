"""
Ingestion Handlers
==================

Per-kind handlers invoked by the telemetry router once a message has passed
the topic-level checks and its payload decoded to a JSON object.

Data messages are authorised again (explicit allow-list or accepted prefix),
then handed to the serialized writer as a single job:

1. auto-provision the sensor row if it does not exist yet;
2. validate the payload (``moisture`` required);
3. insert the reading with the supplied or server-assigned timestamp.

A storage failure in either write drops the message. Nothing is retried.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any

from fieldsense.domain.exceptions import PersistenceFailure
from fieldsense.domain.outcome import Err
from fieldsense.domain.sensors import AUTO_PROVISION_DEFAULTS, SensorDefaultsSpec
from fieldsense.enums.events import DropReason
from fieldsense.schemas.telemetry import parse_moisture_payload
from fieldsense.services.hardware.ingestion_stats import IngestionStats
from fieldsense.services.hardware.reading_writer import ReadingWriter
from fieldsense.services.hardware.sensor_authorization import AuthorizationFilter
from fieldsense.utils.time import iso_now, to_iso_utc
from infrastructure.database.repositories.base import PersistenceGateway

logger = logging.getLogger(__name__)


class IngestionHandlers:
    def __init__(
        self,
        gateway: PersistenceGateway,
        authorization: AuthorizationFilter,
        writer: ReadingWriter,
        *,
        defaults: SensorDefaultsSpec = AUTO_PROVISION_DEFAULTS,
        stats: IngestionStats | None = None,
    ) -> None:
        self._gateway = gateway
        self._authorization = authorization
        self._writer = writer
        self._defaults = defaults
        self.stats = stats or IngestionStats()

    # --- Handlers (MQTT supervisor thread) --------------------------------------
    def handle_data(self, sensor_id: str, payload: dict[str, Any]) -> None:
        if not self._authorize(sensor_id):
            return
        if not self._writer.submit(partial(self._persist_reading, sensor_id, payload)):
            self._drop(sensor_id, DropReason.QUEUE_FULL, "writer queue full")

    def handle_register(self, sensor_id: str, payload: dict[str, Any]) -> None:
        if not self._authorize(sensor_id):
            return
        # Approval workflow is out of scope; record the intent only.
        logger.info("Registration request from sensor %s: %s", sensor_id, payload)

    def handle_status(self, sensor_id: str, payload: dict[str, Any]) -> None:
        if not self._authorize(sensor_id):
            return
        logger.info("Status update from sensor %s: %s", sensor_id, payload)

    # --- Writer-thread job -------------------------------------------------------
    def _persist_reading(self, sensor_id: str, payload: dict[str, Any]) -> None:
        try:
            self._ensure_sensor(sensor_id)
        except PersistenceFailure as exc:
            self._drop(sensor_id, DropReason.PERSISTENCE_FAILURE, f"provisioning failed: {exc}")
            return

        outcome = parse_moisture_payload(payload)
        if isinstance(outcome, Err):
            self._drop(sensor_id, outcome.reason, outcome.detail)
            return
        reading = outcome.value

        try:
            reading_id = self._gateway.insert_reading(
                sensor_id,
                reading.moisture,
                self._resolve_timestamp(sensor_id, reading.timestamp),
                temperature=reading.temperature,
                humidity=reading.humidity,
            )
        except PersistenceFailure as exc:
            self._drop(sensor_id, DropReason.PERSISTENCE_FAILURE, f"insert failed: {exc}")
            return

        self.stats.record_reading()
        logger.debug("Stored reading %s for %s: moisture=%s", reading_id, sensor_id, reading.moisture)

    def _ensure_sensor(self, sensor_id: str) -> None:
        if self._gateway.sensor_exists(sensor_id):
            return
        self._gateway.create_sensor(sensor_id, self._defaults)
        self.stats.record_provisioned()
        logger.info("Auto-provisioned sensor %s (location=%s)", sensor_id, self._defaults.location)

    # --- Helpers -------------------------------------------------------------------
    def _authorize(self, sensor_id: str) -> bool:
        if self._authorization.is_allowed(sensor_id):
            return True
        self._drop(sensor_id, DropReason.UNAUTHORIZED_SENSOR, "not allow-listed and no accepted prefix")
        return False

    def _resolve_timestamp(self, sensor_id: str, supplied: str | None) -> str:
        if supplied is None:
            return iso_now()
        normalized = to_iso_utc(supplied)
        if normalized is None:
            logger.warning("Sensor %s sent unparseable timestamp %r; using server time", sensor_id, supplied)
            return iso_now()
        return normalized

    def _drop(self, sensor_id: str, reason: DropReason, detail: str) -> None:
        self.stats.record_drop(reason)
        logger.warning("Dropped message from %s [%s]: %s", sensor_id, reason.value, detail)
