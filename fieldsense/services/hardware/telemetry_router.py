"""
Telemetry Router
================

Entry point for every sensor message arriving from MQTT.

Topic layout: ``sensor/{sensor_id}/{kind}`` with ``kind`` one of ``data``
(or the legacy ``moisture``), ``register`` and ``status``.

For each message the router:

1. splits the topic; fewer than three segments is a malformed topic;
2. applies the topic-level authorization check;
3. decodes the payload into a JSON object (tagged ``Ok``/``Err`` outcome);
4. dispatches to the handler for ``kind``; unknown kinds are ignored.

Guaranteed not to raise into the MQTT network loop.

Topic-level authorization is prefix-only by default, so an id that is
explicitly allow-listed but outside the accepted namespaces never reaches
the handlers. ``allowlist_bypasses_prefix=True`` switches the topic-level
check to the full allow-list rule.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from fieldsense.constants import Topics
from fieldsense.domain.outcome import Err, Ok, Outcome
from fieldsense.enums.device import MessageKind
from fieldsense.enums.events import DropReason
from fieldsense.services.hardware.ingestion_handlers import IngestionHandlers
from fieldsense.services.hardware.ingestion_stats import IngestionStats
from fieldsense.services.hardware.sensor_authorization import AuthorizationFilter

logger = logging.getLogger(__name__)

SUBSCRIPTION_TOPICS: tuple[str, ...] = tuple(
    f"{Topics.ROOT}/+/{kind.value}" for kind in MessageKind
)


def decode_payload(raw: bytes | str) -> Outcome[dict[str, Any]]:
    """Decode a message body into a JSON object."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError) as exc:
        return Err(DropReason.MALFORMED_PAYLOAD, f"not valid JSON: {exc}")
    if not isinstance(data, dict):
        return Err(DropReason.MALFORMED_PAYLOAD, f"expected a JSON object, got {type(data).__name__}")
    return Ok(data)


class TelemetryRouter:
    """Routes ``sensor/+/+`` messages to the ingestion handlers."""

    def __init__(
        self,
        mqtt_client,
        authorization: AuthorizationFilter,
        handlers: IngestionHandlers,
        *,
        allowlist_bypasses_prefix: bool = False,
        stats: IngestionStats | None = None,
    ) -> None:
        """
        Args:
            mqtt_client: ConnectionManager (anything with ``subscribe(topic, callback)``).
            authorization: Shared allow-list.
            handlers: Per-kind handlers.
            allowlist_bypasses_prefix: Use the full allow-list rule at topic level.
            stats: Counters shared with the handlers.
        """
        self.mqtt_client = mqtt_client
        self.authorization = authorization
        self.handlers = handlers
        self.allowlist_bypasses_prefix = allowlist_bypasses_prefix
        self.stats = stats or handlers.stats
        self._dispatch: dict[MessageKind, Callable[[str, dict[str, Any]], None]] = {
            MessageKind.DATA: handlers.handle_data,
            MessageKind.MOISTURE: handlers.handle_data,
            MessageKind.REGISTER: handlers.handle_register,
            MessageKind.STATUS: handlers.handle_status,
        }

    def subscribe_to_topics(self) -> None:
        for topic in SUBSCRIPTION_TOPICS:
            self.mqtt_client.subscribe(topic, self._on_message)
        logger.info("Telemetry router listening on %s", ", ".join(SUBSCRIPTION_TOPICS))

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        topic = str(getattr(msg, "topic", ""))
        try:
            self.route(topic, getattr(msg, "payload", b""))
        except Exception as exc:
            logger.exception("Telemetry routing error topic=%s: %s", topic, exc)

    def route(self, topic: str, payload: bytes | str) -> None:
        self.stats.record_received()

        segments = topic.split("/")
        if len(segments) < Topics.MIN_SEGMENTS:
            self._drop(topic, DropReason.MALFORMED_TOPIC, f"expected sensor/<id>/<kind>, got {len(segments)} segment(s)")
            return

        sensor_id = segments[Topics.SENSOR_ID_INDEX]
        raw_kind = segments[Topics.KIND_INDEX]

        if not self._topic_authorized(sensor_id):
            self._drop(topic, DropReason.UNAUTHORIZED_PREFIX, f"sensor id {sensor_id!r} failed topic-level check")
            return

        decoded = decode_payload(payload)
        if isinstance(decoded, Err):
            self._drop(topic, decoded.reason, decoded.detail)
            return

        kind = MessageKind.parse(raw_kind)
        if kind is None:
            self.stats.record_drop(DropReason.UNKNOWN_KIND)
            logger.info("Ignoring message kind %r on %s", raw_kind, topic)
            return

        self._dispatch[kind](sensor_id, decoded.value)

    def _topic_authorized(self, sensor_id: str) -> bool:
        if self.allowlist_bypasses_prefix:
            return self.authorization.is_allowed(sensor_id)
        return self.authorization.has_accepted_prefix(sensor_id)

    def _drop(self, topic: str, reason: DropReason, detail: str) -> None:
        self.stats.record_drop(reason)
        logger.warning("Dropped message on %s [%s]: %s", topic, reason.value, detail)
