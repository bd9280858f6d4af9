from enum import Enum


class ConnectionState(str, Enum):
    """Broker session state owned by the ConnectionManager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    OFFLINE = "offline"


class DropReason(str, Enum):
    """Why an inbound message was discarded. Every drop is logged with one of these."""

    MALFORMED_TOPIC = "malformed_topic"
    UNAUTHORIZED_PREFIX = "unauthorized_prefix"
    UNAUTHORIZED_SENSOR = "unauthorized_sensor"
    MALFORMED_PAYLOAD = "malformed_payload"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    PERSISTENCE_FAILURE = "persistence_failure"
    UNKNOWN_KIND = "unknown_kind"
    QUEUE_FULL = "queue_full"
