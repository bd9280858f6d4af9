"""
Application Constants
=====================

Centralized constants for the ingestion pipeline. Runtime-tunable values
(intervals, timeouts) are exposed through ``AppConfig``; the values here
are their defaults.

Usage:
    from fieldsense.constants import Timeouts, Topics, SensorDefaults
"""


class Timeouts:
    """Timeout and interval defaults for the broker session (seconds)."""

    MQTT_CONNECT_TIMEOUT = 30
    MQTT_RETRY_INTERVAL = 5
    MQTT_KEEPALIVE = 60
    MQTT_LOOP_TIMEOUT = 1.0
    WRITER_STOP_TIMEOUT = 10.0


class Topics:
    """Topic layout: sensor/{sensor_id}/{kind}."""

    ROOT = "sensor"
    MIN_SEGMENTS = 3
    SENSOR_ID_INDEX = 1
    KIND_INDEX = 2


class SensorDefaults:
    """Values applied to sensors that are auto-provisioned on first reading."""

    LOCATION = "Unassigned Field"
    TYPE = "soil_moisture"
    CALIBRATION_MIN = 0.0
    CALIBRATION_MAX = 0.0


# Namespaces a sensor id may start with to be accepted without an explicit
# allow-list entry.
ACCEPTED_SENSOR_PREFIXES: tuple[str, ...] = ("ESP32_", "SENSOR_", "AGRI_")

DEFAULT_ALLOWED_SENSORS = "SENSOR_01,ESP32_001,ESP32_002,ESP32_TEST"

# Shared brokers where anyone can publish; connecting to one of these means
# the allow-list is the only thing standing between strangers and the database.
PUBLIC_BROKER_HOSTS: frozenset[str] = frozenset(
    {
        "test.mosquitto.org",
        "broker.hivemq.com",
        "broker.emqx.io",
        "mqtt.eclipseprojects.io",
        "public.mqtthq.com",
    }
)
