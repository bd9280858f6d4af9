"""
Configuration for the FieldSense ingestion service
===================================================
Runtime settings loaded from environment variables: broker session,
sensor allow-list, storage and logging. Sets up the logging configuration
as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from fieldsense.constants import DEFAULT_ALLOWED_SENSORS, Timeouts
from infrastructure.database.sqlite_handler import is_memory_database


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


def _env_optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value


def parse_sensor_list(raw: str | None) -> list[str]:
    """Split a comma-separated sensor id list, dropping blanks and duplicates."""
    if not raw:
        return []
    seen: list[str] = []
    for item in raw.split(","):
        sensor_id = item.strip()
        if sensor_id and sensor_id not in seen:
            seen.append(sensor_id)
    return seen


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("FIELDSENSE_ENV", "development"))
    database_path: str = field(
        default_factory=lambda: os.getenv("FIELDSENSE_DATABASE_PATH", "data/agriculture.db")
    )

    # SQLite memory tuning
    db_cache_size_kb: int = field(default_factory=lambda: _env_int("FIELDSENSE_DB_CACHE_SIZE_KB", 8_000))
    db_mmap_size_bytes: int = field(default_factory=lambda: _env_int("FIELDSENSE_DB_MMAP_SIZE_BYTES", 33_554_432))

    # Broker session
    enable_mqtt: bool = field(default_factory=lambda: _env_bool("FIELDSENSE_ENABLE_MQTT", True))
    mqtt_broker_url: str = field(
        default_factory=lambda: os.getenv("MQTT_BROKER_URL", "mqtt://test.mosquitto.org:1883")
    )
    mqtt_username: str | None = field(default_factory=lambda: _env_optional("MQTT_USERNAME"))
    mqtt_password: str | None = field(default_factory=lambda: _env_optional("MQTT_PASSWORD"))
    mqtt_client_id_prefix: str = field(
        default_factory=lambda: os.getenv("MQTT_CLIENT_ID_PREFIX", "agriculture_dashboard")
    )
    mqtt_keepalive_seconds: int = field(
        default_factory=lambda: _env_int("MQTT_KEEPALIVE", Timeouts.MQTT_KEEPALIVE)
    )
    mqtt_connect_timeout_seconds: float = field(
        default_factory=lambda: _env_float("MQTT_CONNECT_TIMEOUT", Timeouts.MQTT_CONNECT_TIMEOUT)
    )
    mqtt_retry_interval_seconds: float = field(
        default_factory=lambda: _env_float("MQTT_RETRY_INTERVAL", Timeouts.MQTT_RETRY_INTERVAL)
    )
    mqtt_loop_timeout_seconds: float = field(
        default_factory=lambda: _env_float("MQTT_LOOP_TIMEOUT", Timeouts.MQTT_LOOP_TIMEOUT)
    )

    # Sensor authorization
    allowed_sensors: str = field(default_factory=lambda: os.getenv("ALLOWED_SENSORS", DEFAULT_ALLOWED_SENSORS))
    # When true, an explicit allow-list entry is accepted at the topic level even
    # without one of the accepted prefixes.
    allowlist_bypasses_prefix: bool = field(
        default_factory=lambda: _env_bool("FIELDSENSE_ALLOWLIST_BYPASSES_PREFIX", False)
    )

    # Persistence
    writer_queue_size: int = field(default_factory=lambda: _env_int("FIELDSENSE_WRITER_QUEUE_SIZE", 1024))

    # Logging
    DEBUG: bool = field(default_factory=lambda: _env_bool("FIELDSENSE_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("FIELDSENSE_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("FIELDSENSE_LOG_DIR", "logs"))
    audit_log_path: str = field(default_factory=lambda: os.getenv("FIELDSENSE_AUDIT_LOG_PATH", "logs/audit.log"))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in (
            "mqtt_keepalive_seconds",
            "mqtt_connect_timeout_seconds",
            "mqtt_retry_interval_seconds",
            "mqtt_loop_timeout_seconds",
            "writer_queue_size",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")
        if is_memory_database(self.database_path):
            raise ValueError("database_path must be a file; in-memory SQLite is private to one thread")

    @property
    def allowed_sensor_ids(self) -> list[str]:
        """Explicit allow-list seed parsed from ``allowed_sensors``."""
        return parse_sensor_list(self.allowed_sensors)

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "DATABASE_PATH": self.database_path,
            "MQTT_BROKER_URL": self.mqtt_broker_url,
            "AUDIT_LOG_PATH": self.audit_log_path,
            "DEBUG": self.DEBUG,
        }


def setup_logging(debug: bool = False, *, level: str | None = None, log_dir: str = "logs") -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "fieldsense_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "fieldsense_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "fieldsense_console"
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "fieldsense.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "fieldsense_file"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"fieldsense_console", "fieldsense_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    # paho logs every PINGREQ at DEBUG
    if _env_bool("FIELDSENSE_SILENCE_PAHO", True):
        logging.getLogger("paho").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
