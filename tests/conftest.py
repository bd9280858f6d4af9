"""
Shared test fixtures for the FieldSense ingestion test suite.

Provides:
- Temporary file-backed SQLite database with all tables created
  (a file, not ":memory:", because every thread gets its own connection)
- Sensor repository wired to the test database
- A fake paho client (DummyClient) patched in through create_mqtt_client
- Authorization filter, writer, handlers and router assembled like the
  service container does

Usage:
    def test_example(sensor_repo):
        sensor_repo.create_sensor("ESP32_001", AUTO_PROVISION_DEFAULTS)
        assert sensor_repo.sensor_exists("ESP32_001")
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import patch

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fieldsense.hardware.mqtt.connection_manager import ConnectionManager
from fieldsense.services.hardware import (
    AuthorizationFilter,
    IngestionHandlers,
    IngestionStats,
    ReadingWriter,
    TelemetryRouter,
)
from infrastructure.database.repositories.sensors import SensorRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)

DEFAULT_ALLOWED = ["SENSOR_01", "ESP32_001", "ESP32_002", "ESP32_TEST"]
TEST_BROKER_URL = "mqtt://broker.local:1883"


# ========================== Fake MQTT client ===============================


class DummyMessage:
    def __init__(self, topic: str, payload: bytes):
        self.topic = topic
        self.payload = payload


class DummyClient:
    """Stand-in for paho.mqtt.client.Client recording every call.

    ``connect_errors`` is a list of exceptions raised by successive connect()
    calls. With ``auto_connack`` the broker "answers" immediately, the way a
    real CONNACK would arrive on the next loop pass.
    """

    def __init__(self, *, auto_connack: bool = False, connect_errors: list[Exception] | None = None):
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None
        self.auto_connack = auto_connack
        self.connect_errors = list(connect_errors or [])
        self.connect_calls: list[tuple[str, int, int]] = []
        self.subscriptions: list[str] = []
        self.published: list[tuple[str, Any]] = []
        self.loop_rc = 0
        self.disconnected = False
        self.credentials = None
        self.tls_enabled = False
        self.ws_options = None
        self.connect_timeout = None

    def connect(self, host, port, keepalive):
        self.connect_calls.append((host, port, keepalive))
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        if self.auto_connack and self.on_connect is not None:
            self.on_connect(self, None, {}, 0)
        return 0

    def loop(self, timeout=1.0):
        time.sleep(min(timeout, 0.005))
        return self.loop_rc

    def disconnect(self):
        self.disconnected = True
        if self.on_disconnect is not None:
            self.on_disconnect(self, None, 0)
        return 0

    def subscribe(self, topic):
        self.subscriptions.append(topic)
        return (0, len(self.subscriptions))

    def publish(self, topic, payload):
        self.published.append((topic, payload))
        return SimpleNamespace(rc=0, topic=topic, payload=payload)

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def tls_set(self, *args, **kwargs):
        self.tls_enabled = True

    def ws_set_options(self, path="/mqtt", headers=None):
        self.ws_options = path


def connect_manager(manager: ConnectionManager) -> None:
    """Drive a manager built with start_supervisor=False through connect + CONNACK."""
    manager._tick()
    manager._on_connect(manager.client, None, {}, 0)


def deliver(manager: ConnectionManager, topic: str, payload: Any) -> None:
    """Push a message through the manager's fan-out, as the network loop would."""
    if isinstance(payload, (dict, list)):
        payload = json.dumps(payload).encode()
    elif isinstance(payload, str):
        payload = payload.encode()
    manager._dispatch_message(manager.client, None, DummyMessage(topic, payload))


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "agriculture.db")


@pytest.fixture()
def db_handler(db_path):
    """SQLite database with all tables created. Each test gets a fresh file."""
    handler = SQLiteDatabaseHandler(db_path)
    handler.create_tables()
    yield handler
    handler.close_db()


@pytest.fixture()
def sensor_repo(db_handler):
    return SensorRepository(db_handler)


# ========================== Pipeline Fixtures ==============================


@pytest.fixture()
def authorization():
    return AuthorizationFilter(DEFAULT_ALLOWED)


@pytest.fixture()
def stats():
    return IngestionStats()


@pytest.fixture()
def writer(db_handler):
    writer = ReadingWriter(queue_size=64, thread_cleanup=db_handler.close_db)
    writer.start()
    yield writer
    writer.stop()


@pytest.fixture()
def handlers(sensor_repo, authorization, writer, stats):
    return IngestionHandlers(sensor_repo, authorization, writer, stats=stats)


@pytest.fixture()
def dummy_client():
    return DummyClient()


@pytest.fixture()
def manager(dummy_client):
    """ConnectionManager with a fake client and no supervisor thread."""
    mgr = ConnectionManager(retry_interval=0.01, loop_timeout=0.01, connect_timeout=5)
    with patch(
        "fieldsense.hardware.mqtt.connection_manager.create_mqtt_client",
        return_value=dummy_client,
    ):
        mgr.connect(TEST_BROKER_URL, start_supervisor=False)
    yield mgr
    mgr.disconnect()


@pytest.fixture()
def router(manager, authorization, handlers, stats):
    """Router subscribed through a connected manager (prefix-only topic check)."""
    router = TelemetryRouter(manager, authorization, handlers, stats=stats)
    router.subscribe_to_topics()
    connect_manager(manager)
    return router
