import time
from unittest.mock import patch

import pytest

from conftest import DummyClient, deliver
from fieldsense.config import AppConfig
from fieldsense.enums.events import ConnectionState
from fieldsense.services.container import ServiceContainer
from fieldsense.services.hardware.telemetry_router import SUBSCRIPTION_TOPICS


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        database_path=str(tmp_path / "agriculture.db"),
        audit_log_path=str(tmp_path / "audit.log"),
        log_dir=str(tmp_path / "logs"),
        enable_mqtt=True,
        mqtt_broker_url="mqtt://broker.local:1883",
        mqtt_username="farm",
        mqtt_password="secret",
        mqtt_retry_interval_seconds=0.05,
        mqtt_loop_timeout_seconds=0.01,
        allowed_sensors="ESP32_001",
    )


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        time.sleep(0.01)
    return predicate()


def test_build_without_mqtt_has_no_session(config):
    config.enable_mqtt = False
    container = ServiceContainer.build(config)
    try:
        assert container.mqtt_client is None
        assert container.router is None
        container.start()
        assert container.writer.is_running
    finally:
        container.shutdown()


def test_start_connects_subscribes_and_ingests(config):
    client = DummyClient(auto_connack=True)
    container = ServiceContainer.build(config)

    with patch("fieldsense.hardware.mqtt.connection_manager.create_mqtt_client", return_value=client):
        container.start()
        container.start()

    try:
        assert _wait_for(lambda: container.mqtt_client.get_status() and len(client.subscriptions) == 4)
        assert sorted(client.subscriptions) == sorted(SUBSCRIPTION_TOPICS)
        assert client.credentials == ("farm", "secret")
        assert len(client.connect_calls) == 1

        deliver(container.mqtt_client, "sensor/ESP32_001/data", {"moisture": 12.5})
        container.writer.join()
        assert container.sensor_repo.count_readings("ESP32_001") == 1

        status = container.status()
        assert status["mqtt"]["state"] == "connected"
        assert status["ingestion"]["readings_persisted"] == 1
    finally:
        container.shutdown()

    assert container.mqtt_client.state == ConnectionState.DISCONNECTED
    assert container.writer.is_running is False


def test_shutdown_is_idempotent(config):
    config.enable_mqtt = False
    container = ServiceContainer.build(config)
    container.start()

    container.shutdown()
    container.shutdown()

    assert container.writer.submit(lambda: None) is False
