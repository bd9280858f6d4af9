"""
    Supervised MQTT broker session for the ingestion pipeline.

    A single ConnectionManager owns one paho client and one supervisor
    thread. The supervisor pumps the network loop, notices lost connections
    and reconnects on a fixed interval; every registered subscription is
    re-issued after each successful CONNACK because sessions are clean.
    Inbound messages fan out to the matching callbacks on the supervisor
    thread.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Callable
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from fieldsense.constants import PUBLIC_BROKER_HOSTS, Timeouts
from fieldsense.domain.exceptions import ConfigurationError
from fieldsense.enums.events import ConnectionState
from fieldsense.hardware.mqtt.client_factory import create_mqtt_client, generate_client_id
from fieldsense.utils.time import utc_now

# Rotating log for broker traffic so a flapping connection cannot fill the disk
logger = logging.getLogger("fieldsense.mqtt")
if not any(getattr(h, "name", "") == "fieldsense_mqtt_file" for h in logger.handlers):
    _log_dir = os.getenv("FIELDSENSE_LOG_DIR", "logs")
    os.makedirs(_log_dir, exist_ok=True)
    _mqtt_handler = RotatingFileHandler(
        os.path.join(_log_dir, "mqtt.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB max per file
        backupCount=3,
        encoding="utf-8",
    )
    _mqtt_handler.name = "fieldsense_mqtt_file"
    _mqtt_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(_mqtt_handler)
    logger.setLevel(logging.INFO)

MessageCallback = Callable[[Any, Any, Any], None]

# scheme -> (default port, TLS, paho transport)
_SCHEMES: dict[str, tuple[int, bool, str]] = {
    "mqtt": (1883, False, "tcp"),
    "tcp": (1883, False, "tcp"),
    "mqtts": (8883, True, "tcp"),
    "ssl": (8883, True, "tcp"),
    "ws": (80, False, "websockets"),
    "wss": (443, True, "websockets"),
}


@dataclass(frozen=True)
class BrokerCredentials:
    username: str
    password: str | None = None


@dataclass(frozen=True)
class BrokerEndpoint:
    """Broker address parsed from a URL such as ``mqtt://host:1883``."""

    host: str
    port: int
    use_tls: bool = False
    transport: str = "tcp"
    path: str = "/mqtt"
    credentials: BrokerCredentials | None = None

    @classmethod
    def parse(cls, broker_url: str) -> "BrokerEndpoint":
        """Parse a broker URL. Raises ConfigurationError for unusable URLs."""
        parts = urlsplit((broker_url or "").strip())
        scheme = parts.scheme.lower()
        if scheme not in _SCHEMES:
            raise ConfigurationError(
                f"Unsupported broker URL scheme {parts.scheme!r}", detail={"broker_url": broker_url}
            )
        default_port, use_tls, transport = _SCHEMES[scheme]
        try:
            port = parts.port or default_port
        except ValueError:
            raise ConfigurationError("Invalid broker port", detail={"broker_url": broker_url}) from None
        if not parts.hostname:
            raise ConfigurationError("Broker URL has no host", detail={"broker_url": broker_url})

        credentials = None
        if parts.username:
            credentials = BrokerCredentials(parts.username, parts.password)

        return cls(
            host=parts.hostname,
            port=port,
            use_tls=use_tls,
            transport=transport,
            path=parts.path or "/mqtt",
            credentials=credentials,
        )

    @property
    def is_public(self) -> bool:
        return self.host.lower() in PUBLIC_BROKER_HOSTS

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class HealthStatus:
    """
    Tracks the health status of the MQTT client connection.
    """

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    connection_attempts: int = 0
    successful_connections: int = 0
    successful_publishes: int = 0
    failed_publishes: int = 0
    active_subscriptions: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate publish success rate percentage"""
        total_publishes = self.successful_publishes + self.failed_publishes
        if total_publishes == 0:
            return 0.0
        return (self.successful_publishes / total_publishes) * 100

    def mark_connected(self):
        """Mark the client as successfully connected."""
        self.is_connected = True
        self.successful_connections += 1
        self.last_error = None
        self.last_error_time = None

    def mark_disconnected(self):
        self.is_connected = False

    def record_error(self, error: Exception | str):
        """Record a connection or operation error."""
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def increment_connection_attempts(self):
        self.connection_attempts += 1

    def record_publish_success(self):
        self.successful_publishes += 1

    def record_publish_failure(self):
        self.failed_publishes += 1

    def set_active_subscriptions(self, count: int):
        self.active_subscriptions = count

    def to_dict(self):
        """Return health status as a dictionary."""
        return {
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "connection_attempts": self.connection_attempts,
            "successful_connections": self.successful_connections,
            "successful_publishes": self.successful_publishes,
            "failed_publishes": self.failed_publishes,
            "active_subscriptions": self.active_subscriptions,
            "publish_success_rate": round(self.success_rate, 2),
        }


class ConnectionManager:
    """
    Owns the broker session: connect, retry, subscribe, dispatch, disconnect.

    State machine::

        disconnected -> connecting -> connected
        connecting | connected --(error / broker disconnect)--> offline
        offline --(retry interval elapsed)--> connecting
        any --disconnect()--> disconnected (terminal)
    """

    def __init__(
        self,
        *,
        client_id_prefix: str = "agriculture_dashboard",
        keepalive: int = Timeouts.MQTT_KEEPALIVE,
        connect_timeout: float = Timeouts.MQTT_CONNECT_TIMEOUT,
        retry_interval: float = Timeouts.MQTT_RETRY_INTERVAL,
        loop_timeout: float = Timeouts.MQTT_LOOP_TIMEOUT,
    ) -> None:
        self.client_id_prefix = client_id_prefix
        self.keepalive = keepalive
        self.connect_timeout = connect_timeout
        self.retry_interval = retry_interval
        self.loop_timeout = loop_timeout

        self.client = None
        self.client_id: str | None = None
        self.endpoint: BrokerEndpoint | None = None
        self.health_status = HealthStatus()

        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._connect_lock = threading.Lock()
        self._callback_lock = threading.Lock()
        self._callbacks: list[tuple[str, MessageCallback]] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False
        self._next_attempt_at = 0.0
        self._connecting_since: float | None = None

    # --- Public API ------------------------------------------------------------
    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    def get_status(self) -> bool:
        """Point-in-time connectivity."""
        return self.state == ConnectionState.CONNECTED

    def connect(
        self,
        broker_url: str,
        credentials: BrokerCredentials | None = None,
        *,
        start_supervisor: bool = True,
    ) -> None:
        """
        Start the broker session in the background and return immediately.

        Args:
            broker_url: ``mqtt://``, ``mqtts://``, ``tcp://``, ``ssl://``, ``ws://`` or ``wss://`` URL.
            credentials: Optional username/password; overrides credentials embedded in the URL.
            start_supervisor: When False no thread is started and the caller drives ``_tick()``.

        Raises:
            ConfigurationError: If the URL cannot be parsed.
        """
        with self._state_lock:
            if self._closed:
                logger.warning("connect() called after disconnect(); ignoring")
                return
            if self.client is not None:
                logger.info("connect() called while session already running; ignoring")
                return

            endpoint = BrokerEndpoint.parse(broker_url)
            if endpoint.is_public:
                logger.warning(
                    "Broker %s is a PUBLIC broker: anyone can publish to sensor topics. "
                    "Only the sensor allow-list protects the database.",
                    endpoint.host,
                )

            self.endpoint = endpoint
            self.client_id = generate_client_id(self.client_id_prefix)
            self.client = self._build_client(endpoint, credentials or endpoint.credentials)
            self._next_attempt_at = 0.0

        logger.info("Connecting to MQTT broker %s as %s", endpoint, self.client_id)
        if start_supervisor:
            self._thread = threading.Thread(target=self._run, name="mqtt-supervisor", daemon=True)
            self._thread.start()

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """
        Register a topic pattern and its callback.

        The broker subscription is issued now when connected and again after
        every reconnect.
        """
        with self._callback_lock:
            self._callbacks.append((topic, callback))
            topics = {t for t, _ in self._callbacks}
        self.health_status.set_active_subscriptions(len(topics))
        logger.info("Registered subscription %s -> %s", topic, getattr(callback, "__name__", repr(callback)))

        if self.get_status():
            self._issue_subscribe(topic)

    def publish(self, topic: str, payload: Any) -> bool:
        """
        Publish a message. Dicts and lists are JSON-encoded.

        Returns:
            True when paho accepted the message for sending.
        """
        if not self.get_status():
            logger.warning("MQTT client not connected. Cannot publish to %s.", topic)
            return False

        if isinstance(payload, (dict, list)):
            payload = json.dumps(payload)
        try:
            msg_info = self.client.publish(topic, payload)
        except (OSError, ValueError) as e:
            self.health_status.record_publish_failure()
            self.health_status.record_error(e)
            logger.error("Error publishing to %s: %s", topic, e)
            return False

        if msg_info.rc == mqtt.MQTT_ERR_SUCCESS:
            self.health_status.record_publish_success()
            logger.debug("Published to %s: %s", topic, payload)
            return True

        self.health_status.record_publish_failure()
        logger.error("Failed to publish to %s. MQTT result code: %s", topic, msg_info.rc)
        return False

    def disconnect(self) -> None:
        """Close the session and stop retrying. Idempotent; the manager cannot be reconnected."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            was_live = self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)

        self._stop_event.set()

        if self.client is not None and was_live:
            try:
                self.client.disconnect()
            except (OSError, ValueError) as e:
                logger.warning("Error closing MQTT session: %s", e)

        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=self.connect_timeout + self.loop_timeout + 1)
            if thread.is_alive():
                logger.warning("MQTT supervisor did not stop within timeout")

        with self._state_lock:
            self._state = ConnectionState.DISCONNECTED
        self.health_status.mark_disconnected()
        with self._callback_lock:
            self._callbacks.clear()
        self.health_status.set_active_subscriptions(0)
        logger.info("Disconnected from MQTT broker.")

    def status_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "broker": str(self.endpoint) if self.endpoint else None,
            "client_id": self.client_id,
            "health": self.health_status.to_dict(),
        }

    # --- Supervisor ------------------------------------------------------------
    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._tick()
            except Exception as e:
                logger.error("Unexpected error in MQTT supervisor: %s", e, exc_info=True)
                self._mark_offline(e)
        logger.debug("MQTT supervisor stopped")

    def _tick(self) -> None:
        """Run one supervisor step: a connection attempt, a retry wait, or a network-loop pass."""
        state = self.state
        if state in (ConnectionState.DISCONNECTED, ConnectionState.OFFLINE):
            delay = self._next_attempt_at - time.monotonic()
            if delay > 0:
                # Cancellation point for disconnect()
                self._stop_event.wait(delay)
                return
            self._attempt_connect()
            return

        if (
            state == ConnectionState.CONNECTING
            and self._connecting_since is not None
            and time.monotonic() - self._connecting_since > self.connect_timeout
        ):
            self._mark_offline("timed out waiting for CONNACK")
            return

        rc = self.client.loop(timeout=self.loop_timeout)
        if rc != mqtt.MQTT_ERR_SUCCESS and not self._stop_event.is_set():
            self._mark_offline(f"network loop failed: {mqtt.error_string(rc)}")

    def _attempt_connect(self) -> bool:
        """Issue one connect. Returns False when skipped or failed."""
        if not self._connect_lock.acquire(blocking=False):
            logger.debug("Connect attempt already in flight; skipping")
            return False
        try:
            with self._state_lock:
                if self._closed:
                    return False
                self._state = ConnectionState.CONNECTING
                self._connecting_since = time.monotonic()
            self.health_status.increment_connection_attempts()
            logger.info(
                "Connecting to %s (attempt %s)", self.endpoint, self.health_status.connection_attempts
            )
            self.client.connect(self.endpoint.host, self.endpoint.port, self.keepalive)
            return True
        except (OSError, ValueError) as e:
            self._mark_offline(e)
            return False
        finally:
            self._connect_lock.release()

    def _mark_offline(self, reason: Exception | str) -> None:
        with self._state_lock:
            if self._closed:
                return
            previous = self._state
            self._state = ConnectionState.OFFLINE
            self._next_attempt_at = time.monotonic() + self.retry_interval
            self._connecting_since = None
        self.health_status.mark_disconnected()
        self.health_status.record_error(reason)
        if previous == ConnectionState.OFFLINE:
            logger.debug("Still offline (%s)", reason)
        else:
            logger.warning("MQTT connection lost (%s); retrying in %ss", reason, self.retry_interval)

    # --- Client construction and callbacks --------------------------------------
    def _build_client(self, endpoint: BrokerEndpoint, credentials: BrokerCredentials | None):
        client = create_mqtt_client(self.client_id, clean_session=True, transport=endpoint.transport)
        client.connect_timeout = self.connect_timeout
        if credentials is not None:
            client.username_pw_set(credentials.username, credentials.password)
        if endpoint.use_tls:
            client.tls_set()
        if endpoint.transport == "websockets":
            client.ws_set_options(path=endpoint.path)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        # Always dispatch through our fan-out handler so multiple subscribers can coexist
        client.on_message = self._dispatch_message
        return client

    def _on_connect(self, client, userdata, flags, rc) -> None:
        if rc != 0:
            self._mark_offline(f"connection refused: {mqtt.connack_string(rc)}")
            return

        with self._state_lock:
            if self._closed:
                return
            self._state = ConnectionState.CONNECTED
            self._connecting_since = None
        self.health_status.mark_connected()
        logger.info("Connected to MQTT broker %s", self.endpoint)
        self._resubscribe_all()

    def _on_disconnect(self, client, userdata, rc) -> None:
        if rc == 0 or self._closed:
            logger.info("MQTT session closed")
            return
        self._mark_offline(f"unexpected disconnect (rc={rc})")

    def _resubscribe_all(self) -> None:
        with self._callback_lock:
            topics = list(dict.fromkeys(t for t, _ in self._callbacks))
        for topic in topics:
            self._issue_subscribe(topic)
        if topics:
            logger.info("Subscribed to %s topic(s): %s", len(topics), ", ".join(topics))

    def _issue_subscribe(self, topic: str) -> None:
        try:
            result, _mid = self.client.subscribe(topic)
        except (OSError, ValueError) as e:
            self.health_status.record_error(e)
            logger.error("Error subscribing to MQTT topic %s: %s", topic, e)
            return
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.error("Failed to subscribe to topic %s: result code %s", topic, result)

    def _dispatch_message(self, client, userdata, msg) -> None:
        """
        Fan out MQTT messages to all registered callbacks that match the topic
        using MQTT wildcard semantics.
        """
        with self._callback_lock:
            callbacks = list(self._callbacks)

        handled = False
        for sub, callback in callbacks:
            try:
                if mqtt.topic_matches_sub(sub, msg.topic):
                    handled = True
                    callback(client, userdata, msg)
            except Exception as e:
                logger.error("Error in MQTT callback for topic %s: %s", sub, e, exc_info=True)

        if not handled:
            logger.debug("MQTT message on %s had no registered handlers", msg.topic)
