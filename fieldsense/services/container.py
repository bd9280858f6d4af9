from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from fieldsense.config import AppConfig, load_config
from fieldsense.hardware.mqtt.connection_manager import BrokerCredentials, ConnectionManager
from fieldsense.services.hardware import (
    AuthorizationFilter,
    IngestionHandlers,
    IngestionStats,
    ReadingWriter,
    TelemetryRouter,
)
from infrastructure.database.repositories.sensors import SensorRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Composition root for the ingestion pipeline.

    Everything is constructed explicitly in ``build``; nothing is a lazy
    global. ``start()`` opens the broker session, ``shutdown()`` closes it
    and drains pending writes.
    """

    config: AppConfig
    database: SQLiteDatabaseHandler
    sensor_repo: SensorRepository
    audit_logger: AuditLogger
    authorization: AuthorizationFilter
    stats: IngestionStats
    writer: ReadingWriter
    handlers: IngestionHandlers
    mqtt_client: Optional[ConnectionManager]
    router: Optional[TelemetryRouter]
    _started: bool = field(default=False, repr=False)
    _shut_down: bool = field(default=False, repr=False)

    @classmethod
    def build(cls, config: AppConfig) -> "ServiceContainer":
        """Construct the container with all dependencies (nothing is started)."""
        database = SQLiteDatabaseHandler(
            config.database_path,
            cache_size_kb=config.db_cache_size_kb,
            mmap_size_bytes=config.db_mmap_size_bytes,
        )
        database.create_tables()
        sensor_repo = SensorRepository(database)

        authorization = AuthorizationFilter(
            config.allowed_sensor_ids,
            seed_loader=lambda: load_config().allowed_sensor_ids,
        )
        stats = IngestionStats()
        writer = ReadingWriter(config.writer_queue_size, thread_cleanup=database.close_db)
        handlers = IngestionHandlers(sensor_repo, authorization, writer, stats=stats)

        mqtt_client: Optional[ConnectionManager] = None
        router: Optional[TelemetryRouter] = None
        if config.enable_mqtt:
            mqtt_client = ConnectionManager(
                client_id_prefix=config.mqtt_client_id_prefix,
                keepalive=config.mqtt_keepalive_seconds,
                connect_timeout=config.mqtt_connect_timeout_seconds,
                retry_interval=config.mqtt_retry_interval_seconds,
                loop_timeout=config.mqtt_loop_timeout_seconds,
            )
            router = TelemetryRouter(
                mqtt_client,
                authorization,
                handlers,
                allowlist_bypasses_prefix=config.allowlist_bypasses_prefix,
                stats=stats,
            )
        else:
            logger.info("MQTT disabled (FIELDSENSE_ENABLE_MQTT=false); ingestion will not start")

        return cls(
            config=config,
            database=database,
            sensor_repo=sensor_repo,
            audit_logger=AuditLogger(config.audit_log_path),
            authorization=authorization,
            stats=stats,
            writer=writer,
            handlers=handlers,
            mqtt_client=mqtt_client,
            router=router,
        )

    def start(self) -> None:
        """Start the writer and the broker session. Idempotent."""
        if self._started:
            return
        self._started = True
        self.writer.start()
        if self.mqtt_client is None or self.router is None:
            return

        self.router.subscribe_to_topics()
        credentials = None
        if self.config.mqtt_username:
            credentials = BrokerCredentials(self.config.mqtt_username, self.config.mqtt_password)
        self.mqtt_client.connect(self.config.mqtt_broker_url, credentials)

    def status(self) -> dict:
        return {
            "mqtt": self.mqtt_client.status_dict() if self.mqtt_client is not None else {"state": "disabled"},
            "writer": self.writer.get_metrics(),
            "ingestion": self.stats.to_dict(),
            "allowed_sensors": len(self.authorization.list_allowed()),
            "accepted_prefixes": list(self.authorization.prefixes),
        }

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        if self._shut_down:
            return
        self._shut_down = True

        # Stop intake first so no new jobs arrive while draining
        if self.mqtt_client is not None:
            self.mqtt_client.disconnect()
        self.writer.stop()

        # Then close connections
        self.database.close_db()
        logger.info("ServiceContainer shutdown complete.")
