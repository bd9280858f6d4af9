import logging
import shutil
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from infrastructure.database.ops.sensors import SensorOperations

logger = logging.getLogger(__name__)


def is_memory_database(database_path: str) -> bool:
    """True for paths SQLite opens as a private in-memory database."""
    path = database_path.strip()
    return path in ("", ":memory:") or path.startswith("file::memory:") or "mode=memory" in path


class SQLiteDatabaseHandler(SensorOperations):
    """Thread-safe SQLite handler decoupled from Flask globals.

    Every thread gets its own connection. Foreign keys are enforced on each
    connection, so a reading can never be written for a sensor row that does
    not exist yet.
    """

    def __init__(
        self,
        database_path: str,
        *,
        cache_size_kb: int = 8_000,
        mmap_size_bytes: int = 33_554_432,
    ) -> None:
        self._database_path = database_path
        self._cache_size_kb = cache_size_kb
        self._mmap_size_bytes = mmap_size_bytes
        self._local = threading.local()

        if is_memory_database(database_path):
            raise ValueError("In-memory SQLite is not supported: each thread opens its own connection")

        db_path = Path(database_path)
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Created database directory: %s", db_path.parent)

    @property
    def database_path(self) -> str:
        return self._database_path

    # --- Lifecycle ------------------------------------------------------------
    def get_db(self) -> sqlite3.Connection:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            try:
                connection = self._open_connection()
            except sqlite3.DatabaseError as exc:
                if self._is_corruption_error(exc):
                    logger.error("Database appears corrupt (%s). Recreating a fresh database.", exc)
                    self._quarantine_corrupt_db()
                    connection = self._open_connection()
                    self._local.connection = connection
                    self.create_tables()
                else:
                    raise
            self._local.connection = connection
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except Exception:
            connection.close()
            raise

    def _is_corruption_error(self, exc: sqlite3.Error) -> bool:
        message = str(exc).lower()
        return (
            "database disk image is malformed" in message
            or "file is not a database" in message
            or "file is encrypted or is not a database" in message
            or "malformed" in message
        )

    def _quarantine_corrupt_db(self) -> Optional[Path]:
        db_path = Path(self._database_path)
        if not db_path.exists():
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        quarantine_dir = db_path.parent / "corrupt"
        quarantine_dir.mkdir(parents=True, exist_ok=True)

        suffix = db_path.suffix or ".db"
        quarantined = quarantine_dir / f"{db_path.stem}_corrupt_{timestamp}{suffix}"
        try:
            shutil.move(str(db_path), str(quarantined))
            for sidecar_suffix in ("-wal", "-shm"):
                sidecar = Path(f"{db_path}{sidecar_suffix}")
                if sidecar.exists():
                    shutil.move(str(sidecar), str(quarantine_dir / f"{sidecar.name}_{timestamp}"))
            logger.warning("Quarantined corrupt database to %s", quarantined)
            return quarantined
        except OSError as exc:
            logger.error("Failed to quarantine corrupt database %s: %s", db_path, exc)
            return None

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """Configure the connection.

        - foreign_keys ON: readings must reference an existing sensor
        - WAL mode: readers (admin API) never block the ingestion writer
        - NORMAL synchronous: safe with WAL, fewer fsyncs
        - busy_timeout: short waits instead of immediate SQLITE_BUSY
        """
        connection.execute("PRAGMA foreign_keys=ON")
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA busy_timeout=5000")
        connection.execute(f"PRAGMA cache_size=-{int(self._cache_size_kb)}")
        connection.execute("PRAGMA temp_store=MEMORY")
        connection.execute(f"PRAGMA mmap_size={int(self._mmap_size_bytes)}")
        connection.commit()

    def close_db(self, _e: Optional[BaseException] = None) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_db()
        try:
            yield conn
        finally:
            conn.commit()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        with self.connection() as db:
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS Sensor (
                    sensor_id TEXT PRIMARY KEY,
                    location TEXT NOT NULL,
                    type TEXT NOT NULL,
                    calibration_min REAL DEFAULT 0,
                    calibration_max REAL DEFAULT 100,
                    status TEXT NOT NULL DEFAULT 'active'
                        CHECK (status IN ('active', 'inactive')),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS MoistureData (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    sensor_id TEXT NOT NULL,
                    moisture_value REAL NOT NULL,
                    temperature REAL,
                    humidity REAL,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (sensor_id) REFERENCES Sensor(sensor_id)
                )
                """
            )
            db.execute(
                "CREATE INDEX IF NOT EXISTS idx_moisture_sensor_time ON MoistureData(sensor_id, timestamp)"
            )
        logger.info("Database schema ready at %s", self._database_path)
