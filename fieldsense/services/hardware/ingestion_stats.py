"""Thread-safe counters describing what the ingestion pipeline did with each message."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Any, Dict

from fieldsense.enums.events import DropReason
from fieldsense.utils.time import iso_now


class IngestionStats:
    """Updated from the MQTT supervisor thread and the writer thread; read by the status endpoint."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._received = 0
        self._readings_persisted = 0
        self._sensors_provisioned = 0
        self._drops: Counter[str] = Counter()
        self._last_reading_at: str | None = None

    def record_received(self) -> None:
        with self._lock:
            self._received += 1

    def record_reading(self) -> None:
        with self._lock:
            self._readings_persisted += 1
            self._last_reading_at = iso_now()

    def record_provisioned(self) -> None:
        with self._lock:
            self._sensors_provisioned += 1

    def record_drop(self, reason: DropReason) -> None:
        with self._lock:
            self._drops[reason.value] += 1

    def drops(self, reason: DropReason) -> int:
        with self._lock:
            return self._drops[reason.value]

    @property
    def readings_persisted(self) -> int:
        with self._lock:
            return self._readings_persisted

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "messages_received": self._received,
                "readings_persisted": self._readings_persisted,
                "sensors_provisioned": self._sensors_provisioned,
                "last_reading_at": self._last_reading_at,
                "dropped": dict(self._drops),
                "dropped_total": sum(self._drops.values()),
            }
