"""
Persistence Gateway Protocol
============================

Defines the storage contract the ingestion handlers depend on.
Uses ``typing.Protocol`` (structural subtyping) so any backend that exposes
these methods satisfies the contract without inheriting from it; tests use
the real SQLite repository or a small in-memory fake.

Usage in service type hints::

    from infrastructure.database.repositories.base import PersistenceGateway


    class IngestionHandlers:
        def __init__(self, gateway: PersistenceGateway) -> None: ...

Every method raises ``PersistenceFailure`` when the underlying store fails.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fieldsense.domain.sensors import SensorDefaultsSpec


@runtime_checkable
class PersistenceGateway(Protocol):
    """Minimal write contract used by the ingestion pipeline."""

    def sensor_exists(self, sensor_id: str) -> bool:
        """Return True when a sensor row with this id exists."""
        ...

    def create_sensor(self, sensor_id: str, defaults: SensorDefaultsSpec) -> None:
        """Create the sensor row with ``defaults``.

        Idempotent: a concurrent creator winning the race is not an error.
        """
        ...

    def insert_reading(
        self,
        sensor_id: str,
        value: float,
        timestamp: str,
        *,
        temperature: float | None = None,
        humidity: float | None = None,
    ) -> int:
        """Append a reading and return its generated id.

        Fails when the sensor row does not exist (foreign key).
        """
        ...


__all__ = ["PersistenceGateway"]
