"""
Sensor Authorization
====================

Decides whether traffic from a sensor id may reach the database.

Two checks exist and they are not the same thing:

* ``has_accepted_prefix`` - the id belongs to a known device namespace
  (``ESP32_``, ``SENSOR_``, ``AGRI_``). Used at the topic level.
* ``is_allowed`` - the id is explicitly allow-listed **or** has an accepted
  prefix. Used before anything is written.

The allow-list is mutable at runtime (admin API) and is read fresh on every
call, so an addition takes effect for the very next message.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from fieldsense.constants import ACCEPTED_SENSOR_PREFIXES
from fieldsense.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


class AuthorizationFilter:
    """Lock-guarded sensor allow-list plus namespace prefix check."""

    def __init__(
        self,
        initial: Iterable[str] = (),
        *,
        prefixes: tuple[str, ...] = ACCEPTED_SENSOR_PREFIXES,
        seed_loader: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        """
        Args:
            initial: Sensor ids allowed at startup.
            prefixes: Accepted id namespaces.
            seed_loader: Re-reads the configured allow-list for ``reload()``.
        """
        self._prefixes = tuple(prefixes)
        self._seed_loader = seed_loader
        self._lock = threading.RLock()
        self._allowed: set[str] = {s.strip() for s in initial if s and s.strip()}
        logger.info("Sensor allow-list initialised with %d entries", len(self._allowed))

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def has_accepted_prefix(self, sensor_id: str) -> bool:
        return bool(sensor_id) and sensor_id.startswith(self._prefixes)

    def is_allowed(self, sensor_id: str) -> bool:
        if not sensor_id:
            return False
        with self._lock:
            if sensor_id in self._allowed:
                return True
        return self.has_accepted_prefix(sensor_id)

    def add_allowed(self, sensor_id: str) -> bool:
        """Add an id. Returns False when it was already present."""
        sensor_id = self._normalize(sensor_id)
        with self._lock:
            if sensor_id in self._allowed:
                return False
            self._allowed.add(sensor_id)
        logger.info("Sensor %s added to allow-list", sensor_id)
        return True

    def remove_allowed(self, sensor_id: str) -> bool:
        """Remove an id. Returns False when it was not present."""
        sensor_id = self._normalize(sensor_id)
        with self._lock:
            if sensor_id not in self._allowed:
                return False
            self._allowed.discard(sensor_id)
        logger.info("Sensor %s removed from allow-list", sensor_id)
        return True

    def list_allowed(self) -> list[str]:
        with self._lock:
            return sorted(self._allowed)

    def reload(self) -> list[str]:
        """Replace the allow-list with the configured seed. Runtime additions are discarded."""
        if self._seed_loader is None:
            return self.list_allowed()
        fresh = {s.strip() for s in self._seed_loader() if s and s.strip()}
        with self._lock:
            self._allowed = fresh
        logger.info("Sensor allow-list reloaded (%d entries)", len(fresh))
        return self.list_allowed()

    @staticmethod
    def _normalize(sensor_id: str) -> str:
        if not isinstance(sensor_id, str) or not sensor_id.strip():
            raise ValidationError("sensor_id must be a non-empty string")
        return sensor_id.strip()
