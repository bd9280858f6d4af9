"""Repository facades exposing typed accessors over low-level mixins.

The storage contract is available for type-checking and dependency injection::

    from infrastructure.database.repositories.base import PersistenceGateway
"""

from infrastructure.database.repositories.base import PersistenceGateway
from infrastructure.database.repositories.sensors import SensorRepository

__all__ = [
    "PersistenceGateway",
    "SensorRepository",
]
