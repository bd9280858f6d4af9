"""
Device-related Enumerations
============================

Enums describing sensors and the kinds of message they publish.
"""

from enum import Enum


class SensorStatus(str, Enum):
    """Lifecycle status stored on a sensor row."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class MessageKind(str, Enum):
    """
    Third topic segment of ``sensor/{sensor_id}/{kind}``.

    ``moisture`` is the legacy name for ``data`` and is routed identically.
    """

    DATA = "data"
    MOISTURE = "moisture"
    REGISTER = "register"
    STATUS = "status"

    @classmethod
    def parse(cls, value: str) -> "MessageKind | None":
        """Return the matching kind, or None for kinds this service does not know."""
        try:
            return cls(value)
        except ValueError:
            return None
