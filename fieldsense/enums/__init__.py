"""
Enums Module
============

Enumeration types shared across the ingestion pipeline.
"""

from fieldsense.enums.device import MessageKind, SensorStatus
from fieldsense.enums.events import ConnectionState, DropReason

__all__ = [
    "ConnectionState",
    "DropReason",
    "MessageKind",
    "SensorStatus",
]
