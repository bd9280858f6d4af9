"""
Tagged outcomes for per-message parsing.

Parsers in the ingestion path return ``Ok(value)`` or ``Err(reason, detail)``
instead of raising, so a bad message can be logged and dropped without any
exception reaching the MQTT network loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from fieldsense.enums.events import DropReason

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    reason: DropReason
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Ok[T], Err]
