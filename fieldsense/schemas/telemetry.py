"""
Telemetry Schemas
=================

Pydantic models for payloads published by field sensors on
``sensor/{sensor_id}/data`` (or the legacy ``.../moisture``).
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from fieldsense.domain.outcome import Err, Ok, Outcome
from fieldsense.enums.events import DropReason


class MoisturePayload(BaseModel):
    """Body of a data message. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    moisture: float = Field(..., description="Raw or calibrated moisture reading")
    timestamp: str | None = Field(default=None, description="ISO-8601 reading time; server time when absent")
    temperature: float | None = Field(default=None, description="Optional soil/air temperature")
    humidity: float | None = Field(default=None, description="Optional relative humidity")

    @field_validator("moisture", "temperature", "humidity", mode="before")
    @classmethod
    def _require_finite_number(cls, v: Any) -> Any:
        # JSON booleans and numeric strings must not be read as measurements
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a JSON number")
        try:
            finite = math.isfinite(v)
        except OverflowError:
            raise ValueError("out of range") from None
        if not finite:
            raise ValueError("must be finite")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify_timestamp(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)


def parse_moisture_payload(data: dict[str, Any]) -> Outcome[MoisturePayload]:
    """Validate a decoded data message, returning a tagged outcome."""
    if data.get("moisture") is None:
        return Err(DropReason.MISSING_REQUIRED_FIELD, "moisture")

    try:
        return Ok(MoisturePayload.model_validate(data))
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        return Err(DropReason.MALFORMED_PAYLOAD, f"invalid field(s): {fields}")
