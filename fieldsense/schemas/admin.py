"""
Admin Schemas
=============

Request models for the allow-list administration endpoints.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator


class AllowedSensorRequest(BaseModel):
    """Body of ``POST /allowed-sensors``. Accepts ``sensorId`` or ``sensor_id``."""

    sensor_id: str = Field(..., validation_alias=AliasChoices("sensorId", "sensor_id"), max_length=128)
    action: Literal["add", "remove"] = Field(...)

    @field_validator("sensor_id")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("sensor_id must not be blank")
        return v
