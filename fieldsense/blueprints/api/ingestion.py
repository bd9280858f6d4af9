"""
Ingestion Admin API
===================

Allow-list administration and pipeline status.

Endpoints (mounted at ``/api/v1/ingestion``):

- ``GET    /allowed-sensors``               list explicit allow-list entries
- ``POST   /allowed-sensors``               ``{"sensorId": ..., "action": "add"|"remove"}``
- ``DELETE /allowed-sensors/<sensor_id>``   remove one entry
- ``POST   /allowed-sensors/reload``        reset to the configured list
- ``GET    /status``                        broker, writer and ingestion counters

Every allow-list change is written to the audit log.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response
from pydantic import ValidationError

from fieldsense.blueprints.api._common import fail, get_actor, get_container, get_json, success
from fieldsense.domain.exceptions import NotFoundError
from fieldsense.schemas.admin import AllowedSensorRequest
from fieldsense.utils.http import safe_route

logger = logging.getLogger(__name__)

ingestion_api = Blueprint("ingestion_api", __name__)


def _allow_list_payload(authorization) -> dict:
    return {
        "allowed_sensors": authorization.list_allowed(),
        "accepted_prefixes": list(authorization.prefixes),
    }


@ingestion_api.get("/allowed-sensors")
@safe_route("Failed to list allowed sensors")
def list_allowed_sensors() -> Response:
    container = get_container()
    return success(_allow_list_payload(container.authorization))


@ingestion_api.post("/allowed-sensors")
@safe_route("Failed to update allowed sensors")
def update_allowed_sensors() -> Response:
    try:
        body = AllowedSensorRequest.model_validate(get_json())
    except ValidationError as ve:
        return fail("Invalid request", 400, details={"errors": ve.errors(include_url=False, include_context=False)})

    container = get_container()
    if body.action == "add":
        changed = container.authorization.add_allowed(body.sensor_id)
        message = f"Sensor {body.sensor_id} added" if changed else f"Sensor {body.sensor_id} already allowed"
    else:
        changed = container.authorization.remove_allowed(body.sensor_id)
        message = f"Sensor {body.sensor_id} removed" if changed else f"Sensor {body.sensor_id} was not allow-listed"

    container.audit_logger.log_event(
        actor=get_actor(),
        action=f"allowlist.{body.action}",
        resource=body.sensor_id,
        outcome="changed" if changed else "noop",
    )
    return success({**_allow_list_payload(container.authorization), "changed": changed}, message=message)


@ingestion_api.delete("/allowed-sensors/<sensor_id>")
@safe_route("Failed to remove allowed sensor")
def remove_allowed_sensor(sensor_id: str) -> Response:
    container = get_container()
    removed = container.authorization.remove_allowed(sensor_id)
    container.audit_logger.log_event(
        actor=get_actor(),
        action="allowlist.remove",
        resource=sensor_id,
        outcome="changed" if removed else "not_found",
    )
    if not removed:
        raise NotFoundError(f"Sensor {sensor_id} is not in the allow-list")
    return success(_allow_list_payload(container.authorization), message=f"Sensor {sensor_id} removed")


@ingestion_api.post("/allowed-sensors/reload")
@safe_route("Failed to reload allowed sensors")
def reload_allowed_sensors() -> Response:
    container = get_container()
    allowed = container.authorization.reload()
    container.audit_logger.log_event(
        actor=get_actor(),
        action="allowlist.reload",
        resource="allowed_sensors",
        outcome="changed",
        count=len(allowed),
    )
    return success(_allow_list_payload(container.authorization), message="Allow-list reloaded from configuration")


@ingestion_api.get("/status")
@safe_route("Failed to get ingestion status")
def ingestion_status() -> Response:
    return success(get_container().status())
