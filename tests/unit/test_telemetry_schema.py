import pytest
from pydantic import ValidationError as PydanticValidationError

from fieldsense.domain.outcome import Err, Ok
from fieldsense.enums.events import DropReason
from fieldsense.schemas.admin import AllowedSensorRequest
from fieldsense.schemas.telemetry import parse_moisture_payload


def test_minimal_payload():
    outcome = parse_moisture_payload({"moisture": 42.5})

    assert isinstance(outcome, Ok)
    assert outcome.value.moisture == 42.5
    assert outcome.value.timestamp is None
    assert outcome.value.temperature is None


def test_optional_fields_and_unknown_keys():
    outcome = parse_moisture_payload(
        {"moisture": 40, "temperature": 18.5, "humidity": 70, "timestamp": "2026-01-01T00:00:00Z", "rssi": -60}
    )

    assert outcome.ok
    assert outcome.value.moisture == 40
    assert outcome.value.humidity == 70
    assert outcome.value.timestamp == "2026-01-01T00:00:00Z"


@pytest.mark.parametrize("payload", [{}, {"moisture": None}, {"value": 12}])
def test_missing_moisture(payload):
    outcome = parse_moisture_payload(payload)

    assert isinstance(outcome, Err)
    assert outcome.reason == DropReason.MISSING_REQUIRED_FIELD


@pytest.mark.parametrize(
    "payload",
    [
        {"moisture": "42"},
        {"moisture": True},
        {"moisture": float("nan")},
        {"moisture": float("inf")},
        {"moisture": 10, "temperature": "warm"},
    ],
)
def test_malformed_values(payload):
    outcome = parse_moisture_payload(payload)

    assert isinstance(outcome, Err)
    assert outcome.reason == DropReason.MALFORMED_PAYLOAD


def test_numeric_timestamp_is_kept_as_text():
    outcome = parse_moisture_payload({"moisture": 1, "timestamp": 1700000000})

    assert outcome.value.timestamp == "1700000000"


def test_allowed_sensor_request_accepts_both_spellings():
    assert AllowedSensorRequest.model_validate({"sensorId": " FOO_1 ", "action": "add"}).sensor_id == "FOO_1"
    body = AllowedSensorRequest.model_validate({"sensor_id": "FOO_1", "action": "remove"})
    assert body.action == "remove"


@pytest.mark.parametrize(
    "payload",
    [
        {"moisture": 10**400},
        {"moisture": -(10**400)},
        {"moisture": 10, "humidity": 10**400},
    ],
)
def test_integers_beyond_float_range_are_malformed(payload):
    outcome = parse_moisture_payload(payload)

    assert isinstance(outcome, Err)
    assert outcome.reason == DropReason.MALFORMED_PAYLOAD


def test_allowed_sensor_request_requires_action():
    with pytest.raises(PydanticValidationError) as excinfo:
        AllowedSensorRequest.model_validate({"sensorId": "FOO_1"})

    assert [err["loc"] for err in excinfo.value.errors()] == [("action",)]
