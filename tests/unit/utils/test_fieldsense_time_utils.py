from datetime import timedelta

from fieldsense.utils.time import coerce_datetime, iso_now, to_iso_utc, utc_now


def test_coerce_datetime_parses_z_suffix():
    dt = coerce_datetime("2026-01-01T00:00:00Z")
    assert dt is not None
    assert dt.tzinfo is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.isoformat().endswith("+00:00")


def test_coerce_datetime_parses_offset():
    dt = coerce_datetime("2026-01-01T02:00:00+02:00")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.hour == 0


def test_coerce_datetime_parses_naive_as_utc():
    dt = coerce_datetime("2026-01-01T00:00:00")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)
    assert isinstance(utc_now() - dt, timedelta)


def test_coerce_datetime_rejects_garbage():
    assert coerce_datetime("not a date") is None
    assert coerce_datetime("   ") is None
    assert coerce_datetime(1700000000) is None
    assert coerce_datetime(None) is None


def test_to_iso_utc_normalizes_offsets():
    assert to_iso_utc("2026-03-01T12:00:00Z") == "2026-03-01T12:00:00+00:00"
    assert to_iso_utc("2026-03-01T12:00:00-05:00") == "2026-03-01T17:00:00+00:00"
    assert to_iso_utc("garbage") is None


def test_iso_now_is_utc():
    assert iso_now().endswith("+00:00")
    assert coerce_datetime(iso_now(timespec="seconds")) is not None
