#!/usr/bin/env python3
"""
scripts/cleanup_unauthorized_sensors.py

Reports sensors stored in the database that the current allow-list would
reject (no accepted prefix and not explicitly allowed), with their reading
counts. With ``--delete --yes`` the sensors and all their readings are
removed in a single transaction.

The ingestion pipeline itself never deletes anything; this is a manual
maintenance tool for cleaning up after strangers on a public broker.

Usage:
    python scripts/cleanup_unauthorized_sensors.py
    python scripts/cleanup_unauthorized_sensors.py --db data/agriculture.db --delete --yes
"""
import argparse
import os
import sys
from typing import Any

# Ensure repository root is on sys.path when executed as a script
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fieldsense.config import load_config
from fieldsense.domain.exceptions import PersistenceFailure
from fieldsense.services.hardware.sensor_authorization import AuthorizationFilter
from infrastructure.database.repositories.sensors import SensorRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler


def find_unauthorized(sensors: list[dict[str, Any]], authorization: AuthorizationFilter) -> list[dict[str, Any]]:
    return [s for s in sensors if not authorization.is_allowed(s["sensor_id"])]


def cleanup(db_path: str, allowed: list[str], *, delete: bool = False) -> dict[str, Any]:
    dbh = SQLiteDatabaseHandler(db_path)
    dbh.create_tables()
    repo = SensorRepository(dbh)
    authorization = AuthorizationFilter(allowed)

    sensors = repo.list_sensors()
    unauthorized = find_unauthorized(sensors, authorization)
    result: dict[str, Any] = {
        "total_sensors": len(sensors),
        "unauthorized": [s["sensor_id"] for s in unauthorized],
        "unauthorized_readings": sum(int(s["readings_count"]) for s in unauthorized),
        "deleted": None,
    }
    if delete and unauthorized:
        result["deleted"] = repo.delete_sensors(result["unauthorized"])
    dbh.close_db()
    return result


def main(argv: list[str] | None = None) -> int:
    config = load_config()
    parser = argparse.ArgumentParser(description="Report or delete sensors that fail the allow-list")
    parser.add_argument("--db", default=config.database_path, help="SQLite database path")
    parser.add_argument("--delete", action="store_true", help="Delete unauthorized sensors and their readings")
    parser.add_argument("--yes", action="store_true", help="Confirm deletion (required with --delete)")
    args = parser.parse_args(argv)

    if args.delete and not args.yes:
        print("Refusing to delete without --yes")
        return 2

    allowed = config.allowed_sensor_ids
    print(f"Database: {args.db}")
    print(f"Explicitly allowed sensors: {', '.join(allowed) or '(none)'}")

    try:
        result = cleanup(args.db, allowed, delete=args.delete)
    except PersistenceFailure as exc:
        print(f"Cleanup failed, database unchanged: {exc}")
        return 1

    print(f"Sensors in database: {result['total_sensors']}")
    if not result["unauthorized"]:
        print("No unauthorized sensors found.")
        return 0

    print(f"Unauthorized sensors ({len(result['unauthorized'])}): {', '.join(result['unauthorized'])}")
    print(f"Readings belonging to them: {result['unauthorized_readings']}")
    if result["deleted"] is None:
        print("Dry run; re-run with --delete --yes to remove them.")
    else:
        print(f"Deleted {result['deleted']['sensors']} sensors and {result['deleted']['readings']} readings")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
