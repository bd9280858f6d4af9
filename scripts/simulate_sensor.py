#!/usr/bin/env python3
"""
scripts/simulate_sensor.py

Publishes ``data`` messages for one sensor id so the ingestion pipeline can
be exercised end to end against a real broker.

Usage:
    python scripts/simulate_sensor.py ESP32_099
    python scripts/simulate_sensor.py ESP32_099 --count 10 --interval 2 --broker-url mqtt://localhost:1883
"""
import argparse
import logging
import os
import random
import sys
import time

# Ensure repository root is on sys.path when executed as a script
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fieldsense.config import load_config, setup_logging
from fieldsense.constants import Topics
from fieldsense.hardware.mqtt.connection_manager import ConnectionManager
from fieldsense.utils.time import iso_now

logger = logging.getLogger("simulate_sensor")


def build_reading(rng: random.Random) -> dict:
    return {
        "moisture": round(rng.uniform(20.0, 80.0), 1),
        "temperature": round(rng.uniform(12.0, 30.0), 1),
        "humidity": round(rng.uniform(40.0, 90.0), 1),
        "timestamp": iso_now(),
    }


def main(argv: list[str] | None = None) -> int:
    config = load_config()
    parser = argparse.ArgumentParser(description="Publish simulated soil-moisture readings")
    parser.add_argument("sensor_id", help="Sensor id used in the topic, e.g. ESP32_099")
    parser.add_argument("--broker-url", default=config.mqtt_broker_url)
    parser.add_argument("--count", type=int, default=5)
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between readings")
    parser.add_argument("--connect-wait", type=float, default=10.0, help="Seconds to wait for the broker")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    setup_logging(debug=config.DEBUG, level=config.log_level, log_dir=config.log_dir)
    rng = random.Random(args.seed)

    manager = ConnectionManager(
        client_id_prefix="fieldsense_simulator",
        retry_interval=config.mqtt_retry_interval_seconds,
        connect_timeout=config.mqtt_connect_timeout_seconds,
    )
    manager.connect(args.broker_url)
    try:
        deadline = time.monotonic() + args.connect_wait
        while not manager.get_status() and time.monotonic() < deadline:
            time.sleep(0.1)
        if not manager.get_status():
            logger.error("Could not connect to %s within %ss", args.broker_url, args.connect_wait)
            return 1

        topic = f"{Topics.ROOT}/{args.sensor_id}/data"
        for i in range(args.count):
            reading = build_reading(rng)
            if manager.publish(topic, reading):
                logger.info("Published %s -> %s", topic, reading)
            if i < args.count - 1:
                time.sleep(args.interval)
        # Let the network loop flush the last QoS 0 publish
        time.sleep(0.5)
    finally:
        manager.disconnect()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
