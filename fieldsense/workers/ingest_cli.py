from __future__ import annotations

import argparse
import logging
import time

from fieldsense.config import load_config, setup_logging
from fieldsense.domain.exceptions import ConfigurationError
from fieldsense.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the ingestion pipeline without starting the web server."""
    parser = argparse.ArgumentParser(prog="fieldsense-ingest")
    parser.add_argument("--broker-url", help="Override MQTT_BROKER_URL (e.g. mqtt://localhost:1883)")
    parser.add_argument("--database", help="Override FIELDSENSE_DATABASE_PATH")
    parser.add_argument(
        "--allowlist-bypasses-prefix",
        action="store_true",
        help="Accept explicitly allow-listed ids at topic level even without an accepted prefix",
    )
    args = parser.parse_args(argv)

    config = load_config()
    if args.broker_url:
        config.mqtt_broker_url = args.broker_url
    if args.database:
        config.database_path = args.database
    if args.allowlist_bypasses_prefix:
        config.allowlist_bypasses_prefix = True
    config.enable_mqtt = True
    setup_logging(debug=config.DEBUG, level=config.log_level, log_dir=config.log_dir)

    container = ServiceContainer.build(config)
    try:
        container.start()
    except ConfigurationError as exc:
        logger.error("Cannot start ingestion: %s", exc)
        container.shutdown()
        return 2

    logger.info("Ingestion running against %s (press Ctrl+C to stop)", config.mqtt_broker_url)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping ingestion...")
    finally:
        container.shutdown()
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
