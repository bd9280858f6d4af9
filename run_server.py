"""Flask admin server with the ingestion pipeline running"""

import logging
import os
import sys

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")

from fieldsense import create_app

logger = logging.getLogger(__name__)


def main() -> int:
    app = create_app(start_ingestion=True)

    # Get port from environment or use default
    port = int(os.environ.get("FLASK_RUN_PORT", 8000))

    print(f"Server starting on http://0.0.0.0:{port}")
    print("Press Ctrl+C to stop\n")

    try:
        app.run(host="0.0.0.0", port=port, debug=False, use_reloader=False)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    finally:
        app.extensions["fieldsense_shutdown"]("server exit")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
