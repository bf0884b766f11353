"""
entrypoint.py — Container entrypoint for the PDF service.

Starts the PDF endpoint and review UI on ``0.0.0.0:$PORT`` and keeps it in the
foreground. The same server answers platform health probes on ``/health``,
``/healthz`` and ``/ping``.

Architecture
------------
┌─────────────────────────────────────────────────────────┐
│  Python process (PID 1 in container)                    │
│                                                         │
│  Main thread ──── HTTPServer on 0.0.0.0:$PORT           │
│                   POST /pdf       → headless Chromium   │
│                   GET  /          → review page         │
│                   GET  /health    → 200 {"status":...}  │
│                   Registers SIGTERM → graceful exit     │
└─────────────────────────────────────────────────────────┘

Design decisions
----------------
- serve_forever() runs on the *main* thread because signal.signal() can only
  be called from there; SIGTERM exits the loop and closes the socket.
- $PORT is honoured so the platform can assign ports dynamically
  (default 3001).
"""

import logging
import os
import signal
import sys

# ---------------------------------------------------------------------------
# Logging — minimal bootstrap; the CLI sets up file logging for batch runs
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("entrypoint")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

def main() -> None:
    """Load config, bind the server, and serve until SIGTERM / SIGINT.

    Execution order:
    1. Load config.yaml (or $CONFIG_PATH) over the built-in defaults.
    2. Take the port from ``server.port`` (load_config applies $PORT).
    3. Bind the HTTP server and register signal handlers.
    4. Block in serve_forever() until a signal arrives.
    """
    from practice_report.config import load_config  # noqa: PLC0415
    from practice_report.server import create_server  # noqa: PLC0415

    cfg = load_config(os.environ.get("CONFIG_PATH", "config.yaml"))
    port = int(cfg["server"]["port"])

    try:
        server = create_server(cfg, port=port)
    except OSError as exc:
        logger.critical("Cannot bind port %d: %s", port, exc)
        sys.exit(1)

    def _shutdown(sig, frame):
        logger.info("Shutdown signal — stopping PDF service")
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    logger.info("PDF service listening on %s:%d  [POST /pdf, GET /]",
                cfg["server"]["host"], port)
    try:
        server.serve_forever()
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
