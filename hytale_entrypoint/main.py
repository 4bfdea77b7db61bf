"""
Hytale server container entrypoint.

Prepares the server directory and then execs into the Hytale server, so the
JVM becomes the container's main process.
"""

import argparse
import logging
import signal
import sys

from pydantic import ValidationError

from hytale_entrypoint.config import APP_NAME, ENTRYPOINT_VERSION, BootstrapConfig
from hytale_entrypoint.errors import AcquisitionError, BootstrapError, ConfigurationError
from hytale_entrypoint.services import bootstrap
from hytale_entrypoint.services import server as server_svc

logger = logging.getLogger("hytale_entrypoint")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=APP_NAME)
    parser.add_argument(
        "--no-start",
        action="store_true",
        help="Install the server files but do not start the server",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{APP_NAME} v{ENTRYPOINT_VERSION}",
    )
    return parser.parse_args(argv)


def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    numeric = logging.getLevelName(level)
    if not isinstance(numeric, int):
        root.setLevel(logging.INFO)
        logger.warning("Unknown LOG_LEVEL %r, using INFO.", level)
        return
    root.setLevel(numeric)


def _handle_signal(signum, frame):
    # Raising here unwinds through the scratch cleanup in bootstrap.prepare.
    logger.warning("Received signal %d during setup, aborting.", signum)
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = BootstrapConfig.from_env()
    except (ValidationError, ConfigurationError) as exc:
        setup_logging()
        logger.error("Invalid configuration: %s", exc)
        return ConfigurationError.exit_code

    setup_logging(config.log_level)
    install_signal_handlers()

    try:
        bootstrap.prepare(config)
        if args.no_start:
            logger.info("Server files ready (--no-start).")
            return 0
        server_svc.start_server(config)
    except BootstrapError as exc:
        logger.error("Error: %s", exc)
        return exc.exit_code
    except OSError as exc:
        logger.error("Error: filesystem operation failed: %s", exc)
        return AcquisitionError.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
