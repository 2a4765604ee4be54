"""CLI entrypoint: run the producer/consumer simulation until interrupted."""
from __future__ import annotations
import argparse
import signal
import sys
from typing import Optional, Sequence

from loguru import logger

from prodcons.core.config import load_settings
from prodcons.core.errors import ConfigError
from prodcons.core.log_session import LogSession
from prodcons.live.supervisor import Supervisor

SHUTDOWN_TIMEOUT_SEC = 5.0


def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(description="Bounded-buffer producer/consumer simulation")
    p.add_argument("config", nargs="?", default="config.properties",
                   help="key=value (or .yaml) configuration file")
    return p.parse_args(argv)


def _install_signal_handlers(sup: Supervisor) -> None:
    def _handler(signum, frame):
        logger.warning(f"Received signal {signum}, shutting down gracefully...")
        sup.request_stop()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logger.info("Starting Producer-Consumer simulation...")
    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error(f"Startup configuration error: {e}")
        return 1

    with LogSession(settings.log_level, settings.log_file) as session:
        sup = Supervisor(log_session=session)
        try:
            sup.start(settings)
        except ConfigError as e:
            logger.error(f"Startup configuration error: {e}")
            return 1
        _install_signal_handlers(sup)
        session.logger.info("Simulation running. Press Ctrl+C to exit.")
        try:
            sup.wait()
        finally:
            sup.shutdown(timeout=SHUTDOWN_TIMEOUT_SEC)
    return 0


def run():
    # Console sink for records outside a LogSession (config loading, signals)
    logger.remove()
    logger.add(
        sys.stderr,
        level="INFO",
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        filter=lambda record: "session" not in record["extra"],
        colorize=True,
    )
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
