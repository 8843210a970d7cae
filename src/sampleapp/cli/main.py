# src/sampleapp/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then:
- runs the background host (queue + worker + scheduler) on its own loop thread,
- runs the console REPL in the main thread (optional), or waits for a signal.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..hosting import start_host_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)

# Extra time on top of the drain timeout for scheduler stop and disposal.
_JOIN_SLACK_SECONDS = 10.0


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        runner = start_host_in_background(state.host)
    except RuntimeError:
        logger.exception("Could not start the background host.")
        raise SystemExit(1) from None
    state.runner = runner

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Ctrl+C stays a KeyboardInterrupt so input() returns.
            run_console_loop(state)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                # Not the main thread, or the platform lacks SIGTERM.
                logger.debug("Signal handlers not installed.", exc_info=True)
            logger.info("Console disabled. Running background host only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        runner.stop()
        runner.join(timeout=settings.shutdown_timeout_seconds + _JOIN_SLACK_SECONDS)
        if runner.thread.is_alive():
            logger.error("Host thread did not finish in time; exiting anyway.")
        elif runner.graceful is False:
            logger.warning("Host stopped after a forced drain.")
        logger.info("Bye.")


if __name__ == "__main__":
    main()
