# src/planboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the engine loop in a background
thread, then runs the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.engine_runner import start_engine_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/planboard"), console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "planboard"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    runner = start_engine_in_background(state)
    if runner is None:
        raise SystemExit("Engine failed to start; see planboard.log.")

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            run_console_loop(state, runner)
        else:
            signal.signal(signal.SIGINT, _handle_signal)
            signal.signal(signal.SIGTERM, _handle_signal)
            logger.info("Console disabled. Engine runs until Ctrl+C.")
            stop_main.wait()
    finally:
        # the engine saves unsaved changes before its loop exits
        runner.stop()
        runner.join(timeout=30.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
