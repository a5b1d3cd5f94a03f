# src/planboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "planboard.log"

# Console thresholds by logger-name prefix, first match wins. Everything
# still reaches the file log at file_level.
CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    # autosave and detached writes run behind the prompt; failures must show
    ("planboard.sync.", logging.WARNING),
    # cache hit/miss chatter
    ("planboard.ai.", logging.WARNING),
    ("planboard.", logging.INFO),
    ("py.warnings", logging.ERROR),
)
THIRD_PARTY_THRESHOLD = logging.ERROR

_QUIET_LIBRARIES = ("httpx", "httpcore", "openai")


def console_threshold(logger_name: str) -> int:
    for prefix, level in CONSOLE_THRESHOLDS:
        if logger_name.startswith(prefix):
            return level
    return THIRD_PARTY_THRESHOLD


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


class _ShortNameFormatter(logging.Formatter):
    """Console lines drop the package prefix: 'sync.sync_engine' instead of 'planboard.sync.sync_engine'."""

    def format(self, record: logging.LogRecord) -> str:
        record.short_name = record.name.removeprefix("planboard.")
        return super().format(record)


def setup_logging(
    *,
    log_dir: str | Path = ".local/planboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console handler (filtered, short names) and the file log.

    Replaces any handlers already on the root logger, so calling it twice is
    harmless. Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_ShortNameFormatter("%(asctime)s %(levelname)s %(short_name)s: %(message)s", "%H:%M:%S"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file
