# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from planboard.logging_setup import console_threshold, setup_logging


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("planboard.tasks.task_api", logging.INFO, True),
        ("planboard.sync.sync_engine", logging.INFO, False),
        ("planboard.sync.sync_engine", logging.WARNING, True),
        ("planboard.sync.remote", logging.ERROR, True),
        ("planboard.ai.planner", logging.INFO, False),
        ("httpx", logging.WARNING, False),
        ("httpx", logging.ERROR, True),
        ("py.warnings", logging.WARNING, False),
    ],
)
def test_console_thresholds(name: str, level: int, shown: bool) -> None:
    assert (level >= console_threshold(name)) is shown


def test_setup_logging_writes_everything_to_the_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        setup_logging(log_dir=tmp_path / "logs")
        assert len(root.handlers) == 2

        logging.getLogger("planboard.sync.sync_engine").debug("batch saved gen=3")
        for h in root.handlers:
            h.flush()
        assert "batch saved gen=3" in log_file.read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
