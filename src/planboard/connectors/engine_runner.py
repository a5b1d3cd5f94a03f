# src/planboard/connectors/engine_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, TypeVar

from ..cli.bootstrap import load_initial_state, shutdown_state
from ..core.state import AppState

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run_engine(state: AppState, stop_event: asyncio.Event, loaded: threading.Event) -> None:
    try:
        await load_initial_state(state)
    finally:
        loaded.set()

    logger.info("Engine loop running.")
    await stop_event.wait()

    try:
        await shutdown_state(state)
    except Exception:
        logger.exception("Engine shutdown failed.")
    logger.info("Engine loop stopped.")


@dataclass
class EngineBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        """Schedule a coroutine on the engine loop (store mutations must happen there)."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        return self.submit(coro).result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Engine loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_engine_in_background(state: AppState, *, load_timeout: float = 30.0) -> EngineBackgroundRunner | None:
    """
    Start the sync engine loop in a background thread.

    The console REPL is blocking (input()); autosave timers and detached
    writes need a live event loop, so the loop gets its own thread.
    Returns once the initial collection is loaded.
    """
    ready = threading.Event()
    loaded = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_engine(state, stop_event, loaded))
        finally:
            with contextlib.suppress(RuntimeError):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name="planboard-engine", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Engine thread did not initialize properly.")
        return None

    if not loaded.wait(timeout=load_timeout):
        logger.warning("Initial load still running after %.0fs; continuing.", load_timeout)

    logger.info("Engine background thread started.")
    return EngineBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
