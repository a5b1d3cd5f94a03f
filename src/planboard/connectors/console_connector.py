# src/planboard/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import HOME_CONTEXT_ID, Project
from .engine_runner import EngineBackgroundRunner

logger = logging.getLogger(__name__)

CHAT_HISTORY_LIMIT = 20


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def _chat(state: AppState, message: str) -> str:
    ctx = state.active_context_id
    project = state.projects.get(ctx)
    if project is None:
        project = Project(id=HOME_CONTEXT_ID, name="All projects")

    history = state.chat_histories.setdefault(ctx, [])
    reply = await state.planner.chat_reply(project, list(history), message)
    if not reply:
        return "[AI] No reply (AI unavailable). Use /help for commands."

    history.append({"role": "user", "content": message})
    history.append({"role": "assistant", "content": reply})
    del history[:-CHAT_HISTORY_LIMIT]
    return reply


async def _handle_line(state: AppState, line: str, emit) -> str:
    reply = await command_registry.handle(state, line, emit=emit)
    if reply is not None:
        return reply
    return await _chat(state, line)


def run_console_loop(state: AppState, runner: EngineBackgroundRunner) -> None:
    logger.info("Console connector started (storage=%s).", "local-only" if state.sync.local_only else "remote")
    _print_ts("[CONSOLE] Type /help for commands, anything else chats with the AI. /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate feedback for long operations (AI calls, saves)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(f"{state.active_context_id}> ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] {state.active_context_id}> {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = runner.run(_handle_line(state, user_input, emit))
        except KeyboardInterrupt:
            print()
            _print_ts("Interrupted.")
            continue
        except Exception:
            logger.exception("Console command handler crashed.")
            response = "Internal error while handling the input."

        print(f"[{_ts_local()}] {response}\n")

    logger.info("Console connector finished.")
