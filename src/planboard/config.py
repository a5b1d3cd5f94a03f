# src/planboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

- One Settings object for the whole app.
- No secrets required at import time: without a remote URL the app runs
  local-only, without an API key the AI planner runs offline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "PLANBOARD"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    cache_db_path: Path
    snapshot_path: Path

    # ---- Sync ----
    autosave_delay_seconds: float
    remote_url: str | None
    remote_api_key: str | None
    remote_timeout_seconds: float

    # ---- LLM ----
    openai_api_key: str | None
    openai_base_url: str | None
    llm_models: list[str]

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url and self.remote_api_key)

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key and self.llm_models)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "planboard")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/planboard"))
        cache_db_path = _env_path(_k("CACHE_DB_PATH"), data_dir / "ai_cache.sqlite3")
        snapshot_path = _env_path(_k("SNAPSHOT_PATH"), data_dir / "snapshot.json")

        autosave_delay_seconds = _env_float(_k("AUTOSAVE_DELAY_SECONDS"), 3.0)

        # Supabase-style names are accepted as a fallback.
        remote_url = (_first_env(_k("REMOTE_URL"), "SUPABASE_URL", default="") or "").strip() or None
        remote_api_key = (_first_env(_k("REMOTE_API_KEY"), "SUPABASE_ANON_KEY", default="") or "").strip() or None
        remote_timeout_seconds = _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 10.0)

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _first_env(_k("OPENAI_BASE_URL"), default=None)
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini", "gpt-4o"])

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            cache_db_path=cache_db_path,
            snapshot_path=snapshot_path,
            autosave_delay_seconds=autosave_delay_seconds,
            remote_url=remote_url,
            remote_api_key=remote_api_key,
            remote_timeout_seconds=remote_timeout_seconds,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
