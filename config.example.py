# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "PLANBOARD_APP_NAME": "App display name (default: planboard).",
    "PLANBOARD_LOG_LEVEL": "Console logging level (default: INFO). The file log is always DEBUG.",
    "PLANBOARD_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # Paths (gitignored)
    "PLANBOARD_DATA_DIR": "Local data directory (default: .local/planboard).",
    "PLANBOARD_CACHE_DB_PATH": "AI response cache SQLite path (default: <data_dir>/ai_cache.sqlite3).",
    "PLANBOARD_SNAPSHOT_PATH": (
        "Local-only mode collection snapshot (default: <data_dir>/snapshot.json)."
    ),
    # Sync
    "PLANBOARD_AUTOSAVE_DELAY_SECONDS": "Quiet period before an automatic batch save (default: 3.0; 0 disables).",
    "PLANBOARD_REMOTE_URL": "Supabase/PostgREST project URL (fallback: SUPABASE_URL). Empty => local-only.",
    "PLANBOARD_REMOTE_API_KEY": "Remote API key (fallback: SUPABASE_ANON_KEY).",
    "PLANBOARD_REMOTE_TIMEOUT_SECONDS": "HTTP timeout for remote calls (default: 10).",
    # LLM
    "PLANBOARD_OPENAI_API_KEY": "OpenAI-compatible API key (fallback: OPENAI_API_KEY). Empty => AI offline.",
    "PLANBOARD_OPENAI_BASE_URL": "Optional base URL for OpenAI-compatible providers.",
    "PLANBOARD_LLM_MODELS": "Comma/space separated list of models to try in order (default: gpt-4o-mini gpt-4o).",
}
