# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TODO_DATA_DIR": "Local data directory, also holds todo.log (default: .local/todo).",
    "TODO_DB_PATH": "SQLite database path (default: <data_dir>/todos.sqlite3). DB_PATH is accepted too.",
    # Engine
    "TODO_BUSY_TIMEOUT_SECONDS": "How long a connection waits on a locked database (default: 30).",
    # Limits
    "TODO_DEFAULT_PAGE_SIZE": "Page size used when a list request gives none (default: 50).",
    "TODO_MAX_PAGE_SIZE": "Hard cap on list page size (default: 200).",
    "TODO_MAX_BATCH_SIZE": "Max ids per batch call (default: 100).",
    # Per-operation budgets, seconds (used by the async helpers only)
    "TODO_LIST_TIMEOUT": "List/get budget (default: 5).",
    "TODO_CREATE_TIMEOUT": "Create budget (default: 3).",
    "TODO_UPDATE_TIMEOUT": "Update and batch-complete budget (default: 3).",
    "TODO_DELETE_TIMEOUT": "Delete and batch-delete budget (default: 2).",
    "TODO_STATS_TIMEOUT": "Stats budget (default: 5).",
}
