# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_core.core.cancel import CancelToken
from todo_core.core.state import AppState, create_initial_state
from todo_core.storage.database import Database
from todo_core.todos.todo_batch import BatchExecutor
from todo_core.todos.todo_stats import TodoAggregator
from todo_core.todos.todo_store import TodoStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the async glue.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        db_path=tmp_path / "todos.sqlite3",
        busy_timeout_seconds=5.0,
        default_page_size=50,
        max_page_size=200,
        max_batch_size=100,
        list_timeout=5.0,
        create_timeout=3.0,
        update_timeout=3.0,
        delete_timeout=2.0,
        stats_timeout=5.0,
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> Database:
    return Database(settings.db_path, busy_timeout=settings.busy_timeout_seconds)


@pytest.fixture()
def store(db: Database) -> TodoStore:
    return TodoStore(db)


@pytest.fixture()
def batch(db: Database) -> BatchExecutor:
    return BatchExecutor(db)


@pytest.fixture()
def aggregator(db: Database) -> TodoAggregator:
    return TodoAggregator(db)


@pytest.fixture()
def token() -> CancelToken:
    return CancelToken.with_timeout(10.0)


@pytest.fixture()
def state(settings: SimpleNamespace, db: Database) -> AppState:
    """AppState wired against the per-test SQLite file (real stores, no fakes)."""
    return create_initial_state(settings=settings, db=db)
