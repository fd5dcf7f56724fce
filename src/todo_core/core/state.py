# src/todo_core/core/state.py

"""
Composition root.

Builds the single Database handle and injects it into each component.
Nothing in the core reaches for a module-level engine; tests build their
own AppState against a temporary database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import Settings, get_settings
from ..logging_setup import level_from_name, setup_logging
from ..storage.database import Database
from ..todos.todo_batch import BatchExecutor
from ..todos.todo_stats import TodoAggregator
from ..todos.todo_store import TodoStore
from .cancel import CancelToken
from .errors import TodoError
from .ports import BatchRunner, StatsReader, TodoRepo

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    # Settings (or a test stand-in) for per-operation budgets.
    settings: object

    db: Database
    store: TodoRepo
    batch: BatchRunner
    aggregator: StatsReader


def create_initial_state(*, settings: Settings | None = None, db: Database | None = None) -> AppState:
    """
    Wire the components from settings.

    If settings is None, falls back to get_settings(). Passing `db` reuses an
    existing handle instead of opening settings.db_path.
    """
    if settings is None:
        settings = get_settings()

    if db is None:
        db = Database(settings.db_path, busy_timeout=settings.busy_timeout_seconds)

    store = TodoStore(
        db,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )

    state = AppState(
        settings=settings,
        db=db,
        store=store,
        batch=BatchExecutor(db, max_batch_size=settings.max_batch_size),
        aggregator=TodoAggregator(db),
    )

    try:
        total = store.count_todos(CancelToken.with_timeout(settings.stats_timeout))
    except TodoError:
        logger.exception("Initial todo count failed db=%s", db.path)
        total = -1
    logger.info("TodoStore ready db=%s total=%s", db.path, total)
    return state


def bootstrap(settings: Settings | None = None) -> AppState:
    """Configure logging from settings, then build the AppState."""
    if settings is None:
        settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=level_from_name(settings.log_level))
    logger.info("Starting %s...", settings.app_name)
    return create_initial_state(settings=settings)
