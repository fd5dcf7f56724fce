# src/todo_core/todos/todo_api.py

"""
Async glue for callers running on an event loop.

Every store call blocks on SQLite I/O, so these helpers push it onto a
worker thread with asyncio.to_thread. When the caller passes no token, one
is built from the per-operation budget in settings. If the awaiting task is
cancelled, the token is fired so the worker stops at its next check; the
statement already running is interrupted on a best-effort basis only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from ..core.cancel import CancelToken
from ..core.state import AppState
from .todo_models import BatchPolicy, BatchResult, Todo, TodoFilter, TodoStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _budget(state: AppState, name: str, default: float) -> float:
    return float(getattr(state.settings, name, default))


async def _offload(token: CancelToken, fn: Callable[..., T], *args, **kwargs) -> T:
    try:
        return await asyncio.to_thread(fn, token, *args, **kwargs)
    except asyncio.CancelledError:
        token.cancel()
        raise


async def list_todos(
    state: AppState,
    flt: TodoFilter | None = None,
    *,
    token: CancelToken | None = None,
) -> tuple[list[Todo], int]:
    token = token or CancelToken.with_timeout(_budget(state, "list_timeout", 5.0))
    return await _offload(token, state.store.list_todos, flt)


async def create_todo(
    state: AppState,
    *,
    title: str,
    description: str | None = "",
    due_date: float | None = None,
    token: CancelToken | None = None,
) -> Todo:
    token = token or CancelToken.with_timeout(_budget(state, "create_timeout", 3.0))
    return await _offload(
        token, state.store.create_todo, title=title, description=description, due_date=due_date
    )


async def get_todo(state: AppState, todo_id: int, *, token: CancelToken | None = None) -> Todo | None:
    token = token or CancelToken.with_timeout(_budget(state, "list_timeout", 5.0))
    return await _offload(token, state.store.get_todo, todo_id)


async def update_todo(
    state: AppState,
    todo: Todo,
    *,
    check_exists: bool = False,
    token: CancelToken | None = None,
) -> Todo:
    token = token or CancelToken.with_timeout(_budget(state, "update_timeout", 3.0))
    return await _offload(token, state.store.update_todo, todo, check_exists=check_exists)


async def delete_todo(state: AppState, todo_id: int, *, token: CancelToken | None = None) -> None:
    token = token or CancelToken.with_timeout(_budget(state, "delete_timeout", 2.0))
    await _offload(token, state.store.delete_todo, todo_id)


async def batch_complete(
    state: AppState,
    ids: Sequence[int],
    policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    *,
    token: CancelToken | None = None,
) -> BatchResult:
    token = token or CancelToken.with_timeout(_budget(state, "update_timeout", 3.0))
    return await _offload(token, state.batch.complete_many, ids, policy)


async def batch_delete(
    state: AppState,
    ids: Sequence[int],
    policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    *,
    token: CancelToken | None = None,
) -> BatchResult:
    token = token or CancelToken.with_timeout(_budget(state, "delete_timeout", 2.0))
    return await _offload(token, state.batch.delete_many, ids, policy)


async def get_stats(state: AppState, *, token: CancelToken | None = None) -> TodoStats:
    token = token or CancelToken.with_timeout(_budget(state, "stats_timeout", 5.0))
    return await _offload(token, state.aggregator.stats)
