# src/todo_core/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) the service layer depends on.

The async glue and AppState are typed against these Protocols instead of
the concrete SQLite components, so tests can swap in fakes.
"""

from collections.abc import Sequence
from typing import Protocol

from ..todos.todo_models import BatchPolicy, BatchResult, Todo, TodoFilter, TodoStats
from .cancel import CancelToken


class TodoRepo(Protocol):
    def count_todos(self, token: CancelToken) -> int: ...

    def create_todo(
            self,
            token: CancelToken,
            *,
            title: str,
            description: str | None = "",
            due_date: float | None = None,
    ) -> Todo: ...

    def get_todo(self, token: CancelToken, todo_id: int) -> Todo | None: ...
    def list_todos(self, token: CancelToken, flt: TodoFilter | None = None) -> tuple[list[Todo], int]: ...
    def update_todo(self, token: CancelToken, todo: Todo, *, check_exists: bool = False) -> Todo: ...
    def delete_todo(self, token: CancelToken, todo_id: int) -> None: ...


class BatchRunner(Protocol):
    def complete_many(
            self,
            token: CancelToken,
            ids: Sequence[int],
            policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    ) -> BatchResult: ...

    def delete_many(
            self,
            token: CancelToken,
            ids: Sequence[int],
            policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    ) -> BatchResult: ...


class StatsReader(Protocol):
    def stats(self, token: CancelToken, *, now: float | None = None) -> TodoStats: ...
