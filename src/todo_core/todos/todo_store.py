# todos/todo_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import replace

from ..core.cancel import CancelToken
from ..core.errors import DecodeError, NotFound, StoreFailure, ValidationError, VersionConflict
from ..storage.database import Database, is_row_id
from .todo_models import Todo, TodoFilter, TodoStatus
from .todo_query import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, TODO_COLUMNS, build_list_query

logger = logging.getLogger(__name__)


def _opt_float(raw: object, column: str) -> float | None:
    if raw is None:
        return None
    return _req_float(raw, column)


def _req_float(raw: object, column: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise DecodeError(f"column {column} is not a timestamp: {raw!r}")
    return float(raw)


def row_to_todo(row: sqlite3.Row) -> Todo:
    """Materialize one row; anything that does not fit the model raises DecodeError."""
    try:
        todo_id = row["id"]
        version = row["version"]
        title = row["title"]
        description = row["description"]
        status_raw = row["status"]
    except (IndexError, KeyError) as exc:
        raise DecodeError(f"missing column: {exc}") from exc

    if not isinstance(todo_id, int) or not isinstance(version, int) or version < 1:
        raise DecodeError(f"bad id/version in row id={todo_id!r} version={version!r}")
    if not isinstance(title, str):
        raise DecodeError(f"bad title in row id={todo_id}")

    todo = Todo(
        id=todo_id,
        version=version,
        title=title,
        description=description if isinstance(description, str) else "",
        status=TodoStatus.from_db(status_raw),
        due_date=_opt_float(row["due_date"], "due_date"),
        created_at=_req_float(row["created_at"], "created_at"),
        updated_at=_req_float(row["updated_at"], "updated_at"),
        completed_at=_opt_float(row["completed_at"], "completed_at"),
    )
    if todo.is_completed != (todo.completed_at is not None):
        raise DecodeError(f"completed_at does not match status in row id={todo_id}")
    return todo


class TodoStore:
    """
    Record store for todos.

    Every operation takes a CancelToken first and checks it before touching
    the engine. Records returned are snapshots; to write, hand the snapshot
    (carrying the version you observed) back to update_todo().

    Updates use optimistic concurrency: one conditional UPDATE gated by
    `id = ? AND version = ?`. No lock is held between read and write, and no
    retry happens here. A VersionConflict means: re-read, re-decide.
    """

    def __init__(
        self,
        db: Database,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._db = db
        self._max_page_size = max(1, int(max_page_size))
        self._default_page_size = min(max(1, int(default_page_size)), self._max_page_size)

    # ---- helpers ----

    @staticmethod
    def _clean_title(title: str | None) -> str:
        t = (title or "").strip()
        if not t:
            raise ValidationError("title is required")
        return t

    @staticmethod
    def _clean_description(description: str | None) -> str:
        return (description or "").strip()

    @staticmethod
    def _normalized(todo: Todo, now: float) -> Todo:
        # The store is the sole writer, so it owns the completed_at invariant.
        if todo.is_completed and todo.completed_at is None:
            return replace(todo, completed_at=now)
        if not todo.is_completed and todo.completed_at is not None:
            return replace(todo, completed_at=None)
        return todo

    # ---- public API ----

    def count_todos(self, token: CancelToken) -> int:
        with self._db.connect(token) as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM todos").fetchone()
            return int(n)

    def create_todo(
        self,
        token: CancelToken,
        *,
        title: str,
        description: str | None = "",
        due_date: float | None = None,
    ) -> Todo:
        clean_title = self._clean_title(title)
        desc = self._clean_description(description)
        now = time.time()

        with self._db.connect(token) as conn:
            cur = conn.execute(
                """
                INSERT INTO todos(
                    version, title, description, status,
                    due_date, created_at, updated_at, completed_at
                )
                VALUES (1, ?, ?, ?, ?, ?, ?, NULL)
                """,
                (
                    clean_title,
                    desc,
                    TodoStatus.PENDING.value,
                    None if due_date is None else float(due_date),
                    now,
                    now,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise StoreFailure("SQLite did not return lastrowid for todos insert")

        todo = Todo(
            id=int(rowid),
            version=1,
            title=clean_title,
            description=desc,
            status=TodoStatus.PENDING,
            due_date=None if due_date is None else float(due_date),
            created_at=now,
            updated_at=now,
        )
        logger.debug("Todo created id=%s due_date=%s", todo.id, todo.due_date)
        return todo

    def get_todo(self, token: CancelToken, todo_id: int) -> Todo | None:
        """None means "no such row"; store errors raise."""
        token.check()
        todo_id = int(todo_id)
        if not is_row_id(todo_id):
            return None
        with self._db.connect(token) as conn:
            row = conn.execute(
                f"SELECT {TODO_COLUMNS} FROM todos WHERE id = ?",
                (todo_id,),
            ).fetchone()
            return row_to_todo(row) if row else None

    def list_todos(self, token: CancelToken, flt: TodoFilter | None = None) -> tuple[list[Todo], int]:
        """
        Return (page, total).

        `total` counts the whole filtered set and ignores limit/offset.
        A row that fails to decode aborts the call; no partial page is returned.
        """
        query = build_list_query(
            flt,
            default_page_size=self._default_page_size,
            max_page_size=self._max_page_size,
        )

        with self._db.transaction(token, immediate=False) as conn:
            (total,) = conn.execute(query.count_sql, query.count_params).fetchone()
            rows = conn.execute(query.select_sql, query.select_params).fetchall()

            items: list[Todo] = []
            for row in rows:
                token.check()
                items.append(row_to_todo(row))

        return items, int(total)

    def update_todo(self, token: CancelToken, todo: Todo, *, check_exists: bool = False) -> Todo:
        """
        Write `todo`'s mutable fields if the stored row is still at `todo.version`.

        Returns a new snapshot at version + 1. Zero affected rows raise
        VersionConflict, whether the id is missing or the version is stale.
        With check_exists=True a missing id raises NotFound instead; the lookup
        runs in the same write transaction, only after a failed update.
        """
        clean_title = self._clean_title(todo.title)
        now = time.time()
        target = self._normalized(
            replace(todo, title=clean_title, description=self._clean_description(todo.description)),
            now,
        )
        if not is_row_id(target.id):
            token.check()
            if check_exists:
                raise NotFound(target.id)
            raise VersionConflict(target.id, target.version)

        with self._db.transaction(token) as conn:
            cur = conn.execute(
                """
                UPDATE todos
                SET title = ?,
                    description = ?,
                    status = ?,
                    due_date = ?,
                    completed_at = ?,
                    updated_at = ?,
                    version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    target.title,
                    target.description,
                    target.status.value,
                    target.due_date,
                    target.completed_at,
                    now,
                    int(target.id),
                    int(target.version),
                ),
            )
            if cur.rowcount == 0:
                if check_exists:
                    exists = conn.execute("SELECT 1 FROM todos WHERE id = ?", (int(target.id),)).fetchone()
                    if exists is None:
                        raise NotFound(target.id)
                logger.warning(
                    "Version conflict id=%s expected_version=%s", target.id, target.version
                )
                raise VersionConflict(target.id, target.version)

        updated = replace(target, version=target.version + 1, updated_at=now)
        logger.debug("Todo updated id=%s version=%s status=%s", updated.id, updated.version, updated.status)
        return updated

    def complete_todo(self, token: CancelToken, todo: Todo) -> Todo:
        return self.update_todo(token, todo.completed(time.time()))

    def reactivate_todo(self, token: CancelToken, todo: Todo) -> Todo:
        return self.update_todo(token, todo.reactivated())

    def delete_todo(self, token: CancelToken, todo_id: int) -> None:
        token.check()
        todo_id = int(todo_id)
        if not is_row_id(todo_id):
            raise NotFound(todo_id)
        with self._db.connect(token) as conn:
            cur = conn.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
            if cur.rowcount == 0:
                raise NotFound(todo_id)
        logger.debug("Todo deleted id=%s", todo_id)
