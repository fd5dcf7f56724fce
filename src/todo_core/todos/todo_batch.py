# todos/todo_batch.py

from __future__ import annotations

"""
Batch mutations: apply one mutation (complete or delete) to many ids inside
a single write transaction.

Two policies:
- ALL_OR_NOTHING: the first item failure rolls back the whole transaction and
  is returned as the only failure; nothing changes.
- PARTIAL: item failures are recorded and iteration continues; the
  transaction commits once at the end, so every successful item persists.

The token is checked before each item. A token that fires mid-batch rolls
back under both policies (PARTIAL only commits at the end) and surfaces as
Canceled / OperationTimeout.

Batch size is capped because the write lock is held for the whole list.
"""

import logging
import sqlite3
import time
from collections.abc import Callable, Sequence
from enum import Enum

from ..core.cancel import CancelToken
from ..core.errors import ValidationError
from ..storage.database import Database, is_row_id
from .todo_models import BatchPolicy, BatchResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100


class BatchOp(str, Enum):
    COMPLETE = "complete"
    DELETE = "delete"


class _ItemFailed(Exception):
    """Internal: carries the first failure out of an ALL_OR_NOTHING transaction."""

    def __init__(self, todo_id: int, reason: str) -> None:
        super().__init__(reason)
        self.todo_id = todo_id
        self.reason = reason


# Returns None on success, or a failure reason.
ItemMutation = Callable[[sqlite3.Connection, int, float], "str | None"]


def _complete_one(conn: sqlite3.Connection, todo_id: int, now: float) -> str | None:
    if not is_row_id(todo_id):
        return "not found or already completed"
    # Only pending rows transition; completion is a regular versioned update.
    cur = conn.execute(
        """
        UPDATE todos
        SET status = 'completed',
            completed_at = ?,
            updated_at = ?,
            version = version + 1
        WHERE id = ? AND status = 'pending'
        """,
        (now, now, todo_id),
    )
    if cur.rowcount == 0:
        return "not found or already completed"
    return None


def _delete_one(conn: sqlite3.Connection, todo_id: int, now: float) -> str | None:
    if not is_row_id(todo_id):
        return "not found"
    cur = conn.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
    if cur.rowcount == 0:
        return "not found"
    return None


_MUTATIONS: dict[BatchOp, ItemMutation] = {
    BatchOp.COMPLETE: _complete_one,
    BatchOp.DELETE: _delete_one,
}


class BatchExecutor:
    def __init__(self, db: Database, *, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE) -> None:
        self._db = db
        self._max_batch_size = max(1, int(max_batch_size))

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    def complete_many(
        self,
        token: CancelToken,
        ids: Sequence[int],
        policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    ) -> BatchResult:
        return self.run(token, BatchOp.COMPLETE, ids, policy)

    def delete_many(
        self,
        token: CancelToken,
        ids: Sequence[int],
        policy: BatchPolicy = BatchPolicy.ALL_OR_NOTHING,
    ) -> BatchResult:
        return self.run(token, BatchOp.DELETE, ids, policy)

    def run(
        self,
        token: CancelToken,
        op: BatchOp,
        ids: Sequence[int],
        policy: BatchPolicy,
    ) -> BatchResult:
        token.check()

        try:
            id_list = [int(i) for i in ids]
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"batch ids must be integers: {exc}") from exc
        if len(id_list) > self._max_batch_size:
            raise ValidationError(
                f"batch supports at most {self._max_batch_size} ids, got {len(id_list)}"
            )
        if not id_list:
            return BatchResult()

        try:
            policy = BatchPolicy(policy)
            op = BatchOp(op)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        mutate = _MUTATIONS[op]

        if policy is BatchPolicy.ALL_OR_NOTHING:
            result = self._run_all_or_nothing(token, op, mutate, id_list)
        else:
            result = self._run_partial(token, op, mutate, id_list)

        logger.info(
            "Batch %s policy=%s size=%s ok=%s failed=%s rolled_back=%s",
            op.value,
            policy.value,
            len(id_list),
            result.success_count,
            result.failure_count,
            result.rolled_back,
        )
        return result

    def _run_all_or_nothing(
        self,
        token: CancelToken,
        op: BatchOp,
        mutate: ItemMutation,
        ids: list[int],
    ) -> BatchResult:
        now = time.time()
        try:
            with self._db.transaction(token) as conn:
                for todo_id in ids:
                    token.check()
                    try:
                        reason = mutate(conn, todo_id, now)
                    except (sqlite3.Error, OverflowError) as exc:
                        if token.is_done():
                            raise
                        reason = f"execution error: {exc}"
                    if reason is not None:
                        raise _ItemFailed(todo_id, reason)
        except _ItemFailed as failed:
            logger.warning(
                "Batch %s rolled back at id=%s: %s", op.value, failed.todo_id, failed.reason
            )
            result = BatchResult(rolled_back=True)
            result.record_failure(failed.todo_id, failed.reason)
            return result

        return BatchResult(success_count=len(ids))

    def _run_partial(
        self,
        token: CancelToken,
        op: BatchOp,
        mutate: ItemMutation,
        ids: list[int],
    ) -> BatchResult:
        now = time.time()
        result = BatchResult()

        with self._db.transaction(token) as conn:
            for todo_id in ids:
                token.check()
                # A savepoint per item keeps a failed statement from touching
                # the rest of the transaction.
                conn.execute("SAVEPOINT batch_item")
                try:
                    reason = mutate(conn, todo_id, now)
                except (sqlite3.Error, OverflowError) as exc:
                    if token.is_done():
                        raise
                    reason = f"execution error: {exc}"
                    conn.execute("ROLLBACK TO SAVEPOINT batch_item")
                conn.execute("RELEASE SAVEPOINT batch_item")

                if reason is None:
                    result.record_success()
                else:
                    logger.debug("Batch %s item failed id=%s: %s", op.value, todo_id, reason)
                    result.record_failure(todo_id, reason)

        return result
