# tests/test_todo_batch.py

from __future__ import annotations

import sqlite3

import pytest

from todo_core.core.cancel import CancelToken
from todo_core.core.errors import Canceled, ValidationError
from todo_core.storage.database import Database
from todo_core.todos.todo_batch import BatchExecutor, BatchOp
from todo_core.todos.todo_models import BatchPolicy, TodoStatus
from todo_core.todos.todo_store import TodoStore

from .fakes import CancelAfterChecks


def _make(store: TodoStore, token: CancelToken, n: int) -> list[int]:
    return [store.create_todo(token, title=f"item {i}").id for i in range(n)]


def test_all_or_nothing_complete_rolls_back_on_invalid_id(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b, c = _make(store, token, 3)

    result = batch.complete_many(token, [a, 9999, b], BatchPolicy.ALL_OR_NOTHING)

    assert result.rolled_back
    assert result.success_count == 0
    assert result.failure_count == 1
    assert result.failed_ids == [9999]
    for todo_id in (a, b, c):
        todo = store.get_todo(token, todo_id)
        assert todo is not None
        assert todo.status is TodoStatus.PENDING
        assert todo.version == 1


def test_all_or_nothing_complete_rejects_already_completed(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b = _make(store, token, 2)
    done = store.get_todo(token, b)
    assert done is not None
    store.complete_todo(token, done)

    result = batch.complete_many(token, [a, b])

    assert result.rolled_back
    assert result.failed_ids == [b]
    todo_a = store.get_todo(token, a)
    assert todo_a is not None and todo_a.status is TodoStatus.PENDING


def test_all_or_nothing_success_bumps_versions(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    ids = _make(store, token, 3)

    result = batch.complete_many(token, ids)

    assert not result.rolled_back
    assert result.success_count == 3
    assert result.failure_count == 0
    for todo_id in ids:
        todo = store.get_todo(token, todo_id)
        assert todo is not None
        assert todo.status is TodoStatus.COMPLETED
        assert todo.completed_at is not None
        assert todo.version == 2


def test_all_or_nothing_delete_keeps_everything_on_failure(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b = _make(store, token, 2)

    result = batch.delete_many(token, [a, b, 777])

    assert result.rolled_back
    assert result.failed_ids == [777]
    assert store.count_todos(token) == 2


def test_partial_complete_commits_valid_ids(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b = _make(store, token, 2)

    result = batch.complete_many(token, [a, 9999, b, 8888], BatchPolicy.PARTIAL)

    assert not result.rolled_back
    assert result.success_count == 2
    assert result.failure_count == 2
    assert sorted(result.failed_ids) == [8888, 9999]
    assert all(f.reason for f in result.failures)
    for todo_id in (a, b):
        todo = store.get_todo(token, todo_id)
        assert todo is not None
        assert todo.status is TodoStatus.COMPLETED


def test_partial_delete_commits_valid_ids(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b, c = _make(store, token, 3)

    result = batch.delete_many(token, [a, 5555, c], BatchPolicy.PARTIAL)

    assert result.success_count == 2
    assert result.failure_count == 1
    assert store.get_todo(token, a) is None
    assert store.get_todo(token, c) is None
    assert store.get_todo(token, b) is not None


def test_duplicate_id_in_partial_batch_fails_second_time(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    (a,) = _make(store, token, 1)
    result = batch.complete_many(token, [a, a], BatchPolicy.PARTIAL)
    assert result.success_count == 1
    assert result.failed_ids == [a]


@pytest.mark.parametrize("policy", [BatchPolicy.ALL_OR_NOTHING, BatchPolicy.PARTIAL])
def test_cancel_mid_batch_persists_nothing(
    store: TodoStore, batch: BatchExecutor, token: CancelToken, policy: BatchPolicy
) -> None:
    a, b, c = _make(store, token, 3)

    # checks: batch entry, connection open, item a, item b -> fires
    cancel_token = CancelAfterChecks(checks=3)
    with pytest.raises(Canceled):
        batch.complete_many(cancel_token, [a, b, c], policy)

    for todo_id in (a, b, c):
        todo = store.get_todo(token, todo_id)
        assert todo is not None
        assert todo.status is TodoStatus.PENDING


def test_batch_size_cap(store: TodoStore, batch: BatchExecutor, token: CancelToken) -> None:
    (a,) = _make(store, token, 1)
    with pytest.raises(ValidationError):
        batch.complete_many(token, [a] + list(range(10_000, 10_100)))

    todo = store.get_todo(token, a)
    assert todo is not None and todo.status is TodoStatus.PENDING


def test_empty_batch_is_a_no_op(batch: BatchExecutor, token: CancelToken) -> None:
    result = batch.delete_many(token, [], BatchPolicy.PARTIAL)
    assert result.success_count == 0
    assert result.failure_count == 0
    assert result.failures == []


def _block_delete_of(db: Database, todo_id: int) -> None:
    conn = sqlite3.connect(str(db.path))
    try:
        conn.execute(
            f"""
            CREATE TRIGGER keep_{todo_id} BEFORE DELETE ON todos
            WHEN OLD.id = {todo_id}
            BEGIN
                SELECT RAISE(ABORT, 'row is pinned');
            END
            """
        )
        conn.commit()
    finally:
        conn.close()


def test_partial_delete_records_statement_error_and_keeps_others(
    db: Database, store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b, c = _make(store, token, 3)
    _block_delete_of(db, b)

    result = batch.delete_many(token, [a, b, c], BatchPolicy.PARTIAL)

    assert not result.rolled_back
    assert result.success_count == 2
    assert result.failed_ids == [b]
    assert "row is pinned" in result.failures[0].reason
    assert store.get_todo(token, a) is None
    assert store.get_todo(token, b) is not None
    assert store.get_todo(token, c) is None


def test_all_or_nothing_delete_rolls_back_on_statement_error(
    db: Database, store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b, c = _make(store, token, 3)
    _block_delete_of(db, b)

    result = batch.delete_many(token, [a, b, c], BatchPolicy.ALL_OR_NOTHING)

    assert result.rolled_back
    assert result.success_count == 0
    assert result.failed_ids == [b]
    for todo_id in (a, b, c):
        assert store.get_todo(token, todo_id) is not None


def test_partial_batch_records_out_of_range_ids(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    a, b = _make(store, token, 2)

    completed = batch.complete_many(token, [a, 2**63], BatchPolicy.PARTIAL)
    assert completed.success_count == 1
    assert completed.failed_ids == [2**63]
    todo_a = store.get_todo(token, a)
    assert todo_a is not None and todo_a.status is TodoStatus.COMPLETED

    deleted = batch.delete_many(token, [b, -5, 10**30], BatchPolicy.PARTIAL)
    assert deleted.success_count == 1
    assert deleted.failed_ids == [-5, 10**30]
    assert all(f.reason == "not found" for f in deleted.failures)
    assert store.get_todo(token, b) is None


def test_all_or_nothing_rolls_back_on_out_of_range_id(
    store: TodoStore, batch: BatchExecutor, token: CancelToken
) -> None:
    (a,) = _make(store, token, 1)

    result = batch.delete_many(token, [a, 2**63])

    assert result.rolled_back
    assert result.failed_ids == [2**63]
    assert store.get_todo(token, a) is not None


@pytest.mark.parametrize(
    "ids, policy",
    [
        (["1", "two"], BatchPolicy.PARTIAL),
        ([1, None], BatchPolicy.PARTIAL),
        ([1], "best_effort"),
    ],
)
def test_malformed_batch_input_is_a_validation_error(
    store: TodoStore, batch: BatchExecutor, token: CancelToken, ids, policy
) -> None:
    (a,) = _make(store, token, 1)

    with pytest.raises(ValidationError):
        batch.run(token, BatchOp.COMPLETE, ids, policy)

    todo = store.get_todo(token, a)
    assert todo is not None and todo.status is TodoStatus.PENDING
