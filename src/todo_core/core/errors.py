# src/todo_core/core/errors.py

"""
Error taxonomy for the todo core.

Every failure the core can report is a TodoError subclass with a stable `code`.
Mapping codes to transport status (409, 404, 408, ...) is the caller's job.
"""

from __future__ import annotations


class TodoError(Exception):
    code = "todo_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(TodoError, ValueError):
    """Malformed input (empty title, oversized batch, ...)."""

    code = "validation_error"


class VersionConflict(TodoError):
    """
    A version-gated update affected zero rows.

    Either the expected version is stale or the id does not exist; the
    affected-row count alone cannot tell which.
    """

    code = "version_conflict"

    def __init__(self, todo_id: int, expected_version: int) -> None:
        super().__init__(f"todo {todo_id} is not at version {expected_version}")
        self.todo_id = todo_id
        self.expected_version = expected_version


class NotFound(TodoError, LookupError):
    code = "not_found"

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"todo {todo_id} not found")
        self.todo_id = todo_id


class OperationTimeout(TodoError, TimeoutError):
    code = "timeout"


class Canceled(TodoError):
    code = "canceled"


class DecodeError(TodoError):
    """A fetched row could not be materialized into a Todo."""

    code = "decode_error"


class StoreFailure(TodoError):
    """Engine-level I/O or constraint failure."""

    code = "store_failure"
