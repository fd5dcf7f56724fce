# todos/todo_models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from ..core.errors import DecodeError, ValidationError

_UNSET: Any = object()


class TodoStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: Any) -> TodoStatus:
        try:
            return cls(raw)
        except ValueError as exc:
            raise DecodeError(f"unknown todo status {raw!r}") from exc


class BatchPolicy(StrEnum):
    ALL_OR_NOTHING = "all_or_nothing"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class Todo:
    """
    Snapshot of one stored todo.

    `version` is the version the holder last observed; pass the snapshot back
    to update_todo() and the store gates the write on it.
    Invariant: completed_at is set if and only if status is COMPLETED.
    """

    id: int
    version: int
    title: str
    description: str
    status: TodoStatus
    due_date: float | None
    created_at: float
    updated_at: float
    completed_at: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, TodoStatus):
            try:
                object.__setattr__(self, "status", TodoStatus(self.status))
            except ValueError as exc:
                raise ValidationError(f"invalid status {self.status!r}") from exc

    @property
    def is_completed(self) -> bool:
        return self.status is TodoStatus.COMPLETED

    def completed(self, now: float) -> Todo:
        if self.is_completed:
            return self
        return replace(self, status=TodoStatus.COMPLETED, completed_at=now)

    def reactivated(self) -> Todo:
        return replace(self, status=TodoStatus.PENDING, completed_at=None)

    def with_changes(
        self,
        *,
        now: float,
        title: str | None = None,
        description: str | None = None,
        status: TodoStatus | str | None = None,
        due_date: float | None = _UNSET,
    ) -> Todo:
        """Copy with the given fields changed (due_date=None clears it)."""
        out = self
        if title is not None:
            out = replace(out, title=title)
        if description is not None:
            out = replace(out, description=description)
        if due_date is not _UNSET:
            out = replace(out, due_date=None if due_date is None else float(due_date))
        if status is not None:
            try:
                new_status = TodoStatus(status)
            except ValueError as exc:
                raise ValidationError(f"invalid status {status!r}") from exc
            out = out.completed(now) if new_status is TodoStatus.COMPLETED else out.reactivated()
        return out

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "due_date": self.due_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }


@dataclass(slots=True)
class TodoFilter:
    """Read-side filter as parsed by the request layer (re-validated by the query builder)."""

    status: str | None = None
    search: str | None = None
    sort: str | None = None
    order: str | None = None
    limit: int = 0
    offset: int = 0


@dataclass(frozen=True, slots=True)
class BatchFailure:
    id: int
    reason: str


@dataclass(slots=True)
class BatchResult:
    success_count: int = 0
    failure_count: int = 0
    failures: list[BatchFailure] = field(default_factory=list)
    rolled_back: bool = False

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self, todo_id: int, reason: str) -> None:
        self.failure_count += 1
        self.failures.append(BatchFailure(id=todo_id, reason=reason))

    @property
    def failed_ids(self) -> list[int]:
        return [f.id for f in self.failures]


@dataclass(frozen=True, slots=True)
class TodoStats:
    total: int = 0
    pending: int = 0
    completed: int = 0
    overdue: int = 0
    today: int = 0
    this_week: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "completed": self.completed,
            "overdue": self.overdue,
            "today": self.today,
            "this_week": self.this_week,
        }
