# todos/todo_query.py

"""
List query construction.

Values (status, search pattern, limit, offset) are always bound parameters.
Sort field and direction cannot be bound in SQLite, so they are checked
against fixed allow-lists here and this is the only place that interpolates
identifiers into SQL text. Anything outside the allow-lists falls back to
the default ordering instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .todo_models import TodoFilter

TODO_COLUMNS = (
    "id, version, title, description, status, due_date, created_at, updated_at, completed_at"
)

DEFAULT_SORT = "created_at"
DEFAULT_ORDER = "DESC"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
STATUS_ALL = "all"

ALLOWED_SORT_FIELDS = frozenset({"created_at", "due_date", "status"})
ALLOWED_ORDERS = frozenset({"ASC", "DESC"})

_LIKE_ESCAPE = "\\"


@dataclass(frozen=True, slots=True)
class Predicate:
    clauses: tuple[str, ...] = ()
    params: tuple[Any, ...] = ()

    def where_sql(self) -> str:
        if not self.clauses:
            return ""
        return " WHERE " + " AND ".join(self.clauses)


@dataclass(frozen=True, slots=True)
class Ordering:
    sort: str
    order: str
    limit: int
    offset: int

    def order_sql(self) -> str:
        # Both parts come from the allow-lists above.
        return f" ORDER BY {self.sort} {self.order}, id {self.order}"

    def page_sql(self) -> str:
        return " LIMIT ? OFFSET ?"

    @property
    def params(self) -> tuple[int, int]:
        return (self.limit, self.offset)


@dataclass(frozen=True, slots=True)
class ListQuery:
    predicate: Predicate
    ordering: Ordering
    count_sql: str = field(init=False)
    select_sql: str = field(init=False)

    def __post_init__(self) -> None:
        where = self.predicate.where_sql()
        object.__setattr__(self, "count_sql", f"SELECT COUNT(*) FROM todos{where}")
        object.__setattr__(
            self,
            "select_sql",
            f"SELECT {TODO_COLUMNS} FROM todos{where}"
            f"{self.ordering.order_sql()}{self.ordering.page_sql()}",
        )

    @property
    def count_params(self) -> tuple[Any, ...]:
        return self.predicate.params

    @property
    def select_params(self) -> tuple[Any, ...]:
        return (*self.predicate.params, *self.ordering.params)


def _escape_like(term: str) -> str:
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def normalize_sort(sort: str | None) -> str:
    s = (sort or "").strip().lower()
    return s if s in ALLOWED_SORT_FIELDS else DEFAULT_SORT


def normalize_order(order: str | None) -> str:
    o = (order or "").strip().upper()
    return o if o in ALLOWED_ORDERS else DEFAULT_ORDER


def clamp_page(
    limit: int | None,
    offset: int | None,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> tuple[int, int]:
    try:
        lim = int(limit or 0)
    except (TypeError, ValueError):
        lim = 0
    try:
        off = int(offset or 0)
    except (TypeError, ValueError):
        off = 0

    if lim <= 0:
        lim = default_page_size
    lim = min(lim, max(1, int(max_page_size)))
    return lim, max(0, off)


def build_predicate(flt: TodoFilter) -> Predicate:
    """Shared by the count query and the data query."""
    clauses: list[str] = []
    params: list[Any] = []

    status = (flt.status or "").strip().lower()
    if status and status != STATUS_ALL:
        clauses.append("status = ?")
        params.append(status)

    term = (flt.search or "").strip()
    if term:
        pattern = f"%{_escape_like(term)}%"
        clauses.append(
            f"(title LIKE ? ESCAPE '{_LIKE_ESCAPE}' OR description LIKE ? ESCAPE '{_LIKE_ESCAPE}')"
        )
        params.extend((pattern, pattern))

    return Predicate(clauses=tuple(clauses), params=tuple(params))


def build_ordering(
    flt: TodoFilter,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Ordering:
    limit, offset = clamp_page(
        flt.limit,
        flt.offset,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )
    return Ordering(
        sort=normalize_sort(flt.sort),
        order=normalize_order(flt.order),
        limit=limit,
        offset=offset,
    )


def build_list_query(
    flt: TodoFilter | None = None,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> ListQuery:
    flt = flt or TodoFilter()
    return ListQuery(
        predicate=build_predicate(flt),
        ordering=build_ordering(
            flt, default_page_size=default_page_size, max_page_size=max_page_size
        ),
    )
