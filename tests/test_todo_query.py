# tests/test_todo_query.py

from __future__ import annotations

from todo_core.todos.todo_models import TodoFilter
from todo_core.todos.todo_query import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    build_list_query,
    build_ordering,
    build_predicate,
)


def test_defaults_applied() -> None:
    q = build_list_query()
    assert q.ordering.sort == "created_at"
    assert q.ordering.order == "DESC"
    assert q.ordering.limit == DEFAULT_PAGE_SIZE
    assert q.ordering.offset == 0
    assert q.count_sql == "SELECT COUNT(*) FROM todos"
    assert q.count_params == ()
    assert q.select_params == (DEFAULT_PAGE_SIZE, 0)


def test_values_are_bound_not_interpolated() -> None:
    evil = "x' OR 1=1 --"
    q = build_list_query(TodoFilter(status="pending", search=evil))
    assert evil not in q.count_sql
    assert evil not in q.select_sql
    assert q.count_params == ("pending", f"%{evil}%", f"%{evil}%")


def test_count_and_select_share_the_predicate() -> None:
    q = build_list_query(TodoFilter(status="completed", search="milk", limit=3, offset=9))
    where = q.predicate.where_sql()
    assert where in q.count_sql
    assert where in q.select_sql
    assert q.select_params == (*q.count_params, 3, 9)


def test_status_all_adds_no_predicate() -> None:
    assert build_predicate(TodoFilter(status="all")).clauses == ()
    assert build_predicate(TodoFilter(status="ALL ")).clauses == ()


def test_unknown_sort_and_order_fall_back() -> None:
    o = build_ordering(TodoFilter(sort="title; DROP TABLE todos", order="random()"))
    assert (o.sort, o.order) == ("created_at", "DESC")
    assert o.order_sql() == " ORDER BY created_at DESC, id DESC"


def test_allowed_sort_and_order_are_normalized() -> None:
    o = build_ordering(TodoFilter(sort="Due_Date", order="asc"))
    assert (o.sort, o.order) == ("due_date", "ASC")


def test_page_size_clamping() -> None:
    assert build_ordering(TodoFilter(limit=0)).limit == DEFAULT_PAGE_SIZE
    assert build_ordering(TodoFilter(limit=-5)).limit == DEFAULT_PAGE_SIZE
    assert build_ordering(TodoFilter(limit=10_000)).limit == MAX_PAGE_SIZE
    assert build_ordering(TodoFilter(limit=10, offset=-3)).offset == 0
    assert build_ordering(TodoFilter(limit=0), default_page_size=20).limit == 20


def test_search_escapes_like_metacharacters() -> None:
    p = build_predicate(TodoFilter(search=" 50%_off\\ "))
    assert p.params == ("%50\\%\\_off\\\\%", "%50\\%\\_off\\\\%")
    assert "ESCAPE" in p.clauses[0]


def test_blank_search_is_ignored() -> None:
    assert build_predicate(TodoFilter(search="   ")).clauses == ()
