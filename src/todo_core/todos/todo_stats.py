# todos/todo_stats.py

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime, timedelta

from ..core.cancel import CancelToken
from ..storage.database import Database
from .todo_models import TodoStats

logger = logging.getLogger(__name__)

# SUM() over zero rows is NULL; COUNT(*) is always a number.
_STATS_SQL = """
    SELECT
        COUNT(*) AS total,
        SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending,
        SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed,
        SUM(CASE WHEN status = 'pending' AND due_date IS NOT NULL
                  AND due_date < ? THEN 1 ELSE 0 END) AS overdue,
        SUM(CASE WHEN status = 'pending' AND due_date IS NOT NULL
                  AND date(due_date, 'unixepoch') = ? THEN 1 ELSE 0 END) AS today,
        SUM(CASE WHEN status = 'pending' AND due_date IS NOT NULL
                  AND date(due_date, 'unixepoch') BETWEEN ? AND ? THEN 1 ELSE 0 END) AS this_week
    FROM todos
"""


def _n(raw: object) -> int:
    return int(raw) if raw is not None else 0


class TodoAggregator:
    """Summary counts computed by a single aggregate query (dates in UTC)."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def stats(self, token: CancelToken, *, now: float | None = None) -> TodoStats:
        if now is None:
            now = time.time()

        day = datetime.fromtimestamp(now, tz=UTC).date()
        today = day.isoformat()
        week_end = (day + timedelta(days=7)).isoformat()

        with self._db.connect(token) as conn:
            row = conn.execute(_STATS_SQL, (float(now), today, today, week_end)).fetchone()

        stats = TodoStats(
            total=_n(row["total"]),
            pending=_n(row["pending"]),
            completed=_n(row["completed"]),
            overdue=_n(row["overdue"]),
            today=_n(row["today"]),
            this_week=_n(row["this_week"]),
        )
        logger.debug("Todo stats %s", stats.as_dict())
        return stats
