# src/todo_core/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from ..core.cancel import CancelToken
from ..core.errors import Canceled, OperationTimeout, StoreFailure, ValidationError

logger = logging.getLogger(__name__)

# SQLite INTEGER PRIMARY KEY range; larger ints cannot even be bound.
MAX_ROW_ID = 2**63 - 1

_MEMORY_PATHS = frozenset({":memory:", ""})


def is_row_id(value: int) -> bool:
    """True if `value` could name a stored row."""
    return 1 <= value <= MAX_ROW_ID


class Database:
    """
    Handle on the embedded SQLite engine, injected into every component.

    The schema is created idempotently on construction:
    - create table / indexes if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection; SQLite serializes writers
      and WAL lets readers proceed while a writer holds the lock

    db_path must name a file: every call opens a fresh connection, so an
    in-memory database would come up empty (and schemaless) each time.
    Tests get isolation from a per-test file instead.

    Connections run in autocommit mode; multi-statement writes go through
    transaction(), which issues BEGIN IMMEDIATE so the write lock is taken
    up front instead of on the first write.
    """

    def __init__(
        self,
        db_path: str | Path = "todos.sqlite3",
        *,
        busy_timeout: float = 30.0,
        progress_interval: int = 1000,
    ) -> None:
        if str(db_path).strip() in _MEMORY_PATHS:
            raise ValidationError(
                f"db_path must be a file path, not {str(db_path)!r}: connections are per call"
            )
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._busy_timeout = float(busy_timeout)
        self._progress_interval = max(1, int(progress_interval))
        try:
            self._ensure_schema()
        except sqlite3.Error as exc:
            logger.exception("Schema setup failed db=%s", self._db_path)
            raise StoreFailure(f"schema setup failed: {exc}") from exc
        logger.info("Database ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS todos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    version INTEGER NOT NULL DEFAULT 1,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    due_date REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    completed_at REAL
                )
                """
            )

            # Older databases predate optimistic locking.
            cur.execute("PRAGMA table_info(todos)")
            cols = {row["name"] for row in cur.fetchall()}
            if "version" not in cols:
                cur.execute("ALTER TABLE todos ADD COLUMN version INTEGER NOT NULL DEFAULT 1")
                cur.execute("UPDATE todos SET version = 1 WHERE version IS NULL")
                logger.info("Database migration: added column version")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_status ON todos(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_todos_created_at ON todos(created_at DESC)")
        finally:
            conn.close()

    @staticmethod
    def _map_error(exc: sqlite3.Error | OverflowError, token: CancelToken) -> Exception:
        # An interrupted statement is the progress handler honoring the token.
        if token.is_done():
            err = token.error()
            if err is not None:
                return err
        if isinstance(exc, sqlite3.IntegrityError):
            return StoreFailure(f"integrity constraint violated: {exc}")
        if isinstance(exc, OverflowError):
            return StoreFailure(f"value out of range for SQLite: {exc}")
        if isinstance(exc, sqlite3.OperationalError):
            return StoreFailure(f"operational error: {exc}")
        return StoreFailure(f"database error: {exc}")

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        conn.set_progress_handler(None, 0)
        try:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed")

    # ---- public API ----

    @contextlib.contextmanager
    def connect(self, token: CancelToken) -> Iterator[sqlite3.Connection]:
        """
        Short-lived connection bound to `token`.

        The token is checked before the connection is opened, so a token that
        is already done never reaches the engine. While the connection is open
        a progress handler aborts running statements once the token fires.
        sqlite3 errors leave this block as StoreFailure, or as the token's
        Canceled/OperationTimeout when the statement was interrupted.
        """
        token.check()
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            logger.error("DB connect failed db=%s: %s", self._db_path, exc)
            raise StoreFailure(f"connect failed: {exc}") from exc

        conn.set_progress_handler(lambda: 1 if token.is_done() else 0, self._progress_interval)
        try:
            yield conn
        except (sqlite3.Error, OverflowError) as exc:
            mapped = self._map_error(exc, token)
            if isinstance(mapped, (Canceled, OperationTimeout)):
                logger.info("DB statement interrupted: %s", mapped.code)
            else:
                logger.error("DB error db=%s: %s", self._db_path, exc)
            raise mapped from exc
        finally:
            conn.close()

    @contextlib.contextmanager
    def transaction(self, token: CancelToken, *, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        """
        COMMIT on normal exit, ROLLBACK on any exception.

        immediate=False opens a deferred (read) transaction, which gives
        several SELECTs one consistent snapshot.
        """
        with self.connect(token) as conn:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN DEFERRED")
            try:
                yield conn
            except BaseException:
                self._rollback(conn)
                raise
            conn.execute("COMMIT")

    def ping(self) -> bool:
        """Readiness probe."""
        try:
            with self.connect(CancelToken.with_timeout(self._busy_timeout)) as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except StoreFailure:
            logger.exception("DB health check failed")
            return False
