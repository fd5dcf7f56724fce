# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_core.config import Settings
from todo_core.core.state import bootstrap
from todo_core.logging_setup import level_from_name, setup_logging


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)
    logging.captureWarnings(False)


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TODO_DB_PATH", "DB_PATH", "TODO_DATA_DIR", "TODO_MAX_BATCH_SIZE", "TODO_LIST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.db_path == Path(".local/todo") / "todos.sqlite3"
    assert s.max_batch_size == 100
    assert s.max_page_size == 200
    assert (s.list_timeout, s.create_timeout, s.update_timeout, s.delete_timeout, s.stats_timeout) == (
        5.0,
        3.0,
        3.0,
        2.0,
        5.0,
    )


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("TODO_DB_PATH", raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "legacy.db"))
    monkeypatch.setenv("TODO_MAX_BATCH_SIZE", "25")
    monkeypatch.setenv("TODO_LIST_TIMEOUT", "not-a-number")

    s = Settings.from_env()
    assert s.db_path == tmp_path / "legacy.db"
    assert s.max_batch_size == 25
    assert s.list_timeout == 5.0

    monkeypatch.setenv("TODO_DB_PATH", str(tmp_path / "preferred.db"))
    assert Settings.from_env().db_path == tmp_path / "preferred.db"


def test_setup_logging_writes_file(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs")
    logging.getLogger("todo_core.test").info("hello log")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file.exists()
    assert "hello log" in log_file.read_text("utf-8")


def test_level_from_name() -> None:
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name("nonsense") == logging.INFO
    assert level_from_name(None, logging.WARNING) == logging.WARNING


def test_bootstrap_wires_state(settings: SimpleNamespace, restore_root_logging) -> None:
    state = bootstrap(settings)
    assert state.db.path == settings.db_path
    assert state.db.ping()
    assert (settings.data_dir / "todo.log").exists()
