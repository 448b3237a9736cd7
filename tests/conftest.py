# Shared pytest fixtures
from __future__ import annotations

import logging
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest

from rowsync.config.loader import config_from_dict
from rowsync.db.store import InMemoryRowStore
from rowsync.logging.error_log import ErrorLogBuffer
from rowsync.logging.init import reset_logging, setup_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: items
id_column: id
fields:
  field1: required|string|max:255
  field2: required|numeric
temporary_id_prefix: new_
csrf:
  enabled: true
persistence:
  transactional: false
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
server:
  host: 127.0.0.1
  port: 5000
  secret_key: test-secret
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "rowsync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sync_config():
    return config_from_dict({
        "table": "items",
        "fields": {
            "field1": "required|string|max:255",
            "field2": "required|numeric",
        },
        "server": {"secret_key": "test-secret"},
    })


@pytest.fixture()
def store() -> InMemoryRowStore:
    return InMemoryRowStore([
        {"id": 1, "field1": "a", "field2": "1"},
        {"id": 2, "field1": "b", "field2": "2"},
        {"id": 3, "field1": "c", "field2": "3"},
    ])


@pytest.fixture()
def store_factory(store: InMemoryRowStore):
    opened = []

    @contextmanager
    def factory() -> Iterator[InMemoryRowStore]:
        opened.append(store)
        yield store

    factory.opened = opened  # type: ignore[attr-defined]
    return factory


@pytest.fixture()
def error_log(tmp_path: Path) -> ErrorLogBuffer:
    return ErrorLogBuffer(logs_dir=tmp_path / "logs")


@pytest.fixture()
def app(sync_config, store_factory, error_log):
    from rowsync.web import create_app

    app = create_app(sync_config, store_factory=store_factory, error_log=error_log)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


class _CurrentStdout:
    """Stream that writes to whatever ``sys.stdout`` is at write time.

    pytest swaps the capsys stream between the setup and call phases, so a
    handler bound to ``sys.stdout`` during fixture setup would write to a
    closed stream.
    """

    def write(self, s: str) -> int:
        return sys.stdout.write(s)

    def flush(self) -> None:
        sys.stdout.flush()


@pytest.fixture()
def app_logger(capsys):
    """Fresh application logger bound to the current (captured) stdout."""
    reset_logging()
    logger = setup_logging()
    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setStream(_CurrentStdout())
    yield logger
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    reset_logging()
