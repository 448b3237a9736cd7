from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..config.loader import DatabaseConfig, SyncConfig
from .store import PostgresRowStore

logger = logging.getLogger(__name__)

"""PostgreSQL connection handling.

DSN resolution order:
    1. ``DATABASE_URL`` / ``PGDSN`` environment variables
    2. ``database.dsn`` from the config
    3. individual ``PGHOST``/``PGPORT``/``PGUSER``/``PGPASSWORD``/``PGDATABASE``
       variables, each falling back to the matching config key

Every request gets its own connection. In the default mode the connection
runs in autocommit, so each row write commits on its own and a failure
midway leaves earlier writes in place. With ``persistence.transactional``
the whole request commits once at the end or rolls back.
"""

__all__ = [
    "resolve_dsn",
    "db_connection",
    "postgres_store",
]


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig, transactional: bool = False) -> Iterator[Any]:
    """Yield a cursor on a fresh connection; close both on exit."""
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    conn.autocommit = not transactional
    cur = conn.cursor()
    try:
        yield cur
        if transactional:
            conn.commit()
    except Exception:
        if transactional:
            logger.warning("rolling back request transaction")
            conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


@contextmanager
def postgres_store(cfg: SyncConfig) -> Iterator[PostgresRowStore]:
    """Store factory for one request against the configured table."""
    with db_connection(cfg.database, transactional=cfg.transactional) as cur:
        yield PostgresRowStore(
            cur,
            cfg.table,
            cfg.field_names,
            id_column=cfg.id_column,
            transactional=cfg.transactional,
        )
