from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import execute_values

"""Row store contract and its two implementations.

The sync service only needs ``find_by_id``, ``update``, ``insert_many`` and
``all``. ``PostgresRowStore`` runs them through a psycopg2 cursor against one
table; ``InMemoryRowStore`` keeps rows in a dict and backs mock mode and the
tests.

Identifiers (table, id column, field names) come from the validated config
and are double-quoted; values always go through query parameters.
"""

__all__ = [
    "StoreError",
    "RowStore",
    "InMemoryRowStore",
    "PostgresRowStore",
]

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
INSERT_PAGE_SIZE = 100


class StoreError(Exception):
    """A store statement failed.

    ``written`` counts rows already written by the failing call before the
    error, so a caller in autocommit mode can report them.
    """

    def __init__(self, message: str, written: int = 0) -> None:
        super().__init__(message)
        self.written = written


class RowStore(Protocol):
    def find_by_id(self, row_id: int) -> dict[str, Any] | None: ...

    def update(self, row_id: int, fields: Mapping[str, Any]) -> int: ...

    def insert(self, fields: Mapping[str, Any]) -> Any: ...

    def insert_many(self, rows: Sequence[Mapping[str, Any]]) -> list[Any]: ...

    def all(self) -> list[dict[str, Any]]: ...

    def rollback(self) -> bool: ...


class InMemoryRowStore:
    """Dict-backed store. Ids are assigned from 1 upwards like a serial column.

    Mock mode shares one instance between concurrent requests, so every read
    and write holds the store lock.
    """

    def __init__(self, rows: Iterable[Mapping[str, Any]] = (), id_column: str = "id") -> None:
        self.id_column = id_column
        self._rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self.writes: list[tuple[str, Any]] = []  # ("update"|"insert", id) in order
        for row in rows:
            data = dict(row)
            row_id = int(data.pop(id_column)) if id_column in data else self._allocate()
            self._rows[row_id] = data
            self._next_id = max(self._next_id, row_id + 1)

    def _allocate(self) -> int:
        with self._lock:
            row_id = self._next_id
            self._next_id += 1
            return row_id

    def find_by_id(self, row_id: int) -> dict[str, Any] | None:
        with self._lock:
            data = self._rows.get(int(row_id))
            if data is None:
                return None
            return {self.id_column: int(row_id), **data}

    def update(self, row_id: int, fields: Mapping[str, Any]) -> int:
        with self._lock:
            data = self._rows.get(int(row_id))
            if data is None:
                return 0
            data.update(fields)
            self.writes.append(("update", int(row_id)))
            return 1

    def insert(self, fields: Mapping[str, Any]) -> int:
        with self._lock:
            row_id = self._allocate()
            self._rows[row_id] = dict(fields)
            self.writes.append(("insert", row_id))
            return row_id

    def insert_many(self, rows: Sequence[Mapping[str, Any]]) -> list[int]:
        with self._lock:
            return [self.insert(r) for r in rows]

    def all(self) -> list[dict[str, Any]]:
        with self._lock:
            return [{self.id_column: k, **v} for k, v in sorted(self._rows.items())]

    def rollback(self) -> bool:
        """Writes are applied immediately; there is nothing to undo."""
        return False


def _quote_ident(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise StoreError(f"invalid identifier: {name!r}")
    return f'"{name}"'


class PostgresRowStore:
    """Store backed by one PostgreSQL table through a psycopg2 cursor.

    Transaction boundaries belong to the connection owner (see
    ``rowsync.db.connection``); this class never commits, and only rolls
    back when it was told the connection is transactional.
    """

    def __init__(
        self,
        cursor: Any,
        table: str,
        columns: Sequence[str],
        id_column: str = "id",
        transactional: bool = False,
    ) -> None:
        self.cursor = cursor
        self.transactional = transactional
        self.table = _quote_ident(table)
        self.id_column = id_column
        self.columns = list(columns)
        self._id_sql = _quote_ident(id_column)
        self._select_sql = ", ".join([self._id_sql] + [_quote_ident(c) for c in self.columns])

    def _execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise StoreError(str(e).strip()) from e

    def _as_dict(self, record: Sequence[Any]) -> dict[str, Any]:
        return dict(zip([self.id_column] + self.columns, record))

    def find_by_id(self, row_id: int) -> dict[str, Any] | None:
        self._execute(
            f"SELECT {self._select_sql} FROM {self.table} WHERE {self._id_sql} = %s",
            (row_id,),
        )
        record = self.cursor.fetchone()
        return self._as_dict(record) if record is not None else None

    def update(self, row_id: int, fields: Mapping[str, Any]) -> int:
        if not fields:
            return 0
        assignments = ", ".join(f"{_quote_ident(c)} = %s" for c in fields)
        self._execute(
            f"UPDATE {self.table} SET {assignments} WHERE {self._id_sql} = %s",
            [*fields.values(), row_id],
        )
        return self.cursor.rowcount

    def insert(self, fields: Mapping[str, Any]) -> Any:
        if fields:
            cols = ", ".join(_quote_ident(c) for c in fields)
            marks = ", ".join(["%s"] * len(fields))
            sql = f"INSERT INTO {self.table} ({cols}) VALUES ({marks}) RETURNING {self._id_sql}"
            self._execute(sql, list(fields.values()))
        else:
            self._execute(f"INSERT INTO {self.table} DEFAULT VALUES RETURNING {self._id_sql}")
        record = self.cursor.fetchone()
        return record[0] if record is not None else None

    def insert_many(self, rows: Sequence[Mapping[str, Any]]) -> list[Any]:
        """Insert rows with ``execute_values``, one statement per page of
        ``INSERT_PAGE_SIZE`` rows sharing a column layout.

        Rows arrive from the same form, so they normally share one layout. When
        a page fails, the ``StoreError`` carries how many rows earlier pages
        wrote; in autocommit mode those rows stay in the table.
        """
        if not rows:
            return []
        layouts: dict[tuple[str, ...], list[Mapping[str, Any]]] = {}
        for r in rows:
            layouts.setdefault(tuple(r), []).append(r)

        ids: list[Any] = []
        for cols, group in layouts.items():
            if not cols:
                for _ in group:
                    try:
                        ids.append(self.insert({}))
                    except StoreError as e:
                        raise StoreError(str(e), written=len(ids)) from e
                continue
            cols_sql = ", ".join(_quote_ident(c) for c in cols)
            sql = f"INSERT INTO {self.table} ({cols_sql}) VALUES %s RETURNING {self._id_sql}"
            for start in range(0, len(group), INSERT_PAGE_SIZE):
                page = [[r[c] for c in cols] for r in group[start:start + INSERT_PAGE_SIZE]]
                try:
                    returned = execute_values(self.cursor, sql, page, page_size=len(page), fetch=True)
                except psycopg2.Error as e:
                    raise StoreError(str(e).strip(), written=len(ids)) from e
                ids.extend(rec[0] for rec in returned or [])
        return ids

    def all(self) -> list[dict[str, Any]]:
        self._execute(f"SELECT {self._select_sql} FROM {self.table} ORDER BY {self._id_sql}")
        return [self._as_dict(r) for r in self.cursor.fetchall()]

    def rollback(self) -> bool:
        """Undo this request's writes when running inside a transaction.

        Returns True when the writes were rolled back. In autocommit mode every
        statement is already committed and False is returned.
        """
        if not self.transactional:
            return False
        try:
            self.cursor.connection.rollback()
        except psycopg2.Error as e:
            raise StoreError(f"rollback failed: {e}") from e
        return True
