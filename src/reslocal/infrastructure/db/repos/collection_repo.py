from __future__ import annotations

import logging
import sqlite3

from reslocal.core.errors import StateStoreError
from reslocal.infrastructure.db.sqlite import table_exists

logger = logging.getLogger(__name__)


class _SqliteCollection:
    create_query = ""

    def __init__(self, conn: sqlite3.Connection, table: str) -> None:
        self.conn = conn
        self.table = table
        self._ensure_table()

    def _ensure_table(self) -> None:
        try:
            if not table_exists(self.conn, self.table):
                self.conn.execute(self.create_query.format(table=self.table))
                self.conn.commit()
                logger.debug("Created table %s", self.table)
        except sqlite3.Error as exc:
            raise StateStoreError(f"Unable to create table '{self.table}': {exc}") from exc

    def _read_one(self, query: str, params: tuple[str, ...] = ()) -> sqlite3.Row | None:
        try:
            return self.conn.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            raise StateStoreError(f"Unable to read from table '{self.table}': {exc}") from exc

    def _count(self, column: str, value: str) -> int:
        row = self._read_one(f'SELECT COUNT(1) FROM "{self.table}" WHERE "{column}" = ?', (value,))
        return int(row[0]) if row else 0

    def _first(self, select_column: str, where_column: str, value: str) -> str | None:
        row = self._read_one(
            f'SELECT "{select_column}" FROM "{self.table}" WHERE "{where_column}" = ? LIMIT 1',
            (value,),
        )
        return row[0] if row else None

    def _write(self, query: str, params: tuple[str, ...]) -> None:
        try:
            self.conn.execute(query, params)
            self.conn.commit()
        except sqlite3.Error as exc:
            try:
                self.conn.rollback()
            except sqlite3.Error as rollback_exc:
                logger.debug("Rollback on %s failed: %s", self.table, rollback_exc)
            raise StateStoreError(f"Unable to write to table '{self.table}': {exc}") from exc

    def __len__(self) -> int:
        row = self._read_one(f'SELECT COUNT(1) FROM "{self.table}"')
        return int(row[0]) if row else 0


class SqliteMap(_SqliteCollection):
    create_query = 'CREATE TABLE "{table}" ("name" TEXT NOT NULL PRIMARY KEY, "value" TEXT NOT NULL)'

    def contains_key(self, key: str) -> bool:
        return self._count("name", key) > 0

    def contains_value(self, value: str) -> bool:
        return self._count("value", value) > 0

    def get(self, key: str) -> str | None:
        return self._first("value", "name", key)

    def get_by_value(self, value: str) -> str | None:
        return self._first("name", "value", value)

    def put(self, key: str, value: str) -> None:
        if self.contains_key(key):
            self._write(f'UPDATE "{self.table}" SET "value" = ? WHERE "name" = ?', (value, key))
        else:
            self._write(f'INSERT INTO "{self.table}" ("name", "value") VALUES (?, ?)', (key, value))

    def discard_value(self, value: str) -> None:
        if self.contains_value(value):
            self._write(f'DELETE FROM "{self.table}" WHERE "value" = ?', (value,))


class SqliteSet(_SqliteCollection):
    create_query = 'CREATE TABLE "{table}" ("value" TEXT NOT NULL)'

    def contains(self, value: str | int) -> bool:
        return self._count("value", str(value)) > 0

    def add(self, value: str | int) -> None:
        if not self.contains(value):
            self._write(f'INSERT INTO "{self.table}" ("value") VALUES (?)', (str(value),))
