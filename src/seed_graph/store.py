"""
Storage backends.

The generator talks to storage through the small `Store` interface:
transactional select/insert/update/truncate/delete plus a switch for
integrity checking. Two implementations:

- MemoryStore: dict of row lists, used by tests and dry runs
- PostgresStore: psycopg2 connection to a real database
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection
from psycopg2.extras import RealDictCursor, execute_values

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class Store(ABC):
    """Transactional row storage used by importers."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator["Store"]:
        """Commit on clean exit, roll back everything on exception."""

    @abstractmethod
    def select(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        order_by: str | Sequence[str] | None = None,
    ) -> list[Row]:
        """Return rows of `table` (all columns if `columns` is None)."""

    @abstractmethod
    def insert(self, table: str, rows: list[Row]) -> int:
        """Insert rows and return how many were written."""

    @abstractmethod
    def update(self, table: str, rows: list[Row], key: str = "id") -> int:
        """Update rows matched on `key` with the other values in each row."""

    @abstractmethod
    def truncate(self, table: str) -> None:
        """Remove every row of `table`."""

    @abstractmethod
    def delete(self, table: str, keep: tuple[str, Any] | None = None) -> None:
        """Delete rows of `table`, preserving those where keep[0] == keep[1]."""

    @abstractmethod
    def set_integrity_checks(self, enabled: bool) -> None:
        """Enable or disable foreign-key and uniqueness checking."""

    def close(self) -> None:
        """Release the underlying connection, if any."""
        pass


def _order_key(order_by: str | Sequence[str]):
    columns = [order_by] if isinstance(order_by, str) else list(order_by)

    def key(row: Row):
        # NULLs sort last, as in an ascending PostgreSQL ORDER BY
        return tuple((row.get(c) is None, row.get(c)) for c in columns)

    return key


class MemoryStore(Store):
    """
    In-memory store.

    Rows are kept per table in insertion order. A transaction snapshots all
    tables (and the integrity flag) on entry and restores the snapshot if the
    block raises, as a database rollback would.

    Attributes:
        tables: Table name -> list of row dicts
        integrity_checks: Current integrity checking flag
    """

    def __init__(self, tables: dict[str, list[Row]] | None = None) -> None:
        self.tables: dict[str, list[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.integrity_checks = True
        self.committed = 0
        self.rolled_back = 0

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        snapshot = copy.deepcopy(self.tables)
        checks = self.integrity_checks
        try:
            yield self
        except BaseException:
            self.tables = snapshot
            self.integrity_checks = checks
            self.rolled_back += 1
            raise
        self.committed += 1

    def select(self, table, columns=None, order_by=None):
        rows = self.tables.get(table, [])
        if order_by:
            rows = sorted(rows, key=_order_key(order_by))
        if columns is None:
            return [dict(row) for row in rows]
        return [{c: row.get(c) for c in columns} for row in rows]

    def insert(self, table, rows):
        self.tables.setdefault(table, []).extend(dict(row) for row in rows)
        return len(rows)

    def update(self, table, rows, key="id"):
        index = {row[key]: row for row in self.tables.get(table, [])}
        updated = 0
        for values in rows:
            target = index.get(values[key])
            if target is not None:
                target.update(values)
                updated += 1
        return updated

    def truncate(self, table):
        self.tables[table] = []

    def delete(self, table, keep=None):
        if keep is None:
            self.tables[table] = []
            return
        column, value = keep
        self.tables[table] = [row for row in self.tables.get(table, []) if row.get(column) == value]

    def set_integrity_checks(self, enabled):
        self.integrity_checks = enabled

    def count(self, table: str) -> int:
        return len(self.tables.get(table, []))


def get_connection(
    host: str = "localhost",
    port: int = 5432,
    database: str = "ghost",
    user: str = "seed_graph",
    password: str = "dev_password",
    dsn: str | None = None,
) -> PgConnection:
    """
    Get a PostgreSQL connection with standard settings.

    Args:
        host: Database host
        port: Database port
        database: Database name
        user: Database user
        password: Database password
        dsn: Full connection string (overrides the other arguments)

    Returns:
        PostgreSQL connection
    """
    if dsn:
        return psycopg2.connect(dsn)
    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password,
    )


class PostgresStore(Store):
    """
    psycopg2-backed store.

    Integrity checks map to `session_replication_role`: "replica" skips FK
    triggers for the session, "origin" restores them. PostgreSQL has no
    switch for unique indexes, so those stay enforced.

    truncate() issues DELETE rather than TRUNCATE because TRUNCATE is refused
    on tables referenced by a foreign key, whatever the replication role.
    """

    INSERT_PAGE_SIZE = 500

    def __init__(self, conn: PgConnection) -> None:
        self.conn = conn

    @contextmanager
    def transaction(self) -> Iterator["PostgresStore"]:
        # psycopg2's connection context commits on success, rolls back on error
        with self.conn:
            yield self

    def select(self, table, columns=None, order_by=None):
        cols = sql.SQL("*") if columns is None else sql.SQL(", ").join(map(sql.Identifier, columns))
        query = sql.SQL("SELECT {} FROM {}").format(cols, sql.Identifier(table))
        if order_by:
            order_cols = [order_by] if isinstance(order_by, str) else list(order_by)
            query += sql.SQL(" ORDER BY {}").format(
                sql.SQL(", ").join(map(sql.Identifier, order_cols))
            )
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(query)
            return [dict(row) for row in cur.fetchall()]

    def insert(self, table, rows):
        if not rows:
            return 0
        columns = list(rows[0].keys())
        query = sql.SQL("INSERT INTO {} ({}) VALUES %s").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
        )
        values = [tuple(row.get(c) for c in columns) for row in rows]
        with self.conn.cursor() as cur:
            execute_values(cur, query.as_string(self.conn), values, page_size=self.INSERT_PAGE_SIZE)
        return len(rows)

    def update(self, table, rows, key="id"):
        updated = 0
        with self.conn.cursor() as cur:
            for values in rows:
                columns = [c for c in values if c != key]
                if not columns:
                    continue
                query = sql.SQL("UPDATE {} SET {} WHERE {} = %s").format(
                    sql.Identifier(table),
                    sql.SQL(", ").join(
                        sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
                    ),
                    sql.Identifier(key),
                )
                cur.execute(query, [values[c] for c in columns] + [values[key]])
                updated += cur.rowcount
        return updated

    def truncate(self, table):
        with self.conn.cursor() as cur:
            cur.execute(sql.SQL("DELETE FROM {}").format(sql.Identifier(table)))

    def delete(self, table, keep=None):
        if keep is None:
            self.truncate(table)
            return
        column, value = keep
        with self.conn.cursor() as cur:
            cur.execute(
                sql.SQL("DELETE FROM {} WHERE {} IS DISTINCT FROM %s").format(
                    sql.Identifier(table), sql.Identifier(column)
                ),
                (value,),
            )

    def set_integrity_checks(self, enabled):
        role = "origin" if enabled else "replica"
        logger.debug("Setting session_replication_role = %s", role)
        with self.conn.cursor() as cur:
            cur.execute(sql.SQL("SET session_replication_role = {}").format(sql.Literal(role)))

    def close(self):
        self.conn.close()
