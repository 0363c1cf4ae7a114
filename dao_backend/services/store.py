"""
Table gateway over the governance database.

Services talk to storage only through ``TableStore``: inserts, equality
filtered selects, compare-and-set updates, upserts, atomic increments and
counts. Calls made inside ``transaction()`` commit or roll back together.
``PostgresStore`` is the production implementation on top of the psycopg2
connection pool.
"""
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import psycopg2
from psycopg2 import errors, sql
from psycopg2.extras import Json, RealDictCursor

from dao_backend.exceptions import DuplicateRecordError, StoreError
from dao_backend.services.connection_pool import DatabaseConnectionPool
from dao_backend.utils.logger import logger

Row = Dict[str, Any]
Filters = Mapping[str, Any]

# Primary keys per table; enforced by schema.sql and mirrored by test doubles.
TABLE_KEYS: Dict[str, Sequence[str]] = {
    "members": ("member_id",),
    "daos": ("dao_id",),
    "memberships": ("dao_id", "member_id"),
    "proposals": ("proposal_id",),
    "votes": ("proposal_id", "member_id", "is_feedback"),
    "quests": ("quest_id",),
    "quest_participant": ("quest_id", "member_id"),
    "messages": ("message_id",),
}

JSON_COLUMNS = {("daos", "tokens")}


class TableStore(ABC):
    """CRUD access to the governance tables.

    A filter value of ``None`` matches ``IS NULL``, which lets callers
    express compare-and-set updates such as "set conclusion where it is
    still unset".
    """

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored. Raises DuplicateRecordError on key collision."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        """Return every row matching all equality filters."""

    @abstractmethod
    def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        """Apply values to matching rows and return the updated rows."""

    @abstractmethod
    def upsert(self, table: str, row: Row) -> Row:
        """Insert the row unless its key exists; return the stored row either way."""

    @abstractmethod
    def increment(self, table: str, column: str, amount: int, filters: Filters) -> Optional[Row]:
        """Atomically add ``amount`` to ``column`` on the matching row."""

    @abstractmethod
    def count(self, table: str, filters: Optional[Filters] = None) -> int:
        """Count rows matching the filters."""

    @abstractmethod
    def transaction(self) -> Iterator[None]:
        """Context manager grouping the calls made inside it into one unit of work.

        Nested blocks join the outermost one. Any exception rolls back every
        write made inside the block.
        """

    def select_one(self, table: str, filters: Filters) -> Optional[Row]:
        """Single-row fetch; absent rows are ``None`` rather than an error."""
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def ping(self) -> bool:
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Connection statistics for the health check."""
        return {"pool_exists": False, "failure_count": 0, "in_backoff": False}

    def close(self) -> None:
        pass


def _check_table(table: str) -> None:
    if table not in TABLE_KEYS:
        raise StoreError(f"Unknown table '{table}'")


def _where(filters: Optional[Filters]):
    if not filters:
        return sql.SQL(""), []
    clauses = []
    params: List[Any] = []
    for column, value in filters.items():
        if value is None:
            clauses.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
        else:
            clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(value)
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params


class PostgresStore(TableStore):
    """psycopg2-backed ``TableStore``.

    Outside ``transaction()`` every call is its own transaction. Inside it,
    calls on the same thread share one pooled connection that commits when
    the block exits.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self._pool = pool
        self._local = threading.local()

    def _adapt(self, table: str, row: Row) -> Row:
        return {
            column: Json(value) if (table, column) in JSON_COLUMNS else value
            for column, value in row.items()
        }

    @staticmethod
    def _run(conn, query, params: Sequence[Any], fetch: str):
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(query, params)
            if fetch == "one":
                row = cur.fetchone()
                return dict(row) if row else None
            return [dict(row) for row in cur.fetchall()]

    def _execute(self, table: str, query, params: Sequence[Any], fetch: str = "all"):
        try:
            conn = getattr(self._local, "conn", None)
            if conn is not None:
                return self._run(conn, query, params, fetch)
            with self._pool.connection() as conn:
                return self._run(conn, query, params, fetch)
        except errors.UniqueViolation as e:
            logger.warning("PostgresStore: duplicate key on %s: %s", table, e.diag.message_primary)
            raise DuplicateRecordError(table) from e
        except psycopg2.Error as e:
            logger.error("PostgresStore: query on %s failed: %s", table, e, exc_info=True)
            raise StoreError(f"Database error: {e}") from e

    def insert(self, table: str, row: Row) -> Row:
        _check_table(table)
        row = self._adapt(table, row)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, row.keys())),
            sql.SQL(", ").join(sql.Placeholder() * len(row)),
        )
        return self._execute(table, query, list(row.values()), fetch="one")

    def select(self, table, filters=None, order_by=None, descending=False, limit=None, offset=0):
        _check_table(table)
        where, params = _where(filters)
        query = sql.SQL("SELECT * FROM {}").format(sql.Identifier(table)) + where
        if order_by:
            direction = sql.SQL(" DESC") if descending else sql.SQL(" ASC")
            query += sql.SQL(" ORDER BY {}").format(sql.Identifier(order_by)) + direction
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(limit)
        if offset:
            query += sql.SQL(" OFFSET %s")
            params.append(offset)
        return self._execute(table, query, params)

    def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        _check_table(table)
        values = self._adapt(table, values)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        where, params = _where(filters)
        query = (
            sql.SQL("UPDATE {} SET ").format(sql.Identifier(table))
            + assignments
            + where
            + sql.SQL(" RETURNING *")
        )
        return self._execute(table, query, list(values.values()) + params)

    def upsert(self, table: str, row: Row) -> Row:
        _check_table(table)
        keys = TABLE_KEYS[table]
        adapted = self._adapt(table, row)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) ON CONFLICT ({}) DO NOTHING RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, adapted.keys())),
            sql.SQL(", ").join(sql.Placeholder() * len(adapted)),
            sql.SQL(", ").join(map(sql.Identifier, keys)),
        )
        inserted = self._execute(table, query, list(adapted.values()), fetch="one")
        if inserted is not None:
            return inserted
        return self.select_one(table, {key: row[key] for key in keys})

    def increment(self, table: str, column: str, amount: int, filters: Filters) -> Optional[Row]:
        _check_table(table)
        where, params = _where(filters)
        query = (
            sql.SQL("UPDATE {table} SET {col} = {col} + %s").format(
                table=sql.Identifier(table), col=sql.Identifier(column)
            )
            + where
            + sql.SQL(" RETURNING *")
        )
        return self._execute(table, query, [amount] + params, fetch="one")

    def count(self, table: str, filters: Optional[Filters] = None) -> int:
        _check_table(table)
        where, params = _where(filters)
        query = sql.SQL("SELECT COUNT(*) AS total FROM {}").format(sql.Identifier(table)) + where
        row = self._execute(table, query, params, fetch="one")
        return int(row["total"]) if row else 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        try:
            with self._pool.connection() as conn:
                self._local.conn = conn
                try:
                    yield
                finally:
                    self._local.conn = None
        except psycopg2.Error as e:
            logger.error("PostgresStore: transaction failed: %s", e, exc_info=True)
            raise StoreError(f"Database error: {e}") from e

    def ping(self) -> bool:
        self._execute("members", sql.SQL("SELECT 1 AS ok"), [], fetch="one")
        return True

    def get_stats(self) -> Dict[str, Any]:
        return self._pool.get_stats()

    def close(self) -> None:
        self._pool.close()
