"""
Database connection pooling to prevent repeated authentication failures.

This module provides a simple connection pool that reuses database connections
and handles connection failures gracefully with a backoff window.
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import psycopg2
from psycopg2 import pool

from dao_backend.config.database_config import DatabaseConfig
from dao_backend.exceptions import StoreError
from dao_backend.utils.logger import logger


class DatabaseConnectionPool:
    """Thread-safe database connection pool with failure handling."""

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._lock = threading.Lock()
        self._min_connections = config.min_connections
        self._max_connections = config.max_connections
        self._last_failure_time = 0.0
        self._failure_count = 0
        self._max_failure_count = 3
        self._backoff_seconds = 30

    def _create_pool(self) -> pool.ThreadedConnectionPool:
        """Create a new connection pool."""
        logger.info("DatabaseConnectionPool: Creating connection pool (min=%d, max=%d) for %s",
                    self._min_connections, self._max_connections, self._config.get_connection_string())

        return pool.ThreadedConnectionPool(
            self._min_connections,
            self._max_connections,
            **self._config.get_connection_params()
        )

    def _should_retry(self) -> bool:
        """Check if we should retry after a failure."""
        if self._failure_count < self._max_failure_count:
            return True

        time_since_failure = time.time() - self._last_failure_time
        return time_since_failure > self._backoff_seconds

    def _setup_connection(self, conn) -> None:
        """Enforce a maximum query and lock wait per session."""
        timeout_ms = self._config.get_statement_timeout_ms()
        with conn.cursor() as cur:
            cur.execute("SET statement_timeout = %s", (timeout_ms,))
            cur.execute("SET lock_timeout = %s", (timeout_ms,))
        conn.commit()

    def get_connection(self):
        """Get a connection from the pool."""
        with self._lock:
            if not self._should_retry():
                raise StoreError(
                    f"Database connection pool in backoff mode. "
                    f"Too many failures ({self._failure_count}). "
                    f"Please wait {self._backoff_seconds} seconds before retrying."
                )

            if self._pool is None:
                try:
                    self._pool = self._create_pool()
                    self._failure_count = 0
                except Exception as e:
                    self._failure_count += 1
                    self._last_failure_time = time.time()
                    logger.error("DatabaseConnectionPool: Failed to create pool: %s", e)
                    raise StoreError(f"Failed to create database connection pool: {e}") from e

            try:
                conn = self._pool.getconn()
                if conn is None:
                    raise StoreError("No available connections in pool")
                self._setup_connection(conn)
                return conn

            except psycopg2.Error as e:
                self._failure_count += 1
                self._last_failure_time = time.time()
                logger.error("DatabaseConnectionPool: Failed to get connection: %s", e)

                # Close and recreate pool on persistent failures
                if self._failure_count >= 2:
                    logger.warning("DatabaseConnectionPool: Recreating pool due to persistent failures")
                    self._close_pool()

                raise StoreError(f"Failed to get database connection: {e}") from e

    def return_connection(self, conn, close_connection: bool = False):
        """Return a connection to the pool."""
        if self._pool is None:
            return

        try:
            self._pool.putconn(conn, close=close_connection)
        except Exception as e:
            logger.error("DatabaseConnectionPool: Error returning connection: %s", e)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """
        Context manager for a single unit of work.

        Commits when the block exits cleanly and rolls back otherwise.

        Example:
            with pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        conn = self.get_connection()
        broken = False
        try:
            yield conn
            conn.commit()
        except Exception:
            try:
                conn.rollback()
            except psycopg2.InterfaceError:
                broken = True
            raise
        finally:
            self.return_connection(conn, close_connection=broken or bool(conn.closed))

    def _close_pool(self):
        """Close the connection pool."""
        if self._pool is not None:
            try:
                self._pool.closeall()
                logger.info("DatabaseConnectionPool: Closed connection pool")
            except Exception as e:
                logger.error("DatabaseConnectionPool: Error closing pool: %s", e)
            finally:
                self._pool = None

    def close(self):
        """Close the connection pool."""
        with self._lock:
            self._close_pool()

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        with self._lock:
            stats = {
                "pool_exists": self._pool is not None,
                "failure_count": self._failure_count,
                "last_failure_time": self._last_failure_time,
                "in_backoff": not self._should_retry(),
            }
            if self._pool is not None:
                stats["min_connections"] = self._min_connections
                stats["max_connections"] = self._max_connections
            return stats
