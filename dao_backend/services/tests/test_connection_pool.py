from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from dao_backend.config import DatabaseConfig
from dao_backend.exceptions import StoreError
from dao_backend.services.connection_pool import DatabaseConnectionPool

ENV = {
    "DATABASE_HOST": "localhost",
    "DATABASE_NAME": "governance",
    "DATABASE_USER": "dao",
    "DATABASE_PASSWORD": "pw",
}


@pytest.fixture
def threaded_pool():
    with patch("dao_backend.services.connection_pool.pool.ThreadedConnectionPool") as factory:
        yield factory


class TestDatabaseConnectionPool:
    def test_connection_commits_on_success(self, threaded_pool):
        conn = MagicMock(closed=0)
        threaded_pool.return_value.getconn.return_value = conn
        db_pool = DatabaseConnectionPool(DatabaseConfig(ENV))

        with db_pool.connection() as acquired:
            assert acquired is conn

        conn.commit.assert_called()
        conn.rollback.assert_not_called()
        threaded_pool.return_value.putconn.assert_called_once_with(conn, close=False)

    def test_connection_rolls_back_on_error(self, threaded_pool):
        conn = MagicMock(closed=0)
        threaded_pool.return_value.getconn.return_value = conn
        db_pool = DatabaseConnectionPool(DatabaseConfig(ENV))

        with pytest.raises(ValueError):
            with db_pool.connection():
                raise ValueError("boom")

        conn.rollback.assert_called_once()

    def test_backoff_after_repeated_failures(self, threaded_pool):
        threaded_pool.side_effect = psycopg2.OperationalError("could not connect")
        db_pool = DatabaseConnectionPool(DatabaseConfig(ENV))

        for _ in range(3):
            with pytest.raises(StoreError, match="Failed to create"):
                db_pool.get_connection()

        with pytest.raises(StoreError, match="backoff mode"):
            db_pool.get_connection()
        assert db_pool.get_stats()["in_backoff"] is True
