"""
Database Connection Management.

This module owns the process-wide SQLAlchemy engine (and with it the
connection pool). It provides:
- connect(): borrow a pooled connection, always returned on exit
- transaction(): BEGIN/COMMIT on one connection, ROLLBACK and re-raise on error
- fetch_all / fetch_one / execute helpers returning plain dicts and row counts
- Health checks and explicit teardown

The pool is created lazily by get_database() and disposed by close_database().
"""
import time
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.base import Executable

from crm.core.config import get_settings
from crm.core.logging_config import get_logger

logger = get_logger(__name__)

Statement = Union[str, Executable]


class DatabaseConnection:
    """
    Manages the connection pool and transaction scoping.

    Example:
        >>> db = DatabaseConnection()
        >>> with db.transaction() as conn:
        ...     conn.execute(text("UPDATE accounts SET status = 'Active'"))
    """

    def __init__(self, connection_url: Optional[str] = None, engine: Optional[Engine] = None):
        """
        Initialize the engine with connection pooling.

        Args:
            connection_url: Optional connection URL. If not provided, uses settings.
            engine: Pre-built engine (tests pass an in-memory SQLite engine)
        """
        self.settings = get_settings()

        if engine is not None:
            self.engine = engine
        else:
            db_url = connection_url or self.settings.database_url

            # pool_pre_ping: test connections before use (handles stale connections)
            # pool_timeout: how long a request waits for a free connection
            self.engine = create_engine(
                db_url,
                pool_pre_ping=True,
                pool_size=self.settings.db_pool_size,
                max_overflow=self.settings.db_pool_max_overflow,
                pool_timeout=self.settings.db_pool_timeout_seconds,
                pool_recycle=self.settings.db_pool_recycle_seconds,
                echo=False,
            )

        url = self.engine.url.render_as_string(hide_password=True)
        logger.info(f"Database connection initialized: {url.split('@')[-1] if '@' in url else url}")

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """
        Borrow a pooled connection for reads.

        Anything left uncommitted is rolled back when the block exits.
        """
        conn = self.engine.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Run a block inside one database transaction.

        Usage:
            with db.transaction() as conn:
                conn.execute(insert(accounts).values(...))
                conn.execute(update(leads).values(...))

        Commits when the block completes. Any exception rolls the
        transaction back and is re-raised. The connection always returns
        to the pool.

        Yields:
            SQLAlchemy Connection bound to the open transaction
        """
        conn = self.engine.connect()
        trans = conn.begin()
        try:
            yield conn
            trans.commit()
        except Exception as e:
            trans.rollback()
            if isinstance(e, SQLAlchemyError):
                logger.error(f"Database error, rolling back: {e}")
            else:
                logger.debug(f"Transaction rolled back: {type(e).__name__}: {e}")
            raise
        finally:
            conn.close()

    def _run(self, conn: Connection, statement: Statement, params):
        if isinstance(statement, str):
            statement = text(statement)

        start = time.time()
        result = conn.execute(statement, params or {})

        if self.settings.is_development():
            duration_ms = (time.time() - start) * 1000
            sql = " ".join(str(statement).split())[:100]
            rows = result.rowcount if result.rowcount is not None else -1
            logger.debug(f"Executed query: {sql} duration={duration_ms:.1f}ms rows={rows}")

        return result

    def fetch_all(
        self,
        statement: Statement,
        params: Optional[Dict[str, Any]] = None,
        conn: Optional[Connection] = None,
    ) -> List[Dict[str, Any]]:
        """Execute a statement and return every row as a dict."""
        if conn is not None:
            return [dict(row._mapping) for row in self._run(conn, statement, params)]
        with self.transaction() as own_conn:
            return [dict(row._mapping) for row in self._run(own_conn, statement, params)]

    def fetch_one(
        self,
        statement: Statement,
        params: Optional[Dict[str, Any]] = None,
        conn: Optional[Connection] = None,
    ) -> Optional[Dict[str, Any]]:
        """Execute a statement and return the first row, or None."""
        rows = self.fetch_all(statement, params, conn)
        return rows[0] if rows else None

    def execute(
        self,
        statement: Statement,
        params: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None,
        conn: Optional[Connection] = None,
    ) -> int:
        """Execute a write statement and return the affected row count."""
        if conn is not None:
            return self._run(conn, statement, params).rowcount
        with self.transaction() as own_conn:
            return self._run(own_conn, statement, params).rowcount

    def check_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection is healthy, False otherwise.
        """
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Database connection check: OK")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def close(self):
        """Close all connections in the pool."""
        self.engine.dispose()
        logger.info("Database connections closed")


# Module-level instance (singleton pattern)
_db_connection: Optional[DatabaseConnection] = None


def get_database() -> DatabaseConnection:
    """
    Get or create the database connection instance.

    Lazy initialization keeps imports free of network access.

    Returns:
        DatabaseConnection singleton instance
    """
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


def close_database() -> None:
    """Dispose the shared pool, if one was created."""
    global _db_connection
    if _db_connection is not None:
        _db_connection.close()
        _db_connection = None
