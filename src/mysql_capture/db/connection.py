"""
connection.py - SQL execution capability used by the trigger manager.

The manager only needs to run a statement or fetch rows. Anything
providing execute() and query() works; PyMySQLExecutor adapts a
PyMySQL connection and wraps driver errors in DatabaseError.
"""

import logging
from typing import Any, Final, Protocol, Sequence

import pymysql

from mysql_capture.config import DatabaseSettings
from mysql_capture.errors import DatabaseError

logger = logging.getLogger("mysql_capture.db")

# Trigger bodies keep the sql_mode they were created under; quote_literal
# assumes backslash escapes are on.
SESSION_INIT_SQL: Final[str] = (
    "SET SESSION sql_mode = "
    "REPLACE(REPLACE(REPLACE(@@SESSION.sql_mode, 'NO_BACKSLASH_ESCAPES,', ''), "
    "',NO_BACKSLASH_ESCAPES', ''), 'NO_BACKSLASH_ESCAPES', '')"
)


class SqlExecutor(Protocol):
    """Statement execution capability; no transaction is implied."""

    def execute(self, statement: str) -> None:
        """Run a statement, raising DatabaseError on failure."""
        ...

    def query(self, statement: str) -> list[Sequence[Any]]:
        """Run a query and return all rows, raising DatabaseError on failure."""
        ...


def _error_code(error: pymysql.MySQLError) -> int | None:
    if error.args and isinstance(error.args[0], int):
        return error.args[0]
    return None


class PyMySQLExecutor:
    """
    SqlExecutor backed by a PyMySQL connection.

    The connection should be in autocommit mode; DDL in MySQL commits
    implicitly anyway and the executor never opens a transaction.
    """

    def __init__(self, conn: "pymysql.connections.Connection") -> None:
        self._conn = conn

    @property
    def connection(self) -> "pymysql.connections.Connection":
        return self._conn

    def execute(self, statement: str) -> None:
        logger.debug("execute: %s", statement.splitlines()[0] if statement else "")
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(statement)
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Statement failed: {e}",
                operation="execute",
                sql=statement,
                code=_error_code(e),
            ) from e

    def query(self, statement: str) -> list[Sequence[Any]]:
        logger.debug("query: %s", statement)
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(statement)
                return list(cursor.fetchall())
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Query failed: {e}",
                operation="query",
                sql=statement,
                code=_error_code(e),
            ) from e

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PyMySQLExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_connection(settings: DatabaseSettings) -> PyMySQLExecutor:
    """
    Open an autocommit connection to the monitored database.

    Args:
        settings: Connection parameters

    Returns:
        Executor owning the new connection

    Raises:
        DatabaseError: If the connection cannot be established
    """
    try:
        conn = pymysql.connect(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            database=settings.database or None,
            connect_timeout=settings.connect_timeout,
            autocommit=True,
            charset="utf8mb4",
            init_command=SESSION_INIT_SQL,
        )
    except pymysql.MySQLError as e:
        raise DatabaseError(
            f"Failed to connect to database: {e}",
            operation="connect",
            code=_error_code(e),
        ) from e

    logger.info(
        "Connected to %s:%s/%s", settings.host, settings.port, settings.database
    )
    return PyMySQLExecutor(conn)
