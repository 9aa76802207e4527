"""
Database connection factory utilities for transaction history.

Builds DSNs from settings and hands out psycopg connections and pools. Nothing
here is a process-wide singleton: callers own the connection or pool they get
back and pass it explicitly (wrapped in a store) to every component.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg import Connection, sql
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from txhistory.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(conn: Connection, timeout_ms: int) -> None:
    """Set a per-session statement timeout; 0 leaves the server default."""
    if timeout_ms <= 0:
        return
    conn.execute(sql.SQL("SET statement_timeout = {}").format(sql.Literal(timeout_ms)))


def _configure(conn: Connection) -> None:
    """Session setup shared by plain and pooled connections."""
    conn.autocommit = True
    apply_statement_timeout(conn, get_settings().db_statement_timeout_ms)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated autocommit connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Parameters
    ----------
    dsn : str, optional
        Connection string; defaults to the one built from settings.

    Returns
    -------
    Connection
        A new psycopg connection instance in autocommit mode.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    conn = psycopg.connect(dsn or build_dsn())
    _configure(conn)
    return conn


def create_sync_pool(
    min_size: int = 1, max_size: int = 10, dsn: Optional[str] = None
) -> ConnectionPool:
    """
    Create a synchronous connection pool whose connections are autocommit.

    The caller owns the pool and must close it (it is a context manager).

    Parameters
    ----------
    min_size : int
        Minimum number of idle connections to keep.
    max_size : int
        Maximum total connections in the pool.
    dsn : str, optional
        Connection string; defaults to the one built from settings.
    """
    return ConnectionPool(
        conninfo=dsn or build_dsn(),
        min_size=min_size,
        max_size=max_size,
        configure=_configure,
        open=True,
    )


__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "create_sync_pool",
    "get_sync_connection",
]
