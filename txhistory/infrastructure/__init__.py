"""
Infrastructure package for transaction history.

Centralizes database connectivity (connection and pool factories) and the
storage boundary used by the history components. Keep this layer focused on
I/O and resource management.
"""

from txhistory.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    create_sync_pool,
    get_sync_connection,
)
from txhistory.infrastructure.store import PostgresStore, RowStore

__all__ = [
    "PostgresStore",
    "RowStore",
    "apply_statement_timeout",
    "build_dsn",
    "create_sync_pool",
    "get_sync_connection",
]
