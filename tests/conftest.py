"""
Pytest configuration for transaction history tests.

Provides fixtures for:
- In-memory stand-ins for the storage boundary (unit tests)
- Ledger transaction factories
- Database connection management and schema setup (integration tests)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Sequence

import psycopg
import pytest

from txhistory.config import Settings
from txhistory.domain.codec import TX_SUCCESS, encode_result_prefix
from txhistory.domain.models import LedgerTransaction, Memo, MemoType, TimeBounds
from txhistory.infrastructure.store import PostgresStore

TX_FAILED = -1

SOURCE_ACCOUNT = "GAOQJGUAB7NI7K7I62ORBXMN3J4SSWQUQ7FOEPSDJ322W2HMCNWPHXFB"
OTHER_ACCOUNT = "GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H"

HISTORY_TABLES = (
    "history_transactions",
    "exp_history_transactions",
    "history_transaction_participants",
    "exp_history_transaction_participants",
    "history_accounts",
    "history_ledgers",
)


class RecordingStore:
    """
    RowStore fake.

    Inserts are recorded per call; `fail_on_insert` makes the next N inserts
    raise. `responder(query, params)` answers `fetch_rows`.
    """

    def __init__(self, responder: Optional[Callable[[Any, Sequence[Any]], List[Dict[str, Any]]]] = None) -> None:
        self.inserts: List[tuple[str, List[Dict[str, Any]]]] = []
        self.fetches: List[tuple[Any, List[Any]]] = []
        self.fail_on_insert = 0
        self.responder = responder

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        if self.fail_on_insert:
            self.fail_on_insert -= 1
            raise psycopg.OperationalError("connection lost")
        self.inserts.append((table, [dict(row) for row in rows]))
        return len(rows)

    def fetch_rows(self, query: Any, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        self.fetches.append((query, list(params)))
        if self.responder is None:
            return []
        return self.responder(query, params)

    def rows_for(self, table: str) -> List[Dict[str, Any]]:
        return [row for name, rows in self.inserts if name == table for row in rows]


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_transaction() -> Callable[..., LedgerTransaction]:
    """
    Factory for ledger transactions with sensible defaults; any field can be overridden.
    """

    def _make(index: int = 1, successful: bool = True, **overrides: Any) -> LedgerTransaction:
        result_code = TX_SUCCESS if successful else TX_FAILED
        fields: Dict[str, Any] = {
            "index": index,
            "hash": bytes([index % 256]) * 32,
            "source_account": SOURCE_ACCOUNT,
            "sequence": 4_985_561_052_479_488 + index,
            "fee": 200,
            "operation_count": 1,
            "result_code": result_code,
            "fee_charged": 100,
            "envelope": b"envelope-%d" % index,
            "result": encode_result_prefix(100, result_code) + b"\x00\x00\x00\x00",
            "meta": b"meta-%d" % index,
            "fee_changes": b"fee-changes-%d" % index,
            "memo": Memo(MemoType.TEXT, b"1095303250"),
            "time_bounds": TimeBounds(min_time=0, max_time=1_575_000_000),
            "signatures": [b"\x01" * 64, b"\x02" * 64],
        }
        fields.update(overrides)
        return LedgerTransaction(**fields)

    return _make


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "txhistory"),
        log_level="DEBUG",
        ingest_batch_size=2,
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the history schema exists by running db/init.sql (idempotent).
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    db_connection.execute(init_sql_path.read_text(encoding="utf-8"))
    return True


@pytest.fixture(scope="function")
def clean_history_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty every history table before and after each test function.
    """
    truncate = "TRUNCATE TABLE " + ", ".join(HISTORY_TABLES) + " RESTART IDENTITY CASCADE;"
    db_connection.execute(truncate)
    yield
    db_connection.execute(truncate)


@pytest.fixture(scope="function")
def store(db_connection: psycopg.Connection, clean_history_tables) -> PostgresStore:
    return PostgresStore(db_connection)
