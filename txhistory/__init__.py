"""
txhistory - ledger transaction history with shadow-table migration support.

Ingests transactions from closed ledgers into PostgreSQL, writing each row to
both the legacy `history_transactions` table and the new-schema shadow table,
and verifies ledger by ledger that the two agree before readers are cut over:

- OrderKey packing of (ledger, transaction, operation) into one bigint
- Deterministic normalization of ledger transactions into rows
- Batched multi-row inserts
- Filtered reads with success-flag/result-code cross-checks
- Legacy/shadow consistency checks
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from txhistory.config import Settings, get_settings
from txhistory.domain import (
    DataCorruption,
    EncodingError,
    HistoryError,
    InvariantViolation,
    LedgerTransaction,
    Memo,
    MemoType,
    OrderKey,
    TimeBounds,
    Transaction,
    TransactionRow,
    WriteError,
)
from txhistory.history import (
    BatchInsertBuffer,
    ConsistencyChecker,
    HistoryTables,
    LedgerVerdict,
    PageQuery,
    TransactionConsistencyChecker,
    TransactionFilter,
    create_accounts,
    normalize_transaction,
    select_transactions,
)
from txhistory.orchestrator import IngestResult, all_valid, ingest_ledger, verify_ledgers
from txhistory.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "LedgerTransaction",
    "Memo",
    "MemoType",
    "OrderKey",
    "TimeBounds",
    "Transaction",
    "TransactionRow",
    # Errors
    "DataCorruption",
    "EncodingError",
    "HistoryError",
    "InvariantViolation",
    "WriteError",
    # History
    "BatchInsertBuffer",
    "ConsistencyChecker",
    "HistoryTables",
    "LedgerVerdict",
    "PageQuery",
    "TransactionConsistencyChecker",
    "TransactionFilter",
    "create_accounts",
    "normalize_transaction",
    "select_transactions",
    # Orchestration
    "IngestResult",
    "all_valid",
    "ingest_ledger",
    "verify_ledgers",
    # Logging
    "configure_logging",
    "get_logger",
]
