"""
Domain package for transaction history.

Exports the ledger input types, the normalized row models, the OrderKey helpers
and the error taxonomy. Nothing in here performs I/O.
"""

from txhistory.domain.errors import (
    DataCorruption,
    EncodingError,
    HistoryError,
    InvariantViolation,
    WriteError,
)
from txhistory.domain.models import (
    LedgerTransaction,
    Memo,
    MemoType,
    TimeBounds,
    Transaction,
    TransactionRow,
)
from txhistory.domain.order_key import OrderKey, ledger_range, pack, unpack

__all__ = [
    "DataCorruption",
    "EncodingError",
    "HistoryError",
    "InvariantViolation",
    "LedgerTransaction",
    "Memo",
    "MemoType",
    "OrderKey",
    "TimeBounds",
    "Transaction",
    "TransactionRow",
    "WriteError",
    "ledger_range",
    "pack",
    "unpack",
]
