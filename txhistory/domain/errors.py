"""
Error taxonomy for transaction history ingestion and reads.

None of these errors are retried inside this package; retry policy belongs to
the ingestion pipeline, which re-runs whole ledgers.
"""

from __future__ import annotations

from typing import Optional


class HistoryError(Exception):
    """Base class for all transaction history errors."""


class EncodingError(HistoryError):
    """A source payload (envelope, result, meta, fee changes) could not be serialized."""

    def __init__(self, payload: str, transaction_hash: str, reason: str) -> None:
        self.payload = payload
        self.transaction_hash = transaction_hash
        super().__init__(f"cannot encode {payload} of transaction {transaction_hash}: {reason}")


class InvariantViolation(HistoryError):
    """
    An unrecognized protocol variant was encountered.

    Ingestion must stop; writing a row for the offending transaction would
    persist corrupt data.
    """


class WriteError(HistoryError):
    """
    Flushing a batch of rows to storage failed.

    `rows_pending` is the number of rows that were in flight and are still
    held by the buffer.
    """

    def __init__(self, table: str, rows_pending: int, cause: Optional[BaseException] = None) -> None:
        self.table = table
        self.rows_pending = rows_pending
        message = f"failed to write {rows_pending} row(s) to {table}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class DataCorruption(HistoryError):
    """A persisted row violates the successful-flag/result-code invariant."""

    def __init__(self, message: str, transaction_hash: str) -> None:
        self.transaction_hash = transaction_hash
        super().__init__(f"Corrupted data! {message}: {transaction_hash}")


__all__ = [
    "DataCorruption",
    "EncodingError",
    "HistoryError",
    "InvariantViolation",
    "WriteError",
]
