"""
Batched inserts into history tables.

`BatchInsertBuffer` accumulates column -> value rows for one table and writes
them in groups of at most `max_batch_size` rows. It is not transactional across
groups: if ingestion dies halfway, a prefix of the groups is committed and the
pipeline re-runs from the last confirmed ledger.

A buffer belongs to the code that created it and must not be shared between
threads.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from txhistory.domain.errors import WriteError
from txhistory.domain.models import LedgerTransaction
from txhistory.history.normalizer import normalize_transaction
from txhistory.infrastructure.store import RowStore
from txhistory.utils.logging import get_logger

log = get_logger(__name__)


class BatchInsertBuffer:
    """
    Row accumulator that flushes to `table` through a RowStore.

    Parameters
    ----------
    store : RowStore
        Storage handle the rows are written through.
    table : str
        Target table name.
    max_batch_size : int
        Rows per INSERT. 0 disables automatic flushing, so everything is
        written by `finalize()`.
    """

    def __init__(self, store: RowStore, table: str, max_batch_size: int) -> None:
        if max_batch_size < 0:
            raise ValueError(f"max_batch_size must be >= 0, got {max_batch_size}")
        self._store = store
        self.table = table
        self.max_batch_size = max_batch_size
        self._rows: List[Dict[str, Any]] = []
        self._columns: Optional[List[str]] = None
        self.flush_count = 0
        self.rows_written = 0

    @property
    def pending(self) -> int:
        return len(self._rows)

    def add(self, row: Mapping[str, Any]) -> None:
        """
        Append a row, flushing once the batch is full.

        Raises
        ------
        ValueError
            If the row's columns differ from earlier rows in this buffer.
        WriteError
            If the automatic flush fails.
        """
        columns = list(row.keys())
        if self._columns is None:
            self._columns = columns
        elif columns != self._columns:
            raise ValueError(
                f"invalid number of columns for {self.table}: expected {self._columns}, got {columns}"
            )
        self._rows.append(dict(row))
        if self.max_batch_size and len(self._rows) >= self.max_batch_size:
            self._flush()

    def finalize(self) -> None:
        """
        Write whatever is still pending.

        Raises
        ------
        WriteError
            If the flush fails. Pending rows are kept, so the call may be retried.
        """
        if self._rows:
            self._flush()

    def _flush(self) -> None:
        batch = self._rows
        try:
            self._store.insert_rows(self.table, batch)
        except Exception as exc:
            log.error(
                "Batch insert failed",
                extra={"table": self.table, "rows": len(batch), "error": str(exc)},
            )
            raise WriteError(self.table, len(batch), exc) from exc
        self._rows = []
        self.flush_count += 1
        self.rows_written += len(batch)
        log.debug(
            "Flushed batch",
            extra={"table": self.table, "rows": len(batch), "flush": self.flush_count},
        )


class TransactionBatchInsertBuilder:
    """Normalizes ledger transactions and buffers them for one transactions table."""

    def __init__(self, store: RowStore, table: str, max_batch_size: int) -> None:
        self.buffer = BatchInsertBuffer(store, table, max_batch_size)

    def add(self, transaction: LedgerTransaction, sequence: int) -> None:
        self.buffer.add(normalize_transaction(transaction, sequence).to_columns())

    def exec(self) -> None:
        self.buffer.finalize()


class TransactionParticipantsBatchInsertBuilder:
    """Buffers (transaction id, account id) pairs for a participants table."""

    def __init__(self, store: RowStore, table: str, max_batch_size: int) -> None:
        self.buffer = BatchInsertBuffer(store, table, max_batch_size)

    def add(self, transaction_id: int, account_id: int) -> None:
        self.buffer.add(
            {"history_transaction_id": transaction_id, "history_account_id": account_id}
        )

    def exec(self) -> None:
        self.buffer.finalize()


__all__ = [
    "BatchInsertBuffer",
    "TransactionBatchInsertBuilder",
    "TransactionParticipantsBatchInsertBuilder",
]
