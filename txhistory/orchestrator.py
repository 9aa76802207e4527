"""
Orchestration of dual-write ingestion and cutover verification.

Usage (example):
    from txhistory.infrastructure import PostgresStore, get_sync_connection
    from txhistory.orchestrator import ingest_ledger, verify_ledgers, all_valid

    store = PostgresStore(get_sync_connection())
    ingest_ledger(store, 123, transactions)
    verdicts = verify_ledgers(store, [123])
    assert all_valid(verdicts)

Each ledger's transactions are written to the legacy and the shadow table
through separate buffers, exactly as two independent writers would. Retries,
if any, re-run whole ledgers; nothing here retries a failed write.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from psycopg_pool import ConnectionPool

from txhistory.config import Settings, get_settings
from txhistory.domain.models import LedgerTransaction
from txhistory.domain.order_key import OrderKey
from txhistory.history.accounts import create_accounts
from txhistory.history.batch import (
    TransactionBatchInsertBuilder,
    TransactionParticipantsBatchInsertBuilder,
)
from txhistory.history.consistency import LedgerVerdict, TransactionConsistencyChecker
from txhistory.infrastructure.store import PostgresStore, RowStore
from txhistory.utils.logging import get_logger
from txhistory.utils.profiler import profile_block

log = get_logger(__name__)


@dataclass(frozen=True)
class IngestResult:
    """Counters for one ingested ledger; rows are counted per table."""

    sequence: int
    transactions: int
    legacy_rows: int
    shadow_rows: int
    flushes: int
    duration_seconds: float
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int] = None


def ingest_ledger(
    store: RowStore,
    sequence: int,
    transactions: Sequence[LedgerTransaction],
    settings: Optional[Settings] = None,
) -> IngestResult:
    """
    Write one ledger's transactions and participants to the legacy and shadow tables.

    Raises
    ------
    EncodingError, InvariantViolation
        If a transaction cannot be normalized; nothing further is written for
        the ledger from that point on.
    WriteError
        If a batch insert fails.
    """
    settings = settings or get_settings()
    batch_size = settings.ingest_batch_size
    log.info(f"[LEDGER START] {sequence}", extra={"ledger": sequence, "transactions": len(transactions)})

    with profile_block(f"ingest-{sequence}") as stats:
        legacy = TransactionBatchInsertBuilder(store, settings.legacy_transactions_table, batch_size)
        shadow = TransactionBatchInsertBuilder(store, settings.shadow_transactions_table, batch_size)
        for transaction in transactions:
            legacy.add(transaction, sequence)
            shadow.add(transaction, sequence)
        legacy.exec()
        shadow.exec()

        accounts = create_accounts(
            store, (transaction.source_account for transaction in transactions), settings.accounts_table
        )
        legacy_participants = TransactionParticipantsBatchInsertBuilder(
            store, settings.legacy_participants_table, batch_size
        )
        shadow_participants = TransactionParticipantsBatchInsertBuilder(
            store, settings.shadow_participants_table, batch_size
        )
        for transaction in transactions:
            transaction_id = OrderKey(sequence, transaction.index).to_int()
            account_id = accounts[transaction.source_account]
            legacy_participants.add(transaction_id, account_id)
            shadow_participants.add(transaction_id, account_id)
        legacy_participants.exec()
        shadow_participants.exec()

    flushes = sum(
        builder.buffer.flush_count
        for builder in (legacy, shadow, legacy_participants, shadow_participants)
    )
    duration = stats.duration_seconds
    rows = legacy.buffer.rows_written + shadow.buffer.rows_written
    result = IngestResult(
        sequence=sequence,
        transactions=len(transactions),
        legacy_rows=legacy.buffer.rows_written,
        shadow_rows=shadow.buffer.rows_written,
        flushes=flushes,
        duration_seconds=duration,
        throughput_rows_per_sec=rows / duration if duration > 0 else 0.0,
        peak_rss_bytes=stats.peak_rss_bytes,
    )
    log.info(
        f"[LEDGER COMPLETE] {sequence}",
        extra={"ledger": sequence, "rows": rows, "flushes": flushes, "duration": round(duration, 3)},
    )
    return result


def transaction_checker(store: RowStore, settings: Optional[Settings] = None) -> TransactionConsistencyChecker:
    settings = settings or get_settings()
    return TransactionConsistencyChecker(
        store,
        legacy_table=settings.legacy_transactions_table,
        shadow_table=settings.shadow_transactions_table,
    )


def verify_ledgers(
    store: RowStore, sequences: Iterable[int], settings: Optional[Settings] = None
) -> List[LedgerVerdict]:
    """Check each ledger in turn on one store."""
    checker = transaction_checker(store, settings)
    return [checker.verdict(sequence) for sequence in sequences]


def _split_sequences(sequences: Sequence[int], workers: int) -> List[List[int]]:
    """Partition ledgers into at most `workers` disjoint, contiguous chunks."""
    workers = max(1, min(workers, len(sequences)))
    base, remainder = divmod(len(sequences), workers)
    chunks: List[List[int]] = []
    start = 0
    for index in range(workers):
        size = base + (1 if index < remainder else 0)
        chunks.append(list(sequences[start : start + size]))
        start += size
    return [chunk for chunk in chunks if chunk]


def verify_ledgers_concurrently(
    pool: ConnectionPool,
    sequences: Sequence[int],
    concurrency: int,
    settings: Optional[Settings] = None,
) -> List[LedgerVerdict]:
    """
    Check ledgers on `concurrency` threads, each with its own pooled connection
    and a disjoint set of ledgers. Verdicts come back in input order.
    """
    settings = settings or get_settings()

    def _worker(chunk: List[int]) -> List[LedgerVerdict]:
        with pool.connection() as conn:
            return verify_ledgers(PostgresStore(conn), chunk, settings)

    chunks = _split_sequences(list(sequences), concurrency)
    if not chunks:
        return []
    with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix="verify") as executor:
        results = list(executor.map(_worker, chunks))
    return [verdict for chunk in results for verdict in chunk]


def all_valid(verdicts: Iterable[LedgerVerdict]) -> bool:
    """Cutover gate: every checked ledger must be valid."""
    return all(verdict.valid for verdict in verdicts)


__all__ = [
    "IngestResult",
    "all_valid",
    "ingest_ledger",
    "transaction_checker",
    "verify_ledgers",
    "verify_ledgers_concurrently",
]
