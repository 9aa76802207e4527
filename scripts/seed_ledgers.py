"""
Synthetic ledger generation and loading for local runs and integration tests.

Builds deterministic pseudo-random ledger transactions (mixed memo types, time
bounds, failed results) and ingests them into both the legacy and the shadow
tables through the regular ingestion path.
"""

from __future__ import annotations

import hashlib
import random
import sys
import time
from datetime import UTC, datetime

import typer

from txhistory.config import get_settings
from txhistory.domain.codec import TX_SUCCESS, encode_result_prefix
from txhistory.domain.models import LedgerTransaction, Memo, MemoType, TimeBounds
from txhistory.infrastructure.db_factory import build_dsn, get_sync_connection
from txhistory.infrastructure.store import PostgresStore, RowStore
from txhistory.orchestrator import ingest_ledger
from txhistory.reporter import print_ingest_results

app = typer.Typer(help="Generate synthetic ledgers and ingest them into Postgres.")

TX_FAILED = -1
_ADDRESS_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"


def _address(rng: random.Random) -> str:
    return "G" + "".join(rng.choice(_ADDRESS_ALPHABET) for _ in range(55))


def _memo(rng: random.Random) -> Memo:
    memo_type = rng.choice(list(MemoType))
    if memo_type is MemoType.TEXT:
        return Memo(memo_type, rng.choice([b"hello world", b"hi\x00there", b"\xffbad utf-8"]))
    if memo_type is MemoType.ID:
        return Memo(memo_type, rng.randint(0, 2**64 - 1))
    if memo_type in (MemoType.HASH, MemoType.RETURN):
        return Memo(memo_type, rng.randbytes(32))
    return Memo(MemoType.NONE)


def _time_bounds(rng: random.Random) -> TimeBounds | None:
    choice = rng.random()
    if choice < 0.4:
        return None
    if choice < 0.6:
        return TimeBounds(min_time=rng.randint(0, 1_600_000_000), max_time=0)
    if choice < 0.7:
        return TimeBounds(min_time=0, max_time=2**64 - 1)
    min_time = rng.randint(0, 1_600_000_000)
    return TimeBounds(min_time=min_time, max_time=min_time + rng.randint(1, 86_400))


def synthetic_transaction(
    rng: random.Random,
    sequence: int,
    index: int,
    accounts: list[str],
    failed: bool = False,
) -> LedgerTransaction:
    """One deterministic transaction for ledger `sequence` at application order `index`."""
    fee = rng.choice([100, 200, 300, 1_000])
    fee_charged = rng.randint(100, fee)
    result_code = TX_FAILED if failed else TX_SUCCESS
    envelope = rng.randbytes(rng.randint(64, 256))
    return LedgerTransaction(
        index=index,
        hash=hashlib.sha256(f"{sequence}:{index}".encode() + envelope).digest(),
        source_account=rng.choice(accounts),
        sequence=rng.randint(1, 2**62),
        fee=fee,
        operation_count=rng.randint(1, 10),
        result_code=result_code,
        fee_charged=fee_charged,
        envelope=envelope,
        result=encode_result_prefix(fee_charged, result_code) + b"\x00\x00\x00\x00",
        meta=rng.randbytes(rng.randint(32, 128)),
        fee_changes=rng.randbytes(rng.randint(16, 64)),
        memo=_memo(rng),
        time_bounds=_time_bounds(rng),
        signatures=[rng.randbytes(64) for _ in range(rng.randint(1, 3))],
    )


def generate_ledger(
    sequence: int,
    transactions: int,
    seed: int,
    failed_ratio: float = 0.1,
    account_count: int = 5,
) -> list[LedgerTransaction]:
    """Transactions of one synthetic ledger; application order starts at 1."""
    rng = random.Random(f"{seed}:{sequence}")
    accounts = [_address(rng) for _ in range(account_count)]
    return [
        synthetic_transaction(rng, sequence, index, accounts, failed=rng.random() < failed_ratio)
        for index in range(1, transactions + 1)
    ]


def _record_ledgers(store: RowStore, sequences: list[int], table: str) -> None:
    closed_at = datetime.now(UTC)
    store.insert_rows(table, [{"sequence": sequence, "closed_at": closed_at} for sequence in sequences])


@app.command()
def main(
    start: int = typer.Option(1, "--start", "-s", help="First ledger sequence."),
    ledgers: int = typer.Option(10, "--ledgers", "-l", help="Number of ledgers to generate."),
    transactions: int = typer.Option(50, "--transactions", "-t", help="Transactions per ledger."),
    failed_ratio: float = typer.Option(0.1, "--failed-ratio", help="Share of failed transactions."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Generate synthetic ledgers and ingest them into the legacy and shadow tables.
    """
    settings = get_settings()
    begin = time.perf_counter()
    sequences = list(range(start, start + ledgers))
    typer.echo(f"Seeding ledgers {sequences[0]}..{sequences[-1]} ({transactions} tx each, seed={seed})")

    conn = get_sync_connection(dsn or build_dsn(settings))
    try:
        store = PostgresStore(conn)
        _record_ledgers(store, sequences, settings.ledgers_table)
        results = [
            ingest_ledger(store, sequence, generate_ledger(sequence, transactions, seed, failed_ratio), settings)
            for sequence in sequences
        ]
    finally:
        conn.close()

    print_ingest_results(results)
    typer.echo(f"Done in {time.perf_counter() - begin:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
