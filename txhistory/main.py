from __future__ import annotations

import sys
from typing import Optional

import typer

from txhistory.config import get_settings
from txhistory.infrastructure.db_factory import create_sync_pool
from txhistory.orchestrator import all_valid, verify_ledgers_concurrently
from txhistory.reporter import print_verdicts
from txhistory.utils.logging import configure_logging

app = typer.Typer(help="Transaction history shadow-table tooling.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"legacy={settings.legacy_transactions_table} shadow={settings.shadow_transactions_table} "
        f"batch={settings.ingest_batch_size} concurrency={settings.verify_concurrency}"
    )


@app.command()
def verify(
    from_ledger: int = typer.Option(..., "--from", "-f", help="First ledger sequence to check."),
    to_ledger: int = typer.Option(..., "--to", "-t", help="Last ledger sequence to check (inclusive)."),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-c",
        help="Worker threads, each checking a disjoint set of ledgers (default from settings).",
    ),
) -> None:
    """
    Check that the shadow table matches the legacy table for a ledger range.

    Exits with status 1 if any ledger diverges.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    if to_ledger < from_ledger:
        raise typer.BadParameter("--to must not be lower than --from")
    workers = concurrency or settings.verify_concurrency

    sequences = list(range(from_ledger, to_ledger + 1))
    with create_sync_pool(min_size=1, max_size=workers) as pool:
        verdicts = verify_ledgers_concurrently(pool, sequences, workers, settings)

    print_verdicts(verdicts)
    if not all_valid(verdicts):
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
