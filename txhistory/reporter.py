from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from txhistory.history.consistency import LedgerVerdict
from txhistory.orchestrator import IngestResult


def print_verdicts(verdicts: Sequence[LedgerVerdict], console: Optional[Console] = None) -> None:
    """
    Render shadow-table verification results as a rich table.

    Invalid ledgers are listed first; the caption carries the cutover decision.
    """
    console = console or Console()

    if not verdicts:
        console.print("[yellow]No ledgers checked.[/yellow]")
        return

    invalid = [verdict for verdict in verdicts if not verdict.valid]
    if invalid:
        caption = f"[bold red]{len(invalid)} of {len(verdicts)} ledger(s) diverge: cutover blocked[/bold red]"
    else:
        caption = f"[bold green]All {len(verdicts)} ledger(s) consistent: cutover allowed[/bold green]"

    table = Table(title="Shadow Table Verification", box=box.ROUNDED, caption=caption)
    table.add_column("Ledger", style="cyan", justify="right", no_wrap=True)
    table.add_column("Legacy rows", justify="right", style="magenta")
    table.add_column("Shadow rows", justify="right", style="magenta")
    table.add_column("Verdict", justify="center")

    ordered: List[LedgerVerdict] = sorted(verdicts, key=lambda v: (v.valid, v.sequence))
    for verdict in ordered:
        status = "[green]valid[/green]" if verdict.valid else "[bold red]INVALID[/bold red]"
        table.add_row(
            str(verdict.sequence),
            f"{verdict.legacy_rows:,}",
            f"{verdict.shadow_rows:,}",
            status,
        )

    console.print(table)


def print_ingest_results(results: Sequence[IngestResult], console: Optional[Console] = None) -> None:
    """Render per-ledger ingestion counters."""
    console = console or Console()

    if not results:
        console.print("[yellow]No ledgers ingested.[/yellow]")
        return

    table = Table(title="Ledger Ingestion", box=box.ROUNDED)
    table.add_column("Ledger", style="cyan", justify="right", no_wrap=True)
    table.add_column("Transactions", justify="right", style="magenta")
    table.add_column("Flushes", justify="right", style="blue")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")

    for res in results:
        mem_mb = (res.peak_rss_bytes or 0) / (1024 * 1024)
        table.add_row(
            str(res.sequence),
            f"{res.transactions:,}",
            str(res.flushes),
            f"{res.duration_seconds:.2f}",
            f"{res.throughput_rows_per_sec:,.2f}",
            f"{mem_mb:.2f}",
        )

    console.print(table)
