"""
Verify-before-cutover checks for tables written in parallel.

During a schema migration every row is written to both the legacy and the
shadow table. Before readers may switch to the shadow table, each ledger must
be shown to hold exactly the same rows in both. The verdict is a plain bool:
valid only if both tables return the same number of rows for the ledger and
every pair of rows, matched in id order, is equal.

`ConsistencyChecker` is generic over the row type and the equality used, so a
later migration can reuse it with its own fetchers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Sequence, TypeVar

from psycopg import sql

from txhistory.domain.order_key import ledger_range
from txhistory.infrastructure.store import Row, RowStore
from txhistory.utils.logging import get_logger

log = get_logger(__name__)

RowT = TypeVar("RowT")

# Half-open OrderKey range -> rows in id order.
RangeFetcher = Callable[[int, int], Sequence[RowT]]

# created_at / updated_at are stamped independently by each write.
COMPARED_COLUMNS = (
    "id",
    "transaction_hash",
    "ledger_sequence",
    "application_order",
    "account",
    "account_sequence",
    "max_fee",
    "fee_charged",
    "operation_count",
    "tx_envelope",
    "tx_result",
    "tx_meta",
    "tx_fee_meta",
    "signatures",
    "memo_type",
    "memo",
    "valid_after",
    "valid_before",
    "successful",
)


@dataclass(frozen=True)
class LedgerVerdict:
    """Outcome of checking one ledger. Row counts are for reporting only."""

    sequence: int
    valid: bool
    legacy_rows: int
    shadow_rows: int


class ConsistencyChecker(Generic[RowT]):
    """
    Compare one ledger's rows between a legacy and a shadow source.

    Parameters
    ----------
    fetch_legacy, fetch_shadow : RangeFetcher
        Return the rows whose id falls in `[start, end)`, ordered by id.
    rows_equal : callable
        Column-wise equality of one legacy row and one shadow row.
    """

    def __init__(
        self,
        fetch_legacy: RangeFetcher[RowT],
        fetch_shadow: RangeFetcher[RowT],
        rows_equal: Callable[[RowT, RowT], bool],
    ) -> None:
        self._fetch_legacy = fetch_legacy
        self._fetch_shadow = fetch_shadow
        self._rows_equal = rows_equal

    def compare(self, legacy: Sequence[RowT], shadow: Sequence[RowT]) -> bool:
        if len(legacy) != len(shadow):
            return False
        return all(self._rows_equal(left, right) for left, right in zip(legacy, shadow))

    def check(self, ledger_sequence: int) -> bool:
        """Return True when both tables agree on every row of the ledger."""
        return self.verdict(ledger_sequence).valid

    def verdict(self, ledger_sequence: int) -> LedgerVerdict:
        start, end = ledger_range(ledger_sequence)
        legacy = self._fetch_legacy(start, end)
        shadow = self._fetch_shadow(start, end)
        valid = self.compare(legacy, shadow)

        extra = {
            "ledger": ledger_sequence,
            "valid": valid,
            "legacy_rows": len(legacy),
            "shadow_rows": len(shadow),
        }
        if valid:
            log.info("Shadow rows match legacy rows", extra=extra)
        else:
            log.warning("Shadow rows diverge from legacy rows", extra=extra)
        return LedgerVerdict(ledger_sequence, valid, len(legacy), len(shadow))


def columns_equal(columns: Sequence[str]) -> Callable[[Row, Row], bool]:
    """Row equality over `columns`; a column missing from a row compares as missing."""
    missing = object()

    def _equal(left: Row, right: Row) -> bool:
        return all(left.get(column, missing) == right.get(column, missing) for column in columns)

    return _equal


def range_fetcher(store: RowStore, table: str, columns: Sequence[str]) -> RangeFetcher[Row]:
    """Fetcher that selects raw `columns` of `table` for one OrderKey range."""
    query = sql.SQL("SELECT {columns} FROM {table} WHERE id >= %s AND id < %s ORDER BY id ASC").format(
        columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
        table=sql.Identifier(table),
    )

    def _fetch(start: int, end: int) -> List[Row]:
        return store.fetch_rows(query, [start, end])

    return _fetch


class TransactionConsistencyChecker(ConsistencyChecker[Row]):
    """Checker for the legacy and shadow transactions tables."""

    def __init__(
        self,
        store: RowStore,
        legacy_table: str,
        shadow_table: str,
        columns: Sequence[str] = COMPARED_COLUMNS,
    ) -> None:
        super().__init__(
            fetch_legacy=range_fetcher(store, legacy_table, columns),
            fetch_shadow=range_fetcher(store, shadow_table, columns),
            rows_equal=columns_equal(columns),
        )
        self.legacy_table = legacy_table
        self.shadow_table = shadow_table


__all__ = [
    "COMPARED_COLUMNS",
    "ConsistencyChecker",
    "LedgerVerdict",
    "TransactionConsistencyChecker",
    "columns_equal",
    "range_fetcher",
]
