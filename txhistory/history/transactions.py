"""
Read queries over the transactions tables.

Filtering is described by an immutable `TransactionFilter` value and turned into
SQL by `build_transactions_query` in one place. Scoping clauses (account,
ledger, page cursor) are ANDed together first; the success predicate is always
the last clause and is wrapped in parentheses so it cannot bind to a
neighbouring OR.

Every row that comes back is cross-checked against its stored result payload
(`verify_transactions`). A mismatch means the store itself can no longer be
trusted and is raised as `DataCorruption`, never filtered out.

Usage:
    criteria = TransactionFilter().for_account("GA...").with_page(PageQuery(limit=20))
    transactions = select_transactions(store, criteria)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from psycopg import sql

from txhistory.config import Settings, get_settings
from txhistory.domain.codec import TX_SUCCESS, PayloadError, decode_result_code
from txhistory.domain.errors import DataCorruption
from txhistory.domain.models import Transaction
from txhistory.domain.order_key import INT64_MAX, ledger_range
from txhistory.history.accounts import account_id_by_address
from txhistory.infrastructure.store import RowStore
from txhistory.utils.logging import get_logger

log = get_logger(__name__)

SUCCESSFUL_ONLY = "(ht.successful = true OR ht.successful IS NULL)"

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 200

_SELECT_COLUMNS = (
    "ht.id, "
    "ht.transaction_hash, "
    "ht.ledger_sequence, "
    "ht.application_order, "
    "ht.account, "
    "ht.account_sequence, "
    "ht.max_fee, "
    # fee_charged is NULL until the ledger is reingested; show max_fee instead.
    "COALESCE(ht.fee_charged, ht.max_fee) AS fee_charged, "
    "ht.operation_count, "
    "ht.tx_envelope, "
    "ht.tx_result, "
    "ht.tx_meta, "
    "ht.tx_fee_meta, "
    "ht.created_at, "
    "ht.updated_at, "
    "ht.successful, "
    "ht.signatures, "
    "ht.memo_type, "
    "ht.memo, "
    "ht.valid_after, "
    "ht.valid_before, "
    "hl.closed_at AS ledger_close_time"
)


@dataclass(frozen=True)
class HistoryTables:
    """Names of the tables one family of history queries runs against."""

    transactions: str
    participants: str
    accounts: str
    ledgers: str

    @classmethod
    def legacy(cls, settings: Optional[Settings] = None) -> "HistoryTables":
        settings = settings or get_settings()
        return cls(
            transactions=settings.legacy_transactions_table,
            participants=settings.legacy_participants_table,
            accounts=settings.accounts_table,
            ledgers=settings.ledgers_table,
        )

    @classmethod
    def shadow(cls, settings: Optional[Settings] = None) -> "HistoryTables":
        settings = settings or get_settings()
        return cls(
            transactions=settings.shadow_transactions_table,
            participants=settings.shadow_participants_table,
            accounts=settings.accounts_table,
            ledgers=settings.ledgers_table,
        )


@dataclass(frozen=True)
class PageQuery:
    """
    Keyset page over the OrderKey column.

    `cursor` is the id of the last row of the previous page; None starts from
    the beginning (ascending) or the end (descending).
    """

    cursor: Optional[int] = None
    order: Literal["asc", "desc"] = "asc"
    limit: int = DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        if self.order not in ("asc", "desc"):
            raise ValueError(f"invalid page order: {self.order!r}")
        if not 0 < self.limit <= MAX_PAGE_LIMIT:
            raise ValueError(f"page limit must be in 1..{MAX_PAGE_LIMIT}, got {self.limit}")
        if self.cursor is not None and self.cursor < 0:
            raise ValueError(f"invalid cursor: {self.cursor}")

    def clause(self) -> Tuple[str, Tuple[Any, ...]]:
        if self.order == "asc":
            return "ht.id > %s", (self.cursor if self.cursor is not None else -1,)
        return "ht.id < %s", (self.cursor if self.cursor is not None else INT64_MAX,)


@dataclass(frozen=True)
class TransactionFilter:
    """
    What to select. Every method returns a new filter.
    """

    account: Optional[str] = None
    ledger_sequence: Optional[int] = None
    page: Optional[PageQuery] = None
    include_failed: bool = False

    def for_account(self, address: str) -> "TransactionFilter":
        return replace(self, account=address)

    def for_ledger(self, sequence: int) -> "TransactionFilter":
        return replace(self, ledger_sequence=sequence)

    def with_page(self, page: PageQuery) -> "TransactionFilter":
        return replace(self, page=page)

    def including_failed(self, include: bool = True) -> "TransactionFilter":
        return replace(self, include_failed=include)


def where_clauses(
    criteria: TransactionFilter, account_id: Optional[int] = None
) -> List[Tuple[str, Tuple[Any, ...]]]:
    """
    WHERE fragments for `criteria`, in the order they are ANDed together.

    The success predicate, when present, is always last.
    """
    clauses: List[Tuple[str, Tuple[Any, ...]]] = []
    if criteria.account is not None:
        if account_id is None:
            raise ValueError("account filter requires a resolved account id")
        clauses.append(("htp.history_account_id = %s", (account_id,)))
    if criteria.ledger_sequence is not None:
        start, end = ledger_range(criteria.ledger_sequence)
        clauses.append(("ht.id >= %s AND ht.id < %s", (start, end)))
    if criteria.page is not None:
        clauses.append(criteria.page.clause())
    if not criteria.include_failed:
        clauses.append((SUCCESSFUL_ONLY, ()))
    return clauses


def build_transactions_query(
    criteria: TransactionFilter,
    tables: HistoryTables,
    account_id: Optional[int] = None,
) -> Tuple[sql.Composed, List[Any]]:
    """
    Compose the SELECT for `criteria` and its positional parameters.
    """
    parts = [
        sql.SQL("SELECT " + _SELECT_COLUMNS + " FROM {transactions} ht "
                "LEFT JOIN {ledgers} hl ON ht.ledger_sequence = hl.sequence").format(
            transactions=sql.Identifier(tables.transactions),
            ledgers=sql.Identifier(tables.ledgers),
        )
    ]
    if criteria.account is not None:
        parts.append(
            sql.SQL("JOIN {participants} htp ON htp.history_transaction_id = ht.id").format(
                participants=sql.Identifier(tables.participants)
            )
        )

    params: List[Any] = []
    clauses = where_clauses(criteria, account_id)
    if clauses:
        parts.append(sql.SQL("WHERE " + " AND ".join(fragment for fragment, _ in clauses)))
        for _, values in clauses:
            params.extend(values)

    if criteria.page is not None:
        direction = "ASC" if criteria.page.order == "asc" else "DESC"
        parts.append(sql.SQL(f"ORDER BY ht.id {direction} LIMIT %s"))
        params.append(criteria.page.limit)
    else:
        parts.append(sql.SQL("ORDER BY ht.id ASC"))

    return sql.SQL(" ").join(parts), params


def _result_is_success(transaction: Transaction) -> bool:
    try:
        return decode_result_code(transaction.tx_result) == TX_SUCCESS
    except PayloadError as exc:
        raise DataCorruption(f"result payload cannot be decoded ({exc})", transaction.transaction_hash) from exc


def verify_transactions(transactions: Iterable[Transaction], include_failed: bool) -> None:
    """
    Check every row's `successful` flag against its decoded result code.

    Raises
    ------
    DataCorruption
        - failed rows were excluded but a failed row came back;
        - `successful` is true but the result is not success;
        - `successful` is false but the result is success.
    """
    for transaction in transactions:
        result_success = _result_is_success(transaction)
        successful = transaction.is_successful()

        if not include_failed and (not successful or not result_success):
            raise DataCorruption(
                "`include_failed=false` but returned transaction is failed",
                transaction.transaction_hash,
            )
        if successful and not result_success:
            raise DataCorruption(
                "`successful=true` but returned transaction is not success",
                transaction.transaction_hash,
            )
        if not successful and result_success:
            raise DataCorruption(
                "`successful=false` but returned transaction is success",
                transaction.transaction_hash,
            )


def _load(rows: Sequence[Dict[str, Any]], include_failed: bool) -> List[Transaction]:
    transactions = [Transaction.model_validate(row) for row in rows]
    try:
        verify_transactions(transactions, include_failed)
    except DataCorruption as exc:
        log.error(str(exc), extra={"transaction_hash": exc.transaction_hash})
        raise
    return transactions


def select_transactions(
    store: RowStore,
    criteria: TransactionFilter,
    tables: Optional[HistoryTables] = None,
) -> List[Transaction]:
    """
    Load the transactions selected by `criteria`.

    An account that was never seen has no transactions, so the result is empty.
    """
    tables = tables or HistoryTables.legacy()
    account_id = None
    if criteria.account is not None:
        account_id = account_id_by_address(store, criteria.account, tables.accounts)
        if account_id is None:
            return []

    query, params = build_transactions_query(criteria, tables, account_id)
    return _load(store.fetch_rows(query, params), criteria.include_failed)


def transaction_by_hash(
    store: RowStore, transaction_hash: str, tables: Optional[HistoryTables] = None
) -> Optional[Transaction]:
    tables = tables or HistoryTables.legacy()
    query = sql.SQL(
        "SELECT " + _SELECT_COLUMNS + " FROM {transactions} ht "
        "LEFT JOIN {ledgers} hl ON ht.ledger_sequence = hl.sequence "
        "WHERE ht.transaction_hash = %s LIMIT 1"
    ).format(
        transactions=sql.Identifier(tables.transactions),
        ledgers=sql.Identifier(tables.ledgers),
    )
    transactions = _load(store.fetch_rows(query, [transaction_hash]), include_failed=True)
    return transactions[0] if transactions else None


def transactions_by_ids(
    store: RowStore, ids: Sequence[int], tables: Optional[HistoryTables] = None
) -> Dict[int, Transaction]:
    """
    Fetch transactions by OrderKey id, keyed by id. Unknown ids are absent.
    """
    if not ids:
        raise ValueError("no id arguments provided")
    tables = tables or HistoryTables.legacy()
    query = sql.SQL(
        "SELECT " + _SELECT_COLUMNS + " FROM {transactions} ht "
        "LEFT JOIN {ledgers} hl ON ht.ledger_sequence = hl.sequence "
        "WHERE ht.id = ANY(%s)"
    ).format(
        transactions=sql.Identifier(tables.transactions),
        ledgers=sql.Identifier(tables.ledgers),
    )
    transactions = _load(store.fetch_rows(query, [list(ids)]), include_failed=True)
    return {transaction.id: transaction for transaction in transactions}


__all__ = [
    "SUCCESSFUL_ONLY",
    "HistoryTables",
    "PageQuery",
    "TransactionFilter",
    "build_transactions_query",
    "select_transactions",
    "transaction_by_hash",
    "transactions_by_ids",
    "verify_transactions",
    "where_clauses",
]
