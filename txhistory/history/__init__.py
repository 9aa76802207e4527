"""
History package: normalization, batched writes, filtered reads and the
legacy/shadow consistency check for the transactions tables.
"""

from txhistory.history.accounts import account_id_by_address, create_accounts
from txhistory.history.batch import (
    BatchInsertBuffer,
    TransactionBatchInsertBuilder,
    TransactionParticipantsBatchInsertBuilder,
)
from txhistory.history.consistency import (
    ConsistencyChecker,
    LedgerVerdict,
    TransactionConsistencyChecker,
)
from txhistory.history.normalizer import normalize_transaction
from txhistory.history.transactions import (
    HistoryTables,
    PageQuery,
    TransactionFilter,
    build_transactions_query,
    select_transactions,
    transaction_by_hash,
    transactions_by_ids,
    verify_transactions,
)

__all__ = [
    "BatchInsertBuffer",
    "ConsistencyChecker",
    "HistoryTables",
    "LedgerVerdict",
    "PageQuery",
    "TransactionBatchInsertBuilder",
    "TransactionConsistencyChecker",
    "TransactionFilter",
    "TransactionParticipantsBatchInsertBuilder",
    "account_id_by_address",
    "build_transactions_query",
    "create_accounts",
    "normalize_transaction",
    "select_transactions",
    "transaction_by_hash",
    "transactions_by_ids",
    "verify_transactions",
]
