"""
Domain models for transaction history.

Two sides of the same row:

- `LedgerTransaction` is the decoded input handed over by the ledger reader.
  It is treated as read-only and carries opaque codec payloads.
- `TransactionRow` is the normalized row written to the legacy and shadow
  tables; `Transaction` is what readers get back, joined with ledger data.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from txhistory.domain.codec import TX_SUCCESS

MemoTypeName = Literal["none", "text", "id", "hash", "return"]


class MemoType(enum.IntEnum):
    """Memo discriminants as numbered by the ledger protocol."""

    NONE = 0
    TEXT = 1
    ID = 2
    HASH = 3
    RETURN = 4

    @property
    def label(self) -> MemoTypeName:
        return self.name.lower()  # type: ignore[return-value]


@dataclass(frozen=True)
class Memo:
    """
    Tagged memo value.

    `type` is kept as the raw protocol number so that payloads from a newer
    protocol version still decode; normalization rejects unknown types.
    """

    type: int = MemoType.NONE
    value: Union[bytes, str, int, None] = None


@dataclass(frozen=True)
class TimeBounds:
    """Declared validity window; `max_time == 0` means no upper bound."""

    min_time: int = 0
    max_time: int = 0


@dataclass(frozen=True)
class LedgerTransaction:
    """
    One transaction as decoded from a closed ledger.

    Payload fields (`envelope`, `result`, `meta`, `fee_changes`) are either raw
    bytes or codec objects exposing `to_xdr_bytes()`.
    """

    index: int
    hash: bytes
    source_account: str
    sequence: int
    fee: int
    operation_count: int
    result_code: int
    fee_charged: int
    envelope: Any
    result: Any
    meta: Any
    fee_changes: Any
    memo: Memo = field(default_factory=Memo)
    time_bounds: Optional[TimeBounds] = None
    signatures: List[bytes] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return self.result_code == TX_SUCCESS


class TransactionRow(BaseModel):
    """
    Normalized row for the `history_transactions` family of tables.
    """

    id: int = Field(..., description="Packed OrderKey (ledger, application order, 0).")
    transaction_hash: str = Field(..., min_length=64, max_length=64)
    ledger_sequence: int = Field(..., ge=0)
    application_order: int = Field(..., ge=0)
    account: str
    account_sequence: str = Field(..., description="Decimal string of the account sequence.")
    max_fee: int
    fee_charged: int
    operation_count: int = Field(..., ge=0)
    tx_envelope: str
    tx_result: str
    tx_meta: str
    tx_fee_meta: str
    signatures: List[str] = Field(default_factory=list)
    memo_type: MemoTypeName
    memo: Optional[str] = None
    valid_after: Optional[int] = None
    valid_before: Optional[int] = None
    successful: bool
    created_at: datetime
    updated_at: datetime

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    def to_columns(self) -> dict[str, Any]:
        """Column -> value mapping in table column order."""
        return self.model_dump()


class Transaction(BaseModel):
    """
    Transaction as returned by read queries.

    `successful` is nullable: rows ingested before the flag existed carry NULL
    and are treated as successful. `fee_charged` is already coalesced to
    `max_fee` by the query when it was never backfilled.
    """

    id: int
    transaction_hash: str
    ledger_sequence: int
    application_order: int
    account: str
    account_sequence: str
    max_fee: int
    fee_charged: int
    operation_count: int
    tx_envelope: str
    tx_result: str
    tx_meta: str
    tx_fee_meta: str
    signatures: List[str] = Field(default_factory=list)
    memo_type: str
    memo: Optional[str] = None
    valid_after: Optional[int] = None
    valid_before: Optional[int] = None
    successful: Optional[bool] = None
    created_at: datetime
    updated_at: datetime
    ledger_close_time: Optional[datetime] = None

    model_config = {"frozen": True}

    def is_successful(self) -> bool:
        if self.successful is None:
            return True
        return self.successful


__all__ = [
    "LedgerTransaction",
    "Memo",
    "MemoType",
    "MemoTypeName",
    "TimeBounds",
    "Transaction",
    "TransactionRow",
]
