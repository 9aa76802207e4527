"""
Normalization of ledger transactions into history rows.

`normalize_transaction` is deterministic apart from the write timestamps: the
same ledger transaction always yields the same column values, which is what
lets the consistency checker compare rows written independently to the legacy
and shadow tables.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from txhistory.domain.codec import TX_SUCCESS, PayloadError, encode_payload
from txhistory.domain.errors import EncodingError, InvariantViolation
from txhistory.domain.models import LedgerTransaction, Memo, MemoType, TransactionRow
from txhistory.domain.order_key import INT64_MAX, OrderKey

HASH_MEMO_LENGTH = 32


def _encode(name: str, payload: Any, transaction_hash: str) -> str:
    try:
        return encode_payload(payload)
    except PayloadError as exc:
        raise EncodingError(name, transaction_hash, str(exc)) from exc


def _time_bounds(transaction: LedgerTransaction) -> Tuple[Optional[int], Optional[int]]:
    """
    Stored (valid_after, valid_before) pair.

    A zero max time is the protocol's "no upper bound" sentinel; max times past
    the signed 64-bit range are clamped.
    """
    bounds = transaction.time_bounds
    if bounds is None:
        return None, None
    if bounds.max_time == 0:
        return bounds.min_time, None
    return bounds.min_time, min(bounds.max_time, INT64_MAX)


def _memo_type(memo: Memo) -> MemoType:
    try:
        return MemoType(memo.type)
    except ValueError:
        raise InvariantViolation(f"invalid memo type: {memo.type!r}") from None


def _scrub_text(value: Any) -> str:
    if isinstance(value, str):
        # Round-trip so lone surrogates are replaced like invalid bytes.
        value = value.encode("utf-8", errors="surrogatepass")
    if not isinstance(value, (bytes, bytearray)):
        raise InvariantViolation(f"text memo must be bytes or str, got {type(value).__name__}")
    # NUL bytes are valid UTF-8 but cannot be stored in a text column.
    return bytes(value).decode("utf-8", errors="replace").replace("\x00", "")


def memo_value(memo: Memo) -> Optional[str]:
    """
    Stored representation of a memo, or None when the memo is absent.

    Raises
    ------
    InvariantViolation
        On a memo type outside the five known variants or a value of the
        wrong shape for its type.
    """
    memo_type = _memo_type(memo)
    if memo_type is MemoType.NONE:
        return None
    if memo_type is MemoType.TEXT:
        return _scrub_text(memo.value)
    if memo_type is MemoType.ID:
        if not isinstance(memo.value, int) or isinstance(memo.value, bool):
            raise InvariantViolation(f"id memo must be an integer, got {memo.value!r}")
        return str(memo.value)
    if memo_type in (MemoType.HASH, MemoType.RETURN):
        if not isinstance(memo.value, (bytes, bytearray)) or len(memo.value) != HASH_MEMO_LENGTH:
            raise InvariantViolation(f"{memo_type.label} memo must be {HASH_MEMO_LENGTH} bytes")
        return base64.b64encode(bytes(memo.value)).decode("ascii")
    raise InvariantViolation(f"unhandled memo type: {memo_type!r}")


def signatures(transaction: LedgerTransaction) -> list[str]:
    """Base64 of every envelope signature, in envelope order."""
    return [base64.b64encode(bytes(signature)).decode("ascii") for signature in transaction.signatures]


def normalize_transaction(
    transaction: LedgerTransaction,
    sequence: int,
    now: Optional[datetime] = None,
) -> TransactionRow:
    """
    Convert a ledger transaction into its history row.

    Parameters
    ----------
    transaction : LedgerTransaction
        Decoded transaction; never mutated.
    sequence : int
        Sequence of the ledger the transaction was applied in.
    now : datetime, optional
        Write timestamp for `created_at` and `updated_at`. Defaults to the
        current UTC time.

    Raises
    ------
    EncodingError
        If the envelope, result, meta or fee changes cannot be serialized.
    InvariantViolation
        If the memo type is not one of the known variants.
    """
    transaction_hash = bytes(transaction.hash).hex()
    envelope = _encode("envelope", transaction.envelope, transaction_hash)
    result = _encode("result", transaction.result, transaction_hash)
    meta = _encode("meta", transaction.meta, transaction_hash)
    fee_meta = _encode("fee changes", transaction.fee_changes, transaction_hash)

    memo_type = _memo_type(transaction.memo)
    valid_after, valid_before = _time_bounds(transaction)
    timestamp = now or datetime.now(timezone.utc)

    return TransactionRow(
        id=OrderKey(sequence, transaction.index, 0).to_int(),
        transaction_hash=transaction_hash,
        ledger_sequence=sequence,
        application_order=transaction.index,
        account=transaction.source_account,
        account_sequence=str(transaction.sequence),
        max_fee=transaction.fee,
        fee_charged=transaction.fee_charged,
        operation_count=transaction.operation_count,
        tx_envelope=envelope,
        tx_result=result,
        tx_meta=meta,
        tx_fee_meta=fee_meta,
        signatures=signatures(transaction),
        memo_type=memo_type.label,
        memo=memo_value(transaction.memo),
        valid_after=valid_after,
        valid_before=valid_before,
        successful=transaction.result_code == TX_SUCCESS,
        created_at=timestamp,
        updated_at=timestamp,
    )


__all__ = ["memo_value", "normalize_transaction", "signatures"]
