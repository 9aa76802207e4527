"""
Total-order identifiers for ledger history rows.

An OrderKey packs (ledger sequence, transaction order, operation order) into a
single signed 64-bit integer. The ledger sequence occupies the most significant
32 bits, the transaction order the next 20 bits and the operation order the low
12 bits, so sorting by the packed integer is the same as sorting by the triple.

Usage:
    from txhistory.domain.order_key import OrderKey, ledger_range

    key = OrderKey(123, 1, 0).to_int()
    start, end = ledger_range(123)
    assert start <= key < end
"""

from __future__ import annotations

from typing import NamedTuple, Tuple

LEDGER_BITS = 32
TRANSACTION_BITS = 20
OPERATION_BITS = 12

LEDGER_SHIFT = TRANSACTION_BITS + OPERATION_BITS
TRANSACTION_SHIFT = OPERATION_BITS

LEDGER_MAX = (1 << (LEDGER_BITS - 1)) - 1
TRANSACTION_MAX = (1 << TRANSACTION_BITS) - 1
OPERATION_MAX = (1 << OPERATION_BITS) - 1

INT64_MAX = (1 << 63) - 1


class OrderKey(NamedTuple):
    """
    Immutable (ledger, transaction, operation) triple.

    Tuple comparison gives the same ordering as comparing packed integers.
    """

    ledger_sequence: int
    transaction_order: int = 0
    operation_order: int = 0

    def to_int(self) -> int:
        return pack(self.ledger_sequence, self.transaction_order, self.operation_order)

    @classmethod
    def from_int(cls, value: int) -> "OrderKey":
        return cls(*unpack(value))


def _check_range(name: str, value: int, maximum: int) -> None:
    if value < 0 or value > maximum:
        raise ValueError(f"{name} out of range: {value} (expected 0..{maximum})")


def pack(ledger_sequence: int, transaction_order: int = 0, operation_order: int = 0) -> int:
    """
    Pack a triple into its 64-bit integer form.

    Raises
    ------
    ValueError
        If any component does not fit in its bit field.
    """
    _check_range("ledger_sequence", ledger_sequence, LEDGER_MAX)
    _check_range("transaction_order", transaction_order, TRANSACTION_MAX)
    _check_range("operation_order", operation_order, OPERATION_MAX)
    return (
        (ledger_sequence << LEDGER_SHIFT)
        | (transaction_order << TRANSACTION_SHIFT)
        | operation_order
    )


def unpack(value: int) -> Tuple[int, int, int]:
    """Inverse of `pack`."""
    _check_range("order key", value, INT64_MAX)
    return (
        value >> LEDGER_SHIFT,
        (value >> TRANSACTION_SHIFT) & TRANSACTION_MAX,
        value & OPERATION_MAX,
    )


def ledger_range(ledger_sequence: int) -> Tuple[int, int]:
    """
    Half-open key range `[start, end)` covering every row of one ledger.

    The upper bound is computed arithmetically so that the last representable
    ledger still gets a range (its `end` lies just past INT64_MAX).
    """
    start = pack(ledger_sequence, 0, 0)
    end = (ledger_sequence + 1) << LEDGER_SHIFT
    return start, end


__all__ = [
    "INT64_MAX",
    "LEDGER_MAX",
    "OPERATION_MAX",
    "TRANSACTION_MAX",
    "OrderKey",
    "ledger_range",
    "pack",
    "unpack",
]
