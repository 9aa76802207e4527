"""
Thin seam over the ledger's binary codec.

The full envelope/result/meta codec lives outside this package. Here we only
need two things from it:

- turn an opaque payload into its text-safe (standard base64) form, and
- read the result code back out of a stored result payload.

A transaction result starts with the charged fee (signed 64-bit, big endian)
followed by the result code (signed 32-bit, big endian), so the code can be
read without decoding the rest of the structure.
"""

from __future__ import annotations

import base64
import binascii
import struct
from typing import Any, Protocol, Union, runtime_checkable

TX_SUCCESS = 0

_RESULT_PREFIX = struct.Struct(">qi")


@runtime_checkable
class SupportsXdr(Protocol):
    """Codec objects that can render themselves to their binary form."""

    def to_xdr_bytes(self) -> bytes:
        ...


Payload = Union[bytes, bytearray, memoryview, SupportsXdr]


class PayloadError(ValueError):
    """Raised when a payload cannot be serialized or parsed."""


def encode_payload(payload: Any) -> str:
    """
    Encode a payload as standard base64 text.

    Raises
    ------
    PayloadError
        If the payload is neither bytes-like nor a codec object, or if the
        codec object fails to serialize itself.
    """
    if isinstance(payload, (bytes, bytearray, memoryview)):
        raw = bytes(payload)
    elif isinstance(payload, SupportsXdr):
        try:
            raw = payload.to_xdr_bytes()
        except Exception as exc:
            raise PayloadError(str(exc)) from exc
        if not isinstance(raw, (bytes, bytearray)):
            raise PayloadError(f"to_xdr_bytes() returned {type(raw).__name__}")
    else:
        raise PayloadError(f"unsupported payload type {type(payload).__name__}")
    return base64.b64encode(raw).decode("ascii")


def decode_result_code(result_base64: str) -> int:
    """Read the result code from a base64 transaction result payload."""
    try:
        raw = base64.b64decode(result_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadError(f"invalid base64 result: {exc}") from exc
    if len(raw) < _RESULT_PREFIX.size:
        raise PayloadError(f"result payload too short: {len(raw)} bytes")
    _, code = _RESULT_PREFIX.unpack_from(raw)
    return code


def encode_result_prefix(fee_charged: int, result_code: int) -> bytes:
    """Binary prefix of a transaction result; used by fixtures and the seeder."""
    return _RESULT_PREFIX.pack(fee_charged, result_code)


__all__ = [
    "TX_SUCCESS",
    "Payload",
    "PayloadError",
    "SupportsXdr",
    "decode_result_code",
    "encode_payload",
    "encode_result_prefix",
]
