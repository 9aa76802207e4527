"""
Account address <-> id resolution for participant rows and account filters.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from psycopg import sql

from txhistory.infrastructure.store import RowStore


def create_accounts(store: RowStore, addresses: Iterable[str], table: str) -> Dict[str, int]:
    """
    Insert any missing addresses and return the id of every requested address.

    Idempotent: an address that already exists keeps its id. The no-op
    `DO UPDATE` makes existing rows show up in RETURNING.
    """
    unique = list(dict.fromkeys(addresses))
    if not unique:
        return {}

    query = sql.SQL(
        "INSERT INTO {table} (address) VALUES {values} "
        "ON CONFLICT (address) DO UPDATE SET address = EXCLUDED.address "
        "RETURNING id, address"
    ).format(
        table=sql.Identifier(table),
        values=sql.SQL(", ").join([sql.SQL("(%s)")] * len(unique)),
    )
    rows = store.fetch_rows(query, unique)
    return {row["address"]: row["id"] for row in rows}


def account_id_by_address(store: RowStore, address: str, table: str) -> Optional[int]:
    query = sql.SQL("SELECT id FROM {table} WHERE address = %s").format(table=sql.Identifier(table))
    rows = store.fetch_rows(query, [address])
    return rows[0]["id"] if rows else None


__all__ = ["account_id_by_address", "create_accounts"]
