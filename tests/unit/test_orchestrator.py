from __future__ import annotations

import pytest

from conftest import OTHER_ACCOUNT, SOURCE_ACCOUNT
from txhistory.domain.errors import InvariantViolation
from txhistory.domain.models import Memo
from txhistory.domain.order_key import OrderKey
from txhistory.history.consistency import LedgerVerdict
from txhistory.orchestrator import _split_sequences, all_valid, ingest_ledger, verify_ledgers

SEQUENCE = 321


def _assign_ids(query, params):
    return [{"id": position + 1, "address": address} for position, address in enumerate(params)]


@pytest.fixture
def ledger(make_transaction):
    return [
        make_transaction(index=1),
        make_transaction(index=2, successful=False, source_account=OTHER_ACCOUNT),
        make_transaction(index=3),
    ]


def test_ingest_writes_every_table(recording_store, test_settings, ledger):
    recording_store.responder = _assign_ids
    result = ingest_ledger(recording_store, SEQUENCE, ledger, test_settings)

    legacy = recording_store.rows_for(test_settings.legacy_transactions_table)
    shadow = recording_store.rows_for(test_settings.shadow_transactions_table)
    expected_ids = [OrderKey(SEQUENCE, index).to_int() for index in (1, 2, 3)]
    assert [row["id"] for row in legacy] == expected_ids
    assert [row["id"] for row in shadow] == expected_ids
    assert [row["successful"] for row in legacy] == [True, False, True]

    assert result.transactions == 3
    assert result.legacy_rows == 3
    assert result.shadow_rows == 3
    # Batch size 2: two flushes per transactions table and per participants table.
    assert result.flushes == 8


def test_ingest_writes_identical_rows_to_both_tables(recording_store, test_settings, ledger):
    recording_store.responder = _assign_ids
    ingest_ledger(recording_store, SEQUENCE, ledger, test_settings)

    legacy = recording_store.rows_for(test_settings.legacy_transactions_table)
    shadow = recording_store.rows_for(test_settings.shadow_transactions_table)
    for left, right in zip(legacy, shadow):
        left = {key: value for key, value in left.items() if key not in ("created_at", "updated_at")}
        right = {key: value for key, value in right.items() if key not in ("created_at", "updated_at")}
        assert left == right


def test_ingest_links_participants_to_resolved_accounts(recording_store, test_settings, ledger):
    recording_store.responder = _assign_ids
    ingest_ledger(recording_store, SEQUENCE, ledger, test_settings)

    lookup_params = recording_store.fetches[0][1]
    assert lookup_params == [SOURCE_ACCOUNT, OTHER_ACCOUNT]

    expected = [
        {"history_transaction_id": OrderKey(SEQUENCE, 1).to_int(), "history_account_id": 1},
        {"history_transaction_id": OrderKey(SEQUENCE, 2).to_int(), "history_account_id": 2},
        {"history_transaction_id": OrderKey(SEQUENCE, 3).to_int(), "history_account_id": 1},
    ]
    assert recording_store.rows_for(test_settings.legacy_participants_table) == expected
    assert recording_store.rows_for(test_settings.shadow_participants_table) == expected


def test_ingest_stops_on_unknown_memo_type(recording_store, test_settings, make_transaction):
    ledger = [make_transaction(index=1), make_transaction(index=2, memo=Memo(9, b"x"))]
    with pytest.raises(InvariantViolation):
        ingest_ledger(recording_store, SEQUENCE, ledger, test_settings)
    assert recording_store.inserts == []


def test_ingest_empty_ledger(recording_store, test_settings):
    result = ingest_ledger(recording_store, SEQUENCE, [], test_settings)
    assert recording_store.inserts == []
    assert recording_store.fetches == []
    assert result.flushes == 0


def test_verify_ledgers_reports_each_ledger(recording_store, test_settings):
    calls = []

    def responder(query, params):
        calls.append(params[0])
        # Fetches alternate legacy, shadow; the shadow side of ledger 11 is empty.
        if len(calls) == 4:
            return []
        return [{"id": params[0]}]

    recording_store.responder = responder
    verdicts = verify_ledgers(recording_store, [10, 11, 12], test_settings)

    assert [verdict.sequence for verdict in verdicts] == [10, 11, 12]
    assert [verdict.valid for verdict in verdicts] == [True, False, True]
    assert verdicts[1].legacy_rows == 1
    assert verdicts[1].shadow_rows == 0
    assert not all_valid(verdicts)


@pytest.mark.parametrize(
    "sequences, workers, expected",
    [
        ([1, 2, 3, 4, 5], 2, [[1, 2, 3], [4, 5]]),
        ([1, 2, 3], 5, [[1], [2], [3]]),
        ([1, 2, 3], 1, [[1, 2, 3]]),
        ([], 4, []),
    ],
)
def test_split_sequences(sequences, workers, expected):
    assert _split_sequences(sequences, workers) == expected


def test_all_valid():
    assert all_valid([])
    assert all_valid([LedgerVerdict(1, True, 2, 2)])
    assert not all_valid([LedgerVerdict(1, True, 2, 2), LedgerVerdict(2, False, 2, 1)])
