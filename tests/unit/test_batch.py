from __future__ import annotations

import math

import pytest

from txhistory.domain.errors import WriteError
from txhistory.domain.order_key import OrderKey
from txhistory.history.batch import (
    BatchInsertBuffer,
    TransactionBatchInsertBuilder,
    TransactionParticipantsBatchInsertBuilder,
)

TABLE = "history_transactions"


def _row(value: int) -> dict:
    return {"id": value, "memo": f"row-{value}"}


@pytest.mark.parametrize("rows, batch_size", [(1, 1), (5, 2), (6, 3), (7, 10), (1000, 7)])
def test_flush_count_is_ceiling_of_rows_over_batch_size(recording_store, rows, batch_size):
    buffer = BatchInsertBuffer(recording_store, TABLE, batch_size)
    for value in range(rows):
        buffer.add(_row(value))
    buffer.finalize()

    assert buffer.flush_count == math.ceil(rows / batch_size)
    assert len(recording_store.inserts) == buffer.flush_count
    assert all(len(batch) <= batch_size for _, batch in recording_store.inserts)
    assert [row["id"] for row in recording_store.rows_for(TABLE)] == list(range(rows))
    assert buffer.rows_written == rows
    assert buffer.pending == 0


def test_full_batch_is_written_before_finalize(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 2)
    buffer.add(_row(1))
    assert recording_store.inserts == []
    buffer.add(_row(2))
    assert len(recording_store.inserts) == 1
    buffer.add(_row(3))
    assert buffer.pending == 1

    buffer.finalize()
    assert [len(batch) for _, batch in recording_store.inserts] == [2, 1]


def test_finalize_without_rows_writes_nothing(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 10)
    buffer.finalize()
    assert recording_store.inserts == []
    assert buffer.flush_count == 0


def test_zero_batch_size_flushes_only_on_finalize(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 0)
    for value in range(50):
        buffer.add(_row(value))
    assert recording_store.inserts == []

    buffer.finalize()
    assert len(recording_store.inserts) == 1
    assert len(recording_store.rows_for(TABLE)) == 50


def test_negative_batch_size_is_rejected(recording_store):
    with pytest.raises(ValueError):
        BatchInsertBuffer(recording_store, TABLE, -1)


def test_mismatched_columns_are_rejected(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 10)
    buffer.add({"id": 1, "memo": "a"})
    with pytest.raises(ValueError, match="invalid number of columns"):
        buffer.add({"id": 2})
    with pytest.raises(ValueError):
        buffer.add({"memo": "b", "id": 3})
    assert buffer.pending == 1


def test_failed_flush_keeps_pending_rows(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 10)
    for value in range(3):
        buffer.add(_row(value))
    recording_store.fail_on_insert = 1

    with pytest.raises(WriteError) as excinfo:
        buffer.finalize()

    assert excinfo.value.rows_pending == 3
    assert excinfo.value.table == TABLE
    assert "connection lost" in str(excinfo.value)
    assert buffer.pending == 3
    assert buffer.flush_count == 0

    buffer.finalize()
    assert buffer.pending == 0
    assert [row["id"] for row in recording_store.rows_for(TABLE)] == [0, 1, 2]


def test_failed_automatic_flush_surfaces_from_add(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 2)
    buffer.add(_row(1))
    recording_store.fail_on_insert = 1
    with pytest.raises(WriteError):
        buffer.add(_row(2))
    assert buffer.pending == 2


def test_earlier_batches_stay_written_after_a_later_failure(recording_store):
    buffer = BatchInsertBuffer(recording_store, TABLE, 2)
    buffer.add(_row(1))
    buffer.add(_row(2))
    buffer.add(_row(3))
    recording_store.fail_on_insert = 1
    with pytest.raises(WriteError):
        buffer.finalize()
    assert [row["id"] for row in recording_store.rows_for(TABLE)] == [1, 2]


def test_transaction_builder_writes_normalized_rows(recording_store, make_transaction):
    builder = TransactionBatchInsertBuilder(recording_store, TABLE, 2)
    for index in (1, 2, 3):
        builder.add(make_transaction(index=index), 77)
    builder.exec()

    rows = recording_store.rows_for(TABLE)
    assert [row["id"] for row in rows] == [OrderKey(77, index).to_int() for index in (1, 2, 3)]
    assert all(row["ledger_sequence"] == 77 for row in rows)
    assert builder.buffer.flush_count == 2


def test_participants_builder_columns(recording_store):
    builder = TransactionParticipantsBatchInsertBuilder(recording_store, "history_transaction_participants", 10)
    builder.add(4294971392, 1)
    builder.add(4294975488, 2)
    builder.exec()

    assert recording_store.rows_for("history_transaction_participants") == [
        {"history_transaction_id": 4294971392, "history_account_id": 1},
        {"history_transaction_id": 4294975488, "history_account_id": 2},
    ]
