from time import sleep

from scripts import seed_ledgers
from txhistory import config
from txhistory.domain.codec import TX_SUCCESS
from txhistory.history.normalizer import normalize_transaction
from txhistory.utils import profiler


def test_get_settings_defaults():
    settings = config.get_settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_user == "postgres"
    assert settings.db_name == "txhistory"
    assert settings.ingest_batch_size > 0
    assert settings.verify_concurrency > 0
    assert settings.legacy_transactions_table == "history_transactions"
    assert settings.shadow_transactions_table == "exp_history_transactions"


def test_table_names_come_from_environment(monkeypatch):
    monkeypatch.setenv("SHADOW_TRANSACTIONS_TABLE", "exp2_history_transactions")
    assert config.Settings().shadow_transactions_table == "exp2_history_transactions"


def test_profile_block_measures_time():
    with profiler.profile_block("sleep") as stats:
        sleep(0.05)
    assert stats.duration_seconds >= 0.05
    assert stats.peak_rss_bytes is None or stats.peak_rss_bytes > 0
    if stats.cpu_percent is not None:
        assert isinstance(stats.cpu_percent, float)


def test_generate_ledger_is_deterministic():
    first = seed_ledgers.generate_ledger(7, transactions=20, seed=123)
    second = seed_ledgers.generate_ledger(7, transactions=20, seed=123)
    assert first == second
    assert [transaction.index for transaction in first] == list(range(1, 21))
    assert seed_ledgers.generate_ledger(8, transactions=20, seed=123) != first


def test_generated_transactions_normalize():
    ledger = seed_ledgers.generate_ledger(7, transactions=50, seed=1, failed_ratio=0.5)
    rows = [normalize_transaction(transaction, 7) for transaction in ledger]
    assert len({row.transaction_hash for row in rows}) == 50
    assert any(not row.successful for row in rows)
    assert all(row.successful == (tx.result_code == TX_SUCCESS) for row, tx in zip(rows, ledger))
