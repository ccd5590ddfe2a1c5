import sqlite3

from ledger.db import init_db
from ledger.persistence import load_transactions, save_transactions
from ledger.settings import Settings
from ledger.store import SEED_TRANSACTIONS


def test_init_db_creates_data_dir_and_slot_table(tmp_path):
    data_dir = tmp_path / "nested" / ".data"
    settings = Settings(data_dir=data_dir, db_path=data_dir / "ledger.sqlite")
    init_db(settings)

    conn = sqlite3.connect(str(settings.db_path))
    conn.row_factory = sqlite3.Row
    columns = [
        row["name"] for row in conn.execute("PRAGMA table_info(kv_store)").fetchall()
    ]
    conn.close()
    assert columns == ["key", "value"]


def test_init_db_keeps_existing_slot(tmp_path):
    settings = Settings(data_dir=tmp_path, db_path=tmp_path / "ledger.sqlite")
    init_db(settings)
    save_transactions(settings.db_path, SEED_TRANSACTIONS, key="ledger_transactions")

    init_db(settings)

    assert load_transactions(settings.db_path, key="ledger_transactions") == list(
        SEED_TRANSACTIONS
    )
