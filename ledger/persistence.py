import json
from collections.abc import Iterable

from .db import connect
from .logging_setup import get_logger
from .models import Transaction

logger = get_logger(__name__)


def save_transactions(db_path, transactions: Iterable[Transaction], *, key: str) -> None:
    payload = json.dumps([tx.to_dict() for tx in transactions])
    with connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO kv_store(key, value)
            VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, payload),
        )


def load_transactions(db_path, *, key: str) -> list[Transaction] | None:
    """Return the stored list, or ``None`` when the slot is absent or unreadable."""
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?",
            (key,),
        ).fetchone()
    if row is None:
        return None

    try:
        records = json.loads(row["value"])
        if not isinstance(records, list):
            raise ValueError("stored transactions must be a list")
        transactions = [Transaction.from_dict(record) for record in records]
        if len({tx.id for tx in transactions}) != len(transactions):
            raise ValueError("stored transactions have duplicate ids")
        return transactions
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError subclass.
        logger.warning("Discarding unreadable stored transactions under %r: %s", key, exc)
        return None
