"""Transaction store and application state.

The live ledger is held in an immutable ``LedgerState``. Every intent is a
pure function from one state to the next; ``TransactionStore`` owns the
current state and writes the full transaction list to the durable slot after
each mutation.
"""

import sqlite3
import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from .logging_setup import get_logger
from .models import Transaction, TransactionType
from .persistence import load_transactions, save_transactions

logger = get_logger(__name__)


SEED_TRANSACTIONS: tuple[Transaction, ...] = (
    Transaction(
        id="1",
        amount=Decimal("45.00"),
        currency="USD",
        category="Fuel",
        merchant="Shell Station",
        date="2023-10-25",
        notes="Weekly gas",
        type=TransactionType.EXPENSE,
    ),
    Transaction(
        id="2",
        amount=Decimal("12.50"),
        currency="USD",
        category="Food",
        merchant="Burger King",
        date="2023-10-26",
        notes="Lunch",
        type=TransactionType.EXPENSE,
    ),
    Transaction(
        id="3",
        amount=Decimal("3200.00"),
        currency="USD",
        category="Salary",
        merchant="Tech Corp",
        date="2023-10-01",
        notes="Monthly Salary",
        type=TransactionType.INCOME,
    ),
    Transaction(
        id="4",
        amount=Decimal("120.00"),
        currency="USD",
        category="Utilities",
        merchant="Electric Co",
        date="2023-10-15",
        notes="October Bill",
        type=TransactionType.EXPENSE,
    ),
)


class View(str, Enum):
    HOME = "home"
    STATS = "stats"


@dataclass(frozen=True)
class LedgerState:
    transactions: tuple[Transaction, ...] = ()
    view: View = View.HOME
    entry_open: bool = False


def add_transaction(state: LedgerState, tx: Transaction) -> LedgerState:
    if any(existing.id == tx.id for existing in state.transactions):
        raise ValueError("transaction id already exists")
    return replace(state, transactions=(tx,) + state.transactions)


def remove_transaction(state: LedgerState, tx_id: str) -> LedgerState:
    remaining = tuple(tx for tx in state.transactions if tx.id != tx_id)
    if len(remaining) == len(state.transactions):
        return state
    return replace(state, transactions=remaining)


def switch_view(state: LedgerState, view: View) -> LedgerState:
    return replace(state, view=View(view))


def open_entry(state: LedgerState) -> LedgerState:
    return replace(state, entry_open=True)


def close_entry(state: LedgerState) -> LedgerState:
    return replace(state, entry_open=False)


class TransactionStore:
    def __init__(self, db_path, *, key: str, seed=SEED_TRANSACTIONS):
        self._db_path = db_path
        self._key = key
        self._seed = tuple(seed)
        self.state = LedgerState()
        # Held across the state swap and its write so saves land in mutation order.
        self._lock = threading.Lock()

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self.state.transactions

    def get(self, tx_id: str) -> Transaction | None:
        return next((tx for tx in self.state.transactions if tx.id == tx_id), None)

    def load(self) -> list[Transaction]:
        stored = load_transactions(self._db_path, key=self._key)
        if stored is None:
            logger.info("No stored transactions under %r, using seed set", self._key)
            stored = list(self._seed)
        self.state = replace(self.state, transactions=tuple(stored))
        return list(stored)

    def add(self, tx: Transaction) -> None:
        with self._lock:
            self.state = add_transaction(self.state, tx)
            self._persist()

    def remove(self, tx_id: str) -> None:
        with self._lock:
            self.state = remove_transaction(self.state, tx_id)
            self._persist()

    def _persist(self) -> None:
        try:
            save_transactions(self._db_path, self.state.transactions, key=self._key)
        except sqlite3.Error:
            logger.exception("Failed to persist %d transactions", len(self.state.transactions))
