import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest

from ledger.assistant import (
    EMPTY_ADVICE,
    FAILED_ADVICE,
    NO_KEY_ADVICE,
    AssistantUnavailableError,
    TransactionAssistant,
    draft_to_transaction,
)
from ledger.models import Transaction, TransactionDraft, TransactionType
from ledger.store import SEED_TRANSACTIONS

from gemini_stub import ClientStub


def _parse(assistant, text, **kwargs):
    return asyncio.run(assistant.parse(text, **kwargs))


def test_parse_returns_draft():
    reply = json.dumps(
        {
            "amount": 15,
            "category": "Food",
            "type": "EXPENSE",
            "date": "2026-03-01",
            "merchant": "Subway",
            "currency": "usd",
            "notes": "Lunch",
        }
    )
    client = ClientStub(reply=reply)
    assistant = TransactionAssistant("key", client=client)

    draft = _parse(assistant, "Lunch $15 at Subway", today=date(2026, 3, 1))

    assert draft == TransactionDraft(
        amount=Decimal("15"),
        category="Food",
        type=TransactionType.EXPENSE,
        date="2026-03-01",
        currency="USD",
        merchant="Subway",
        notes="Lunch",
    )
    assert "2026-03-01" in client.prompts[0]
    assert "Lunch $15 at Subway" in client.prompts[0]
    assert client.configs[0].response_mime_type == "application/json"


def test_parse_fills_optional_defaults_and_tolerates_wrapping():
    reply = 'Sure! ```json\n{"amount": "5000", "category": "Salary", "type": "income", "date": "2026-03-31"}\n```'
    assistant = TransactionAssistant("key", client=ClientStub(reply=reply))

    draft = _parse(assistant, "Salary $5000")

    assert draft.type is TransactionType.INCOME
    assert draft.currency == "USD"
    assert draft.merchant == "Unknown"
    assert draft.notes == ""


@pytest.mark.parametrize(
    "reply",
    [
        None,
        "",
        "I could not find a transaction.",
        '{"category": "Food", "type": "EXPENSE", "date": "2026-03-01"}',
        '{"amount": "a lot", "category": "Food", "type": "EXPENSE", "date": "2026-03-01"}',
        '{"amount": 3, "category": "Food", "type": "EXPENSE", "date": "yesterday"}',
    ],
)
def test_parse_no_result(reply):
    assistant = TransactionAssistant("key", client=ClientStub(reply=reply))
    assert _parse(assistant, "hmm") is None


def test_parse_service_error_is_unavailable():
    assistant = TransactionAssistant("key", client=ClientStub(error=ConnectionError("down")))
    with pytest.raises(AssistantUnavailableError):
        _parse(assistant, "coffee 5")


def test_parse_without_key_is_unavailable():
    assistant = TransactionAssistant(None)
    assert not assistant.configured
    with pytest.raises(AssistantUnavailableError):
        _parse(assistant, "coffee 5")


def test_draft_to_transaction_defaults_notes_to_input():
    draft = TransactionDraft(
        amount=Decimal("5"),
        category="Food/Drink",
        type=TransactionType.EXPENSE,
        date="2026-03-01",
        merchant="",
        currency="",
    )
    tx = draft_to_transaction(draft, "coffee 5")

    assert isinstance(tx, Transaction)
    assert tx.notes == "coffee 5"
    assert tx.merchant == "Unknown"
    assert tx.currency == "USD"
    assert tx.id
    assert draft_to_transaction(draft, "coffee 5").id != tx.id


def test_advise_sends_recent_snapshot():
    client = ClientStub(reply="  Watch your fuel spending.  ")
    assistant = TransactionAssistant("key", client=client)
    txs = list(SEED_TRANSACTIONS) + [
        Transaction(
            id=f"x{i}",
            amount=Decimal("1"),
            currency="USD",
            category="Misc",
            merchant="Unknown",
            date="2020-01-01",
            notes="",
            type=TransactionType.EXPENSE,
        )
        for i in range(30)
    ]

    tip = asyncio.run(assistant.advise(txs))

    assert tip == "Watch your fuel spending."
    snapshot = client.prompts[0].split("recent transactions: ", 1)[1].split("]. ", 1)[0] + "]"
    records = json.loads(snapshot)
    assert len(records) == 20
    assert records[0]["id"] == "2"


def test_advise_fallbacks():
    assert asyncio.run(TransactionAssistant(None).advise([])) == NO_KEY_ADVICE
    empty = TransactionAssistant("key", client=ClientStub(reply=""))
    assert asyncio.run(empty.advise([])) == EMPTY_ADVICE
    broken = TransactionAssistant("key", client=ClientStub(error=RuntimeError("quota")))
    assert asyncio.run(broken.advise([])) == FAILED_ADVICE
