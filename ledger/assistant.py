"""Gemini-backed helpers for free-text entry and spending tips.

The LLM only translates text into a draft record or writes a one-line tip.
It never touches the store: the caller decides what to do with a draft.

``parse`` separates two failure modes. ``None`` means the model answered but
nothing usable came back, so the user should rephrase.
``AssistantUnavailableError`` means the service could not be reached at all.
"""

import json
from datetime import date as dt_date
from decimal import Decimal, InvalidOperation

from google import genai
from google.genai import types

from .analytics import sorted_history
from .logging_setup import get_logger
from .logic import new_transaction_id
from .models import Transaction, TransactionDraft, TransactionType

logger = get_logger(__name__)

ADVICE_SNAPSHOT_SIZE = 20

NO_KEY_ADVICE = "Please provide an API Key to get insights."
EMPTY_ADVICE = "Keep tracking your expenses!"
FAILED_ADVICE = "Keep tracking to see insights!"

_REQUIRED_FIELDS = ("amount", "category", "type", "date")

SYSTEM_PROMPT = """You are an expert financial bookkeeper.
Analyze the user's natural language input and extract transaction details.
If the user types something vague like "coffee 5", assume it is an EXPENSE,
merchant is unknown (or infer from category), and category is Food/Drink.
Be smart about categorizing.

Respond with ONLY a JSON object with these keys:
  amount   (number, required) the numeric value of the transaction
  category (string, required) a short category name, e.g. Food, Transport, Salary
  type     (string, required) either "EXPENSE" or "INCOME"
  date     (string, required) ISO 8601 date (YYYY-MM-DD)
  currency (string) the currency code, e.g. USD, EUR
  merchant (string) name of the merchant or payer
  notes    (string) a brief summary of the transaction"""


class AssistantUnavailableError(RuntimeError):
    """The LLM service could not be reached or is not configured."""


def _extract_json_object(text: str) -> dict | None:
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _draft_from_payload(data: dict) -> TransactionDraft | None:
    if any(data.get(name) in (None, "") for name in _REQUIRED_FIELDS):
        return None
    try:
        amount = Decimal(str(data["amount"]))
        parsed_date = dt_date.fromisoformat(str(data["date"]))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    type_str = str(data["type"]).strip().upper()
    return TransactionDraft(
        amount=abs(amount),
        category=str(data["category"]).strip(),
        type=TransactionType.INCOME if type_str == "INCOME" else TransactionType.EXPENSE,
        date=parsed_date.isoformat(),
        currency=str(data.get("currency") or "USD").strip().upper(),
        merchant=str(data.get("merchant") or "Unknown").strip(),
        notes=str(data.get("notes") or "").strip(),
    )


def draft_to_transaction(draft: TransactionDraft, original_text: str) -> Transaction:
    return Transaction(
        id=new_transaction_id(),
        amount=draft.amount,
        currency=draft.currency or "USD",
        category=draft.category,
        merchant=draft.merchant or "Unknown",
        date=draft.date,
        notes=draft.notes or original_text,
        type=draft.type,
    )


class TransactionAssistant:
    """Free-text extraction and advice on top of the Gemini API.

    A ``client`` shaped like ``genai.Client`` may be passed in; otherwise one
    is built from ``api_key`` on first use.
    """

    def __init__(self, api_key: str | None, *, model_name: str = "gemini-2.5-flash", client=None):
        self._api_key = api_key
        self._model_name = model_name
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _models(self):
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client.aio.models

    async def parse(self, text: str, *, today: dt_date | None = None) -> TransactionDraft | None:
        if not self.configured:
            logger.error("Gemini API key missing")
            raise AssistantUnavailableError("Gemini API key is not configured")

        current = today or dt_date.today()
        prompt = (
            f"Assume the current date is {current.isoformat()} if no date is mentioned.\n"
            f"Input: {text}"
        )
        try:
            response = await self._models().generate_content(
                model=self._model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_PROMPT,
                    temperature=0.1,
                    response_mime_type="application/json",
                ),
            )
            reply = response.text
        except Exception as exc:  # noqa: BLE001 - SDK and transport errors vary
            logger.error("Gemini parsing error: %s", exc)
            raise AssistantUnavailableError(str(exc)) from exc

        data = _extract_json_object(reply or "")
        if data is None:
            logger.info("No transaction found in model reply")
            return None
        return _draft_from_payload(data)

    async def advise(self, transactions) -> str:
        if not self.configured:
            return NO_KEY_ADVICE

        snapshot = json.dumps(
            [tx.to_dict() for tx in sorted_history(transactions)[:ADVICE_SNAPSHOT_SIZE]]
        )
        prompt = (
            f"Here are the user's recent transactions: {snapshot}. "
            "Give a 1-sentence friendly tip or insight about their spending habits."
        )
        try:
            response = await self._models().generate_content(
                model=self._model_name, contents=prompt
            )
            return (response.text or "").strip() or EMPTY_ADVICE
        except Exception as exc:  # noqa: BLE001 - advice is best-effort
            logger.warning("Advice generation failed: %s", exc)
            return FAILED_ADVICE
