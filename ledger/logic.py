from datetime import date as dt_date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from uuid import uuid4

from .models import Transaction, TransactionType


def validate_type(s: str) -> TransactionType:
    try:
        return TransactionType(s)
    except ValueError as e:
        raise ValueError("type must be EXPENSE or INCOME") from e


def parse_amount(s: str) -> Decimal:
    if not isinstance(s, str) or not s.strip():
        raise ValueError("amount required")
    try:
        d = Decimal(s.strip())
    except InvalidOperation as e:
        raise ValueError("amount invalid") from e
    if not d.is_finite():
        raise ValueError("amount invalid")
    if d < 0:
        raise ValueError("amount must be non-negative")
    cents = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if d != cents:
        raise ValueError("amount supports up to 2 decimals")
    return cents


def validate_date(s: str) -> str:
    try:
        return dt_date.fromisoformat(s.strip()).isoformat()
    except (AttributeError, ValueError) as e:
        raise ValueError("date must be YYYY-MM-DD") from e


def new_transaction_id() -> str:
    return uuid4().hex


def build_transaction(
    *,
    date_str: str,
    type_str: str,
    amount: str,
    category: str,
    merchant: str = "",
    currency: str = "",
    notes: str = "",
) -> Transaction:
    category = category.strip()
    if not category:
        raise ValueError("category required")
    return Transaction(
        id=new_transaction_id(),
        amount=parse_amount(amount),
        currency=currency.strip().upper() or "USD",
        category=category,
        merchant=merchant.strip() or "Unknown",
        date=validate_date(date_str),
        notes=notes.strip(),
        type=validate_type(type_str),
    )
