from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

_FIELDS = ("id", "amount", "currency", "category", "merchant", "date", "notes", "type")


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: Decimal
    currency: str
    category: str
    merchant: str
    date: str
    notes: str
    type: TransactionType

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": str(self.amount),
            "currency": self.currency,
            "category": self.category,
            "merchant": self.merchant,
            "date": self.date,
            "notes": self.notes,
            "type": self.type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        if not isinstance(data, dict):
            raise ValueError("transaction record must be an object")
        missing = [name for name in _FIELDS if name not in data]
        if missing:
            raise ValueError(f"transaction record missing {', '.join(missing)}")
        try:
            amount = Decimal(str(data["amount"]))
        except InvalidOperation as e:
            raise ValueError("amount invalid") from e
        if not amount.is_finite() or amount < 0:
            raise ValueError("amount must be non-negative")
        return cls(
            id=str(data["id"]),
            amount=amount,
            currency=str(data["currency"]),
            category=str(data["category"]),
            merchant=str(data["merchant"]),
            date=str(data["date"]),
            notes=str(data["notes"]),
            type=TransactionType(data["type"]),
        )


@dataclass(frozen=True)
class TransactionDraft:
    amount: Decimal
    category: str
    type: TransactionType
    date: str
    currency: str = "USD"
    merchant: str = "Unknown"
    notes: str = ""


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: Decimal
    percentage: float


@dataclass(frozen=True)
class TrendPoint:
    label: str
    date: str
    amount: Decimal
