"""Derived views over a transaction snapshot.

Everything here is a pure function of its input list. Nothing is cached or
persisted; callers recompute on every render.
"""

from collections.abc import Iterable, Sequence
from datetime import date as dt_date
from decimal import Decimal

from .models import CategoryTotal, Transaction, TransactionType, TrendPoint

_ZERO = Decimal("0")


def _parsed_date(tx: Transaction) -> dt_date | None:
    try:
        return dt_date.fromisoformat(tx.date)
    except (TypeError, ValueError):
        return None


def _date_key(tx: Transaction) -> dt_date:
    # Malformed dates sort before every real date.
    return _parsed_date(tx) or dt_date.min


def _sum(txs: Iterable[Transaction], tx_type: TransactionType) -> Decimal:
    return sum((tx.amount for tx in txs if tx.type is tx_type), _ZERO)


def total_income(txs: Iterable[Transaction]) -> Decimal:
    return _sum(txs, TransactionType.INCOME)


def total_expense(txs: Iterable[Transaction]) -> Decimal:
    return _sum(txs, TransactionType.EXPENSE)


def total_balance(txs: Sequence[Transaction]) -> Decimal:
    return total_income(txs) - total_expense(txs)


def category_breakdown(txs: Iterable[Transaction]) -> list[CategoryTotal]:
    """Spending per category, largest first.

    Income is left out. Categories with equal totals keep the order in which
    they were first seen.
    """
    totals: dict[str, Decimal] = {}
    for tx in txs:
        if tx.type is TransactionType.EXPENSE:
            totals[tx.category] = totals.get(tx.category, _ZERO) + tx.amount

    grand_total = sum(totals.values(), _ZERO)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category=category,
            total=total,
            percentage=round(float(total / grand_total * 100), 1) if grand_total else 0.0,
        )
        for category, total in ranked
    ]


def sorted_history(txs: Iterable[Transaction]) -> list[Transaction]:
    return sorted(txs, key=_date_key, reverse=True)


def recent_trend(txs: Iterable[Transaction], window: int = 7) -> list[TrendPoint]:
    """One point per transaction for the last ``window`` entries by date.

    This is not per-day bucketing: two transactions on the same day give two
    points, and income entries show up as zero-valued points.
    """
    if window <= 0:
        return []
    chronological = sorted(txs, key=_date_key)
    points = []
    for tx in chronological[-window:]:
        parsed = _parsed_date(tx)
        points.append(
            TrendPoint(
                label=parsed.strftime("%a") if parsed else tx.date,
                date=tx.date,
                amount=tx.amount if tx.type is TransactionType.EXPENSE else _ZERO,
            )
        )
    return points


def summarize(txs: Sequence[Transaction], *, trend_window: int = 7) -> dict:
    income = total_income(txs)
    expense = total_expense(txs)
    return {
        "income": income,
        "expense": expense,
        "balance": income - expense,
        "by_category": category_breakdown(txs),
        "trend": recent_trend(txs, trend_window),
    }
