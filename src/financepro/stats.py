"""Aggregates derived from a ledger snapshot.

Every function here is pure: it reads the snapshot it is given and returns
a new value. Functions that depend on the current time accept it as an
optional argument and fall back to the wall clock.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

from financepro.models import CDT, Category, Expense, FinancialData, Income, json_number

HISTORY_MONTHS = 6
DAYS_PER_YEAR = Decimal(365)

# Short month names as shown on the dashboard
MONTH_LABELS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic")

T = TypeVar("T", Expense, Income)


@dataclass(frozen=True)
class Totals:
    """Headline figures for the dashboard."""

    expenses: Decimal
    incomes: Decimal
    invested: Decimal

    @property
    def balance(self) -> Decimal:
        """Incomes minus expenses."""
        return self.incomes - self.expenses


@dataclass(frozen=True)
class MonthlyPoint:
    """Income, expenses and savings for one calendar month."""

    year: int
    month: int
    incomes: Decimal
    expenses: Decimal

    @property
    def label(self) -> str:
        """Short month name."""
        return MONTH_LABELS[self.month - 1]

    @property
    def savings(self) -> Decimal:
        """Incomes minus expenses for the month."""
        return self.incomes - self.expenses

    def to_dict(self) -> dict[str, Any]:
        """Convert to the chart series shape."""
        return {
            "month": self.label,
            "ingresos": json_number(self.incomes),
            "gastos": json_number(self.expenses),
            "ahorro": json_number(self.savings),
        }


@dataclass(frozen=True)
class CDTStats:
    """Summary of the deposit portfolio."""

    total_invested: Decimal  # active deposits only
    estimated_profit: Decimal  # active deposits only
    active_count: int
    expired_count: int


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, Decimal(0))


def totals(data: FinancialData) -> Totals:
    """Compute total expenses, incomes and invested principal.

    ``invested`` counts every deposit, expired or not.
    """
    return Totals(
        expenses=_sum(e.amount for e in data.expenses),
        incomes=_sum(i.amount for i in data.incomes),
        invested=_sum(c.amount for c in data.cdts),
    )


def expenses_by_category(expenses: Iterable[Expense]) -> dict[Category, Decimal]:
    """Sum expenses per category, only for categories that appear."""
    result: dict[Category, Decimal] = {}
    for expense in expenses:
        result[expense.category] = result.get(expense.category, Decimal(0)) + expense.amount
    return result


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def monthly_history(
    data: FinancialData,
    today: date | None = None,
    months: int = HISTORY_MONTHS,
) -> list[MonthlyPoint]:
    """
    Build the trailing monthly series, oldest first.

    Records are matched on the (year, month) of their date. The current month
    is always the last point and months without records are zero-filled, so
    the series always has ``months`` entries.

    Args:
        data: Snapshot to aggregate
        today: Reference date (default: today)
        months: Number of months in the series

    Returns:
        List of MonthlyPoint
    """
    if today is None:
        today = date.today()

    incomes: dict[tuple[int, int], Decimal] = {}
    for income in data.incomes:
        key = (income.date.year, income.date.month)
        incomes[key] = incomes.get(key, Decimal(0)) + income.amount

    expenses: dict[tuple[int, int], Decimal] = {}
    for expense in data.expenses:
        key = (expense.date.year, expense.date.month)
        expenses[key] = expenses.get(key, Decimal(0)) + expense.amount

    points: list[MonthlyPoint] = []
    for offset in range(months - 1, -1, -1):
        key = _shift_month(today.year, today.month, -offset)
        points.append(
            MonthlyPoint(
                year=key[0],
                month=key[1],
                incomes=incomes.get(key, Decimal(0)),
                expenses=expenses.get(key, Decimal(0)),
            )
        )
    return points


def is_active(cdt: CDT, now: datetime | None = None) -> bool:
    """Return True if the deposit ends strictly after ``now``.

    The end date is taken as midnight at the start of that day, so a deposit
    ending today is already expired.
    """
    if now is None:
        now = datetime.now()
    return datetime.combine(cdt.end_date, time.min) > now


def partition_cdts(
    cdts: Iterable[CDT], now: datetime | None = None
) -> tuple[list[CDT], list[CDT]]:
    """Split deposits into (active, expired)."""
    if now is None:
        now = datetime.now()

    active: list[CDT] = []
    expired: list[CDT] = []
    for cdt in cdts:
        (active if is_active(cdt, now) else expired).append(cdt)
    return active, expired


def estimate_profit(cdt: CDT) -> Decimal:
    """
    Estimate the interest earned over the full term (simple interest).

    profit = amount * (rate / 100) * (days / 365)

    The estimate is the same whether the deposit is active or expired and
    is not rounded.
    """
    return cdt.amount * (cdt.interest_rate / 100) * (Decimal(cdt.term_days) / DAYS_PER_YEAR)


def cdt_stats(cdts: Sequence[CDT], now: datetime | None = None) -> CDTStats:
    """Compute portfolio figures over active deposits."""
    active, expired = partition_cdts(cdts, now)
    return CDTStats(
        total_invested=_sum(c.amount for c in active),
        estimated_profit=_sum(estimate_profit(c) for c in active),
        active_count=len(active),
        expired_count=len(expired),
    )


def search(records: Iterable[T], term: str) -> list[T]:
    """Filter records whose description contains ``term`` (case-insensitive)."""
    needle = term.casefold()
    return [r for r in records if needle in r.description.casefold()]


def search_cdts(cdts: Iterable[CDT], term: str) -> list[CDT]:
    """Filter deposits whose bank name contains ``term`` (case-insensitive)."""
    needle = term.casefold()
    return [c for c in cdts if needle in c.bank.casefold()]


def format_currency(amount: Decimal | int | float) -> str:
    """
    Format an amount in Colombian pesos for display.

    Rounds half-up to whole pesos and groups thousands with dots:
    ``Decimal("1234567.5")`` -> ``"$ 1.234.568"``.
    """
    value = Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,}".replace(",", ".")
    return f"{sign}$ {grouped}"
