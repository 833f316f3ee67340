"""Data models for the personal ledger."""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Expense categories. Values are the labels stored on the wire."""

    SERVICES = "Servicios"
    GROCERIES = "Mercado"
    TRANSPORT = "Transporte"
    ENTERTAINMENT = "Entretenimiento"
    HEALTH = "Salud"
    EDUCATION = "Educación"
    OTHER = "Otros"


class PaymentMethod(str, Enum):
    """How an expense was paid."""

    PSE = "PSE"
    CASH = "Efectivo"
    CARD = "Tarjeta"
    TRANSFER = "Transferencia"


class IncomeSource(str, Enum):
    """Where an income came from."""

    SALARY = "Salario"
    EXTRA = "Extra"
    YIELD = "Rendimientos"
    OTHER = "Otros"


def new_id() -> str:
    """Return a fresh globally-unique record identifier."""
    return str(uuid.uuid4())


def json_number(value: Decimal) -> int | float:
    """Convert a Decimal to the JSON number used on the wire."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _as_decimal(record: Any, name: str) -> Decimal:
    """Coerce a numeric field to a non-negative Decimal in place."""
    value = getattr(record, name)
    label = name.replace("_", " ").capitalize()
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise TypeError(f"{label} must be a number, got {type(value).__name__}")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"{label} is not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"{label} must be finite, got {value}")
    if number < 0:
        raise ValueError(f"{label} must be non-negative, got {value}")
    object.__setattr__(record, name, number)
    return number


@dataclass(frozen=True)
class Expense:
    """A single expense entry."""

    date: date
    description: str
    category: Category
    amount: Decimal
    payment_method: PaymentMethod
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        """Validate expense data."""
        _as_decimal(self, "amount")
        if not self.description.strip():
            object.__setattr__(self, "description", "(No description)")

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "category": self.category.value,
            "amount": json_number(self.amount),
            "paymentMethod": self.payment_method.value,
        }


@dataclass(frozen=True)
class Income:
    """A single income entry."""

    date: date
    description: str
    amount: Decimal
    source: IncomeSource
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        """Validate income data."""
        _as_decimal(self, "amount")
        if not self.description.strip():
            object.__setattr__(self, "description", "(No description)")

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": json_number(self.amount),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class CDT:
    """A fixed-term deposit (Certificado de Depósito a Término).

    Whether the deposit has expired is never stored; see
    ``financepro.stats.is_active``.
    """

    bank: str
    amount: Decimal
    interest_rate: Decimal  # annual, percent
    start_date: date
    end_date: date
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        """Validate deposit data."""
        _as_decimal(self, "amount")
        _as_decimal(self, "interest_rate")
        if self.end_date < self.start_date:
            raise ValueError(
                f"End date {self.end_date.isoformat()} is before "
                f"start date {self.start_date.isoformat()}"
            )

    @property
    def term_days(self) -> int:
        """Length of the deposit term in days."""
        return (self.end_date - self.start_date).days

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "bank": self.bank,
            "amount": json_number(self.amount),
            "interestRate": json_number(self.interest_rate),
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }


@dataclass(frozen=True)
class FinancialData:
    """A complete snapshot of the ledger.

    Each sequence is ordered newest-first by insertion.
    """

    expenses: tuple[Expense, ...] = ()
    incomes: tuple[Income, ...] = ()
    cdts: tuple[CDT, ...] = ()
    last_sync: str | None = None

    @property
    def is_empty(self) -> bool:
        """Return True if the snapshot holds no records."""
        return not (self.expenses or self.incomes or self.cdts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire shape."""
        data: dict[str, Any] = {
            "expenses": [e.to_dict() for e in self.expenses],
            "incomes": [i.to_dict() for i in self.incomes],
            "cdts": [c.to_dict() for c in self.cdts],
        }
        if self.last_sync is not None:
            data["lastSync"] = self.last_sync
        return data
