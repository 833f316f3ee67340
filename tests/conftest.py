"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from financepro.models import (
    CDT,
    Category,
    Expense,
    FinancialData,
    Income,
    IncomeSource,
    PaymentMethod,
)
from financepro.store import LedgerStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the user's real config and ledger."""
    xdg = tmp_path / "xdg_config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.delenv("FINANCEPRO_SYNC_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    return xdg


@pytest.fixture
def store(tmp_path: Path) -> LedgerStore:
    """Return a store writing to a temporary ledger file."""
    return LedgerStore(tmp_path / "ledger" / "data.json")


@pytest.fixture
def sample_data() -> FinancialData:
    """Return a small snapshot with one record of each kind per month."""
    return FinancialData(
        expenses=(
            Expense(
                id="e3",
                date=date(2024, 6, 10),
                description="Mercado semanal",
                category=Category.GROCERIES,
                amount=Decimal("250000"),
                payment_method=PaymentMethod.CARD,
            ),
            Expense(
                id="e2",
                date=date(2024, 6, 2),
                description="Factura de luz",
                category=Category.SERVICES,
                amount=Decimal("120000.50"),
                payment_method=PaymentMethod.PSE,
            ),
            Expense(
                id="e1",
                date=date(2024, 5, 20),
                description="Bus",
                category=Category.TRANSPORT,
                amount=Decimal("2950"),
                payment_method=PaymentMethod.CASH,
            ),
        ),
        incomes=(
            Income(
                id="i2",
                date=date(2024, 6, 1),
                description="Nómina junio",
                amount=Decimal("4500000"),
                source=IncomeSource.SALARY,
            ),
            Income(
                id="i1",
                date=date(2024, 5, 1),
                description="Nómina mayo",
                amount=Decimal("4500000"),
                source=IncomeSource.SALARY,
            ),
        ),
        cdts=(
            CDT(
                id="c2",
                bank="Bancolombia",
                amount=Decimal("1000000"),
                interest_rate=Decimal("10"),
                start_date=date(2024, 1, 1),
                end_date=date(2025, 1, 1),
            ),
            CDT(
                id="c1",
                bank="Davivienda",
                amount=Decimal("2000000"),
                interest_rate=Decimal("12"),
                start_date=date(2023, 1, 1),
                end_date=date(2024, 1, 1),
            ),
        ),
        last_sync="01/06/2024, 10:00:00",
    )


@pytest.fixture
def sample_dict(sample_data: FinancialData) -> dict:
    """Return the wire form of ``sample_data``."""
    return sample_data.to_dict()
