"""financepro - personal ledger of expenses, incomes and CDTs."""

from financepro.app import LedgerApp
from financepro.models import CDT, Expense, FinancialData, Income
from financepro.store import LedgerStore
from financepro.sync import SyncClient

__version__ = "0.1.0"
__all__ = ["CDT", "Expense", "FinancialData", "Income", "LedgerApp", "LedgerStore", "SyncClient"]
