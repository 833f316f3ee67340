"""Application shell: owns the current snapshot and wires the pieces together."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from types import TracebackType
from typing import Any

from financepro.backup import export_json, import_json, write_csv
from financepro.config import get_data_path, get_sync_timeout, get_sync_url, set_sync_url
from financepro.models import CDT, Category, Expense, FinancialData, Income
from financepro.stats import (
    CDTStats,
    MonthlyPoint,
    Totals,
    cdt_stats,
    expenses_by_category,
    monthly_history,
    search,
    search_cdts,
    totals,
)
from financepro.store import LedgerStore
from financepro.sync import PushResult, SyncClient

logger = logging.getLogger(__name__)

# Display format of the last-sync marker
LAST_SYNC_FORMAT = "%d/%m/%Y, %H:%M:%S"


@dataclass(frozen=True)
class Summary:
    """Everything the dashboard shows, computed from one snapshot."""

    totals: Totals
    by_category: dict[Category, Decimal]
    history: list[MonthlyPoint]
    cdts: CDTStats


class LedgerApp:
    """
    Holds the single current snapshot and applies commands to it.

    Every mutation replaces the snapshot as a whole and is persisted
    immediately. Overlapping ``push`` and ``pull`` calls are not coordinated:
    whichever completes last decides the local result.

    Usage:
        with LedgerApp.open() as app:
            app.add_expense(expense)
            print(app.summary().totals.balance)
    """

    def __init__(
        self,
        store: LedgerStore,
        config: dict[str, Any] | None = None,
        config_path: Path | None = None,
    ) -> None:
        """
        Initialize the shell from persisted state.

        Args:
            store: Ledger persistence
            config: Loaded JSON config (sync URL, timeout)
            config_path: Where config changes are written
        """
        self.store = store
        self.config: dict[str, Any] = dict(config) if config else {}
        self.config_path = config_path
        self._data = store.load()
        self._saved = self._data

    @classmethod
    def open(
        cls,
        config: dict[str, Any] | None = None,
        data_path: Path | None = None,
        config_path: Path | None = None,
    ) -> "LedgerApp":
        """Create an app backed by the configured ledger file."""
        store = LedgerStore(get_data_path(config, data_path))
        return cls(store, config=config, config_path=config_path)

    def __enter__(self) -> "LedgerApp":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Flush the current snapshot to disk if it has unsaved changes."""
        if self._data is not self._saved:
            self.store.save(self._data)
            self._saved = self._data

    @property
    def data(self) -> FinancialData:
        """The current snapshot."""
        return self._data

    def _commit(self, data: FinancialData) -> FinancialData:
        self._data = data
        self.store.save(data)
        self._saved = data
        return data

    # Mutations

    def add_expense(self, expense: Expense) -> Expense:
        """Record an expense and return it with its assigned id."""
        data = self._commit(self.store.add_expense(self._data, expense))
        return data.expenses[0]

    def add_income(self, income: Income) -> Income:
        """Record an income and return it with its assigned id."""
        data = self._commit(self.store.add_income(self._data, income))
        return data.incomes[0]

    def add_cdt(self, cdt: CDT) -> CDT:
        """Record a deposit and return it with its assigned id."""
        data = self._commit(self.store.add_cdt(self._data, cdt))
        return data.cdts[0]

    def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense. Returns False if no record matched."""
        before = len(self._data.expenses)
        data = self._commit(self.store.delete_expense(self._data, expense_id))
        return len(data.expenses) < before

    def delete_income(self, income_id: str) -> bool:
        """Delete an income. Returns False if no record matched."""
        before = len(self._data.incomes)
        data = self._commit(self.store.delete_income(self._data, income_id))
        return len(data.incomes) < before

    def delete_cdt(self, cdt_id: str) -> bool:
        """Delete a deposit. Returns False if no record matched."""
        before = len(self._data.cdts)
        data = self._commit(self.store.delete_cdt(self._data, cdt_id))
        return len(data.cdts) < before

    def reset(self) -> None:
        """Delete every record and the sync marker."""
        self._commit(self.store.reset())
        logger.info("Ledger reset")

    def replace_data(self, data: FinancialData) -> None:
        """Swap in a complete snapshot (restore or pull)."""
        self._commit(data)

    # Queries

    def search_expenses(self, term: str) -> list[Expense]:
        """Expenses whose description contains ``term``."""
        return search(self._data.expenses, term)

    def search_incomes(self, term: str) -> list[Income]:
        """Incomes whose description contains ``term``."""
        return search(self._data.incomes, term)

    def search_cdts(self, term: str) -> list[CDT]:
        """Deposits whose bank name contains ``term``."""
        return search_cdts(self._data.cdts, term)

    def summary(self, now: datetime | None = None) -> Summary:
        """Compute dashboard figures for the current snapshot."""
        if now is None:
            now = datetime.now()
        return Summary(
            totals=totals(self._data),
            by_category=expenses_by_category(self._data.expenses),
            history=monthly_history(self._data, today=now.date()),
            cdts=cdt_stats(self._data.cdts, now=now),
        )

    # Files

    def import_backup(self, path: Path) -> FinancialData:
        """Replace the ledger with a JSON backup.

        The current snapshot is kept if the file is rejected.
        """
        data = import_json(path)
        self._commit(data)
        logger.info("Imported backup from %s", path)
        return data

    def export_backup(self, path: Path) -> Path:
        """Write the ledger to a JSON backup file."""
        return export_json(self._data, path)

    def export_csv(self, kind: str, path: Path) -> int:
        """Write one record list ('expenses', 'incomes' or 'cdts') to CSV."""
        if kind not in ("expenses", "incomes", "cdts"):
            raise ValueError(f"Unknown record type: {kind}")
        return write_csv(getattr(self._data, kind), path)

    # Sync

    @property
    def sync_url(self) -> str | None:
        """The configured sync endpoint, if any."""
        return get_sync_url(self.config)

    def set_sync_url(self, url: str | None) -> Path:
        """Store a new sync endpoint URL in the config file."""
        path = set_sync_url(url, self.config, self.config_path)
        self.config["sync_url"] = (url or "").strip() or None
        return path

    def _client(self, confirm: bool = False) -> SyncClient:
        return SyncClient(self.sync_url, timeout=get_sync_timeout(self.config), confirm=confirm)

    async def push(self, confirm: bool = False, now: datetime | None = None) -> PushResult:
        """
        Send the ledger to the sync endpoint and stamp the sync marker.

        Args:
            confirm: Require an acknowledged response instead of best effort
            now: Time recorded as the last sync (default: now)

        Raises:
            SyncError: If the endpoint is missing or the push fails
        """
        client = self._client(confirm)
        try:
            result = await client.push(self._data)
        finally:
            client.close()

        stamp = (now or datetime.now()).strftime(LAST_SYNC_FORMAT)
        self._commit(replace(self._data, last_sync=stamp))
        return result

    async def pull(self) -> FinancialData:
        """
        Replace the ledger with the endpoint's copy.

        The local snapshot is only replaced once the whole response has been
        fetched and validated.

        Raises:
            SyncError: If the endpoint is missing or unreachable
            FormatError: If the response is not a ledger document
        """
        client = self._client()
        try:
            data = await client.pull()
        finally:
            client.close()

        self._commit(data)
        return data
