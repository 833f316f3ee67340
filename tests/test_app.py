"""Tests for the application shell."""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from financepro.app import LedgerApp
from financepro.errors import FormatError, PreconditionError, TransportError
from financepro.models import CDT, Category, Expense, FinancialData, PaymentMethod
from financepro.store import LedgerStore
from financepro.sync import PushOutcome, PushResult

URL = "https://script.google.com/macros/s/abc/exec"


@pytest.fixture
def app(store: LedgerStore, sample_data: FinancialData) -> LedgerApp:
    store.save(sample_data)
    return LedgerApp(store, config={"sync_url": URL, "sync_timeout": 5})


def make_expense() -> Expense:
    return Expense(
        date=date(2024, 6, 20),
        description="Cine",
        category=Category.ENTERTAINMENT,
        amount=Decimal("30000"),
        payment_method=PaymentMethod.CARD,
    )


class TestLifecycle:
    """Tests for opening and closing the app."""

    def test_loads_persisted_snapshot(self, app: LedgerApp, sample_data: FinancialData) -> None:
        """Test the app starts from the stored ledger."""
        assert app.data == sample_data

    def test_open_uses_configured_data_file(self, tmp_path: Path) -> None:
        """Test open() resolves the ledger path from config."""
        app = LedgerApp.open({"data_file": str(tmp_path / "mine.json")})
        assert app.store.path == tmp_path / "mine.json"
        assert app.data == FinancialData()

    def test_context_manager_does_not_write_unchanged(self, store: LedgerStore) -> None:
        """Test closing without changes creates no file."""
        with LedgerApp(store):
            pass
        assert not store.path.exists()


class TestMutations:
    """Tests for commands that change the ledger."""

    def test_add_expense_persists(self, app: LedgerApp, store: LedgerStore) -> None:
        """Test new records are saved immediately."""
        added = app.add_expense(make_expense())

        assert app.data.expenses[0] == added
        assert store.load().expenses[0].id == added.id

    def test_add_delete_round_trip(self, app: LedgerApp, sample_data: FinancialData) -> None:
        """Test deleting a just-added record restores the ledger."""
        added = app.add_expense(make_expense())
        assert app.delete_expense(added.id) is True
        assert app.data == sample_data

    def test_delete_unknown_id(self, app: LedgerApp, sample_data: FinancialData) -> None:
        """Test deleting a missing id reports it without changing data."""
        assert app.delete_income("missing") is False
        assert app.data == sample_data

    def test_add_cdt_and_summary(self, app: LedgerApp) -> None:
        """Test deposits feed the summary."""
        app.add_cdt(
            CDT(
                bank="BBVA",
                amount=Decimal("500000"),
                interest_rate=Decimal("12"),
                start_date=date(2024, 6, 1),
                end_date=date(2025, 6, 1),
            )
        )
        summary = app.summary(now=datetime(2024, 6, 15))

        assert summary.totals.invested == Decimal("3500000")
        assert summary.cdts.active_count == 2
        assert summary.cdts.total_invested == Decimal("1500000")
        assert len(summary.history) == 6

    def test_reset(self, app: LedgerApp, store: LedgerStore) -> None:
        """Test reset empties the stored ledger and drops the sync marker."""
        app.reset()

        assert app.data == FinancialData()
        raw = json.loads(store.path.read_text())
        assert raw == {"expenses": [], "incomes": [], "cdts": []}

    def test_search(self, app: LedgerApp) -> None:
        """Test description search on each list."""
        assert [e.id for e in app.search_expenses("luz")] == ["e2"]
        assert [i.id for i in app.search_incomes("mayo")] == ["i1"]


class TestFiles:
    """Tests for backup and export."""

    def test_import_replaces(self, app: LedgerApp, tmp_path: Path) -> None:
        """Test a valid backup replaces the ledger."""
        path = tmp_path / "backup.json"
        path.write_text(json.dumps({"expenses": [], "incomes": [], "cdts": []}))

        app.import_backup(path)

        assert app.data == FinancialData()

    def test_import_rejected_keeps_data(
        self, app: LedgerApp, store: LedgerStore, sample_data: FinancialData, tmp_path: Path
    ) -> None:
        """Test a backup missing cdts leaves the ledger untouched."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"expenses": [], "incomes": []}))

        with pytest.raises(FormatError):
            app.import_backup(path)

        assert app.data == sample_data
        assert store.load() == sample_data

    def test_export_backup_and_csv(self, app: LedgerApp, tmp_path: Path) -> None:
        """Test exports write the current data."""
        backup = app.export_backup(tmp_path / "b.json")
        assert json.loads(backup.read_text())["lastSync"] == "01/06/2024, 10:00:00"
        assert app.export_csv("cdts", tmp_path / "cdts.csv") == 2

    def test_export_csv_unknown_kind(self, app: LedgerApp, tmp_path: Path) -> None:
        """Test unknown list names are rejected."""
        with pytest.raises(ValueError):
            app.export_csv("budgets", tmp_path / "x.csv")


class TestSync:
    """Tests for push and pull through the shell."""

    @pytest.mark.asyncio
    async def test_push_stamps_last_sync(self, app: LedgerApp, store: LedgerStore) -> None:
        """Test a push records when it happened."""
        with patch("financepro.app.SyncClient.push", new_callable=AsyncMock) as push:
            push.return_value = PushResult(PushOutcome.BEST_EFFORT)
            result = await app.push(now=datetime(2024, 7, 1, 15, 4, 5))

        assert result.outcome is PushOutcome.BEST_EFFORT
        assert app.data.last_sync == "01/07/2024, 15:04:05"
        assert store.load().last_sync == "01/07/2024, 15:04:05"

    @pytest.mark.asyncio
    async def test_push_failure_keeps_marker(
        self, app: LedgerApp, sample_data: FinancialData
    ) -> None:
        """Test a failed push does not update the sync marker."""
        with patch("financepro.app.SyncClient.push", new_callable=AsyncMock) as push:
            push.side_effect = TransportError("down")
            with pytest.raises(TransportError):
                await app.push()

        assert app.data.last_sync == sample_data.last_sync

    @pytest.mark.asyncio
    async def test_push_without_url(self, store: LedgerStore) -> None:
        """Test sync without an endpoint fails up front."""
        app = LedgerApp(store, config={})
        with pytest.raises(PreconditionError):
            await app.push()

    @pytest.mark.asyncio
    async def test_pull_replaces(self, app: LedgerApp, store: LedgerStore) -> None:
        """Test a pull swaps in the remote snapshot."""
        remote = FinancialData(last_sync="remote")
        with patch("financepro.app.SyncClient.pull", new_callable=AsyncMock) as pull:
            pull.return_value = remote
            await app.pull()

        assert app.data == remote
        assert store.load() == remote

    @pytest.mark.asyncio
    async def test_pull_failure_keeps_data(
        self, app: LedgerApp, sample_data: FinancialData
    ) -> None:
        """Test a failed pull leaves the ledger as it was."""
        with patch("financepro.app.SyncClient.pull", new_callable=AsyncMock) as pull:
            pull.side_effect = FormatError("Missing required keys: cdts")
            with pytest.raises(FormatError):
                await app.pull()

        assert app.data == sample_data

    def test_set_sync_url(self, store: LedgerStore, tmp_path: Path) -> None:
        """Test the endpoint is saved to config, not to the ledger."""
        config_path = tmp_path / "config.json"
        app = LedgerApp(store, config={}, config_path=config_path)

        app.set_sync_url(URL)

        assert app.sync_url == URL
        assert json.loads(config_path.read_text())["sync_url"] == URL
        assert not store.path.exists()
