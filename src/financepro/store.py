"""Local persistence and mutation of the ledger snapshot."""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import TypeVar

from financepro.errors import FormatError, PersistenceReadError
from financepro.models import CDT, Expense, FinancialData, Income, new_id
from financepro.schema import decode_financial_data

logger = logging.getLogger(__name__)

R = TypeVar("R", Expense, Income, CDT)

EMPTY = FinancialData()


def _prepend(records: tuple[R, ...], record: R) -> tuple[R, ...]:
    return (replace(record, id=new_id()), *records)


def _without(records: tuple[R, ...], record_id: str) -> tuple[R, ...]:
    return tuple(r for r in records if r.id != record_id)


class LedgerStore:
    """
    Reads and writes the ledger snapshot as a single JSON file.

    Mutations are pure: they take a snapshot and return a new one, leaving
    the caller's copy untouched. Nothing is written until ``save`` is called.

    Usage:
        store = LedgerStore(Path("data.json"))
        data = store.load()
        data = store.add_expense(data, expense)
        store.save(data)
    """

    def __init__(self, path: Path) -> None:
        """
        Initialize store.

        Args:
            path: Location of the JSON ledger file
        """
        self.path = path

    def read(self) -> FinancialData:
        """
        Read and decode the ledger file.

        Raises:
            PersistenceReadError: If the file is missing, unreadable or malformed
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceReadError(f"Could not read {self.path}: {e}") from e

        try:
            return decode_financial_data(raw, source=self.path)
        except FormatError as e:
            raise PersistenceReadError(str(e)) from e

    @property
    def corrupt_path(self) -> Path:
        """Where an unreadable ledger file is moved before starting empty."""
        return self.path.with_name(self.path.name + ".corrupt")

    def load(self) -> FinancialData:
        """Return the persisted snapshot, or an empty one if there is none.

        An unreadable file is renamed to ``corrupt_path`` so the next save
        does not destroy it.
        """
        if not self.path.exists():
            return EMPTY

        try:
            return self.read()
        except PersistenceReadError as e:
            logger.warning("Failed to load stored data, starting empty: %s", e)

        try:
            os.replace(self.path, self.corrupt_path)
        except OSError as e:
            logger.error("Could not move %s aside: %s", self.path, e)
        else:
            logger.warning("Unreadable ledger kept as %s", self.corrupt_path)
        return EMPTY

    def save(self, data: FinancialData) -> None:
        """Overwrite the ledger file with ``data`` (atomic replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".ledger-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data.to_dict(), f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        logger.info(
            "Saved %d expenses, %d incomes, %d CDTs to %s",
            len(data.expenses),
            len(data.incomes),
            len(data.cdts),
            self.path,
        )

    @staticmethod
    def add_expense(data: FinancialData, expense: Expense) -> FinancialData:
        """Return a snapshot with ``expense`` first, under a fresh id."""
        return replace(data, expenses=_prepend(data.expenses, expense))

    @staticmethod
    def add_income(data: FinancialData, income: Income) -> FinancialData:
        """Return a snapshot with ``income`` first, under a fresh id."""
        return replace(data, incomes=_prepend(data.incomes, income))

    @staticmethod
    def add_cdt(data: FinancialData, cdt: CDT) -> FinancialData:
        """Return a snapshot with ``cdt`` first, under a fresh id."""
        return replace(data, cdts=_prepend(data.cdts, cdt))

    @staticmethod
    def delete_expense(data: FinancialData, expense_id: str) -> FinancialData:
        """Return a snapshot without the matching expense (no-op if absent)."""
        return replace(data, expenses=_without(data.expenses, expense_id))

    @staticmethod
    def delete_income(data: FinancialData, income_id: str) -> FinancialData:
        """Return a snapshot without the matching income (no-op if absent)."""
        return replace(data, incomes=_without(data.incomes, income_id))

    @staticmethod
    def delete_cdt(data: FinancialData, cdt_id: str) -> FinancialData:
        """Return a snapshot without the matching CDT (no-op if absent)."""
        return replace(data, cdts=_without(data.cdts, cdt_id))

    @staticmethod
    def reset() -> FinancialData:
        """Return an empty snapshot, sync marker included."""
        return EMPTY
