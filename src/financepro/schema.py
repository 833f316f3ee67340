"""Decoding of untyped JSON into the typed ledger shape."""

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from financepro.errors import FormatError
from financepro.models import CDT, Category, Expense, FinancialData, Income, IncomeSource, PaymentMethod

REQUIRED_KEYS = ("expenses", "incomes", "cdts")

E = TypeVar("E", bound=Enum)
R = TypeVar("R")


def parse_date(value: Any) -> date:
    """
    Parse a wire date.

    Supported formats:
    - YYYY-MM-DD (2024-01-31)
    - ISO datetimes (2024-01-31T00:00:00.000Z), truncated to the date

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")

    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    # Spreadsheets tend to hand back full timestamps
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError as err:
        raise ValueError(f"Invalid date: {value!r}") from err


def parse_amount(value: Any) -> Decimal:
    """
    Parse a wire number to Decimal.

    Accepts JSON numbers and numeric strings. Booleans are rejected even
    though Python treats them as integers.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Invalid amount: {value!r}")

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as err:
        raise ValueError(f"Invalid amount: {value!r}") from err

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def parse_enum(enum_cls: type[E], value: Any) -> E:
    """Look up an enum member by its wire value."""
    try:
        return enum_cls(value)
    except ValueError as err:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise ValueError(f"Invalid {enum_cls.__name__} {value!r} (expected one of: {allowed})") from err


def _text(record: dict[str, Any], key: str) -> str:
    value = record.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Field '{key}' must be text, got {type(value).__name__}")
    return value


def _record_id(record: dict[str, Any]) -> str:
    value = record.get("id")
    if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
        return str(value)
    raise ValueError(f"Missing or invalid id: {value!r}")


def decode_expense(record: dict[str, Any]) -> Expense:
    """Build an Expense from its wire dict."""
    return Expense(
        id=_record_id(record),
        date=parse_date(record.get("date")),
        description=_text(record, "description"),
        category=parse_enum(Category, record.get("category")),
        amount=parse_amount(record.get("amount")),
        payment_method=parse_enum(PaymentMethod, record.get("paymentMethod")),
    )


def decode_income(record: dict[str, Any]) -> Income:
    """Build an Income from its wire dict."""
    return Income(
        id=_record_id(record),
        date=parse_date(record.get("date")),
        description=_text(record, "description"),
        amount=parse_amount(record.get("amount")),
        source=parse_enum(IncomeSource, record.get("source")),
    )


def decode_cdt(record: dict[str, Any]) -> CDT:
    """Build a CDT from its wire dict.

    A stored ``isExpired`` flag is ignored; expiry is always derived.
    """
    return CDT(
        id=_record_id(record),
        bank=_text(record, "bank"),
        amount=parse_amount(record.get("amount")),
        interest_rate=parse_amount(record.get("interestRate")),
        start_date=parse_date(record.get("startDate")),
        end_date=parse_date(record.get("endDate")),
    )


def _decode_list(
    data: dict[str, Any],
    key: str,
    decoder: Callable[[dict[str, Any]], R],
    source: Path | str | None,
) -> tuple[R, ...]:
    items = data[key]
    if not isinstance(items, list):
        raise FormatError(f"'{key}' must be a list", source)

    records: list[R] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise FormatError(f"{key}[{index}] must be an object", source)
        try:
            record = decoder(item)
        except ValueError as e:
            raise FormatError(f"{key}[{index}]: {e}", source) from e

        record_id: str = getattr(record, "id")
        if record_id in seen:
            raise FormatError(f"{key}[{index}]: duplicate id {record_id!r}", source)
        seen.add(record_id)
        records.append(record)

    return tuple(records)


def decode_financial_data(data: Any, source: Path | str | None = None) -> FinancialData:
    """
    Validate and convert a parsed JSON document into a snapshot.

    The document must be an object with ``expenses``, ``incomes`` and ``cdts``
    lists; anything else rejects the whole document.

    Args:
        data: Parsed JSON value
        source: Where the data came from, for error messages

    Returns:
        Decoded FinancialData

    Raises:
        FormatError: If the document does not match the ledger shape
    """
    if not isinstance(data, dict):
        raise FormatError("Expected a JSON object at the top level", source)

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise FormatError(f"Missing required keys: {', '.join(missing)}", source)

    last_sync = data.get("lastSync")
    if last_sync is not None and not isinstance(last_sync, str):
        raise FormatError("'lastSync' must be text", source)

    return FinancialData(
        expenses=_decode_list(data, "expenses", decode_expense, source),
        incomes=_decode_list(data, "incomes", decode_income, source),
        cdts=_decode_list(data, "cdts", decode_cdt, source),
        last_sync=last_sync,
    )
