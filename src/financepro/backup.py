"""JSON backup/restore and CSV export."""

import csv
import json
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from financepro.errors import FormatError
from financepro.models import CDT, Expense, FinancialData, Income
from financepro.schema import decode_financial_data


def backup_filename(today: date | None = None) -> str:
    """Default file name for a JSON backup taken on ``today``."""
    if today is None:
        today = date.today()
    return f"finance_pro_backup_{today.isoformat()}.json"


def export_json(data: FinancialData, output_path: Path) -> Path:
    """
    Write the snapshot as pretty-printed JSON.

    Args:
        data: Snapshot to export
        output_path: Output file path

    Returns:
        Path written
    """
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data.to_dict(), f, indent=2, ensure_ascii=False)
        f.write("\n")
    return output_path


def import_json(input_path: Path) -> FinancialData:
    """
    Read a JSON backup as a full replacement snapshot.

    Nothing is partially imported: any problem rejects the whole file.

    Raises:
        FormatError: If the file is not valid JSON or misses required keys
    """
    try:
        with open(input_path, encoding="utf-8-sig") as f:
            raw = json.load(f)
    except ValueError as e:
        raise FormatError(f"Invalid JSON: {e}", input_path) from e
    except OSError as e:
        raise FormatError(f"Could not read file: {e}", input_path) from e

    return decode_financial_data(raw, source=input_path)


def write_csv(
    records: Sequence[Expense | Income | CDT],
    output_path: Path,
    delimiter: str = ",",
) -> int:
    """
    Write records to a CSV file, one row per record.

    Columns are the record's JSON keys. The file starts with a UTF-8 BOM so
    spreadsheet programs pick up accented text. Nothing is written for an
    empty list.

    Args:
        records: Records of a single type
        output_path: Output file path
        delimiter: CSV delimiter (default comma)

    Returns:
        Number of rows written
    """
    if not records:
        return 0

    rows = [r.to_dict() for r in records]
    with open(output_path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(
            f,
            fieldnames=list(rows[0].keys()),
            delimiter=delimiter,
            quoting=csv.QUOTE_NONNUMERIC,
        )
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)
