#!/usr/bin/env python3
"""Command-line interface for financepro."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from financepro.app import LedgerApp
from financepro.backup import backup_filename
from financepro.config import find_config_file, get_config_path, load_config
from financepro.errors import FinanceProError, PreconditionError
from financepro.models import CDT, Category, Expense, Income, IncomeSource, PaymentMethod
from financepro.schema import parse_amount, parse_date, parse_enum
from financepro.stats import estimate_profit, format_currency, is_active


def _date_arg(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _amount_arg(value: str) -> Decimal:
    try:
        amount = parse_amount(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    if amount < 0:
        raise argparse.ArgumentTypeError(f"Amount must be non-negative: {value}")
    return amount


def _enum_choices(enum_cls: Any) -> list[str]:
    return [m.value for m in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="financepro",
        description="Track expenses, incomes and fixed-term deposits (CDTs)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  financepro add-expense 85000 "Mercado semanal" --category Mercado --method Tarjeta
  financepro add-income 4500000 "Nómina" --source Salario
  financepro add-cdt Bancolombia 1000000 10.5 --start 2024-01-01 --end 2025-01-01
  financepro summary
  financepro config --sync-url https://script.google.com/macros/s/.../exec
  financepro push
  financepro export -o backup.json
        """,
    )
    parser.add_argument("--data", type=Path, help="Path to the ledger JSON file")
    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("add-expense", help="Record an expense")
    p.add_argument("amount", type=_amount_arg)
    p.add_argument("description")
    p.add_argument("--date", type=_date_arg, default=None, help="YYYY-MM-DD (default: today)")
    p.add_argument(
        "--category",
        choices=_enum_choices(Category),
        default=Category.OTHER.value,
        help="Expense category (default: Otros)",
    )
    p.add_argument(
        "--method",
        choices=_enum_choices(PaymentMethod),
        default=PaymentMethod.PSE.value,
        help="Payment method (default: PSE)",
    )

    p = sub.add_parser("add-income", help="Record an income")
    p.add_argument("amount", type=_amount_arg)
    p.add_argument("description")
    p.add_argument("--date", type=_date_arg, default=None, help="YYYY-MM-DD (default: today)")
    p.add_argument(
        "--source",
        choices=_enum_choices(IncomeSource),
        default=IncomeSource.SALARY.value,
        help="Income source (default: Salario)",
    )

    p = sub.add_parser("add-cdt", help="Record a fixed-term deposit")
    p.add_argument("bank")
    p.add_argument("amount", type=_amount_arg)
    p.add_argument("rate", type=_amount_arg, help="Annual interest rate in percent")
    p.add_argument("--start", type=_date_arg, default=None, help="YYYY-MM-DD (default: today)")
    p.add_argument("--end", type=_date_arg, required=True, help="YYYY-MM-DD")

    p = sub.add_parser("delete", help="Delete a record by id")
    p.add_argument("kind", choices=["expense", "income", "cdt"])
    p.add_argument("id")

    p = sub.add_parser("list", help="List records")
    p.add_argument("kind", choices=["expenses", "incomes", "cdts"])
    p.add_argument(
        "--search",
        help="Only show records whose description (bank name for cdts) contains this text",
    )

    sub.add_parser("summary", help="Show totals, categories and the last 6 months")
    sub.add_parser("cdts", help="Show deposit portfolio and estimated yields")

    p = sub.add_parser("export", help="Write a JSON backup or a CSV list")
    p.add_argument("-o", "--output", type=Path, help="Output file")
    p.add_argument(
        "--csv",
        choices=["expenses", "incomes", "cdts"],
        help="Export this list as CSV instead of a JSON backup",
    )

    p = sub.add_parser("import", help="Replace all data with a JSON backup")
    p.add_argument("path", type=Path)

    p = sub.add_parser("reset", help="Delete ALL data")
    p.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    p = sub.add_parser("config", help="Show or change configuration")
    p.add_argument("--sync-url", help="Set the sync endpoint URL ('' to clear)")
    p.add_argument("--show", action="store_true", help="Show current configuration")

    p = sub.add_parser("push", help="Upload all data to the sync endpoint")
    p.add_argument(
        "--confirm",
        action="store_true",
        help="Check the endpoint's response instead of assuming success",
    )

    p = sub.add_parser("pull", help="Replace local data with the sync endpoint's copy")
    p.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    return parser


def configure_logging(verbose: bool) -> None:
    """Set up a single stream handler for the package loggers."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    root = logging.getLogger("financepro")
    root.handlers[:] = [handler]
    root.setLevel(logging.INFO if verbose else logging.WARNING)


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N]: ")
    return answer.strip().lower() in ("y", "yes", "s", "si", "sí")


def _print_records(kind: str, records: Sequence[Expense | Income | CDT]) -> None:
    if not records:
        print("No records found.")
        return

    for record in records:
        if isinstance(record, Expense):
            print(
                f"{record.date}  {format_currency(record.amount):>14}  "
                f"{record.category.value:<16} {record.payment_method.value:<13} "
                f"{record.description[:40]:<40}  [{record.id}]"
            )
        elif isinstance(record, Income):
            print(
                f"{record.date}  {format_currency(record.amount):>14}  "
                f"{record.source.value:<13} {record.description[:40]:<40}  [{record.id}]"
            )
        else:
            status = "active" if is_active(record) else "expired"
            print(
                f"{record.bank:<20} {format_currency(record.amount):>14}  "
                f"{record.interest_rate}% {record.start_date} -> {record.end_date}  "
                f"+{format_currency(estimate_profit(record))}  {status}  [{record.id}]"
            )
    print(f"\n{len(records)} {kind}")


def _print_summary(app: LedgerApp) -> None:
    summary = app.summary()
    t = summary.totals

    print("Totals:")
    print(f"  Ingresos Totales: {format_currency(t.incomes)}")
    print(f"  Gastos Totales:   {format_currency(t.expenses)}")
    print(f"  Balance:          {format_currency(t.balance)}")
    print(f"  Invertido CDT:    {format_currency(t.invested)}")

    print("\nExpenses by category:")
    if summary.by_category:
        for category, total in sorted(summary.by_category.items(), key=lambda kv: -kv[1]):
            print(f"  {category.value:<16} {format_currency(total):>14}")
    else:
        print("  (no expenses recorded)")

    print("\nLast 6 months:")
    for point in summary.history:
        print(
            f"  {point.label} {point.year}  in {format_currency(point.incomes):>14}  "
            f"out {format_currency(point.expenses):>14}  saved {format_currency(point.savings):>14}"
        )

    if app.data.last_sync:
        print(f"\nLast sync: {app.data.last_sync}")


def _print_cdts(app: LedgerApp) -> None:
    stats = app.summary().cdts
    print(f"Active: {stats.active_count}  Expired: {stats.expired_count}")
    print(f"Invested (active): {format_currency(stats.total_invested)}")
    print(f"Estimated profit (active): {format_currency(stats.estimated_profit)}")
    print()
    _print_records("cdts", app.data.cdts)


def run_command(args: argparse.Namespace, app: LedgerApp) -> int:
    """Execute a parsed command against an open app."""
    command = args.command

    if command == "add-expense":
        expense = app.add_expense(
            Expense(
                date=args.date or date.today(),
                description=args.description,
                category=parse_enum(Category, args.category),
                amount=args.amount,
                payment_method=parse_enum(PaymentMethod, args.method),
            )
        )
        print(f"Added expense {expense.id}")

    elif command == "add-income":
        income = app.add_income(
            Income(
                date=args.date or date.today(),
                description=args.description,
                amount=args.amount,
                source=parse_enum(IncomeSource, args.source),
            )
        )
        print(f"Added income {income.id}")

    elif command == "add-cdt":
        cdt = app.add_cdt(
            CDT(
                bank=args.bank,
                amount=args.amount,
                interest_rate=args.rate,
                start_date=args.start or date.today(),
                end_date=args.end,
            )
        )
        print(f"Added CDT {cdt.id} (estimated profit {format_currency(estimate_profit(cdt))})")

    elif command == "delete":
        deleter = {
            "expense": app.delete_expense,
            "income": app.delete_income,
            "cdt": app.delete_cdt,
        }[args.kind]
        if deleter(args.id):
            print(f"Deleted {args.kind} {args.id}")
        else:
            print(f"No {args.kind} with id {args.id}", file=sys.stderr)

    elif command == "list":
        records: Sequence[Expense | Income | CDT]
        if args.search is None:
            records = getattr(app.data, args.kind)
        elif args.kind == "cdts":
            records = app.search_cdts(args.search)
        elif args.kind == "expenses":
            records = app.search_expenses(args.search)
        else:
            records = app.search_incomes(args.search)
        _print_records(args.kind, records)

    elif command == "summary":
        _print_summary(app)

    elif command == "cdts":
        _print_cdts(app)

    elif command == "export":
        if args.csv:
            output = args.output or Path(f"{args.csv}.csv")
            count = app.export_csv(args.csv, output)
            if count:
                print(f"Wrote {count} {args.csv} to {output}", file=sys.stderr)
            else:
                print(f"No {args.csv} to export", file=sys.stderr)
        else:
            output = app.export_backup(args.output or Path(backup_filename()))
            print(f"Wrote backup to {output}", file=sys.stderr)

    elif command == "import":
        data = app.import_backup(args.path)
        print(
            f"Imported {len(data.expenses)} expenses, {len(data.incomes)} incomes, "
            f"{len(data.cdts)} CDTs",
            file=sys.stderr,
        )

    elif command == "reset":
        if not args.yes and not _confirm("Delete ALL data?"):
            print("Aborted.", file=sys.stderr)
            return 1
        app.reset()
        print("All data deleted.", file=sys.stderr)

    elif command == "config":
        if args.sync_url is not None:
            path = app.set_sync_url(args.sync_url)
            print(f"Configuration saved to {path}", file=sys.stderr)
        if args.show or args.sync_url is None:
            print(f"Config file: {app.config_path or get_config_path()}")
            print(f"Data file:   {app.store.path}")
            print(f"Sync URL:    {app.sync_url or '(not configured)'}")

    elif command == "push":
        result = asyncio.run(app.push(confirm=args.confirm))
        if result.confirmed:
            print(f"Sync confirmed by endpoint (HTTP {result.status_code}).", file=sys.stderr)
        else:
            print(
                "Data sent. The endpoint's response was not checked (best effort); "
                "use --confirm to verify.",
                file=sys.stderr,
            )

    elif command == "pull":
        if not app.sync_url:
            raise PreconditionError(
                "Sync URL not configured. Set it with 'financepro config --sync-url URL'."
            )
        if not args.yes and not _confirm("This will replace your local data. Continue?"):
            print("Aborted.", file=sys.stderr)
            return 1
        data = asyncio.run(app.pull())
        print(
            f"Pulled {len(data.expenses)} expenses, {len(data.incomes)} incomes, "
            f"{len(data.cdts)} CDTs",
            file=sys.stderr,
        )

    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    config_path = args.config or find_config_file()
    try:
        config = load_config(config_path)
        with LedgerApp.open(config, data_path=args.data, config_path=config_path) as app:
            return run_command(args, app)
    except (FinanceProError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
