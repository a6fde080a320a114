# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from ehsreport.app import (
    list_reports,
    load_report,
    migrate_reports,
    set_report_status,
    update_report_section,
)
from ehsreport.config import ConfigurationError, configure_logging, resolve_log_level
from ehsreport.domain.periods import Period, current_period
from ehsreport.domain.schema import CANONICAL_DOCUMENT
from ehsreport.domain.status import ReportStatus, report_status

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--year", type=int, help="Report year (defaults to the current year)")
    parser.add_argument(
        "--month",
        type=int,
        help="Report month 1-12 (defaults to the current month)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit and publish monthly EHS reports")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the reconciled report as JSON")
    _add_period_arguments(show)
    show.add_argument(
        "--section",
        choices=tuple(CANONICAL_DOCUMENT),
        help="Only print this section",
    )

    subparsers.add_parser("list", help="List the periods that have a stored report")

    update = subparsers.add_parser("update", help="Update one section of a report")
    _add_period_arguments(update)
    update.add_argument("--section", required=True, choices=tuple(CANONICAL_DOCUMENT))
    update.add_argument(
        "value",
        type=str,
        help="JSON object merged into a record section, or JSON list replacing a collection",
    )

    publish = subparsers.add_parser("publish", help="Make a report visible to readers")
    _add_period_arguments(publish)

    unpublish = subparsers.add_parser("unpublish", help="Return a report to draft")
    _add_period_arguments(unpublish)

    subparsers.add_parser("migrate", help="Rewrite every stored report in the current shape")

    return parser.parse_args(list(argv))


def _resolve_period(
    args: argparse.Namespace,
    *,
    now_provider: Callable[[], Period] = current_period,
) -> Period:
    current = now_provider()
    if args.year is None and args.month is None:
        return current
    year = current.year if args.year is None else args.year
    month = current.month if args.month is None else args.month
    # InvalidPeriodError is a ValueError.
    return Period(year, month)


def _parse_json(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON value: {exc}") from exc


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


async def _run(args: argparse.Namespace, period: Period | None, value: Any) -> None:
    if args.command == "list":
        for known in await list_reports():
            print(f"{known.year}-{known.month:02d}  {known.label}")
    elif args.command == "migrate":
        migrated = await migrate_reports()
        log.info("Migrated %s report(s)", len(migrated))
    elif period is None:
        raise ValueError(f"Command {args.command} needs a period")
    elif args.command == "show":
        document = await load_report(period)
        log.info("%s is %s", period.label, report_status(document))
        _print_json(document if args.section is None else document.get(args.section))
    elif args.command == "update":
        document = await update_report_section(period, args.section, value)
        _print_json(document.get(args.section))
    elif args.command == "publish":
        await set_report_status(period, ReportStatus.PUBLISHED)
    elif args.command == "unpublish":
        await set_report_status(period, ReportStatus.DRAFT)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    period: Period | None = None
    value: Any = None
    try:
        configure_logging(level=resolve_log_level(verbose=parsed_args.verbose))
        if hasattr(parsed_args, "month"):
            period = _resolve_period(parsed_args)
        if parsed_args.command == "update":
            value = _parse_json(parsed_args.value)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        asyncio.run(_run(parsed_args, period, value))
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
