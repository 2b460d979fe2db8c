"""Command line entry point: ``rate-compare USAGE_CSV``."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import date

from rate_compare import __version__
from rate_compare.errors import RateCompareError
from rate_compare.ingest import (
    DEFAULT_ENERGY_COLUMN,
    DEFAULT_TIMESTAMP_COLUMN,
    assess_coverage,
    read_usage_csv,
    recent_full_years,
)
from rate_compare.models import BillingWindow
from rate_compare.plans import compare_plans
from rate_compare.rates import load_rate_book
from rate_compare.report import render_report

_LOGGER = logging.getLogger(__name__)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rate-compare",
        description="Compare an hourly usage export against residential rate plans.",
    )
    parser.add_argument("usage_csv", help="usage export to bill")
    parser.add_argument(
        "--start", type=_iso_date, help="first date to bill (inclusive, YYYY-MM-DD)"
    )
    parser.add_argument(
        "--end", type=_iso_date, help="last date to bill (inclusive, YYYY-MM-DD)"
    )
    parser.add_argument(
        "--rates", help="JSON rate schedule to use instead of the packaged one"
    )
    parser.add_argument(
        "--skip-lines",
        type=int,
        help="lines before the header row (default: search the first lines)",
    )
    parser.add_argument(
        "--timestamp-column",
        default=DEFAULT_TIMESTAMP_COLUMN,
        help="timestamp column header (default: %(default)s)",
    )
    parser.add_argument(
        "--energy-column",
        default=DEFAULT_ENERGY_COLUMN,
        help="kWh column header (default: %(default)s)",
    )
    parser.add_argument(
        "--full-years",
        action="store_true",
        help="bill only the most recent whole years of readings",
    )
    parser.add_argument(
        "--with-riders",
        action="store_true",
        help="also estimate totals with fuel cost recovery and taxes",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log progress (-v) or debug detail (-vv) to stderr",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        window = BillingWindow(start=args.start, end=args.end)
        rate_book = load_rate_book(args.rates)
        usage = read_usage_csv(
            args.usage_csv,
            window=window,
            timestamp_column=args.timestamp_column,
            energy_column=args.energy_column,
            skip_lines=args.skip_lines,
        )
        if args.full_years:
            usage = recent_full_years(usage)
        assess_coverage(usage)
        comparison = compare_plans(usage, rate_book=rate_book)
        estimates = comparison.estimates() if args.with_riders else None
    except RateCompareError as exc:
        _LOGGER.error("%s", exc)
        return 1

    _LOGGER.debug("Billing days: %d", comparison.aggregate.billing_days)
    sys.stdout.write(render_report(comparison, estimates))
    return 0
