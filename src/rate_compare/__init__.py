"""Public package entry point for the residential rate plan comparison."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rate_compare.aggregate import UsageAggregate, aggregate_usage
from rate_compare.errors import (
    InvalidUsageInput,
    RateCompareError,
    TariffError,
    UsageSourceError,
)
from rate_compare.ingest import assess_coverage, read_usage_csv, recent_full_years
from rate_compare.models import (
    BillBreakdown,
    BillEstimate,
    BillingWindow,
    ChargeKind,
    CoverageReport,
    DailyUsage,
    DemandCharge,
    LineItem,
    MonthlyUsage,
    OnOffPeriod,
    PlanKind,
    RateBook,
    Reading,
    RiderRate,
    ThreeTierPeriod,
    TieredMonth,
)
from rate_compare.periods import classify_on_off, classify_three_tier, get_context
from rate_compare.plans import (
    PlanComparison,
    compare_plans,
    estimate_bill,
    price_demand,
    price_energy_only,
    price_plan,
    price_super_off_peak,
    price_tiered,
)
from rate_compare.rates import TariffJSONLoader, load_rate_book
from rate_compare.report import render_report

__version__ = "0.1.0"


def available_plan_ids(rates_path: str | Path | None = None) -> tuple[str, ...]:
    """Return the ids of every plan in the rate schedule."""
    return load_rate_book(rates_path).plan_ids()


def plan_details(plan_id: str, rates_path: str | Path | None = None) -> Any:
    """Return the rate record for one plan."""
    return load_rate_book(rates_path).plan(plan_id)


def compare_csv(
    path: str | Path,
    window: BillingWindow | None = None,
    rates_path: str | Path | None = None,
) -> PlanComparison:
    """Read a usage export and price it under every plan."""
    rate_book = load_rate_book(rates_path)
    usage = read_usage_csv(path, window=window)
    return compare_plans(usage, rate_book=rate_book)


__all__ = [
    "BillBreakdown",
    "BillEstimate",
    "BillingWindow",
    "ChargeKind",
    "CoverageReport",
    "DailyUsage",
    "DemandCharge",
    "InvalidUsageInput",
    "LineItem",
    "MonthlyUsage",
    "OnOffPeriod",
    "PlanComparison",
    "PlanKind",
    "RateBook",
    "RateCompareError",
    "Reading",
    "RiderRate",
    "TariffError",
    "TariffJSONLoader",
    "ThreeTierPeriod",
    "TieredMonth",
    "UsageAggregate",
    "UsageSourceError",
    "aggregate_usage",
    "assess_coverage",
    "available_plan_ids",
    "classify_on_off",
    "classify_three_tier",
    "compare_csv",
    "compare_plans",
    "estimate_bill",
    "get_context",
    "load_rate_book",
    "plan_details",
    "price_demand",
    "price_energy_only",
    "price_plan",
    "price_super_off_peak",
    "price_tiered",
    "read_usage_csv",
    "recent_full_years",
    "render_report",
    "__version__",
]
