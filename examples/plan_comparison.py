"""Plan Comparison Example - Compare a year of usage across the four plans.

This example shows how to:
1. Build an hourly usage series with pandas
2. Price it under every plan
3. Rank the plans and inspect the demand and tiered breakdowns
"""

from __future__ import annotations

import pandas as pd

import rate_compare as rc


def create_household_usage() -> pd.Series:
    """Create a household pattern: evening AC in summer, EV charging overnight."""
    dates = pd.date_range("2024-04-01", "2025-01-31 23:00", freq="h")

    usage_values = []
    for ts in dates:
        usage = 0.6
        if ts.month in (6, 7, 8, 9) and 13 <= ts.hour < 21:
            usage += 1.8  # air conditioning
        if ts.hour >= 23 or ts.hour < 5:
            usage += 2.0  # EV charging
        usage_values.append(usage)

    return pd.Series(usage_values, index=dates)


def rank_plans(comparison: rc.PlanComparison) -> pd.DataFrame:
    summary = comparison.summary().sort_values("total").reset_index(drop=True)
    summary["rank"] = summary.index + 1
    summary["vs_cheapest"] = summary["total"] - summary["total"].iloc[0]
    return summary


def main() -> None:
    usage = create_household_usage()
    comparison = rc.compare_plans(usage)

    print("=" * 60)
    print("Plan ranking")
    print("=" * 60)
    print(rank_plans(comparison).round(2).to_string(index=False))

    print("\nMonthly demand charges (TOU-RD):")
    for charge in comparison["tou_rd"].demand_charges:
        print(f"  {charge.year}-{charge.month:02d}: {charge.peak_kw:.2f} kW -> ${charge.charge:.2f}")

    print("\nR-30 months:")
    for month in comparison["r30"].monthly:
        season = "summer" if month.is_summer else "winter"
        print(
            f"  {month.year}-{month.month:02d} ({season}): "
            f"{month.total_usage:.0f} kWh -> ${month.monthly_total:.2f}"
        )

    print("\nFull report:\n")
    print(rc.render_report(comparison))


if __name__ == "__main__":
    main()
