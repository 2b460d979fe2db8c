"""Plain-text rendering of a plan comparison."""

from __future__ import annotations

from rate_compare.models import (
    BillBreakdown,
    BillEstimate,
    ChargeKind,
    ConsumptionTier,
    LineItem,
    PlanKind,
    TieredMonth,
)
from rate_compare.plans import PlanComparison

INDENT = "   "


def _money(value: float) -> str:
    return f"${value:.2f}"


def _rate(value: float) -> str:
    return f"${value:g}"


def _days(value: float) -> str:
    return f"{value:g}"


def _tier_label(position: int, tier: ConsumptionTier) -> str:
    if tier.end_kwh is None:
        return f"Tier {position} (above {tier.start_kwh:g} kWh)"
    if tier.start_kwh == 0:
        return f"Tier {position} (first {tier.end_kwh:g} kWh)"
    return f"Tier {position} (next {tier.width_kwh:g} kWh)"


def _line(item: LineItem) -> str:
    if item.kind is ChargeKind.FIXED:
        return (
            f"Fixed Charge: {_days(item.quantity)} days * {_rate(item.rate)}"
            f" = {_money(item.cost)}"
        )
    if item.kind is ChargeKind.ENERGY:
        return (
            f"{item.label}: {item.quantity:.2f} kWh @ {_rate(item.rate)}/kWh"
            f" = {_money(item.cost)}"
        )
    return (
        f"{item.label}: {item.quantity:.2f} kW * {_rate(item.rate)}/kW"
        f" = {_money(item.cost)}"
    )


def _time_of_use_section(bill: BillBreakdown) -> list[str]:
    return [INDENT + _line(item) for item in bill.line_items] + [
        f"{INDENT}Total {bill.label} Cost: {_money(bill.total)}"
    ]


def _demand_section(bill: BillBreakdown) -> list[str]:
    lines = [
        INDENT + _line(item)
        for item in bill.line_items
        if item.kind is not ChargeKind.DEMAND
    ]
    lines.append(
        f"{INDENT}Energy Subtotal: {_money(bill.fixed_charge + bill.energy_charge)}"
    )
    lines.append(f"{INDENT}Monthly Demand Charges:")
    for charge in bill.demand_charges:
        lines.append(
            f"{INDENT}  {charge.year}-{charge.month:02d}: Max Usage"
            f" {charge.peak_kw:.2f} kWh * ${charge.rate:.2f}/kW"
            f" = {_money(charge.charge)}"
        )
    lines.append(f"{INDENT}Total Demand Charge: {_money(bill.demand_charge)}")
    lines.append(f"{INDENT}Total {bill.label} Cost: {_money(bill.total)}")
    return lines


def _tiered_month(month: TieredMonth, bill: BillBreakdown) -> list[str]:
    pad = INDENT + "    "
    fixed_rate = bill.item("Fixed Charge").rate
    season = "Summer" if month.is_summer else "Winter"
    lines = [
        f"{INDENT}  {month.year}-{month.month:02d} ({season}):",
        f"{pad}Fixed Charge: {month.day_count} days * {_rate(fixed_rate)}"
        f" = {_money(month.fixed)}",
    ]
    if month.is_summer:
        usage = (month.tier1, month.tier2, month.tier3)
        for position, (quantity, tier) in enumerate(zip(usage, bill.tiers), start=1):
            lines.append(
                f"{pad}{_tier_label(position, tier)}: {quantity:.2f} kWh"
                f" @ {_rate(tier.cost)}/kWh = {_money(quantity * tier.cost)}"
            )
        lines.append(f"{pad}Total Energy Charge: {_money(month.energy_cost)}")
    else:
        rate = bill.item("Non-Summer Energy").rate
        lines.append(
            f"{pad}Energy Usage: {month.total_usage:.2f} kWh @ {_rate(rate)}/kWh"
            f" = {_money(month.energy_cost)}"
        )
    lines.append(f"{pad}Monthly Total: {_money(month.monthly_total)}")
    lines.append("")
    return lines


def _tiered_section(bill: BillBreakdown) -> list[str]:
    lines = [f"{INDENT}Monthly Breakdown (chronological):"]
    for month in bill.monthly:
        lines.extend(_tiered_month(month, bill))
    lines.append(f"{INDENT}Total {bill.label} Cost (all months): {_money(bill.total)}")
    return lines


SECTIONS = {
    PlanKind.ENERGY_ONLY: _time_of_use_section,
    PlanKind.SUPER_OFF_PEAK: _time_of_use_section,
    PlanKind.DEMAND: _demand_section,
    PlanKind.TIERED: _tiered_section,
}


def _estimate_section(estimates: dict[str, BillEstimate]) -> list[str]:
    lines = ["", "Estimated Totals with Riders and Taxes:"]
    for estimate in estimates.values():
        lines.append(
            f"{INDENT}{estimate.label}: {_money(estimate.base_total)}"
            f" + fuel {_money(estimate.fuel_cost_recovery)}"
            f" + taxes {_money(estimate.taxes)} = {_money(estimate.total)}"
        )
    return lines


def render_report(
    comparison: PlanComparison, estimates: dict[str, BillEstimate] | None = None
) -> str:
    """Render every plan's breakdown followed by the overall totals.

    When ``estimates`` is given, the totals with riders and taxes follow.
    """
    lines = ["Final Bill Totals and Breakdown:", ""]
    for position, bill in enumerate(comparison.bills.values(), start=1):
        lines.append(f"{position}. {bill.name} ({bill.label}):")
        lines.extend(SECTIONS[bill.kind](bill))
        lines.append("")

    lines.append("Overall Final Totals:")
    width = max((len(bill.label) for bill in comparison.bills.values()), default=0) + 1
    for bill in comparison.bills.values():
        lines.append(f"{INDENT}{bill.label + ':':<{width}} {_money(bill.total)}")
    cheapest = comparison.cheapest()
    if cheapest is not None:
        lines.append("")
        lines.append(f"Lowest cost plan: {comparison[cheapest].label}")
    if estimates:
        lines.extend(_estimate_section(estimates))
    return "\n".join(lines) + "\n"


__all__ = ["render_report"]
