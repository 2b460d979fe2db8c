"""Pricing functions for the four residential rate plans.

Every function takes a :class:`UsageAggregate` and the plan's rates and
returns a :class:`BillBreakdown`. None of them keeps state between calls.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import pandas as pd

from rate_compare.aggregate import UsageAggregate, aggregate_usage
from rate_compare.errors import TariffError
from rate_compare.models import (
    BillBreakdown,
    BillEstimate,
    BillingWindow,
    ChargeKind,
    ConsumptionTier,
    DemandCharge,
    LineItem,
    OnOffPeriod,
    PlanKind,
    PlanRate,
    RateBook,
    RiderRate,
    ThreeTierPeriod,
    TieredMonth,
    TieredRate,
    TimeOfUseRate,
)
from rate_compare.rates import load_rate_book


def _fixed_item(rate: float, days: int) -> LineItem:
    return LineItem(
        label="Fixed Charge",
        kind=ChargeKind.FIXED,
        quantity=float(days),
        unit="day",
        rate=rate,
        cost=rate * days,
    )


def _energy_item(label: str, usage_kwh: float, rate: float) -> LineItem:
    return LineItem(
        label=label,
        kind=ChargeKind.ENERGY,
        quantity=usage_kwh,
        unit="kWh",
        rate=rate,
        cost=usage_kwh * rate,
    )


def _require_kind(rate: PlanRate, kind: PlanKind) -> None:
    if rate.kind is not kind:
        raise TariffError(
            f"Plan {rate.plan_id} is {rate.kind.value}, expected {kind.value}"
        )


def price_energy_only(aggregate: UsageAggregate, rate: TimeOfUseRate) -> BillBreakdown:
    """Time-of-use plan billed on on/off-peak energy only."""
    _require_kind(rate, PlanKind.ENERGY_ONLY)
    fixed = _fixed_item(rate.fixed_daily, aggregate.billing_days)
    on_peak = _energy_item(
        "On-Peak Energy", aggregate.on_off_total(OnOffPeriod.ON_PEAK), rate.on_peak
    )
    off_peak = _energy_item(
        "Off-Peak Energy", aggregate.on_off_total(OnOffPeriod.OFF_PEAK), rate.off_peak
    )
    return BillBreakdown(
        plan_id=rate.plan_id,
        name=rate.name,
        label=rate.label,
        kind=rate.kind,
        line_items=(fixed, on_peak, off_peak),
        total=fixed.cost + on_peak.cost + off_peak.cost,
    )


def price_super_off_peak(
    aggregate: UsageAggregate, rate: TimeOfUseRate
) -> BillBreakdown:
    """Time-of-use plan with a discounted overnight window."""
    _require_kind(rate, PlanKind.SUPER_OFF_PEAK)
    fixed = _fixed_item(rate.fixed_daily, aggregate.billing_days)
    labels = {
        ThreeTierPeriod.ON_PEAK: ("On-Peak Energy", rate.on_peak),
        ThreeTierPeriod.OFF_PEAK: ("Off-Peak Energy", rate.off_peak),
        ThreeTierPeriod.SUPER_OFF_PEAK: ("Super Off-Peak Energy", rate.super_off_peak),
    }
    energy_items = tuple(
        _energy_item(label, aggregate.three_tier_total(period), unit_cost)
        for period, (label, unit_cost) in labels.items()
    )
    total = fixed.cost
    for item in energy_items:
        total += item.cost
    return BillBreakdown(
        plan_id=rate.plan_id,
        name=rate.name,
        label=rate.label,
        kind=rate.kind,
        line_items=(fixed, *energy_items),
        total=total,
    )


def price_demand(aggregate: UsageAggregate, rate: TimeOfUseRate) -> BillBreakdown:
    """Time-of-use plan with a monthly demand charge on the largest reading.

    The fixed and energy charges cover the whole window in one lump; the
    demand charge is levied once for every month with readings.
    """
    _require_kind(rate, PlanKind.DEMAND)
    fixed = _fixed_item(rate.fixed_daily, aggregate.billing_days)
    on_peak = _energy_item(
        "On-Peak Energy", aggregate.on_off_total(OnOffPeriod.ON_PEAK), rate.on_peak
    )
    off_peak = _energy_item(
        "Off-Peak Energy", aggregate.on_off_total(OnOffPeriod.OFF_PEAK), rate.off_peak
    )
    energy_subtotal = fixed.cost + on_peak.cost + off_peak.cost

    demand_charges = tuple(
        DemandCharge(
            year=year,
            month=month,
            peak_kw=peak,
            rate=rate.demand_per_kw,
            charge=peak * rate.demand_per_kw,
        )
        for (year, month), peak in sorted(aggregate.monthly_peaks.items())
    )
    demand_items = tuple(
        LineItem(
            label=f"Demand {charge.year}-{charge.month:02d}",
            kind=ChargeKind.DEMAND,
            quantity=charge.peak_kw,
            unit="kW",
            rate=charge.rate,
            cost=charge.charge,
        )
        for charge in demand_charges
    )
    total_demand = sum((charge.charge for charge in demand_charges), 0.0)
    return BillBreakdown(
        plan_id=rate.plan_id,
        name=rate.name,
        label=rate.label,
        kind=rate.kind,
        line_items=(fixed, on_peak, off_peak, *demand_items),
        total=energy_subtotal + total_demand,
        demand_charges=demand_charges,
    )


def split_tiers(usage_kwh: float, tiers: tuple[ConsumptionTier, ...]) -> list[float]:
    """Split a month's usage across marginal tiers.

    Tier bounds are inclusive below, so usage exactly at a boundary stays in
    the lower tier. Net negative usage is carried by the first tier.
    """
    split = []
    for position, tier in enumerate(tiers):
        above = usage_kwh - tier.start_kwh
        if position > 0:
            above = max(above, 0.0)
        split.append(min(above, tier.width_kwh))
    return split


def price_tiered(aggregate: UsageAggregate, rate: TieredRate) -> BillBreakdown:
    """Seasonal flat-rate plan, billed month by month.

    Summer months are priced on marginal tiers, other months at a single
    rate. Each month's fixed charge counts only the dates with readings.
    """
    _require_kind(rate, PlanKind.TIERED)
    months: list[TieredMonth] = []
    for (year, month), usage in aggregate.monthly_usage.items():
        fixed = rate.fixed_daily * usage.day_count
        summer = rate.is_summer(month)
        if summer:
            tier_usage = split_tiers(usage.total_energy, rate.tiers)
            energy_cost = 0.0
            for quantity, tier in zip(tier_usage, rate.tiers):
                energy_cost += quantity * tier.cost
        else:
            tier_usage = [0.0] * len(rate.tiers)
            energy_cost = usage.total_energy * rate.non_summer_cost
        months.append(
            TieredMonth(
                year=year,
                month=month,
                is_summer=summer,
                tier1=tier_usage[0],
                tier2=tier_usage[1],
                tier3=tier_usage[2],
                fixed=fixed,
                energy_cost=energy_cost,
                monthly_total=fixed + energy_cost,
                total_usage=usage.total_energy,
                day_count=usage.day_count,
            )
        )

    summer_months = [m for m in months if m.is_summer]
    non_summer_months = [m for m in months if not m.is_summer]
    line_items = [_fixed_item(rate.fixed_daily, aggregate.billing_days)]
    for position, tier in enumerate(rate.tiers):
        quantity = sum(
            ((m.tier1, m.tier2, m.tier3)[position] for m in summer_months), 0.0
        )
        line_items.append(
            _energy_item(f"Summer Tier {position + 1}", quantity, tier.cost)
        )
    line_items.append(
        _energy_item(
            "Non-Summer Energy",
            sum((m.total_usage for m in non_summer_months), 0.0),
            rate.non_summer_cost,
        )
    )
    return BillBreakdown(
        plan_id=rate.plan_id,
        name=rate.name,
        label=rate.label,
        kind=rate.kind,
        line_items=tuple(line_items),
        total=sum((m.monthly_total for m in months), 0.0),
        monthly=tuple(months),
        tiers=rate.tiers,
    )


PRICERS: dict[PlanKind, Callable[[UsageAggregate, Any], BillBreakdown]] = {
    PlanKind.ENERGY_ONLY: price_energy_only,
    PlanKind.SUPER_OFF_PEAK: price_super_off_peak,
    PlanKind.DEMAND: price_demand,
    PlanKind.TIERED: price_tiered,
}


def price_plan(aggregate: UsageAggregate, rate: PlanRate) -> BillBreakdown:
    return PRICERS[rate.kind](aggregate, rate)


def fuel_cost_recovery(aggregate: UsageAggregate, riders: RiderRate) -> float:
    """Fuel charge on every kWh, at the rate of the month it was used in."""
    return sum(
        (
            usage.total_energy * riders.fuel_rate(month)
            for (_, month), usage in aggregate.monthly_usage.items()
        ),
        0.0,
    )


def estimate_bill(
    bill: BillBreakdown, aggregate: UsageAggregate, riders: RiderRate
) -> BillEstimate:
    """Add fuel cost recovery and taxes to a plan total.

    Taxes apply to the plan total plus the fuel charge. The bill itself is
    left untouched.
    """
    fuel = fuel_cost_recovery(aggregate, riders)
    return BillEstimate(
        plan_id=bill.plan_id,
        label=bill.label,
        base_total=bill.total,
        fuel_cost_recovery=fuel,
        taxes=(bill.total + fuel) * riders.tax_rate,
    )


@dataclass(frozen=True)
class PlanComparison:
    """Bills for every plan, priced from the same aggregate."""

    aggregate: UsageAggregate
    bills: Mapping[str, BillBreakdown]
    riders: RiderRate | None = None

    def __getitem__(self, plan_id: str) -> BillBreakdown:
        return self.bills[plan_id]

    def totals(self) -> pd.Series:
        return pd.Series(
            {plan_id: bill.total for plan_id, bill in self.bills.items()},
            name="total",
            dtype=float,
        )

    def estimates(self, riders: RiderRate | None = None) -> dict[str, BillEstimate]:
        riders = riders or self.riders
        if riders is None:
            raise TariffError("No riders are configured for this rate schedule")
        return {
            plan_id: estimate_bill(bill, self.aggregate, riders)
            for plan_id, bill in self.bills.items()
        }

    def cheapest(self) -> str | None:
        if not self.bills:
            return None
        return min(self.bills, key=lambda plan_id: self.bills[plan_id].total)

    def summary(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "plan_id": bill.plan_id,
                    "label": bill.label,
                    "fixed_charge": bill.fixed_charge,
                    "energy_charge": bill.energy_charge,
                    "demand_charge": bill.demand_charge,
                    "total": bill.total,
                }
                for bill in self.bills.values()
            ],
            columns=[
                "plan_id",
                "label",
                "fixed_charge",
                "energy_charge",
                "demand_charge",
                "total",
            ],
        )


def compare_plans(
    usage: Any,
    rate_book: RateBook | None = None,
    window: BillingWindow | None = None,
) -> PlanComparison:
    """Price usage under every plan in ``rate_book``.

    ``usage`` is either a ready :class:`UsageAggregate` or anything accepted
    by :func:`aggregate_usage`. ``window`` only applies to raw readings.
    """
    rate_book = rate_book or load_rate_book()
    if isinstance(usage, UsageAggregate):
        aggregate = usage
    else:
        aggregate = aggregate_usage(usage, window=window, schedule=rate_book.schedule)
    bills = {rate.plan_id: price_plan(aggregate, rate) for rate in rate_book.plans}
    return PlanComparison(aggregate=aggregate, bills=bills, riders=rate_book.riders)


__all__ = [
    "PRICERS",
    "PlanComparison",
    "compare_plans",
    "estimate_bill",
    "fuel_cost_recovery",
    "price_demand",
    "price_energy_only",
    "price_plan",
    "price_super_off_peak",
    "price_tiered",
    "split_tiers",
]
