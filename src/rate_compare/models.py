"""Shared data structures for the rate comparison engine.

Energy quantities are kWh, demand quantities are kW (the largest single
reading of a month) and every cost or rate is in dollars.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

from rate_compare.errors import InvalidUsageInput

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

MonthKey = tuple[int, int]


class OnOffPeriod(Enum):
    """Two-way classification shared by the energy-only and demand plans."""

    ON_PEAK = "on_peak"
    OFF_PEAK = "off_peak"


class ThreeTierPeriod(Enum):
    """Three-way classification used by the overnight plan."""

    ON_PEAK = "on_peak"
    OFF_PEAK = "off_peak"
    SUPER_OFF_PEAK = "super_off_peak"


class PlanKind(Enum):
    ENERGY_ONLY = "energy_only"
    SUPER_OFF_PEAK = "super_off_peak"
    DEMAND = "demand"
    TIERED = "tiered"


class ChargeKind(Enum):
    FIXED = "fixed"
    ENERGY = "energy"
    DEMAND = "demand"


@dataclass(frozen=True)
class Reading:
    """One meter reading: energy used in the interval starting at timestamp."""

    timestamp: datetime
    energy_kwh: float

    @classmethod
    def parse(cls, timestamp: str, energy_kwh: float | str) -> Reading:
        try:
            parsed = datetime.strptime(timestamp.strip(), TIMESTAMP_FORMAT)
        except ValueError as exc:
            raise InvalidUsageInput(f"invalid timestamp: {timestamp!r}") from exc
        try:
            value = float(energy_kwh)
        except (TypeError, ValueError) as exc:
            raise InvalidUsageInput(f"invalid energy value: {energy_kwh!r}") from exc
        return cls(timestamp=parsed, energy_kwh=value)


@dataclass(frozen=True)
class BillingWindow:
    """Inclusive date range of readings to bill. ``None`` leaves a side open."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InvalidUsageInput(
                f"billing window start {self.start} is after end {self.end}"
            )

    def contains(self, target: date) -> bool:
        if self.start is not None and target < self.start:
            return False
        if self.end is not None and target > self.end:
            return False
        return True

    def mask(self, index: pd.DatetimeIndex) -> Any:
        days = index.normalize()
        keep = np.ones(len(index), dtype=bool)
        if self.start is not None:
            keep &= days >= pd.Timestamp(self.start)
        if self.end is not None:
            keep &= days <= pd.Timestamp(self.end)
        return keep


@dataclass(frozen=True)
class DailyUsage:
    """Energy used on one calendar date, split by both period schemes."""

    date: date
    total: float = 0.0
    on_peak_a: float = 0.0
    off_peak_a: float = 0.0
    on_peak_b: float = 0.0
    off_peak_b: float = 0.0
    super_off_peak_b: float = 0.0

    def __add__(self, other: DailyUsage) -> DailyUsage:
        if not isinstance(other, DailyUsage):
            return NotImplemented
        if other.date != self.date:
            raise InvalidUsageInput(
                f"cannot combine usage for {self.date} with {other.date}"
            )
        return DailyUsage(
            date=self.date,
            total=self.total + other.total,
            on_peak_a=self.on_peak_a + other.on_peak_a,
            off_peak_a=self.off_peak_a + other.off_peak_a,
            on_peak_b=self.on_peak_b + other.on_peak_b,
            off_peak_b=self.off_peak_b + other.off_peak_b,
            super_off_peak_b=self.super_off_peak_b + other.super_off_peak_b,
        )

    @property
    def month(self) -> MonthKey:
        return (self.date.year, self.date.month)


@dataclass(frozen=True)
class MonthlyUsage:
    """Energy billed in one calendar month and the number of dates billed."""

    year: int
    month: int
    total_energy: float
    day_count: int


@dataclass(frozen=True)
class PeakSchedule:
    """Time windows that drive period classification.

    Weekdays use ISO numbering (Monday is 1). Hour windows are half-open
    ``[start, end)`` and wrap past midnight when ``start > end``.
    """

    on_peak_months: frozenset[int]
    on_peak_weekdays: frozenset[int]
    on_peak_start_hour: int
    on_peak_end_hour: int
    super_off_peak_start_hour: int
    super_off_peak_end_hour: int


@dataclass(frozen=True)
class TimeOfUseRate:
    plan_id: str
    name: str
    label: str
    kind: PlanKind
    fixed_daily: float
    on_peak: float
    off_peak: float
    super_off_peak: float = 0.0
    demand_per_kw: float = 0.0


@dataclass(frozen=True)
class ConsumptionTier:
    start_kwh: float
    end_kwh: float | None
    cost: float

    @property
    def width_kwh(self) -> float:
        if self.end_kwh is None:
            return float("inf")
        return self.end_kwh - self.start_kwh


@dataclass(frozen=True)
class TieredRate:
    plan_id: str
    name: str
    label: str
    fixed_daily: float
    summer_months: frozenset[int]
    tiers: tuple[ConsumptionTier, ...]
    non_summer_cost: float

    @property
    def kind(self) -> PlanKind:
        return PlanKind.TIERED

    def is_summer(self, month: int) -> bool:
        return month in self.summer_months


PlanRate = TimeOfUseRate | TieredRate


@dataclass(frozen=True)
class RiderRate:
    """Per-kWh fuel cost recovery and a flat tax and fee percentage.

    Riders are charged on top of every plan alike, so they only move the
    estimated amount due, never the ranking of plans.
    """

    summer_months: frozenset[int]
    fuel_summer: float
    fuel_non_summer: float
    tax_rate: float

    def fuel_rate(self, month: int) -> float:
        if month in self.summer_months:
            return self.fuel_summer
        return self.fuel_non_summer


@dataclass(frozen=True)
class RateBook:
    """Every plan priced in one comparison plus the shared period schedule."""

    schedule: PeakSchedule
    plans: tuple[PlanRate, ...]
    riders: RiderRate | None = None

    def plan(self, plan_id: str) -> PlanRate:
        for rate in self.plans:
            if rate.plan_id == plan_id:
                return rate
        raise KeyError(f"Plan not found: {plan_id}")

    def plan_ids(self) -> tuple[str, ...]:
        return tuple(rate.plan_id for rate in self.plans)


@dataclass(frozen=True)
class LineItem:
    label: str
    kind: ChargeKind
    quantity: float
    unit: str
    rate: float
    cost: float


@dataclass(frozen=True)
class DemandCharge:
    year: int
    month: int
    peak_kw: float
    rate: float
    charge: float


@dataclass(frozen=True)
class TieredMonth:
    year: int
    month: int
    is_summer: bool
    tier1: float
    tier2: float
    tier3: float
    fixed: float
    energy_cost: float
    monthly_total: float
    total_usage: float
    day_count: int


@dataclass(frozen=True)
class BillBreakdown:
    """Itemized bill for one plan over the whole billing window."""

    plan_id: str
    name: str
    label: str
    kind: PlanKind
    line_items: tuple[LineItem, ...]
    total: float
    demand_charges: tuple[DemandCharge, ...] = field(default_factory=tuple)
    monthly: tuple[TieredMonth, ...] = field(default_factory=tuple)
    tiers: tuple[ConsumptionTier, ...] = field(default_factory=tuple)

    def charge(self, kind: ChargeKind) -> float:
        return sum((item.cost for item in self.line_items if item.kind is kind), 0.0)

    @property
    def fixed_charge(self) -> float:
        return self.charge(ChargeKind.FIXED)

    @property
    def energy_charge(self) -> float:
        return self.charge(ChargeKind.ENERGY)

    @property
    def demand_charge(self) -> float:
        return self.charge(ChargeKind.DEMAND)

    def item(self, label: str) -> LineItem:
        for line in self.line_items:
            if line.label == label:
                return line
        raise KeyError(f"Line item not found: {label}")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "label": item.label,
                    "kind": item.kind.value,
                    "quantity": item.quantity,
                    "unit": item.unit,
                    "rate": item.rate,
                    "cost": item.cost,
                }
                for item in self.line_items
            ],
            columns=["label", "kind", "quantity", "unit", "rate", "cost"],
        )

    def describe(self) -> dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "name": self.name,
            "label": self.label,
            "kind": _label_value(self.kind),
            "total": self.total,
            "line_items": self.to_frame().to_dict(orient="records"),
        }


@dataclass(frozen=True)
class BillEstimate:
    """A plan total with estimated riders and taxes added."""

    plan_id: str
    label: str
    base_total: float
    fuel_cost_recovery: float
    taxes: float

    @property
    def total(self) -> float:
        return self.base_total + self.fuel_cost_recovery + self.taxes


@dataclass(frozen=True)
class CoverageReport:
    """How much of the calendar a set of readings spans."""

    start: datetime | None
    end: datetime | None
    reading_count: int
    gap_count: int

    @property
    def span_days(self) -> float:
        if self.start is None or self.end is None:
            return 0.0
        return (self.end - self.start).total_seconds() / 86400

    @property
    def full_years(self) -> int:
        return int(self.span_days // 365)

def _label_value(value: Any) -> str:
    if isinstance(value, Enum):
        return value.value
    return str(value)
