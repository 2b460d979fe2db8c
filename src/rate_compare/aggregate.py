"""Fold meter readings into daily and monthly usage buckets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd

from rate_compare.errors import InvalidUsageInput
from rate_compare.models import (
    TIMESTAMP_FORMAT,
    BillingWindow,
    DailyUsage,
    MonthKey,
    MonthlyUsage,
    OnOffPeriod,
    PeakSchedule,
    Reading,
    ThreeTierPeriod,
)
from rate_compare.periods import classify_on_off, classify_three_tier

ON_OFF_COLUMNS = {
    OnOffPeriod.ON_PEAK: "on_peak_a",
    OnOffPeriod.OFF_PEAK: "off_peak_a",
}

THREE_TIER_COLUMNS = {
    ThreeTierPeriod.ON_PEAK: "on_peak_b",
    ThreeTierPeriod.OFF_PEAK: "off_peak_b",
    ThreeTierPeriod.SUPER_OFF_PEAK: "super_off_peak_b",
}

DAILY_COLUMNS = ["total", *ON_OFF_COLUMNS.values(), *THREE_TIER_COLUMNS.values()]


@dataclass(frozen=True)
class UsageAggregate:
    """Daily usage per date and the largest single reading per month."""

    daily: Mapping[date, DailyUsage] = field(default_factory=dict)
    monthly_peaks: Mapping[MonthKey, float] = field(default_factory=dict)

    @property
    def billing_days(self) -> int:
        return len(self.daily)

    @property
    def months(self) -> list[MonthKey]:
        return sorted({usage.month for usage in self.daily.values()})

    @property
    def monthly_usage(self) -> dict[MonthKey, MonthlyUsage]:
        totals: dict[MonthKey, float] = {}
        counts: dict[MonthKey, int] = {}
        for day in sorted(self.daily):
            usage = self.daily[day]
            totals[usage.month] = totals.get(usage.month, 0.0) + usage.total
            counts[usage.month] = counts.get(usage.month, 0) + 1
        return {
            key: MonthlyUsage(
                year=key[0],
                month=key[1],
                total_energy=totals[key],
                day_count=counts[key],
            )
            for key in sorted(totals)
        }

    def period_total(self, column: str) -> float:
        if column not in DAILY_COLUMNS:
            raise KeyError(f"Unknown usage column: {column}")
        values = (getattr(self.daily[day], column) for day in sorted(self.daily))
        return sum(values, 0.0)

    @property
    def total(self) -> float:
        return self.period_total("total")

    def on_off_total(self, period: OnOffPeriod) -> float:
        return self.period_total(ON_OFF_COLUMNS[period])

    def three_tier_total(self, period: ThreeTierPeriod) -> float:
        return self.period_total(THREE_TIER_COLUMNS[period])

    def merge(self, other: UsageAggregate) -> UsageAggregate:
        """Combine aggregates built from disjoint sets of readings."""
        daily = dict(self.daily)
        for day, usage in other.daily.items():
            daily[day] = daily[day] + usage if day in daily else usage
        peaks = dict(self.monthly_peaks)
        for key, peak in other.monthly_peaks.items():
            peaks[key] = max(peaks[key], peak) if key in peaks else peak
        return UsageAggregate(
            daily={day: daily[day] for day in sorted(daily)},
            monthly_peaks={key: peaks[key] for key in sorted(peaks)},
        )

    def to_frame(self) -> pd.DataFrame:
        records = [
            {
                "date": day,
                **{col: getattr(self.daily[day], col) for col in DAILY_COLUMNS},
            }
            for day in sorted(self.daily)
        ]
        return pd.DataFrame(records, columns=["date", *DAILY_COLUMNS])


def aggregate_usage(
    readings: Any,
    window: BillingWindow | None = None,
    schedule: PeakSchedule | None = None,
) -> UsageAggregate:
    """Classify and fold readings into a :class:`UsageAggregate`.

    Args:
        readings: ``pandas.Series`` of kWh indexed by a ``DatetimeIndex``, or an
            iterable of :class:`Reading` / ``(timestamp, kwh)`` pairs. String
            timestamps use the ``YYYY-MM-DD HH:MM`` format.
        window: Optional inclusive date range; readings outside it are dropped.
        schedule: Period schedule; defaults to the packaged one.

    Returns:
        The aggregate. It depends only on the set of readings, not their order.
    """
    usage = to_usage_series(readings)
    if window is not None:
        usage = usage[window.mask(usage.index)]
    if usage.empty:
        return UsageAggregate()

    # Canonical order makes every floating-point sum independent of input order.
    frame = pd.DataFrame({"timestamp": usage.index, "energy": usage.to_numpy()})
    frame = frame.sort_values(
        ["timestamp", "energy"], kind="mergesort", ignore_index=True
    )
    index = pd.DatetimeIndex(frame["timestamp"])
    energy = frame["energy"].to_numpy(dtype=float)

    buckets = {"total": energy}
    on_off = classify_on_off(index, schedule).to_numpy()
    for period, column in ON_OFF_COLUMNS.items():
        buckets[column] = np.where(on_off == period, energy, 0.0)
    three_tier = classify_three_tier(index, schedule).to_numpy()
    for period, column in THREE_TIER_COLUMNS.items():
        buckets[column] = np.where(three_tier == period, energy, 0.0)

    days = index.normalize()
    daily_frame = pd.DataFrame(buckets, index=days).groupby(level=0, sort=True).sum()
    daily = {
        ts.date(): DailyUsage(
            date=ts.date(), **{col: float(row[col]) for col in DAILY_COLUMNS}
        )
        for ts, row in daily_frame.iterrows()
    }

    peaks = pd.Series(energy, index=index).groupby([index.year, index.month]).max()
    monthly_peaks = {
        (int(year), int(month)): float(value) for (year, month), value in peaks.items()
    }
    return UsageAggregate(daily=daily, monthly_peaks=monthly_peaks)


def to_usage_series(readings: Any) -> pd.Series:
    """Normalise supported reading containers to a float kWh series."""
    if isinstance(readings, UsageAggregate):
        raise InvalidUsageInput("readings are already aggregated")
    if isinstance(readings, pd.Series):
        if not isinstance(readings.index, pd.DatetimeIndex):
            raise InvalidUsageInput("usage index must be a pandas.DatetimeIndex")
        try:
            usage = readings.astype(float)
        except (TypeError, ValueError) as exc:
            raise InvalidUsageInput(f"usage values must be numeric: {exc}") from exc
    elif isinstance(readings, Iterable) and not isinstance(readings, (str, bytes)):
        timestamps: list[datetime] = []
        values: list[float] = []
        for item in readings:
            reading = _coerce_reading(item)
            timestamps.append(reading.timestamp)
            values.append(reading.energy_kwh)
        usage = pd.Series(values, index=pd.DatetimeIndex(timestamps), dtype=float)
    else:
        raise InvalidUsageInput(f"Unsupported readings type: {type(readings)}")

    if usage.isna().any():
        raise InvalidUsageInput("usage series contains NaN values")
    if usage.index.hasnans:
        raise InvalidUsageInput("usage index contains missing timestamps")
    if usage.index.tz is not None:
        usage.index = usage.index.tz_localize(None)
    return usage.rename("kWh")


def _coerce_reading(item: Any) -> Reading:
    if isinstance(item, Reading):
        return item
    try:
        timestamp, energy = item
    except (TypeError, ValueError) as exc:
        raise InvalidUsageInput(f"cannot interpret reading: {item!r}") from exc
    if isinstance(timestamp, str):
        return Reading.parse(timestamp, energy)
    if isinstance(timestamp, datetime):
        try:
            return Reading(timestamp=timestamp, energy_kwh=float(energy))
        except (TypeError, ValueError) as exc:
            raise InvalidUsageInput(f"invalid energy value: {energy!r}") from exc
    raise InvalidUsageInput(
        f"timestamp must be a datetime or a {TIMESTAMP_FORMAT!r} string: {timestamp!r}"
    )


__all__ = ["UsageAggregate", "aggregate_usage", "to_usage_series"]
