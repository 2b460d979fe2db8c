"""Billing-period classification for time-of-use plans.

Two schemes are evaluated for every reading:

* on/off-peak, shared by the energy-only and demand plans;
* on/off/super-off-peak, used by the overnight plan. On-peak takes
  precedence over the super-off-peak window.

Timestamps are read at their wall-clock value; no timezone conversion is
applied. Each classifier accepts a ``datetime`` or a ``pandas.DatetimeIndex``.
"""

from __future__ import annotations

import functools
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

from rate_compare.errors import InvalidUsageInput
from rate_compare.models import OnOffPeriod, PeakSchedule, ThreeTierPeriod
from rate_compare.rates import default_schedule


def _in_hour_window(hour: Any, start: int, end: int) -> Any:
    # Works on ints and numpy arrays alike.
    if start <= end:
        return (hour >= start) & (hour < end)
    return (hour >= start) | (hour < end)


def is_on_peak(target: datetime, schedule: PeakSchedule | None = None) -> bool:
    schedule = schedule or default_schedule()
    return bool(
        target.isoweekday() in schedule.on_peak_weekdays
        and target.month in schedule.on_peak_months
        and _in_hour_window(
            target.hour, schedule.on_peak_start_hour, schedule.on_peak_end_hour
        )
    )


def is_super_off_peak(target: datetime, schedule: PeakSchedule | None = None) -> bool:
    schedule = schedule or default_schedule()
    return bool(
        _in_hour_window(
            target.hour,
            schedule.super_off_peak_start_hour,
            schedule.super_off_peak_end_hour,
        )
    )


def on_peak_mask(
    index: pd.DatetimeIndex, schedule: PeakSchedule | None = None
) -> np.ndarray:
    schedule = schedule or default_schedule()
    weekdays = np.asarray(index.dayofweek) + 1
    months = np.asarray(index.month)
    hours = np.asarray(index.hour)
    return (
        np.isin(weekdays, sorted(schedule.on_peak_weekdays))
        & np.isin(months, sorted(schedule.on_peak_months))
        & _in_hour_window(
            hours, schedule.on_peak_start_hour, schedule.on_peak_end_hour
        )
    )


def super_off_peak_mask(
    index: pd.DatetimeIndex, schedule: PeakSchedule | None = None
) -> np.ndarray:
    schedule = schedule or default_schedule()
    return _in_hour_window(
        np.asarray(index.hour),
        schedule.super_off_peak_start_hour,
        schedule.super_off_peak_end_hour,
    )


@functools.singledispatch
def classify_on_off(target: object, schedule: PeakSchedule | None = None) -> Any:
    raise InvalidUsageInput(f"Unsupported type: {type(target)}")


@classify_on_off.register(datetime)
def _(target: datetime, schedule: PeakSchedule | None = None) -> OnOffPeriod:
    if is_on_peak(target, schedule):
        return OnOffPeriod.ON_PEAK
    return OnOffPeriod.OFF_PEAK


@classify_on_off.register(pd.DatetimeIndex)
def _(target: pd.DatetimeIndex, schedule: PeakSchedule | None = None) -> pd.Series:
    labels = np.full(len(target), OnOffPeriod.OFF_PEAK, dtype=object)
    labels[on_peak_mask(target, schedule)] = OnOffPeriod.ON_PEAK
    return pd.Series(labels, index=target, name="period")


@functools.singledispatch
def classify_three_tier(target: object, schedule: PeakSchedule | None = None) -> Any:
    raise InvalidUsageInput(f"Unsupported type: {type(target)}")


@classify_three_tier.register(datetime)
def _(target: datetime, schedule: PeakSchedule | None = None) -> ThreeTierPeriod:
    if is_on_peak(target, schedule):
        return ThreeTierPeriod.ON_PEAK
    if is_super_off_peak(target, schedule):
        return ThreeTierPeriod.SUPER_OFF_PEAK
    return ThreeTierPeriod.OFF_PEAK


@classify_three_tier.register(pd.DatetimeIndex)
def _(target: pd.DatetimeIndex, schedule: PeakSchedule | None = None) -> pd.Series:
    on_peak = on_peak_mask(target, schedule)
    super_off_peak = super_off_peak_mask(target, schedule) & ~on_peak
    labels = np.full(len(target), ThreeTierPeriod.OFF_PEAK, dtype=object)
    labels[super_off_peak] = ThreeTierPeriod.SUPER_OFF_PEAK
    labels[on_peak] = ThreeTierPeriod.ON_PEAK
    return pd.Series(labels, index=target, name="period")


def get_context(
    target: datetime, schedule: PeakSchedule | None = None
) -> dict[str, Any]:
    """Return both classifications of a single timestamp."""
    return {
        "on_off": classify_on_off(target, schedule),
        "three_tier": classify_three_tier(target, schedule),
    }


__all__ = [
    "classify_on_off",
    "classify_three_tier",
    "get_context",
    "is_on_peak",
    "is_super_off_peak",
    "on_peak_mask",
    "super_off_peak_mask",
]
