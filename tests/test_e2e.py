"""End-to-end scenarios from raw interval data to the four bills."""

import pandas as pd
import pytest

import rate_compare as rc


def _household_15min(start: str, days: int) -> pd.Series:
    dates = pd.date_range(start, periods=96 * days, freq="15min")
    usage = []
    for ts in dates:
        if ts.hour >= 23 or ts.hour < 6:
            base = 0.3
        elif 14 <= ts.hour < 19:
            base = 1.0 if ts.dayofweek < 5 else 0.6
        else:
            base = 0.5
        usage.append(base)
    return pd.Series(usage, index=dates)


def test_e2e_summer_month_interval_data():
    usage = _household_15min("2024-07-01", 31)
    comparison = rc.compare_plans(usage)
    aggregate = comparison.aggregate

    assert aggregate.billing_days == 31
    assert aggregate.total == pytest.approx(usage.sum())
    assert aggregate.monthly_peaks == {(2024, 7): 1.0}

    # 23 weekdays in July 2024, 20 on-peak quarter hours each at 1.0 kWh
    on_peak = aggregate.on_off_total(rc.OnOffPeriod.ON_PEAK)
    assert on_peak == pytest.approx(23 * 20 * 1.0)

    reo = comparison["tou_reo"]
    assert reo.total == pytest.approx(
        31 * 0.4603 + on_peak * 0.297868 + (usage.sum() - on_peak) * 0.076281
    )

    rd = comparison["tou_rd"]
    assert rd.demand_charge == pytest.approx(12.21)

    (july,) = comparison["r30"].monthly
    assert july.is_summer
    assert july.tier1 + july.tier2 + july.tier3 == pytest.approx(july.total_usage)


def test_e2e_window_spanning_seasons():
    usage = pd.concat(
        [_household_15min("2024-09-20", 20), _household_15min("2025-01-25", 10)]
    )
    window = rc.BillingWindow(
        start=pd.Timestamp("2024-09-25").date(), end=pd.Timestamp("2025-01-31").date()
    )
    comparison = rc.compare_plans(usage, window=window)

    months = [(m.year, m.month, m.day_count) for m in comparison["r30"].monthly]
    assert months == [(2024, 9, 6), (2024, 10, 9), (2025, 1, 7)]
    assert [c.month for c in comparison["tou_rd"].demand_charges] == [9, 10, 1]
    assert comparison.aggregate.billing_days == 22
    assert comparison["tou_oa"].fixed_charge == pytest.approx(22 * 0.4603)
