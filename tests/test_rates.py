import json

import pytest

from rate_compare.errors import TariffError
from rate_compare.models import PlanKind, TieredRate, TimeOfUseRate
from rate_compare.rates import TariffJSONLoader, default_schedule, load_rate_book


def _packaged_data() -> dict:
    return json.loads(json.dumps(TariffJSONLoader().load()))


def _write(tmp_path, data: dict):
    path = tmp_path / "plans.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_packaged_rates() -> None:
    book = load_rate_book()
    assert book.plan_ids() == ("tou_reo", "tou_oa", "tou_rd", "r30")

    reo = book.plan("tou_reo")
    assert isinstance(reo, TimeOfUseRate)
    assert (reo.on_peak, reo.off_peak, reo.fixed_daily) == (0.297868, 0.076281, 0.4603)

    oa = book.plan("tou_oa")
    assert oa.kind is PlanKind.SUPER_OFF_PEAK
    assert (oa.on_peak, oa.off_peak, oa.super_off_peak) == (0.297868, 0.101676, 0.021859)

    rd = book.plan("tou_rd")
    assert (rd.on_peak, rd.off_peak, rd.demand_per_kw) == (0.142986, 0.015288, 12.21)

    r30 = book.plan("r30")
    assert isinstance(r30, TieredRate)
    assert [t.cost for t in r30.tiers] == [0.086121, 0.143047, 0.148051]
    assert [t.end_kwh for t in r30.tiers] == [650.0, 1000.0, None]
    assert r30.non_summer_cost == 0.080602
    assert r30.summer_months == frozenset({6, 7, 8, 9})


def test_packaged_schedule() -> None:
    schedule = default_schedule()
    assert schedule.on_peak_months == frozenset({6, 7, 8, 9})
    assert schedule.on_peak_weekdays == frozenset({1, 2, 3, 4, 5})
    assert (schedule.on_peak_start_hour, schedule.on_peak_end_hour) == (14, 19)
    assert (
        schedule.super_off_peak_start_hour,
        schedule.super_off_peak_end_hour,
    ) == (23, 7)


def test_unknown_plan() -> None:
    with pytest.raises(KeyError):
        load_rate_book().plan("does_not_exist")
    with pytest.raises(TariffError):
        TariffJSONLoader().get_plan_rate("does_not_exist")


def test_override_file(tmp_path) -> None:
    data = _packaged_data()
    data["fixed_daily_charge"] = 0.5
    data["plans"][0]["rates"]["on_peak"] = 0.3
    data["plans"][1]["fixed_daily_charge"] = 0.25
    book = load_rate_book(_write(tmp_path, data))

    assert book.plan("tou_reo").on_peak == 0.3
    assert book.plan("tou_reo").fixed_daily == 0.5
    assert book.plan("tou_oa").fixed_daily == 0.25


def test_missing_file(tmp_path) -> None:
    with pytest.raises(TariffError):
        load_rate_book(tmp_path / "absent.json")


def test_invalid_json(tmp_path) -> None:
    path = tmp_path / "plans.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(TariffError):
        load_rate_book(path)


def test_missing_rate_key(tmp_path) -> None:
    data = _packaged_data()
    del data["plans"][2]["demand_per_kw"]
    with pytest.raises(TariffError):
        load_rate_book(_write(tmp_path, data))


def test_unknown_plan_type(tmp_path) -> None:
    data = _packaged_data()
    data["plans"][0]["type"] = "critical_peak"
    with pytest.raises(TariffError):
        load_rate_book(_write(tmp_path, data))


def test_tiers_must_be_contiguous(tmp_path) -> None:
    data = _packaged_data()
    data["plans"][3]["tiers"][1]["min"] = 700
    with pytest.raises(TariffError):
        load_rate_book(_write(tmp_path, data))


def test_tier_count_is_checked(tmp_path) -> None:
    data = _packaged_data()
    data["plans"][3]["tiers"] = data["plans"][3]["tiers"][:2]
    with pytest.raises(TariffError):
        load_rate_book(_write(tmp_path, data))


def test_broken_schedule(tmp_path) -> None:
    data = _packaged_data()
    del data["schedule"]["super_off_peak"]
    with pytest.raises(TariffError):
        load_rate_book(_write(tmp_path, data))


def test_packaged_riders() -> None:
    riders = load_rate_book().riders

    assert riders is not None
    assert riders.fuel_rate(7) == 0.045876
    assert riders.fuel_rate(12) == 0.042859
    assert riders.tax_rate == 0.12


def test_riders_are_optional(tmp_path) -> None:
    data = _packaged_data()
    del data["riders"]
    assert load_rate_book(_write(tmp_path, data)).riders is None


def test_broken_riders(tmp_path) -> None:
    data = _packaged_data()
    del data["riders"]["tax_rate"]
    with pytest.raises(TariffError, match="riders"):
        load_rate_book(_write(tmp_path, data))
