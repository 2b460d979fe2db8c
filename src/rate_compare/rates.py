"""Rate schedule loader for the packaged plans.json data."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import IO, Any

from rate_compare.errors import TariffError
from rate_compare.models import (
    ConsumptionTier,
    PeakSchedule,
    PlanKind,
    PlanRate,
    RateBook,
    RiderRate,
    TieredRate,
    TimeOfUseRate,
)

TIER_COUNT = 3


class TariffJSONLoader:
    def __init__(
        self,
        filename: str = "plans.json",
        package: str = "rate_compare.data",
        path: str | Path | None = None,
    ) -> None:
        self._filename = filename
        self._package = package
        self._path = Path(path) if path is not None else None
        self._data: dict[str, Any] | None = None

    def _open_resource(self) -> IO[str]:
        if self._path is not None:
            try:
                return self._path.open("r", encoding="utf-8")
            except OSError as exc:
                raise TariffError(
                    f"Cannot read tariff file {self._path}: {exc}"
                ) from exc
        try:
            resource = resources.files(self._package).joinpath(self._filename)
            return resource.open("r", encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise TariffError(
                f"Tariff file not found in package: {self._package}/{self._filename}"
            ) from exc

    def load(self) -> dict[str, Any]:
        if self._data is None:
            with self._open_resource() as f:
                try:
                    data = json.load(f)
                except json.JSONDecodeError as exc:
                    raise TariffError(f"Tariff file is not valid JSON: {exc}") from exc
            if not isinstance(data, dict):
                raise TariffError("Tariff file must contain a JSON object")
            self._data = data
        return self._data

    def _find_plan(self, plan_id: str) -> dict[str, Any]:
        data = self.load()
        for plan in data.get("plans", []):
            if plan.get("id") == plan_id:
                return plan
        raise TariffError(f"Plan not found: {plan_id}")

    def list_plan_ids(self) -> tuple[str, ...]:
        return tuple(plan["id"] for plan in self.load().get("plans", []))

    def get_schedule(self) -> PeakSchedule:
        try:
            section = self.load()["schedule"]
            on_peak = section["on_peak"]
            super_off_peak = section["super_off_peak"]
            return PeakSchedule(
                on_peak_months=frozenset(int(m) for m in on_peak["months"]),
                on_peak_weekdays=frozenset(int(d) for d in on_peak["weekdays"]),
                on_peak_start_hour=int(on_peak["start_hour"]),
                on_peak_end_hour=int(on_peak["end_hour"]),
                super_off_peak_start_hour=int(super_off_peak["start_hour"]),
                super_off_peak_end_hour=int(super_off_peak["end_hour"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TariffError(f"Invalid period schedule: {exc!r}") from exc

    def get_plan_rate(self, plan_id: str) -> PlanRate:
        plan = self._find_plan(plan_id)
        try:
            kind = PlanKind(plan["type"])
            fixed_daily = float(
                plan.get("fixed_daily_charge", self.load()["fixed_daily_charge"])
            )
            if kind is PlanKind.TIERED:
                return self._tiered_rate(plan, fixed_daily)
            rates = plan["rates"]
            return TimeOfUseRate(
                plan_id=plan_id,
                name=str(plan.get("name", plan_id)),
                label=str(plan.get("label", plan_id)),
                kind=kind,
                fixed_daily=fixed_daily,
                on_peak=float(rates["on_peak"]),
                off_peak=float(rates["off_peak"]),
                super_off_peak=(
                    float(rates["super_off_peak"])
                    if kind is PlanKind.SUPER_OFF_PEAK
                    else 0.0
                ),
                demand_per_kw=(
                    float(plan["demand_per_kw"]) if kind is PlanKind.DEMAND else 0.0
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TariffError(f"Invalid rates for plan {plan_id}: {exc!r}") from exc

    def _tiered_rate(self, plan: dict[str, Any], fixed_daily: float) -> TieredRate:
        tiers = tuple(
            ConsumptionTier(
                start_kwh=float(item["min"]),
                end_kwh=float(item["max"]) if item["max"] is not None else None,
                cost=float(item["summer"]),
            )
            for item in sorted(plan["tiers"], key=lambda x: float(x["min"]))
        )
        if len(tiers) != TIER_COUNT:
            raise TariffError(
                f"Plan {plan['id']} must define {TIER_COUNT} tiers, got {len(tiers)}"
            )
        if tiers[0].start_kwh != 0:
            raise TariffError(f"Plan {plan['id']} first tier must start at 0 kWh")
        for lower, upper in zip(tiers, tiers[1:]):
            if lower.end_kwh is None or lower.end_kwh != upper.start_kwh:
                raise TariffError(f"Plan {plan['id']} tiers must be contiguous")
        return TieredRate(
            plan_id=plan["id"],
            name=str(plan.get("name", plan["id"])),
            label=str(plan.get("label", plan["id"])),
            fixed_daily=fixed_daily,
            summer_months=frozenset(int(m) for m in plan["summer_months"]),
            tiers=tiers,
            non_summer_cost=float(plan["non_summer"]),
        )

    def get_riders(self) -> RiderRate | None:
        section = self.load().get("riders")
        if section is None:
            return None
        try:
            fuel = section["fuel_cost_recovery"]
            return RiderRate(
                summer_months=frozenset(int(m) for m in fuel["summer_months"]),
                fuel_summer=float(fuel["summer"]),
                fuel_non_summer=float(fuel["non_summer"]),
                tax_rate=float(section["tax_rate"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TariffError(f"Invalid riders section: {exc!r}") from exc

    def rate_book(self) -> RateBook:
        return RateBook(
            schedule=self.get_schedule(),
            plans=tuple(self.get_plan_rate(pid) for pid in self.list_plan_ids()),
            riders=self.get_riders(),
        )


@lru_cache(maxsize=1)
def _packaged_rate_book() -> RateBook:
    return TariffJSONLoader().rate_book()


def load_rate_book(path: str | Path | None = None) -> RateBook:
    """Load every plan from ``path``, or from the packaged schedule if omitted."""
    if path is None:
        return _packaged_rate_book()
    return TariffJSONLoader(path=path).rate_book()


def default_schedule() -> PeakSchedule:
    return _packaged_rate_book().schedule


__all__ = ["TariffJSONLoader", "default_schedule", "load_rate_book"]
