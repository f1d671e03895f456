"""Composition of stored readings into the snapshots behind each page."""

from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Mapping, Optional

from models.records import Reading
from models.schemas import ElectricityReport, GasReport, MeterOverview, OverviewReport
from services.aggregator import SeriesAggregator, actual_date
from settings import get_settings
from storage.log_store import DailyLogStore, build_default_store


def tariff_label(tariff: int) -> str:
    return "1 (low)" if tariff == 1 else "2 (high)"


def meter_overview(reading: Reading) -> MeterOverview:
    """Overview table values; ``has_data`` is False for the empty reading."""
    if reading.is_empty:
        return MeterOverview(has_data=False)

    current = 0.0
    if reading.voltage_l1:
        current = round(1000.0 * reading.power_delivered_kw / reading.voltage_l1, 3)

    return MeterOverview(
        has_data=True,
        electricity_tariff1_kwh=reading.electricity_tariff1_kwh,
        electricity_tariff2_kwh=reading.electricity_tariff2_kwh,
        tariff=tariff_label(reading.tariff),
        power_kw=reading.power_delivered_kw,
        voltage_v=reading.voltage_l1,
        current_a=current,
        gas_delivered_m3=reading.gas_delivered_m3,
        electricity_meter_id=reading.electricity_meter_id,
        gas_meter_id=reading.gas_meter_id,
        power_failures=reading.power_failures_any_phase,
        long_power_failures=reading.long_power_failures_any_phase,
        voltage_sags_l1=reading.voltage_sags_l1,
        voltage_swells_l1=reading.voltage_swells_l1,
    )


def _last_of(readings: Mapping[str, Reading]) -> Optional[Reading]:
    if not readings:
        return None
    return readings[next(reversed(readings.keys()))]


class ReportService:
    """Keeps no state between calls; every call re-reads the log directory."""

    def __init__(
        self,
        store: DailyLogStore,
        aggregator: SeriesAggregator,
        daily_window: int = 30,
        monthly_window: int = 12,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.daily_window = daily_window
        self.monthly_window = monthly_window

    def overview(self, today: Optional[date] = None) -> OverviewReport:
        today = today or date.today()
        latest = self.store.get_most_recent_reading()
        readings = self.store.get_readings_for_date(today)
        return OverviewReport(
            meter=meter_overview(latest),
            power=self.aggregator.power_day(readings),
            gas=self.aggregator.gas_day(readings),
            cumulative_power=self.aggregator.cumulative_power_day(readings),
            cumulative_gas=self.aggregator.cumulative_gas_day(readings),
        )

    def electricity(self, day: date, today: Optional[date] = None) -> ElectricityReport:
        today = today or date.today()
        readings = self.store.get_readings_for_date(day)
        shown = actual_date(readings)
        target = shown or day

        day_starts = self.store.get_daily_totals(self.daily_window, until=target)
        months = self.store.get_monthly_totals(target.year, target.month, self.monthly_window)
        return ElectricityReport(
            actual_date=shown,
            meter=self._overview_if_today(shown, today),
            power=self.aggregator.power_day(readings),
            cumulative_power=self.aggregator.cumulative_power_day(readings),
            voltage=self.aggregator.voltage_day(readings),
            energy_per_hour=self.aggregator.energy_per_hour(readings),
            energy_per_day=self.aggregator.energy_per_day(day_starts, _last_of(readings)),
            energy_per_month=self.aggregator.energy_per_month(months),
        )

    def gas(self, day: date, today: Optional[date] = None) -> GasReport:
        today = today or date.today()
        readings = self.store.get_readings_for_date(day)
        shown = actual_date(readings)
        target = shown or day

        day_starts = self.store.get_daily_totals(self.daily_window, until=target)
        months = self.store.get_monthly_totals(target.year, target.month, self.monthly_window)
        return GasReport(
            actual_date=shown,
            meter=self._overview_if_today(shown, today),
            gas=self.aggregator.gas_day(readings),
            cumulative_gas=self.aggregator.cumulative_gas_day(readings),
            gas_per_day=self.aggregator.gas_per_day(day_starts, _last_of(readings)),
            gas_per_month=self.aggregator.gas_per_month(months),
        )

    def comparison(self) -> MeterOverview:
        return meter_overview(self.store.get_most_recent_reading())

    def _overview_if_today(self, shown: Optional[date], today: date) -> Optional[MeterOverview]:
        if shown != today:
            return None
        return meter_overview(self.store.get_most_recent_reading())


@lru_cache
def build_default_report_service(data_dir: Optional[str] = None) -> ReportService:
    """Factory that wires the report service from settings."""
    settings = get_settings()
    return ReportService(
        store=build_default_store(data_dir),
        aggregator=SeriesAggregator(),
        daily_window=settings.daily_window,
        monthly_window=settings.monthly_window,
    )
