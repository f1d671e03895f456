"""Derived time series over decoded meter readings."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Callable, List, Mapping, Optional, Sequence

from models.records import Reading, seconds_of_day
from models.schemas import BarSeries, LineSeries

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440
HOURS_PER_DAY = 24

POWER_TITLE = "Power (kW)"
ENERGY_TITLE = "Energy (kWh)"
GAS_TITLE = "Gas (m3)"
VOLTAGE_TITLE = "Voltage L1 (V)"

Counter = Callable[[Reading], float]


def total_energy(reading: Reading) -> float:
    return reading.total_delivered_kwh


def gas_volume(reading: Reading) -> float:
    return reading.gas_delivered_m3


def actual_date(readings: Mapping[str, Reading]) -> Optional[date]:
    """Day a mapping of readings really covers, from its first reading."""
    first = next(iter(readings.values()), None)
    return first.reading_date if first is not None else None


def _minute_of(reading: Reading) -> float:
    return float(round(seconds_of_day(reading.timestamp) / 60))


def _hour_of(reading: Reading) -> int:
    return min(HOURS_PER_DAY - 1, math.floor(seconds_of_day(reading.timestamp) / 3600 + 0.5))


class SeriesAggregator:
    """Pure derivations; the result is only valid for the day or range passed in."""

    def instantaneous_day(
        self,
        readings: Mapping[str, Reading],
        attribute: str,
        title: str,
        pad_value: float = 0.0,
    ) -> LineSeries:
        x: List[float] = []
        y: List[float] = []
        for reading in self._day_readings(readings):
            x.append(_minute_of(reading))
            y.append(getattr(reading, attribute))
        self._pad(x, y, pad_value)
        return LineSeries(title=title, x=x, y=y)

    def power_day(self, readings: Mapping[str, Reading]) -> LineSeries:
        return self.instantaneous_day(readings, "power_delivered_kw", POWER_TITLE)

    def voltage_day(self, readings: Mapping[str, Reading]) -> LineSeries:
        return self.instantaneous_day(readings, "voltage_l1", VOLTAGE_TITLE, math.nan)

    def cumulative_day(
        self, readings: Mapping[str, Reading], counter: Counter, title: str
    ) -> LineSeries:
        """Counter growth since the first reading, held flat after the last one."""
        x: List[float] = []
        y: List[float] = []
        cumulative = 0.0
        if readings:
            start = counter(next(iter(readings.values())))
            for reading in self._day_readings(readings):
                cumulative = counter(reading) - start
                x.append(_minute_of(reading))
                y.append(cumulative)
        self._pad(x, y, cumulative)
        return LineSeries(title=title, x=x, y=y)

    def cumulative_power_day(self, readings: Mapping[str, Reading]) -> LineSeries:
        return self.cumulative_day(readings, total_energy, POWER_TITLE)

    def cumulative_gas_day(self, readings: Mapping[str, Reading]) -> LineSeries:
        return self.cumulative_day(readings, gas_volume, GAS_TITLE)

    def gas_day(self, readings: Mapping[str, Reading]) -> LineSeries:
        """Gas used per sample, non-zero only where a new gas capture arrived."""
        x: List[float] = []
        y: List[float] = []
        previous_volume: Optional[float] = None
        previous_capture = None
        for reading in self._day_readings(readings):
            x.append(_minute_of(reading))
            if previous_volume is None:
                y.append(0.0)
            else:
                y.append(reading.gas_delivered_m3 - previous_volume)
            if reading.gas_capture_time != previous_capture:
                previous_volume = reading.gas_delivered_m3
            previous_capture = reading.gas_capture_time
        self._pad(x, y, 0.0)
        return LineSeries(title=GAS_TITLE, x=x, y=y)

    def energy_per_hour(self, readings: Mapping[str, Reading]) -> BarSeries:
        labels = [f"{hour}:00" for hour in range(HOURS_PER_DAY)]
        values = [0.0] * HOURS_PER_DAY
        if not readings:
            return BarSeries(title=ENERGY_TITLE, labels=labels, values=values)

        # last counter seen in each hour bucket
        closing: dict[int, float] = {}
        for reading in self._day_readings(readings):
            closing[_hour_of(reading)] = reading.total_delivered_kwh

        previous = total_energy(next(iter(readings.values())))
        for hour in range(HOURS_PER_DAY):
            if hour in closing:
                values[hour] = closing[hour] - previous
                previous = closing[hour]
        return BarSeries(title=ENERGY_TITLE, labels=labels, values=values)

    def per_day(
        self,
        day_starts: Sequence[Reading],
        latest: Optional[Reading],
        counter: Counter,
        title: str,
    ) -> BarSeries:
        """Usage per day from day-start snapshots, closed by the latest reading."""
        series = BarSeries(title=title)
        if not day_starts:
            return series

        previous = day_starts[0]
        for snapshot in day_starts[1:]:
            if snapshot.reading_date == previous.reading_date:
                logger.warning(
                    "Consecutive day-start snapshots fall on the same day",
                    extra={
                        "reading_date": snapshot.reading_date,
                        "expected_date": previous.reading_date,
                    },
                )
            self._append_delta(
                series, previous.reading_date.isoformat(), counter(snapshot) - counter(previous)
            )
            previous = snapshot

        if latest is not None and not latest.is_empty:
            self._append_delta(
                series, latest.timestamp.date().isoformat(), counter(latest) - counter(previous)
            )
        return series

    def energy_per_day(self, day_starts: Sequence[Reading], latest: Optional[Reading]) -> BarSeries:
        return self.per_day(day_starts, latest, total_energy, ENERGY_TITLE)

    def gas_per_day(self, day_starts: Sequence[Reading], latest: Optional[Reading]) -> BarSeries:
        return self.per_day(day_starts, latest, gas_volume, GAS_TITLE)

    def per_month(
        self, month_totals: Mapping[str, Reading], counter: Counter, title: str
    ) -> BarSeries:
        """Usage per month; the oldest entry only serves as the first subtrahend."""
        series = BarSeries(title=title)
        previous: Optional[Reading] = None
        for month, reading in month_totals.items():
            if previous is not None:
                self._append_delta(series, month, counter(reading) - counter(previous))
            previous = reading
        return series

    def energy_per_month(self, month_totals: Mapping[str, Reading]) -> BarSeries:
        return self.per_month(month_totals, total_energy, ENERGY_TITLE)

    def gas_per_month(self, month_totals: Mapping[str, Reading]) -> BarSeries:
        return self.per_month(month_totals, gas_volume, GAS_TITLE)

    @staticmethod
    def _append_delta(series: BarSeries, label: str, delta: float) -> None:
        if delta < 0:
            logger.warning(
                "Lifetime counter decreased; meter replaced or reset",
                extra={"reading_date": label, "reason": f"delta={delta:.3f}"},
            )
        series.labels.append(label)
        series.values.append(delta)

    @staticmethod
    def _day_readings(readings: Mapping[str, Reading]) -> list[Reading]:
        """Readings whose own date is the day the first reading belongs to."""
        day = actual_date(readings)
        selected: list[Reading] = []
        for reading in readings.values():
            if reading.timestamp.date() == day:
                selected.append(reading)
                continue
            # A reading from just before midnight usually opens the log.
            level = logging.WARNING if selected else logging.DEBUG
            logger.log(
                level,
                "Reading date differs from the day being charted",
                extra={"reading_date": reading.timestamp.date(), "expected_date": day},
            )
        return selected

    @staticmethod
    def _pad(x: List[float], y: List[float], value: float) -> None:
        minute = x[-1] if x else 0.0
        while minute < MINUTES_PER_DAY:
            minute += 1.0
            x.append(minute)
            y.append(value)
