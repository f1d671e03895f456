"""Pydantic schemas handed to the chart and page renderers."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class LineSeries(BaseModel):
    """Samples over one day, x in minutes since midnight."""

    title: str
    x: List[float] = Field(default_factory=list)
    y: List[float] = Field(default_factory=list)
    max_x: float = Field(default=1440.0, description="Right edge of the x axis in minutes.")
    tick_step: int = Field(default=60, ge=1)

    @model_validator(mode="after")
    def _check_lengths(self) -> "LineSeries":
        if len(self.x) != len(self.y):
            raise ValueError("x and y must have the same number of samples")
        return self

    def points(self) -> list[tuple[float, float]]:
        return list(zip(self.x, self.y))


class BarSeries(BaseModel):
    """Labelled buckets, e.g. energy per hour or per day."""

    title: str
    labels: List[str] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_lengths(self) -> "BarSeries":
        if len(self.labels) != len(self.values):
            raise ValueError("labels and values must have the same length")
        return self

    def buckets(self) -> list[tuple[str, float]]:
        return list(zip(self.labels, self.values))


class MeterOverview(BaseModel):
    """Snapshot of the latest telegram as shown in the overview tables."""

    has_data: bool
    electricity_tariff1_kwh: float = 0.0
    electricity_tariff2_kwh: float = 0.0
    tariff: str = ""
    power_kw: float = 0.0
    voltage_v: float = 0.0
    current_a: float = Field(default=0.0, description="Derived from power and voltage on L1.")
    gas_delivered_m3: float = 0.0
    electricity_meter_id: str = ""
    gas_meter_id: str = ""
    power_failures: int = 0
    long_power_failures: int = 0
    voltage_sags_l1: int = 0
    voltage_swells_l1: int = 0


class OverviewReport(BaseModel):
    meter: MeterOverview
    power: LineSeries
    gas: LineSeries
    cumulative_power: LineSeries
    cumulative_gas: LineSeries


class ElectricityReport(BaseModel):
    actual_date: Optional[date] = None
    meter: Optional[MeterOverview] = None
    power: LineSeries
    cumulative_power: LineSeries
    voltage: LineSeries
    energy_per_hour: BarSeries
    energy_per_day: BarSeries
    energy_per_month: BarSeries


class GasReport(BaseModel):
    actual_date: Optional[date] = None
    meter: Optional[MeterOverview] = None
    gas: LineSeries
    cumulative_gas: LineSeries
    gas_per_day: BarSeries
    gas_per_month: BarSeries
