from __future__ import annotations

import math
from dataclasses import fields
from typing import Any, Iterable, Optional

import typer

from models.records import Reading
from models.schemas import (
    BarSeries,
    ElectricityReport,
    GasReport,
    LineSeries,
    MeterOverview,
    OverviewReport,
)

# Line series have a sample per minute; print one per hour.
_LINE_STEP_MINUTES = 60


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_value(value: float) -> str:
    return "-" if math.isnan(value) else f"{value:.3f}"


def render_line_series(heading: str, series: LineSeries) -> None:
    echo_heading(f"{heading} - {series.title}")
    next_minute = 0.0
    for x, y in series.points():
        if x < next_minute:
            continue
        hours, minutes = divmod(int(x), 60)
        typer.echo(f"  {hours:02d}:{minutes:02d}  {_format_value(y)}")
        next_minute = x + _LINE_STEP_MINUTES


def render_bar_series(heading: str, series: BarSeries) -> None:
    echo_heading(f"{heading} - {series.title}")
    if not series.labels:
        typer.echo("  No data available.")
        return
    for label, value in series.buckets():
        typer.echo(f"  {label:>10}  {_format_value(value)}")


def render_meter_overview(overview: MeterOverview) -> None:
    echo_heading("Overview")
    if not overview.has_data:
        typer.secho("No meter data available.", fg=typer.colors.YELLOW)
        return
    echo_key_values(
        [
            ("Electricity tariff 1", f"{overview.electricity_tariff1_kwh} kWh"),
            ("Electricity tariff 2", f"{overview.electricity_tariff2_kwh} kWh"),
            ("Tariff", overview.tariff),
            ("Power", f"{overview.power_kw} kW"),
            ("Voltage", f"{overview.voltage_v} V"),
            ("Current", f"{overview.current_a:.3f} A"),
            ("Gas delivered", f"{overview.gas_delivered_m3} m3"),
        ]
    )
    typer.echo()
    echo_heading("Devices")
    echo_key_values(
        [
            ("Electricity device id", overview.electricity_meter_id),
            ("Gas device id", overview.gas_meter_id),
            ("Long power failures", overview.long_power_failures),
            ("Power failures", overview.power_failures),
            ("Voltage sags L1", overview.voltage_sags_l1),
            ("Voltage swells L1", overview.voltage_swells_l1),
        ]
    )


def render_reading(reading: Reading) -> None:
    echo_heading("Latest telegram")
    if reading.is_empty:
        typer.secho("No complete telegram available.", fg=typer.colors.YELLOW)
        return
    echo_key_values((field.name, getattr(reading, field.name)) for field in fields(reading))


def _render_optional_meter(meter: Optional[MeterOverview]) -> None:
    if meter is None:
        return
    render_meter_overview(meter)
    typer.echo()


def render_overview(report: OverviewReport) -> None:
    render_meter_overview(report.meter)
    typer.echo()
    render_line_series("Power usage today", report.power)
    render_line_series("Gas usage today", report.gas)
    render_line_series("Cumulative power usage today", report.cumulative_power)
    render_line_series("Cumulative gas usage today", report.cumulative_gas)


def render_electricity(report: ElectricityReport) -> None:
    shown = report.actual_date.isoformat() if report.actual_date else "no data"
    echo_heading(f"Electricity {shown}")
    typer.echo()
    _render_optional_meter(report.meter)
    render_line_series("Power usage", report.power)
    render_line_series("Cumulative power usage", report.cumulative_power)
    render_line_series("Voltage", report.voltage)
    render_bar_series("Energy per hour", report.energy_per_hour)
    render_bar_series("Energy per day", report.energy_per_day)
    render_bar_series("Energy per month", report.energy_per_month)


def render_gas(report: GasReport) -> None:
    shown = report.actual_date.isoformat() if report.actual_date else "no data"
    echo_heading(f"Gas {shown}")
    typer.echo()
    _render_optional_meter(report.meter)
    render_line_series("Gas usage", report.gas)
    render_line_series("Cumulative gas usage", report.cumulative_gas)
    render_bar_series("Gas per day", report.gas_per_day)
    render_bar_series("Gas per month", report.gas_per_month)
