from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import typer

from cli.render import (
    render_electricity,
    render_gas,
    render_meter_overview,
    render_overview,
    render_reading,
)
from logging_config import configure_logging
from services.report import ReportService, build_default_report_service
from storage.log_store import DailyLogStore


@dataclass
class CLIState:
    store: DailyLogStore
    reports: ReportService


app = typer.Typer(
    help="Charts and tables derived from daily P1 smart meter logs.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_date(value: Optional[str]) -> date:
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise typer.BadParameter(f"Expected a date as yyyy-mm-dd, got {value!r}.") from exc


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory with the daily telegram logs (defaults to METER_DATA_DIR or ./meter).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)
    reports = build_default_report_service(str(data_dir) if data_dir is not None else None)
    if not reports.store.root_path.is_dir():
        typer.secho(
            f"Data directory {reports.store.root_path} does not exist; reports will be empty.",
            fg=typer.colors.YELLOW,
            err=True,
        )
    ctx.obj = CLIState(store=reports.store, reports=reports)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Print every field of the most recent complete telegram."""
    state = _get_state(ctx)
    render_reading(state.store.get_most_recent_reading())


@app.command("overview")
def overview_command(ctx: typer.Context) -> None:
    """Meter overview and today's power and gas series."""
    state = _get_state(ctx)
    render_overview(state.reports.overview())


@app.command("electricity")
def electricity_command(
    ctx: typer.Context,
    day: Optional[str] = typer.Option(None, "--date", help="Day to show as yyyy-mm-dd."),
) -> None:
    """Electricity usage for one day, the days before it and the months before it."""
    state = _get_state(ctx)
    render_electricity(state.reports.electricity(_parse_date(day)))


@app.command("gas")
def gas_command(
    ctx: typer.Context,
    day: Optional[str] = typer.Option(None, "--date", help="Day to show as yyyy-mm-dd."),
) -> None:
    """Gas usage for one day, the days before it and the months before it."""
    state = _get_state(ctx)
    render_gas(state.reports.gas(_parse_date(day)))


@app.command("comparison")
def comparison_command(ctx: typer.Context) -> None:
    """Current meter totals and device identifiers."""
    state = _get_state(ctx)
    render_meter_overview(state.reports.comparison())
