"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path

# Zero of the yyMMddhhmmss encoding, used when a message carries no timestamp.
EPOCH = datetime(2000, 1, 1)

# Readings after this time of day are bucketed into the next calendar day.
DAY_ROLLOVER = time(23, 0)

KEY_FORMAT = "%Y%m%d %H:%M"


def bucket_date(timestamp: datetime) -> date:
    """Calendar day a timestamp is counted towards."""
    if timestamp.time() > DAY_ROLLOVER:
        return timestamp.date() + timedelta(days=1)
    return timestamp.date()


def seconds_of_day(timestamp: datetime) -> int:
    return timestamp.hour * 3600 + timestamp.minute * 60 + timestamp.second


@dataclass(slots=True)
class Reading:
    """A single decoded telegram from the P1 port of the meter."""

    version: int = 0
    timestamp: datetime = EPOCH
    electricity_meter_id: str = ""

    electricity_tariff1_kwh: float = 0.0
    electricity_tariff2_kwh: float = 0.0
    electricity_returned_tariff1_kwh: float = 0.0
    electricity_returned_tariff2_kwh: float = 0.0
    tariff: int = 0

    power_delivered_kw: float = 0.0
    power_received_kw: float = 0.0

    power_failures_any_phase: int = 0
    long_power_failures_any_phase: int = 0
    voltage_sags_l1: int = 0
    voltage_sags_l2: int = 0
    voltage_sags_l3: int = 0
    voltage_swells_l1: int = 0
    voltage_swells_l2: int = 0
    voltage_swells_l3: int = 0

    text_message: str = ""

    voltage_l1: float = 0.0
    voltage_l2: float = 0.0
    voltage_l3: float = 0.0
    current_l1: float = 0.0
    current_l2: float = 0.0
    current_l3: float = 0.0
    power_delivered_l1_kw: float = 0.0
    power_delivered_l2_kw: float = 0.0
    power_delivered_l3_kw: float = 0.0
    power_received_l1_kw: float = 0.0
    power_received_l2_kw: float = 0.0
    power_received_l3_kw: float = 0.0

    gas_device_type_id: int = 0
    gas_meter_id: str = ""
    gas_capture_time: datetime = EPOCH
    gas_delivered_m3: float = 0.0

    @property
    def key(self) -> str:
        """Ordering key; string order equals chronological order."""
        return self.timestamp.strftime(KEY_FORMAT)

    @property
    def reading_date(self) -> date:
        return bucket_date(self.timestamp)

    @property
    def total_delivered_kwh(self) -> float:
        return self.electricity_tariff1_kwh + self.electricity_tariff2_kwh

    @property
    def is_empty(self) -> bool:
        """True for the default reading that stands in for "no data"."""
        return self == Reading()


@dataclass(frozen=True, slots=True)
class LogFile:
    """A daily log file and the date encoded in its name."""

    date: date
    path: Path
