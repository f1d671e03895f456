from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from storage.log_store import DailyLogStore

ELECTRICITY_ID = "E0045004082099717"
GAS_ID = "G0039001803591218"


def _hex(text: str) -> str:
    return "".join(f"{ord(char):02X}" for char in text)


def build_telegram(
    timestamp: datetime,
    tariff1: float = 100.0,
    tariff2: float = 0.0,
    power: float = 0.5,
    voltage: float = 230.0,
    gas: float = 5000.0,
    gas_capture: Optional[datetime] = None,
    tariff: int = 1,
) -> list[str]:
    capture = gas_capture or timestamp.replace(minute=(timestamp.minute // 5) * 5, second=0)
    return [
        "/XMX5LGBBLA4415473347",
        "",
        "1-3:0.2.8(50)",
        f"0-0:1.0.0({timestamp:%y%m%d%H%M%S}S)",
        f"0-0:96.1.1({_hex(ELECTRICITY_ID)})",
        f"1-0:1.8.1({tariff1:010.3f}*kWh)",
        f"1-0:1.8.2({tariff2:010.3f}*kWh)",
        "1-0:2.8.1(000000.000*kWh)",
        "1-0:2.8.2(000000.000*kWh)",
        f"0-0:96.14.0({tariff:04d})",
        f"1-0:1.7.0({power:06.3f}*kW)",
        "1-0:2.7.0(00.000*kW)",
        "0-0:96.7.21(00003)",
        "0-0:96.7.9(00000)",
        "1-0:99.97.0(0)(0-0:96.7.19)",
        "1-0:32.32.0(00011)",
        "1-0:32.36.0(00000)",
        "0-0:96.13.0()",
        f"1-0:32.7.0({voltage:05.1f}*V)",
        "1-0:31.7.0(002*A)",
        f"1-0:21.7.0({power:06.3f}*kW)",
        "1-0:22.7.0(00.000*kW)",
        "0-1:24.1.0(003)",
        f"0-1:96.1.0({_hex(GAS_ID)})",
        f"0-1:24.2.1({capture:%y%m%d%H%M%S}S)({gas:09.3f}*m3)",
        "!F07C",
    ]


def log_text(telegrams: Iterable[list[str]]) -> str:
    """Serialize telegrams the way the capture script appends them."""
    lines: list[str] = []
    for telegram in telegrams:
        timestamp = next(line for line in telegram if line.startswith("0-0:1.0.0"))
        stamp = datetime.strptime(timestamp[10:22], "%y%m%d%H%M%S")
        lines.append(stamp.date().isoformat())
        lines.append(stamp.strftime("%H:%M:%S"))
        lines.extend(line for line in telegram if line)
    return "\n".join(lines) + "\n"


@pytest.fixture()
def telegram() -> Callable[..., list[str]]:
    return build_telegram


@pytest.fixture()
def log_dir(tmp_path: Path) -> Path:
    path = tmp_path / "meter"
    path.mkdir()
    return path


@pytest.fixture()
def write_log(log_dir: Path) -> Callable[..., Path]:
    def _write(day: date, telegrams: Iterable[list[str]], trailer: str = "") -> Path:
        path = log_dir / f"meter_{day.isoformat()}.txt"
        path.write_text(log_text(telegrams) + trailer, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def store(log_dir: Path) -> DailyLogStore:
    return DailyLogStore(log_dir)
