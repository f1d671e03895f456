from __future__ import annotations

import logging
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Dict, Generator, Iterable, Iterator, List, Optional

from models.records import EPOCH, LogFile, Reading
from services.decoder import END_MARKER, START_MARKER, decode
from settings import get_settings

logger = logging.getLogger(__name__)

MessageBlock = List[str]


def iter_message_blocks(lines: Iterable[str]) -> Iterator[MessageBlock]:
    """Yield complete ``/`` ... ``!`` blocks; incomplete ones are dropped."""
    block: Optional[MessageBlock] = None
    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            continue
        if line.startswith(START_MARKER):
            block = [line]
            continue
        if block is None:
            continue
        block.append(line)
        if line.startswith(END_MARKER):
            yield block
            block = None


def _month_start(year: int, month: int, months_back: int = 0) -> date:
    index = year * 12 + (month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


class DailyLogStore:
    """Read-only access to a directory of one-file-per-day telegram logs."""

    def __init__(self, root_path: Path, prefix: str = "meter_", suffix: str = ".txt") -> None:
        self.root_path = root_path
        self.prefix = prefix
        self.suffix = suffix

    def path_for(self, day: date) -> Path:
        return self.root_path / f"{self.prefix}{day.isoformat()}{self.suffix}"

    def list_log_files(self) -> list[LogFile]:
        try:
            candidates = [path for path in self.root_path.iterdir() if path.is_file()]
        except OSError as exc:
            logger.warning(
                "Log directory is not readable",
                extra={"log_file": str(self.root_path), "reason": str(exc)},
            )
            return []

        files: list[LogFile] = []
        for path in candidates:
            day = self._date_from_name(path.name)
            if day is not None:
                files.append(LogFile(date=day, path=path))
        return sorted(files, key=lambda log_file: log_file.date)

    def read_messages(self, path: Path) -> Generator[MessageBlock, None, None]:
        """Lazily yield the complete message blocks of one log file.

        Every call reopens the file, so the sequence can be restarted.
        """
        try:
            with path.open("r", encoding="utf-8") as handle:
                yield from iter_message_blocks(handle)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Log file could not be read",
                extra={"log_file": path.name, "reason": str(exc)},
            )

    def get_readings_for_date(self, day: date) -> Dict[str, Reading]:
        """Readings keyed by ``yyyyMMdd HH:mm`` for ``day``.

        When no log exists for ``day`` the most recent log is used instead;
        derive the real date from the returned readings.
        """
        path = self.path_for(day)
        if not path.is_file():
            files = self.list_log_files()
            if not files:
                return {}
            logger.info(
                "No log for requested date, using most recent log",
                extra={"requested_date": day, "actual_date": files[-1].date},
            )
            path = files[-1].path
        return self._read_day(path)

    def get_most_recent_reading(self) -> Reading:
        """Last complete telegram of the newest log, or an empty Reading."""
        files = self.list_log_files()
        if not files:
            logger.warning("No log files available", extra={"log_file": str(self.root_path)})
            return Reading()

        latest = files[-1].path
        try:
            lines = latest.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Log file could not be read", extra={"log_file": latest.name, "reason": str(exc)}
            )
            return Reading()

        starts = [index for index, line in enumerate(lines) if line.startswith(START_MARKER)]
        if len(starts) < 2:
            logger.warning(
                "Fewer than two telegram starts in latest log",
                extra={"log_file": latest.name, "message_count": len(starts)},
            )
            return Reading()

        block = next(iter_message_blocks(lines[starts[-2] : starts[-1]]), None)
        if block is None:
            logger.warning(
                "Last telegram in latest log has no end marker",
                extra={"log_file": latest.name},
            )
            return Reading()
        return decode(block)

    def get_daily_totals(self, days: int, until: Optional[date] = None) -> list[Reading]:
        """First telegram of each of the ``days`` most recent logs, oldest first."""
        files = self.list_log_files()
        if until is not None:
            files = [log_file for log_file in files if log_file.date <= until]

        snapshots: list[Reading] = []
        for log_file in reversed(files):
            if len(snapshots) >= days:
                break
            reading = self._first_reading(log_file.path)
            if reading is not None:
                snapshots.append(reading)
        snapshots.reverse()
        return snapshots

    def get_monthly_totals(self, year: int, month: int, months: int) -> Dict[str, Reading]:
        """Month-end snapshots keyed ``yyyy-MM`` plus a boundary entry, oldest first.

        The entry for a month is the first telegram of the first log on or
        after the first day of the following month. The target month itself
        is closed by the last telegram of the last log on or before its final
        day, so ``months + 1`` entries are returned.
        """
        files = self.list_log_files()
        if not files:
            return {}

        month_end = _month_start(year, month, -1) - timedelta(days=1)
        boundary = next((f for f in reversed(files) if f.date <= month_end), files[-1])

        snapshots: Dict[str, Reading] = {}
        last_reading = self._last_reading(boundary.path)
        if last_reading is not None:
            snapshots[boundary.date.strftime("%Y-%m")] = last_reading

        for months_back in range(months):
            first_of_month = _month_start(boundary.date.year, boundary.date.month, months_back)
            log_file = next((f for f in files if f.date >= first_of_month), None)
            if log_file is None:
                continue
            reading = self._first_reading(log_file.path)
            if reading is not None:
                previous_month = _month_start(first_of_month.year, first_of_month.month, 1)
                snapshots[previous_month.strftime("%Y-%m")] = reading

        return dict(sorted(snapshots.items()))

    def _read_day(self, path: Path) -> Dict[str, Reading]:
        readings: Dict[str, Reading] = {}
        for reading in self._dated_readings(path):
            readings[reading.key] = reading
        return dict(sorted(readings.items()))

    def _first_reading(self, path: Path) -> Optional[Reading]:
        readings = self._dated_readings(path)
        try:
            return next(readings, None)
        finally:
            readings.close()

    def _dated_readings(self, path: Path) -> Generator[Reading, None, None]:
        """Decoded telegrams of one log, minus those without a usable timestamp."""
        blocks = self.read_messages(path)
        try:
            for block in blocks:
                reading = decode(block)
                if reading.timestamp == EPOCH:
                    logger.warning(
                        "Skipping telegram without a valid timestamp",
                        extra={"log_file": path.name, "raw_value": block[0]},
                    )
                    continue
                yield reading
        finally:
            blocks.close()

    def _last_reading(self, path: Path) -> Optional[Reading]:
        day = self._read_day(path)
        if not day:
            return None
        return day[next(reversed(day))]

    def _date_from_name(self, name: str) -> Optional[date]:
        if not (name.startswith(self.prefix) and name.endswith(self.suffix)):
            return None
        stem = name[len(self.prefix) : len(name) - len(self.suffix)]
        if len(stem) != 10:
            return None
        try:
            return date.fromisoformat(stem)
        except ValueError:
            return None


@lru_cache
def build_default_store(root_path: Optional[str] = None) -> DailyLogStore:
    settings = get_settings()
    data_dir = settings.data_dir if root_path is None else root_path
    return DailyLogStore(
        root_path=Path(data_dir),
        prefix=settings.file_prefix,
        suffix=settings.file_suffix,
    )
