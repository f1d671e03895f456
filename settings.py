from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATA_DIR_ENV = "METER_DATA_DIR"
_FILE_PREFIX_ENV = "METER_FILE_PREFIX"
_FILE_SUFFIX_ENV = "METER_FILE_SUFFIX"
_DAILY_WINDOW_ENV = "METER_DAILY_WINDOW"
_MONTHLY_WINDOW_ENV = "METER_MONTHLY_WINDOW"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_dir: str
    file_prefix: str
    file_suffix: str
    daily_window: int
    monthly_window: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_dir=_read_str_env(_DATA_DIR_ENV, "./meter"),
        file_prefix=_read_str_env(_FILE_PREFIX_ENV, "meter_"),
        file_suffix=_read_str_env(_FILE_SUFFIX_ENV, ".txt"),
        daily_window=_read_positive_int(_DAILY_WINDOW_ENV, 30),
        monthly_window=_read_positive_int(_MONTHLY_WINDOW_ENV, 12),
        log_level=_read_log_level("INFO"),
    )
