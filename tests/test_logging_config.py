from __future__ import annotations

import logging
from datetime import date

import logging_config
from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="storage.log_store",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Falling back to the most recent log",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_context() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    line = formatter.format(
        _record(requested_date=date(2023, 6, 1), actual_date=date(2023, 5, 5), unrelated="x")
    )

    assert line == (
        "INFO Falling back to the most recent log"
        " | requested_date=2023-06-01 actual_date=2023-05-05"
    )


def test_formatter_without_context_leaves_message_untouched() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record()) == "Falling back to the most recent log"


def test_formatter_custom_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", context_keys=["field_code"])

    line = formatter.format(_record(field_code="1-0:1.7.0", reason="bad"))

    assert line.endswith("| field_code=1-0:1.7.0")


def test_configure_logging_only_installs_once(monkeypatch) -> None:
    calls: list[dict] = []
    monkeypatch.setattr(logging_config, "dictConfig", calls.append)
    monkeypatch.setattr(logging_config, "_configured", False)

    logging_config.configure_logging("DEBUG")
    logging_config.configure_logging("ERROR")

    assert len(calls) == 1
    config = calls[0]
    assert config["root"]["level"] == "DEBUG"
    assert config["handlers"]["stderr"]["stream"] == "ext://sys.stderr"
    assert config["formatters"]["contextual"]["()"] == "logging_config.ContextualFormatter"
