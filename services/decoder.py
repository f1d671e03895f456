"""Decoding of P1 telegrams into :class:`Reading` records.

A telegram is a block of lines such as::

    /XMX5LGBBLA4415473347
    0-0:1.0.0(230505000259S)
    1-0:1.8.1(010325.485*kWh)
    0-1:24.2.1(230505000003S)(05125.733*m3)
    !F07C

Every interior line is ``<object-id>(<value>)`` and optionally a second
``(<value>)`` group. Known object ids are looked up in :data:`FIELD_CODES`;
everything else is ignored so that firmware additions do not break decoding.
Malformed values leave the field at its default and decoding carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

from models.records import Reading

logger = logging.getLogger(__name__)

START_MARKER = "/"
END_MARKER = "!"


class ValueRule(str, Enum):
    """How the payload of a telegram line is extracted."""

    INTEGER = "integer"
    FLOAT = "float"
    HEX = "hex"
    COMPOUND = "compound"


@dataclass(frozen=True)
class FieldSpec:
    attribute: str
    rule: ValueRule
    # Compound lines with a second ``(value*unit)`` group store it here.
    value_attribute: Optional[str] = None


FIELD_CODES: dict[str, FieldSpec] = {
    "1-3:0.2.8": FieldSpec("version", ValueRule.INTEGER),
    "0-0:1.0.0": FieldSpec("timestamp", ValueRule.COMPOUND),
    "0-0:96.1.1": FieldSpec("electricity_meter_id", ValueRule.HEX),
    "1-0:1.8.1": FieldSpec("electricity_tariff1_kwh", ValueRule.FLOAT),
    "1-0:1.8.2": FieldSpec("electricity_tariff2_kwh", ValueRule.FLOAT),
    "1-0:2.8.1": FieldSpec("electricity_returned_tariff1_kwh", ValueRule.FLOAT),
    "1-0:2.8.2": FieldSpec("electricity_returned_tariff2_kwh", ValueRule.FLOAT),
    "0-0:96.14.0": FieldSpec("tariff", ValueRule.INTEGER),
    "1-0:1.7.0": FieldSpec("power_delivered_kw", ValueRule.FLOAT),
    "1-0:2.7.0": FieldSpec("power_received_kw", ValueRule.FLOAT),
    "0-0:96.7.21": FieldSpec("power_failures_any_phase", ValueRule.INTEGER),
    "0-0:96.7.9": FieldSpec("long_power_failures_any_phase", ValueRule.INTEGER),
    "1-0:32.32.0": FieldSpec("voltage_sags_l1", ValueRule.INTEGER),
    "1-0:52.32.0": FieldSpec("voltage_sags_l2", ValueRule.INTEGER),
    "1-0:72.32.0": FieldSpec("voltage_sags_l3", ValueRule.INTEGER),
    "1-0:32.36.0": FieldSpec("voltage_swells_l1", ValueRule.INTEGER),
    "1-0:52.36.0": FieldSpec("voltage_swells_l2", ValueRule.INTEGER),
    "1-0:72.36.0": FieldSpec("voltage_swells_l3", ValueRule.INTEGER),
    "0-0:96.13.0": FieldSpec("text_message", ValueRule.HEX),
    "1-0:32.7.0": FieldSpec("voltage_l1", ValueRule.FLOAT),
    "1-0:52.7.0": FieldSpec("voltage_l2", ValueRule.FLOAT),
    "1-0:72.7.0": FieldSpec("voltage_l3", ValueRule.FLOAT),
    "1-0:31.7.0": FieldSpec("current_l1", ValueRule.FLOAT),
    "1-0:51.7.0": FieldSpec("current_l2", ValueRule.FLOAT),
    "1-0:71.7.0": FieldSpec("current_l3", ValueRule.FLOAT),
    "1-0:21.7.0": FieldSpec("power_delivered_l1_kw", ValueRule.FLOAT),
    "1-0:41.7.0": FieldSpec("power_delivered_l2_kw", ValueRule.FLOAT),
    "1-0:61.7.0": FieldSpec("power_delivered_l3_kw", ValueRule.FLOAT),
    "1-0:22.7.0": FieldSpec("power_received_l1_kw", ValueRule.FLOAT),
    "1-0:42.7.0": FieldSpec("power_received_l2_kw", ValueRule.FLOAT),
    "1-0:62.7.0": FieldSpec("power_received_l3_kw", ValueRule.FLOAT),
    "0-1:24.1.0": FieldSpec("gas_device_type_id", ValueRule.INTEGER),
    "0-1:96.1.0": FieldSpec("gas_meter_id", ValueRule.HEX),
    "0-1:24.2.1": FieldSpec(
        "gas_capture_time", ValueRule.COMPOUND, value_attribute="gas_delivered_m3"
    ),
}

Value = Union[int, float, str, datetime]


class FieldDecodeError(ValueError):
    """Raised internally when a single field payload cannot be decoded."""


def _between(line: str, opening: int, closing: int) -> str:
    if opening == -1 or closing == -1 or opening > closing:
        raise FieldDecodeError("no well-formed bracket pair")
    return line[opening + 1 : closing]


def parse_integer(line: str) -> int:
    payload = _between(line, line.find("("), line.find(")"))
    try:
        return int(payload)
    except ValueError as exc:
        raise FieldDecodeError(f"invalid integer {payload!r}") from exc


def parse_float(line: str, start: int = 0) -> float:
    """Float between the ``(`` at or after ``start`` and the unit asterisk."""
    payload = _between(line, line.find("(", start), line.find("*", start))
    try:
        return float(payload)
    except ValueError as exc:
        raise FieldDecodeError(f"invalid number {payload!r}") from exc


def parse_hex(line: str) -> str:
    payload = _between(line, line.find("("), line.rfind(")"))
    if len(payload) % 2:
        raise FieldDecodeError(f"odd-length hex string {payload!r}")
    try:
        return "".join(
            chr(int(payload[i : i + 2], 16)) for i in range(0, len(payload), 2)
        )
    except ValueError as exc:
        raise FieldDecodeError(f"invalid hex string {payload!r}") from exc


def parse_timestamp(line: str) -> datetime:
    """Date and time from a ``(YYMMDDhhmmssX)`` group."""
    opening = line.find("(")
    _between(line, opening, line.rfind(")"))
    digits = line[opening + 1 : opening + 13]
    try:
        return datetime.strptime(digits, "%y%m%d%H%M%S")
    except ValueError as exc:
        raise FieldDecodeError(f"invalid timestamp {digits!r}") from exc


def parse_second_float(line: str) -> float:
    """Float from the second bracket group, e.g. ``(...)(05125.733*m3)``."""
    second = line.find("(", line.find("(") + 1)
    if second == -1:
        raise FieldDecodeError("missing second value group")
    return parse_float(line, start=second)


_EXTRACTORS = {
    ValueRule.INTEGER: parse_integer,
    ValueRule.FLOAT: parse_float,
    ValueRule.HEX: parse_hex,
    ValueRule.COMPOUND: parse_timestamp,
}


def object_id(line: str) -> str:
    bracket = line.find("(")
    return line[:bracket].strip() if bracket != -1 else line.strip()


def _raw_value(line: str) -> str:
    bracket = line.find("(")
    return line[bracket:] if bracket != -1 else ""


def decode(message_lines: Iterable[str]) -> Reading:
    """Decode one telegram into a Reading; best effort per field."""
    reading = Reading()
    for raw_line in message_lines:
        line = raw_line.strip()
        if not line or line.startswith((START_MARKER, END_MARKER)):
            continue
        code = object_id(line)
        spec = FIELD_CODES.get(code)
        if spec is None:
            continue

        _apply(reading, code, spec.attribute, line, _EXTRACTORS[spec.rule])
        if spec.value_attribute is not None:
            _apply(reading, code, spec.value_attribute, line, parse_second_float)
    return reading


def _apply(reading: Reading, code: str, attribute: str, line: str, extractor) -> None:
    try:
        value: Value = extractor(line)
    except FieldDecodeError as exc:
        logger.warning(
            "Keeping default for undecodable field",
            extra={"field_code": code, "raw_value": _raw_value(line), "reason": str(exc)},
        )
        return
    setattr(reading, attribute, value)
