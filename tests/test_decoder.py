"""Unit tests for telegram decoding."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

from models.records import EPOCH, Reading
from services.decoder import FIELD_CODES, ValueRule, decode, object_id, parse_hex

SAMPLE = [
    "/XMX5LGBBLA4415473347",
    "",
    "1-3:0.2.8(50)",
    "0-0:1.0.0(230505000259S)",
    "0-0:96.1.1(4530303435303034303832303939373137)",
    "1-0:1.8.1(010325.485*kWh)",
    "1-0:1.8.2(007339.152*kWh)",
    "1-0:2.8.1(000001.250*kWh)",
    "1-0:2.8.2(000002.500*kWh)",
    "0-0:96.14.0(0001)",
    "1-0:1.7.0(02.327*kW)",
    "1-0:2.7.0(00.000*kW)",
    "0-0:96.7.21(00003)",
    "0-0:96.7.9(00001)",
    "1-0:99.97.0(0)(0-0:96.7.19)",
    "1-0:32.32.0(00011)",
    "1-0:32.36.0(00002)",
    "0-0:96.13.0(48656C6C6F)",
    "1-0:32.7.0(228.0*V)",
    "1-0:31.7.0(010*A)",
    "1-0:21.7.0(02.327*kW)",
    "1-0:22.7.0(00.000*kW)",
    "0-1:24.1.0(003)",
    "0-1:96.1.0(4730303339303031383033353931323138)",
    "0-1:24.2.1(230505000003S)(05125.733*m3)",
    "!F07C",
]


def test_decode_sample_telegram() -> None:
    reading = decode(SAMPLE)

    assert reading.version == 50
    assert reading.timestamp == datetime(2023, 5, 5, 0, 2, 59)
    assert reading.electricity_meter_id == "E0045004082099717"
    assert reading.electricity_tariff1_kwh == pytest.approx(10325.485)
    assert reading.electricity_tariff2_kwh == pytest.approx(7339.152)
    assert reading.electricity_returned_tariff1_kwh == pytest.approx(1.25)
    assert reading.electricity_returned_tariff2_kwh == pytest.approx(2.5)
    assert reading.tariff == 1
    assert reading.power_delivered_kw == pytest.approx(2.327)
    assert reading.power_received_kw == 0.0
    assert reading.power_failures_any_phase == 3
    assert reading.long_power_failures_any_phase == 1
    assert reading.voltage_sags_l1 == 11
    assert reading.voltage_swells_l1 == 2
    assert reading.text_message == "Hello"
    assert reading.voltage_l1 == pytest.approx(228.0)
    assert reading.current_l1 == pytest.approx(10.0)
    assert reading.power_delivered_l1_kw == pytest.approx(2.327)
    assert reading.gas_device_type_id == 3
    assert reading.gas_meter_id == "G0039001803591218"
    assert reading.gas_capture_time == datetime(2023, 5, 5, 0, 0, 3)
    assert reading.gas_delivered_m3 == pytest.approx(5125.733)


def test_decode_is_idempotent() -> None:
    assert decode(SAMPLE) == decode(SAMPLE)


def test_corrupted_number_defaults_to_zero_and_keeps_other_fields(caplog) -> None:
    lines = [
        "1-0:1.7.0(abc*kW)" if line.startswith("1-0:1.7.0") else line for line in SAMPLE
    ]

    with caplog.at_level(logging.WARNING):
        reading = decode(lines)

    assert reading.power_delivered_kw == 0.0
    assert reading.electricity_tariff1_kwh == pytest.approx(10325.485)
    assert reading.gas_delivered_m3 == pytest.approx(5125.733)
    records = [record for record in caplog.records if record.name == "services.decoder"]
    assert any(getattr(record, "field_code", None) == "1-0:1.7.0" for record in records)


@pytest.mark.parametrize(
    "line, attribute, expected",
    [
        ("1-3:0.2.8(5x)", "version", 0),
        ("1-0:1.8.1(000100.000kWh)", "electricity_tariff1_kwh", 0.0),
        ("1-0:32.7.0)228.0*V(", "voltage_l1", 0.0),
        ("0-0:96.1.1(4G30)", "electricity_meter_id", ""),
        ("0-0:96.1.1(453)", "electricity_meter_id", ""),
        ("0-0:1.0.0(2305)", "timestamp", EPOCH),
        ("0-1:24.2.1(230505000003S)", "gas_delivered_m3", 0.0),
    ],
)
def test_malformed_field_keeps_default(line: str, attribute: str, expected) -> None:
    reading = decode(["/header", line, "!"])

    assert getattr(reading, attribute) == expected


def test_gas_capture_survives_bad_volume() -> None:
    reading = decode(["/header", "0-1:24.2.1(230505000003S)(bad*m3)", "!"])

    assert reading.gas_capture_time == datetime(2023, 5, 5, 0, 0, 3)
    assert reading.gas_delivered_m3 == 0.0


def test_unknown_codes_are_ignored() -> None:
    reading = decode(["/header", "9-9:99.99.9(12345*kW)", "garbage line", "!"])

    assert reading == Reading()


def test_empty_message_decodes_to_empty_reading() -> None:
    reading = decode([])

    assert reading.is_empty
    assert reading.timestamp == EPOCH


def test_every_field_code_round_trips() -> None:
    values = {
        ValueRule.INTEGER: ("(00042)", 42),
        ValueRule.FLOAT: ("(001234.567*kWh)", 1234.567),
        ValueRule.HEX: ("(414243)", "ABC"),
        ValueRule.COMPOUND: ("(240229235959W)", datetime(2024, 2, 29, 23, 59, 59)),
    }
    for code, spec in FIELD_CODES.items():
        payload, expected = values[spec.rule]
        line = f"{code}{payload}"
        if spec.value_attribute:
            line += "(00987.654*m3)"

        reading = decode(["/header", line, "!"])

        actual = getattr(reading, spec.attribute)
        if isinstance(expected, float):
            assert actual == pytest.approx(expected, abs=1e-9), code
        else:
            assert actual == expected, code
        if spec.value_attribute:
            assert getattr(reading, spec.value_attribute) == pytest.approx(987.654, abs=1e-9)


def test_distinct_codes_that_share_a_prefix() -> None:
    reading = decode(["/header", "0-0:96.7.21(00007)", "0-0:96.7.9(00002)", "!"])

    assert reading.power_failures_any_phase == 7
    assert reading.long_power_failures_any_phase == 2


def test_object_id_and_hex_helpers() -> None:
    assert object_id("1-0:1.8.1(000100.000*kWh)") == "1-0:1.8.1"
    assert object_id("no brackets") == "no brackets"
    assert parse_hex("0-0:96.13.0()") == ""


def test_value_rules_are_looked_up_by_name() -> None:
    assert ValueRule("float") is ValueRule.FLOAT
    assert {rule.value for rule in ValueRule} == {"integer", "float", "hex", "compound"}
    assert {spec.rule for spec in FIELD_CODES.values()} == set(ValueRule)
