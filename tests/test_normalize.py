"""Tests for backend/normalize.py: numeric coercion and key picking."""

from __future__ import annotations

import math

import pytest

from normalize import (
    BT_KEYS,
    BZ_KEYS,
    DENSITY_KEYS,
    SPEED_KEYS,
    latest_finite,
    latest_non_null,
    normalize_record,
    normalize_value,
    pick,
    round1,
    round2,
    to_number,
)
from feed_parsers import parse_swpc_objects


def test_to_number_accepts_numbers_and_numeric_strings():
    assert to_number(5) == 5.0
    assert to_number(-3.25) == -3.25
    assert to_number(" 412.5 ") == 412.5


def test_to_number_rejects_non_finite_and_garbage():
    assert to_number(None) is None
    assert to_number("") is None
    assert to_number("abc") is None
    assert to_number(float("nan")) is None
    assert to_number("inf") is None
    assert to_number(True) is None
    assert to_number([1]) is None


def test_normalize_value_keeps_time_and_text():
    assert normalize_value("time_tag", "2024-01-01 00:00:00.000") == "2024-01-01 00:00:00.000"
    assert normalize_value("speed", "450.1") == 450.1
    assert normalize_value("satellite", "DSCOVR") == "DSCOVR"
    assert normalize_value("speed", None) is None
    assert normalize_value("speed", "") == ""


def test_normalize_record_lowercases_keys():
    rec = normalize_record({"Time_Tag": "2024-01-01T00:00:00", "Bz_GSM": "-4.2", "Source": "ACE"})
    assert rec == {"time_tag": "2024-01-01T00:00:00", "bz_gsm": -4.2, "source": "ACE"}


def test_pick_respects_priority_and_skips_invalid():
    rec = {"speed": "", "flow_speed": "n/a", "bulk_speed": 512, "v": 400}
    assert pick(rec, SPEED_KEYS) == 512.0
    assert pick({"bz": 1.5, "bz_gsm": -2.0}, BZ_KEYS) == -2.0
    assert pick({}, SPEED_KEYS) is None
    assert pick(None, SPEED_KEYS) is None


@pytest.mark.parametrize(
    "key, keys",
    [(k, keys) for keys in (SPEED_KEYS, DENSITY_KEYS, BZ_KEYS, BT_KEYS) for k in keys],
)
def test_pick_resolves_every_alias_alone(key, keys):
    assert pick({key: "42.0"}, keys) == 42.0


@pytest.mark.parametrize(
    "raw_key, keys",
    [
        ("Flow_Speed", SPEED_KEYS),
        ("Proton_Density", DENSITY_KEYS),
        ("BZ_GSE", BZ_KEYS),
        ("BT_Total", BT_KEYS),
    ],
)
def test_pick_after_parsing_mixed_case_feed(raw_key, keys):
    [rec] = parse_swpc_objects([{"Time_Tag": "2024-06-10T06:00:00", raw_key: "-7.5"}])
    assert pick(rec, keys) == -7.5


def test_rounding_helpers():
    assert round1(4.26) == 4.3
    assert round2("6.789") == 6.79
    assert round1(None) is None
    assert round2(math.inf) is None


def test_latest_finite_scans_from_the_end():
    assert latest_finite([1.0, 2.0, None, float("nan")]) == 2.0
    assert latest_finite([]) is None
    assert latest_finite([None, None]) is None


def test_latest_non_null_on_rows():
    rows = [{"bt": 5.0}, {"bt": 6.5}, {"bt": None}, {}]
    assert latest_non_null(rows, "bt") == 6.5
    assert latest_non_null([], "bt") is None
