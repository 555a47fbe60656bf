from datetime import date, datetime

import pytest

from roster_app.importer.pipeline.normalize import (
    clean_text,
    excel_serial_to_date,
    parse_date,
    to_full_width_kana,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("R5.4.1", date(2023, 4, 1)),
        ("H31.4.30", date(2019, 4, 30)),
        ("S64.1.7", date(1989, 1, 7)),
        ("35065", date(1996, 1, 1)),
        ("2023年4月1日", date(2023, 4, 1)),
        ("2023/4/1", date(2023, 4, 1)),
        ("2023-04-01", date(2023, 4, 1)),
        ("  2023/04/01  ", date(2023, 4, 1)),
        ("geR5.4.1", date(2023, 4, 1)),
        ("gge 2023/4/1", date(2023, 4, 1)),
    ],
)
def test_parse_date_text_forms(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "2023/13/01", "R5.2.30", "X5.4.1", True])
def test_parse_date_returns_none_for_blank_or_unrecognized(raw):
    assert parse_date(raw) is None


def test_parse_date_accepts_native_values():
    assert parse_date(date(2020, 1, 2)) == date(2020, 1, 2)
    assert parse_date(datetime(2020, 1, 2, 9, 30)) == date(2020, 1, 2)
    assert parse_date(35065) == date(1996, 1, 1)
    assert parse_date(35065.0) == date(1996, 1, 1)


def test_excel_serial_range_is_bounded():
    assert excel_serial_to_date(1) == date(1899, 12, 31)
    assert excel_serial_to_date(0) is None
    assert excel_serial_to_date(73051) is None


def test_to_full_width_kana_combines_voiced_marks():
    assert to_full_width_kana("ｶﾞｲﾄﾞ") == "ガイド"
    assert to_full_width_kana("ﾔﾏﾀﾞ ﾀﾛｳ") == "ヤマダ タロウ"
    assert to_full_width_kana("ﾎﾟｰﾙ") == "ポール"


def test_to_full_width_kana_leaves_other_text_alone():
    assert to_full_width_kana("ヤマダ") == "ヤマダ"
    assert to_full_width_kana("Smith") == "Smith"
    assert to_full_width_kana("") == ""
    assert to_full_width_kana(None) is None


def test_clean_text():
    assert clean_text("  abc ") == "abc"
    assert clean_text("   ") is None
    assert clean_text(None) is None
    assert clean_text(1001.0) == "1001"
    assert clean_text(42) == "42"
