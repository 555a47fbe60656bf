"""
Cell-level normalization for roster exports.

Dates arrive in several calendars and encodings (spreadsheet serials, Japanese
era notation, ``年月日`` text, slash/dash Gregorian) and phonetic names are often
exported in half-width katakana. Everything here is pure and never raises on
bad input; unrecognized values come back as ``None``.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

EXCEL_EPOCH = date(1899, 12, 30)
# Serial range covering 1900-01-01 .. 2100-01-01
EXCEL_SERIAL_MIN = 1
EXCEL_SERIAL_MAX = 73050

ERA_OFFSETS = {
    "R": 2018,  # Reiwa
    "H": 1988,  # Heisei
    "S": 1925,  # Showa
}

_EXPORT_PREFIX_RE = re.compile(r"^g+e?\s*", re.IGNORECASE)
_SERIAL_RE = re.compile(r"^\d{5}$")
_ERA_RE = re.compile(r"^([RHS])(\d+)\.(\d+)\.(\d+)$")
_KANJI_DATE_RE = re.compile(r"(\d{4})年(\d{1,2})月(\d{1,2})日")
_GREGORIAN_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")

# Voiced and semi-voiced pairs must be replaced before the bare characters.
HALF_WIDTH_KANA_PAIRS = {
    "ｶﾞ": "ガ",
    "ｷﾞ": "ギ",
    "ｸﾞ": "グ",
    "ｹﾞ": "ゲ",
    "ｺﾞ": "ゴ",
    "ｻﾞ": "ザ",
    "ｼﾞ": "ジ",
    "ｽﾞ": "ズ",
    "ｾﾞ": "ゼ",
    "ｿﾞ": "ゾ",
    "ﾀﾞ": "ダ",
    "ﾁﾞ": "ヂ",
    "ﾂﾞ": "ヅ",
    "ﾃﾞ": "デ",
    "ﾄﾞ": "ド",
    "ﾊﾞ": "バ",
    "ﾋﾞ": "ビ",
    "ﾌﾞ": "ブ",
    "ﾍﾞ": "ベ",
    "ﾎﾞ": "ボ",
    "ﾊﾟ": "パ",
    "ﾋﾟ": "ピ",
    "ﾌﾟ": "プ",
    "ﾍﾟ": "ペ",
    "ﾎﾟ": "ポ",
    "ｳﾞ": "ヴ",
}

HALF_WIDTH_KANA_SINGLES = str.maketrans(
    "ｱｲｳｴｵｶｷｸｹｺｻｼｽｾｿﾀﾁﾂﾃﾄﾅﾆﾇﾈﾉﾊﾋﾌﾍﾎﾏﾐﾑﾒﾓﾔﾕﾖﾗﾘﾙﾚﾛﾜｦﾝｧｨｩｪｫｯｬｭｮｰ",
    "アイウエオカキクケコサシスセソタチツテトナニヌネノハヒフヘホマミムメモヤユヨラリルレロワヲンァィゥェォッャュョー",
)


def excel_serial_to_date(serial: int | float) -> date | None:
    """Convert a spreadsheet serial day number, rejecting values outside 1900-2100."""

    if serial < EXCEL_SERIAL_MIN or serial > EXCEL_SERIAL_MAX:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(raw: object | None) -> date | None:
    """
    Parse a roster date cell.

    Accepts ``date``/``datetime`` objects and numeric serials as produced by
    spreadsheet readers, plus the text forms ``35065`` (serial), ``R5.4.1``
    (era), ``2023年4月1日`` and ``2023/4/1`` or ``2023-04-01``. Blank and
    unrecognized values return ``None``.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        return excel_serial_to_date(raw)

    text = str(raw).strip()
    if not text:
        return None
    text = _EXPORT_PREFIX_RE.sub("", text).strip()

    if _SERIAL_RE.match(text):
        parsed = excel_serial_to_date(int(text))
        if parsed is not None:
            return parsed

    match = _ERA_RE.match(text)
    if match:
        era, year, month, day = match.groups()
        return _safe_date(int(year) + ERA_OFFSETS[era], int(month), int(day))

    match = _KANJI_DATE_RE.search(text)
    if match:
        year, month, day = match.groups()
        return _safe_date(int(year), int(month), int(day))

    match = _GREGORIAN_RE.match(text)
    if match:
        year, month, day = match.groups()
        return _safe_date(int(year), int(month), int(day))

    return None


def to_full_width_kana(raw: str | None) -> str | None:
    """Convert half-width katakana to full-width, combining voiced marks first."""

    if not raw:
        return raw
    result = raw
    for pair, full_width in HALF_WIDTH_KANA_PAIRS.items():
        result = result.replace(pair, full_width)
    return result.translate(HALF_WIDTH_KANA_SINGLES)


def clean_text(value: object | None) -> str | None:
    """Trim a cell to a string, collapsing blanks to ``None``."""

    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


__all__ = [
    "EXCEL_EPOCH",
    "ERA_OFFSETS",
    "clean_text",
    "excel_serial_to_date",
    "parse_date",
    "to_full_width_kana",
]
