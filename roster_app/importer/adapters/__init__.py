"""Roster file readers and the extension-based dispatcher."""

from __future__ import annotations

import io
from pathlib import Path

from roster_app.errors import RosterFileError

from .common import HeaderMapping, RawRosterRow, RosterReadResult, RosterReadStatistics, map_headers
from .csv_roster import RosterCSVReader
from .xlsx_roster import RosterXLSXReader

DEFAULT_MAX_UPLOAD_MB = 10
SUPPORTED_EXTENSIONS = (".csv", ".xlsx")
# Tried in order when no encoding is given; cp932 covers Shift_JIS exports.
CSV_FALLBACK_ENCODINGS = ("utf-8-sig", "cp932")


def _decode_csv(payload: bytes, encoding: str | None) -> str:
    if encoding:
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError as exc:
            raise RosterFileError(f"Roster file is not valid {encoding}: {exc}") from exc

    for candidate in CSV_FALLBACK_ENCODINGS:
        try:
            return payload.decode(candidate)
        except UnicodeDecodeError:
            continue
    raise RosterFileError(
        "Could not decode roster file; tried " + ", ".join(CSV_FALLBACK_ENCODINGS) + ". Pass an explicit encoding."
    )


def read_roster_file(
    path: str | Path,
    *,
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB,
    encoding: str | None = None,
) -> RosterReadResult:
    """
    Read every data row from a ``.csv`` or ``.xlsx`` roster file.

    Raises ``RosterFileError`` for missing, oversize, empty or unsupported
    files and ``RosterHeaderError`` when the header row breaks the contract.
    """

    file_path = Path(path)
    extension = file_path.suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise RosterFileError(
            f"Unsupported roster file type '{extension or file_path.name}'. "
            f"Expected one of: {', '.join(SUPPORTED_EXTENSIONS)}."
        )
    if not file_path.is_file():
        raise RosterFileError(f"Roster file not found: {file_path}")

    size = file_path.stat().st_size
    if size == 0:
        raise RosterFileError(f"Roster file is empty: {file_path}")
    if size > max_upload_mb * 1024 * 1024:
        raise RosterFileError(f"Roster file exceeds the {max_upload_mb} MB limit ({size} bytes): {file_path}")

    if extension == ".csv":
        text = _decode_csv(file_path.read_bytes(), encoding)
        reader = RosterCSVReader(io.StringIO(text, newline=""))
    else:
        reader = RosterXLSXReader(str(file_path))

    rows = list(reader.iter_rows())
    return RosterReadResult(rows=rows, header=reader.header, statistics=reader.statistics)


__all__ = [
    "CSV_FALLBACK_ENCODINGS",
    "HeaderMapping",
    "RawRosterRow",
    "RosterCSVReader",
    "RosterReadResult",
    "RosterReadStatistics",
    "RosterXLSXReader",
    "SUPPORTED_EXTENSIONS",
    "map_headers",
    "read_roster_file",
]
