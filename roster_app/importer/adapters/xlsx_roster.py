"""XLSX reader for roster exports (first worksheet, first row is the header)."""

from __future__ import annotations

import zipfile
from typing import IO, Iterator

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from roster_app.errors import RosterFileError

from .common import HeaderMapping, RawRosterRow, RosterReadStatistics, build_values, map_headers, row_is_blank


class RosterXLSXReader:
    """
    Streaming spreadsheet reader.

    Cells keep the types openpyxl returns (numbers, ``datetime``) so date
    parsing can tell serials and real dates apart.
    """

    def __init__(self, file_stream: str | IO[bytes], *, skip_blank_rows: bool = True) -> None:
        self.file_stream = file_stream
        self.skip_blank_rows = skip_blank_rows
        self._header: HeaderMapping | None = None
        self.statistics = RosterReadStatistics()

    @property
    def header(self) -> HeaderMapping | None:
        return self._header

    def iter_rows(self) -> Iterator[RawRosterRow]:
        try:
            workbook = openpyxl.load_workbook(self.file_stream, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
            raise RosterFileError(f"Could not open workbook: {exc}") from exc

        try:
            if not workbook.worksheets:
                raise RosterFileError("Workbook has no worksheets.")
            sheet = workbook.worksheets[0]
            rows = sheet.iter_rows(values_only=True)
            raw_headers = next(rows, None)
            if raw_headers is None or row_is_blank(raw_headers):
                raise RosterFileError("Roster workbook is empty; expected a header row.")
            self._header = map_headers(raw_headers)

            for row_number, cells in enumerate(rows, start=2):
                if self.skip_blank_rows and row_is_blank(cells):
                    self.statistics.rows_skipped_blank += 1
                    continue
                self.statistics.rows_processed += 1
                yield RawRosterRow(row_number=row_number, values=build_values(cells, self._header))
        finally:
            workbook.close()
