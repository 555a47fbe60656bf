"""CSV reader for roster exports.

Validates the header row against the roster contract and streams data rows
as ``RawRosterRow`` values keyed by canonical field names.
"""

from __future__ import annotations

import csv
from typing import IO, Iterator

from roster_app.errors import RosterFileError

from .common import HeaderMapping, RawRosterRow, RosterReadStatistics, build_values, map_headers, row_is_blank


class RosterCSVReader:
    """CSV reader that enforces the roster ingest contract."""

    def __init__(self, file_obj: IO[str], *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.skip_blank_rows = skip_blank_rows
        self._header: HeaderMapping | None = None
        self.statistics = RosterReadStatistics()

    @property
    def header(self) -> HeaderMapping | None:
        return self._header

    def iter_rows(self) -> Iterator[RawRosterRow]:
        self._file_obj.seek(0)
        reader = csv.reader(self._file_obj)
        raw_headers = next(reader, None)
        if raw_headers is None:
            raise RosterFileError("Roster file is empty; expected a header row.")
        self._header = map_headers(raw_headers)

        for cells in reader:
            if self.skip_blank_rows and row_is_blank(cells):
                self.statistics.rows_skipped_blank += 1
                continue
            self.statistics.rows_processed += 1
            yield RawRosterRow(row_number=reader.line_num, values=build_values(cells, self._header))
