from datetime import date, datetime

import openpyxl
import pytest

from roster_app.errors import RosterFileError, RosterHeaderError
from roster_app.importer.adapters import read_roster_file
from roster_app.importer.adapters.xlsx_roster import RosterXLSXReader
from roster_app.importer.pipeline import process_rows


def _write_workbook(path, rows):
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def test_xlsx_reader_keeps_native_cell_types(tmp_path):
    path = _write_workbook(
        tmp_path / "roster.xlsx",
        [
            ["社員番号", "氏名", "所属", "入社年月日", "生年月日"],
            [1001, "山田 太郎", "営業本部 第一営業部", datetime(2023, 4, 1), 35065],
            [None, None, None, None, None],
            [1002, "佐藤 花子", "管理本部", "R5.4.1", None],
        ],
    )

    reader = RosterXLSXReader(str(path))
    rows = list(reader.iter_rows())

    assert [row.row_number for row in rows] == [2, 4]
    assert reader.statistics.rows_skipped_blank == 1
    assert rows[0].values["employee_number"] == 1001

    batch = process_rows(rows)
    first, second = batch.employees
    assert first.employee_number == "1001"
    assert first.join_date == date(2023, 4, 1)
    assert first.birth_date == date(1996, 1, 1)
    assert second.join_date == date(2023, 4, 1)


def test_xlsx_reader_validates_header(tmp_path):
    path = _write_workbook(tmp_path / "roster.xlsx", [["社員番号", "氏名"], [1, "A"]])

    with pytest.raises(RosterHeaderError):
        list(RosterXLSXReader(str(path)).iter_rows())


def test_xlsx_reader_rejects_empty_sheet(tmp_path):
    path = _write_workbook(tmp_path / "roster.xlsx", [])

    with pytest.raises(RosterFileError):
        list(RosterXLSXReader(str(path)).iter_rows())


def test_read_roster_file_rejects_corrupt_workbook(tmp_path):
    path = tmp_path / "roster.xlsx"
    path.write_bytes(b"this is not a zip archive")

    with pytest.raises(RosterFileError, match="Could not open workbook"):
        read_roster_file(path)
