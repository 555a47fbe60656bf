import io

import pytest

from roster_app.errors import RosterFileError, RosterHeaderError
from roster_app.importer.adapters import read_roster_file
from roster_app.importer.adapters.csv_roster import RosterCSVReader
from roster_app.importer.contracts import normalize_header, required_headers_missing

JAPANESE_HEADER = "社員番号,氏名,氏名(フリガナ),所属,役職,入社年月日,社用e-Mail１,備考\n"


def _make_csv(contents: str) -> io.StringIO:
    stream = io.StringIO(contents)
    stream.seek(0)
    return stream


def test_reader_maps_japanese_headers_and_ignores_unknown_columns():
    csv_stream = _make_csv(JAPANESE_HEADER + "1001, 山田 太郎 ,ﾔﾏﾀﾞ ﾀﾛｳ,営業本部 第一営業部,課長,R5.4.1,taro@example.com,memo\n")

    reader = RosterCSVReader(csv_stream)
    rows = list(reader.iter_rows())

    assert reader.header is not None
    assert reader.header.canonical_headers == (
        "employee_number",
        "name",
        "name_kana",
        "affiliation",
        "position",
        "join_date",
        "email",
    )
    assert reader.header.ignored == ("備考",)
    assert len(rows) == 1
    assert rows[0].row_number == 2
    assert rows[0].values["name"] == "山田 太郎"
    assert rows[0].values["email"] == "taro@example.com"
    assert "備考" not in rows[0].values


def test_reader_accepts_english_headers_case_insensitively():
    csv_stream = _make_csv("Employee Number,Name,Affiliation\nE1,Ada,Engineering\n")

    rows = list(RosterCSVReader(csv_stream).iter_rows())

    assert rows[0].values == {"employee_number": "E1", "name": "Ada", "affiliation": "Engineering"}


def test_reader_rejects_missing_required_headers():
    reader = RosterCSVReader(_make_csv("社員番号,氏名\n1001,山田\n"))

    with pytest.raises(RosterHeaderError) as excinfo:
        list(reader.iter_rows())

    assert "Missing required columns" in str(excinfo.value)
    assert excinfo.value.missing == ("affiliation",)


def test_reader_rejects_duplicate_canonical_columns():
    reader = RosterCSVReader(_make_csv("社員番号,employee_number,氏名,所属\n1,1,A,B\n"))

    with pytest.raises(RosterHeaderError) as excinfo:
        list(reader.iter_rows())

    assert excinfo.value.duplicates == ("employee_number",)


def test_reader_skips_blank_rows_and_tracks_statistics():
    csv_stream = _make_csv("社員番号,氏名,所属\n1001,A,本部\n,,\n1002,B,本部\n")

    reader = RosterCSVReader(csv_stream)
    rows = list(reader.iter_rows())

    assert [row.row_number for row in rows] == [2, 4]
    assert reader.statistics.rows_processed == 2
    assert reader.statistics.rows_skipped_blank == 1


def test_reader_rejects_empty_stream():
    with pytest.raises(RosterFileError):
        list(RosterCSVReader(_make_csv("")).iter_rows())


def test_normalize_header_folds_width_and_separators():
    assert normalize_header("社用e-Mail１") == "社用e_mail1"
    assert normalize_header(" Employee.Number ") == "employee_number"
    assert required_headers_missing(["社員番号", "氏名"]) == ("affiliation",)


def test_read_roster_file_decodes_shift_jis(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_bytes("社員番号,氏名,所属\n1001,山田 太郎,営業本部\n".encode("cp932"))

    result = read_roster_file(path)

    assert result.rows[0].values["name"] == "山田 太郎"
    assert result.statistics.rows_processed == 1


def test_read_roster_file_strips_utf8_bom(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_bytes("社員番号,氏名,所属\n1001,A,本部\n".encode("utf-8-sig"))

    result = read_roster_file(path)

    assert result.header.canonical_headers[0] == "employee_number"


def test_read_roster_file_validates_file(tmp_path):
    with pytest.raises(RosterFileError, match="Unsupported"):
        read_roster_file(tmp_path / "roster.txt")
    with pytest.raises(RosterFileError, match="not found"):
        read_roster_file(tmp_path / "missing.csv")

    empty = tmp_path / "empty.csv"
    empty.write_bytes(b"")
    with pytest.raises(RosterFileError, match="empty"):
        read_roster_file(empty)

    large = tmp_path / "large.csv"
    large.write_bytes(b"x" * (1024 * 1024 + 1))
    with pytest.raises(RosterFileError, match="exceeds"):
        read_roster_file(large, max_upload_mb=1)
