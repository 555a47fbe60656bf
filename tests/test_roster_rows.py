from datetime import date

from roster_app.errors import RowError
from roster_app.importer.adapters.common import RawRosterRow
from roster_app.importer.pipeline.rows import (
    Affiliation,
    RowParserSettings,
    has_required_values,
    parse_affiliation,
    process_row,
    process_rows,
)


def _values(**overrides):
    values = {
        "employee_number": "E1",
        "name": "山田 太郎",
        "affiliation": "営業本部 第一営業部 東京課",
    }
    values.update(overrides)
    return values


def test_parse_affiliation_levels():
    assert parse_affiliation("営業本部") == Affiliation("営業本部", None, None)
    assert parse_affiliation("営業本部 第一営業部") == Affiliation("営業本部", "第一営業部", None)
    assert parse_affiliation("営業本部　第一営業部　東京課") == Affiliation("営業本部", "第一営業部", "東京課")
    assert parse_affiliation("A B C D") == Affiliation("A", "B", "C D")
    assert parse_affiliation("  ") == Affiliation(None)
    assert parse_affiliation(None) == Affiliation(None)


def test_has_required_values():
    assert has_required_values(_values())
    assert not has_required_values(_values(employee_number=" "))
    assert not has_required_values(_values(name=None))
    assert not has_required_values(_values(affiliation=""))


def test_executive_rows_do_not_need_affiliation():
    values = _values(affiliation=None, affiliation_code="99999901")
    assert has_required_values(values)

    employee = process_row(values)

    assert employee.is_executive
    assert employee.department == "役員・顧問"
    assert employee.section is None
    assert employee.course is None


def test_process_row_defaults_and_normalization():
    employee = process_row(
        _values(name_kana="ﾔﾏﾀﾞ ﾀﾛｳ", join_date="R5.4.1", birth_date="35065", email=" taro@example.com "),
        row_number=7,
    )

    assert employee.position == "一般"
    assert employee.name_kana == "ヤマダ タロウ"
    assert employee.join_date == date(2023, 4, 1)
    assert employee.birth_date == date(1996, 1, 1)
    assert employee.email == "taro@example.com"
    assert employee.unit_path == ("営業本部", "第一営業部", "東京課")
    assert employee.row_number == 7


def test_explicit_columns_override_affiliation_text():
    employee = process_row(_values(section="第二営業部", course="大阪課"))

    assert employee.department == "営業本部"
    assert employee.section == "第二営業部"
    assert employee.course == "大阪課"


def test_course_without_section_is_dropped_with_error():
    errors: list[RowError] = []
    employee = process_row(_values(affiliation="営業本部", course="東京課"), row_number=3, errors=errors)

    assert employee.section is None
    assert employee.course is None
    assert len(errors) == 1
    assert errors[0].row_number == 3


def test_unparseable_date_is_reported():
    errors: list[RowError] = []
    employee = process_row(_values(join_date="someday"), row_number=4, errors=errors)

    assert employee.join_date is None
    assert errors == [RowError(4, "Unrecognized join_date value 'someday'; left blank.")]


def test_settings_from_config():
    settings = RowParserSettings.from_config(
        {
            "ROSTER_DEFAULT_POSITION": "Staff",
            "ROSTER_EXECUTIVE_CODE_PREFIX": "0000",
            "ROSTER_EXECUTIVE_DEPARTMENT_NAME": "Board",
        }
    )
    employee = process_row(_values(affiliation_code="000012"), settings=settings)

    assert employee.department == "Board"
    assert employee.position == "Staff"
    assert not settings.is_executive_code(None)


def test_process_rows_skips_incomplete_rows():
    rows = [
        RawRosterRow(row_number=2, values=_values()),
        RawRosterRow(row_number=3, values=_values(employee_number="")),
        RawRosterRow(row_number=4, values=_values(employee_number="E2", affiliation=None)),
        RawRosterRow(row_number=5, values=_values(employee_number="E3", join_date="bad")),
    ]

    batch = process_rows(rows)

    assert [employee.employee_number for employee in batch.employees] == ["E1", "E3"]
    assert batch.rows_skipped == 2
    assert batch.rows_processed == 2
    assert [error.row_number for error in batch.errors] == [3, 4, 5]
    assert batch.errors[0].message == "Row skipped: employee number, name and affiliation are required."


def test_process_rows_ignores_fully_blank_rows_without_error():
    batch = process_rows([_values(employee_number=None, name="", affiliation="  ")])

    assert batch.employees == []
    assert batch.rows_skipped == 1
    assert batch.errors == []


def test_process_rows_accepts_plain_mappings():
    batch = process_rows([_values(), _values(employee_number="E2")])

    assert [employee.row_number for employee in batch.employees] == [1, 2]
