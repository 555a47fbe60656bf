from roster_app.importer.pipeline.dedupe import (
    REASON_EMAIL,
    REASON_EMPLOYEE_NUMBER,
    REASON_EXECUTIVE_NAME,
    deduplicate_batch,
)
from roster_app.importer.pipeline.rows import ProcessedEmployee


def _employee(number, name="Someone", *, email=None, executive=False, row=0):
    return ProcessedEmployee(
        employee_number=number,
        name=name,
        department="役員・顧問" if executive else "営業本部",
        position="一般",
        email=email,
        is_executive=executive,
        row_number=row,
    )


def test_repeated_employee_number_keeps_first_row():
    first = _employee("E1", "First", row=2)
    second = _employee("E1", "Second", row=3)

    result = deduplicate_batch([first, second])

    assert result.employees == [first]
    assert len(result.excluded) == 1
    assert result.excluded[0].employee is second
    assert result.excluded[0].reason == REASON_EMPLOYEE_NUMBER
    assert result.excluded[0].kept_employee_number == "E1"


def test_executives_with_same_name_keep_lowest_number():
    later = _employee("99000002", "山田 太郎", executive=True, row=2)
    earlier = _employee("99000001", "山田　太郎", executive=True, row=3)

    result = deduplicate_batch([later, earlier])

    assert result.employees == [earlier]
    assert result.excluded[0].reason == REASON_EXECUTIVE_NAME
    assert result.excluded[0].kept_employee_number == "99000001"


def test_non_executives_with_same_name_are_kept():
    a = _employee("E1", "佐藤 花子")
    b = _employee("E2", "佐藤 花子")

    result = deduplicate_batch([a, b])

    assert result.employees == [a, b]
    assert result.excluded == []


def test_shared_email_is_case_insensitive():
    a = _employee("E1", email="Shared@Example.com")
    b = _employee("E2", email="shared@example.com")
    c = _employee("E3", email=None)
    d = _employee("E4", email=None)

    result = deduplicate_batch([a, b, c, d])

    assert result.employees == [a, c, d]
    assert result.excluded[0].employee is b
    assert result.excluded[0].reason == REASON_EMAIL
    assert result.employee_numbers == {"E1", "E3", "E4"}


def test_order_is_preserved_and_output_is_subset():
    rows = [_employee(f"E{i}", row=i) for i in range(5)] + [_employee("E2", row=9)]

    result = deduplicate_batch(rows)

    assert [e.employee_number for e in result.employees] == ["E0", "E1", "E2", "E3", "E4"]
    assert len(result.employees) + len(result.excluded) == len(rows)
    assert as_dict_keys(result) == {"employee_number", "name", "row_number", "reason", "kept_employee_number"}


def as_dict_keys(result):
    return set(result.excluded[0].as_dict())
