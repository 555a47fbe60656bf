import pytest
from sqlalchemy import func, select

from roster_app.errors import OrganizationNotFound
from roster_app.importer.pipeline import (
    ParsedBatch,
    SqlAlchemyRosterUnitOfWork,
    commit_import,
    derive_unit_codes,
    get_change_logs_by_batch_id,
    preview_import,
    process_rows,
)
from roster_app.models import (
    ChangeLogEntry,
    ChangeType,
    Course,
    Department,
    Employee,
    EmployeeHistory,
    Section,
    db,
)


def _row(number, name, affiliation, *, position=None, code=None, email=None):
    return {
        "employee_number": number,
        "name": name,
        "affiliation": affiliation,
        "position": position,
        "affiliation_code": code,
        "email": email,
    }


def _batch(*rows):
    return process_rows(list(rows)).employees


def _commit(organization, employees, **kwargs):
    kwargs.setdefault("actor", "tester")
    return commit_import(SqlAlchemyRosterUnitOfWork(), employees, organization_id=organization.id, **kwargs)


def _count(model):
    return db.session.scalar(select(func.count(model.id)))


def _employee(organization, number):
    return db.session.scalars(
        select(Employee).where(Employee.organization_id == organization.id, Employee.employee_number == number)
    ).one()


SALES_ROWS = (
    _row("E1", "山田 太郎", "営業本部", position="営業本部長", code="12"),
    _row("E2", "佐藤 花子", "営業本部 第一営業部", position="部長", code="1234"),
    _row("E3", "鈴木 一郎", "営業本部 第一営業部 東京課", position="課長", code="1234567"),
    _row("E4", "高橋 次郎", "営業本部 第一営業部 東京課", code="1234567"),
)


def test_first_import_builds_tree_and_audit_trail(organization):
    result = _commit(organization, _batch(*SALES_ROWS))

    assert result.success, result.message
    stats = result.statistics
    assert stats.created == 4
    assert (stats.departments_created, stats.sections_created, stats.courses_created) == (1, 1, 1)
    assert stats.change_log_count == 5

    department = db.session.scalars(select(Department)).one()
    section = db.session.scalars(select(Section)).one()
    course = db.session.scalars(select(Course)).one()
    assert (department.code, section.code, course.code) == ("12", "1234", "1234567")
    assert department.manager_id == _employee(organization, "E1").id
    assert section.manager_id == _employee(organization, "E2").id
    assert course.manager_id == _employee(organization, "E3").id
    assert stats.managers_assigned == 3

    e4 = _employee(organization, "E4")
    assert e4.position == "一般"
    assert (e4.department_id, e4.section_id, e4.course_id) == (department.id, section.id, course.id)

    entries = get_change_logs_by_batch_id(result.batch_id)
    assert [entry.change_type for entry in entries].count(ChangeType.CREATE) == 4
    assert entries[-1].change_type == ChangeType.IMPORT
    assert entries[-1].entity_type == "organization"
    assert "新規登録: 高橋 次郎 (E4)" in [entry.description for entry in entries]
    assert _count(EmployeeHistory) == 4


def test_reimporting_same_batch_is_a_no_op(organization):
    first = _commit(organization, _batch(*SALES_ROWS))
    second = _commit(organization, _batch(*SALES_ROWS))

    assert first.success and second.success
    stats = second.statistics
    assert (stats.created, stats.updated, stats.retired, stats.skipped) == (0, 0, 0, 0)
    assert stats.unchanged == 4
    assert (stats.departments_created, stats.sections_created, stats.courses_created) == (0, 0, 0)
    assert stats.managers_assigned == 0
    # Only the organization-level import entry is written.
    assert stats.change_log_count == 1
    assert _count(Employee) == 4
    assert _count(EmployeeHistory) == 4


def test_employees_missing_from_batch_are_retired(organization):
    _commit(
        organization,
        _batch(
            _row("E1", "A", "本部"),
            _row("E2", "B", "本部"),
            _row("E3", "C", "本部"),
        ),
    )

    result = _commit(organization, _batch(_row("E1", "A", "本部"), _row("E2", "B", "本部")))

    assert result.statistics.retired == 1
    assert _employee(organization, "E3").is_active is False
    retirement = [e for e in get_change_logs_by_batch_id(result.batch_id) if e.change_type == ChangeType.RETIREMENT]
    assert len(retirement) == 1
    assert (retirement[0].field_name, retirement[0].old_value, retirement[0].new_value) == ("is_active", "true", "false")
    assert retirement[0].description == "退職: C (E3)"


def test_transfer_updates_unit_and_closes_history(organization):
    _commit(organization, _batch(_row("E1", "山田 太郎", "営業本部 第一営業部")))
    employee = _employee(organization, "E1")
    old_section_id = employee.section_id

    result = _commit(organization, _batch(_row("E1", "山田 太郎", "営業本部 第二営業部")))

    stats = result.statistics
    assert (stats.updated, stats.transferred, stats.sections_created) == (1, 1, 1)
    employee = _employee(organization, "E1")
    assert employee.section_id != old_section_id
    assert employee.section.name == "第二営業部"

    entries = [e for e in get_change_logs_by_batch_id(result.batch_id) if e.entity_type == "employee"]
    assert len(entries) == 1
    assert entries[0].change_type == ChangeType.TRANSFER
    assert entries[0].field_name == "section"
    assert entries[0].description == "部: 第一営業部 → 第二営業部"

    histories = db.session.scalars(
        select(EmployeeHistory).where(EmployeeHistory.employee_id == employee.id).order_by(EmployeeHistory.id)
    ).all()
    assert len(histories) == 2
    assert histories[0].valid_to is not None
    assert histories[1].valid_to is None
    assert histories[1].section_name == "第二営業部"
    assert histories[1].change_type == "TRANSFER"


def test_position_change_is_logged_as_promotion(organization):
    _commit(organization, _batch(_row("E1", "A", "本部")))

    result = _commit(organization, _batch(_row("E1", "A", "本部", position="主任")))

    assert result.statistics.promoted == 1
    entry = [e for e in get_change_logs_by_batch_id(result.batch_id) if e.entity_type == "employee"][0]
    assert entry.change_type == ChangeType.PROMOTION
    assert entry.description == "役職: 一般 → 主任"


def test_retired_employee_rejoins(organization):
    _commit(organization, _batch(_row("E1", "A", "本部"), _row("E2", "B", "本部")))
    _commit(organization, _batch(_row("E1", "A", "本部")))

    result = _commit(organization, _batch(_row("E1", "A", "本部"), _row("E2", "B", "本部")))

    assert result.statistics.rejoined == 1
    assert result.statistics.created == 0
    assert _employee(organization, "E2").is_active is True
    types = {e.change_type for e in get_change_logs_by_batch_id(result.batch_id) if e.entity_type == "employee"}
    assert types == {ChangeType.REJOINING}


def test_retired_employee_reclaimed_by_email_under_new_number(organization):
    _commit(organization, _batch(_row("OLD1", "A", "本部", email="taro@example.com"), _row("E2", "B", "本部")))
    retire = _commit(organization, _batch(_row("E2", "B", "本部")))
    assert retire.statistics.retired == 1
    original_id = _employee(organization, "OLD1").id

    rows = (_row("NEW1", "A", "本部", email="taro@example.com"), _row("E2", "B", "本部"))
    result = _commit(organization, _batch(*rows))

    stats = result.statistics
    assert (stats.created, stats.rejoined, stats.retired) == (0, 1, 0)
    assert _count(Employee) == 2
    reclaimed = _employee(organization, "NEW1")
    assert reclaimed.id == original_id
    assert reclaimed.is_active is True

    entries = [e for e in get_change_logs_by_batch_id(result.batch_id) if e.entity_type == "employee"]
    renumbered = [e for e in entries if e.field_name == "employee_number"]
    assert len(renumbered) == 1
    assert (renumbered[0].old_value, renumbered[0].new_value) == ("OLD1", "NEW1")
    assert renumbered[0].entity_id == original_id
    assert {e.change_type for e in entries} == {ChangeType.REJOINING}

    preview = preview_import(SqlAlchemyRosterUnitOfWork(), organization.id, ParsedBatch(employees=_batch(*rows)))
    assert preview.has_changes is False


def test_executive_rows_land_in_executive_department_without_code(organization):
    result = _commit(organization, _batch(_row("99999901", "会長", None, code="99999901", position="役員")))

    assert result.success
    department = db.session.scalars(select(Department)).one()
    assert department.name == "役員・顧問"
    assert department.code is None


def test_duplicate_rows_are_counted_and_not_imported(organization):
    result = _commit(organization, _batch(_row("E1", "A", "本部"), _row("E1", "A2", "本部")))

    assert result.statistics.created == 1
    assert result.statistics.excluded_duplicates == 1
    assert _employee(organization, "E1").name == "A"


def test_commit_requires_existing_organization(app):
    with pytest.raises(OrganizationNotFound):
        commit_import(SqlAlchemyRosterUnitOfWork(), _batch(*SALES_ROWS), organization_id=999, actor="tester")


class ExplodingUnitOfWork(SqlAlchemyRosterUnitOfWork):
    def add_change_logs(self, entries):
        raise RuntimeError("disk full")


def test_failure_mid_transaction_rolls_everything_back(organization):
    result = commit_import(ExplodingUnitOfWork(), _batch(*SALES_ROWS), organization_id=organization.id, actor="tester")

    assert result.success is False
    assert "rolled back" in result.message
    assert result.error == "disk full"
    assert result.batch_id.startswith("BATCH-")
    assert _count(Department) == 0
    assert _count(Section) == 0
    assert _count(Course) == 0
    assert _count(Employee) == 0
    assert _count(ChangeLogEntry) == 0


def test_derive_unit_codes():
    assert derive_unit_codes("1234567") == ("12", "1234", "1234567")
    assert derive_unit_codes("1234567", department_code_length=3, section_code_length=5) == ("123", "12345", "1234567")
    assert derive_unit_codes(None) == (None, None, None)
