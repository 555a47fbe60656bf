"""
Persistence port used by the roster committer.

``RosterUnitOfWork`` names every store operation the pipeline needs; the
SQLAlchemy implementation runs them against one session and treats the
``with`` block as the transaction boundary.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import joinedload

from roster_app.models import (
    ChangeLogEntry,
    Course,
    Department,
    Employee,
    EmployeeHistory,
    Organization,
    Section,
    UnitLevel,
    db,
    utcnow,
)

from .reconcile import EmployeeView

UNIT_MODELS = {
    UnitLevel.DEPARTMENT: Department,
    UnitLevel.SECTION: Section,
    UnitLevel.COURSE: Course,
}


class RosterUnitOfWork(Protocol):
    """Operations the roster pipeline performs against the store."""

    def __enter__(self) -> "RosterUnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def get_organization(self, organization_id: int) -> Organization | None: ...

    def list_employee_views(self, organization_id: int) -> list[EmployeeView]: ...

    def find_or_create_department(
        self, organization_id: int, name: str, code: str | None
    ) -> tuple[Department, bool]: ...

    def find_or_create_section(self, department: Department, name: str, code: str | None) -> tuple[Section, bool]: ...

    def find_or_create_course(self, section: Section, name: str, code: str | None) -> tuple[Course, bool]: ...

    def find_employee(self, organization_id: int, employee_number: str) -> Employee | None: ...

    def add_employee(self, organization_id: int, **fields) -> Employee: ...

    def update_employee(self, employee: Employee, **fields) -> Employee: ...

    def view_of(self, employee: Employee) -> EmployeeView: ...

    def deactivate_missing(self, organization_id: int, keep_numbers: Iterable[str]) -> list[EmployeeView]: ...

    def iter_units(self, organization_id: int, level: UnitLevel) -> Sequence[Department | Section | Course]: ...

    def active_employees_in(self, level: UnitLevel, unit_id: int) -> Sequence[Employee]: ...

    def set_manager(self, unit: Department | Section | Course, employee: Employee | None) -> None: ...

    def add_change_logs(self, entries: Iterable[ChangeLogEntry]) -> int: ...

    def record_employee_history(
        self,
        view: EmployeeView,
        *,
        change_type: str,
        reason: str | None,
        actor: str,
        at: datetime,
    ) -> EmployeeHistory: ...


def _view_from_employee(employee: Employee) -> EmployeeView:
    return EmployeeView(
        id=employee.id,
        employee_number=employee.employee_number,
        name=employee.name,
        is_active=bool(employee.is_active),
        department=employee.department.name if employee.department is not None else None,
        section=employee.section.name if employee.section is not None else None,
        course=employee.course.name if employee.course is not None else None,
        department_id=employee.department_id,
        section_id=employee.section_id,
        course_id=employee.course_id,
        name_kana=employee.name_kana,
        email=employee.email,
        phone=employee.phone,
        position=employee.position,
        position_code=employee.position_code,
        qualification_grade=employee.qualification_grade,
        qualification_grade_code=employee.qualification_grade_code,
        employment_type=employee.employment_type,
        employment_type_code=employee.employment_type_code,
    )


class SqlAlchemyRosterUnitOfWork:
    """Unit of work backed by a SQLAlchemy session (``db.session`` by default)."""

    def __init__(self, session=None) -> None:
        self.session = session if session is not None else db.session

    def __enter__(self) -> "SqlAlchemyRosterUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # Organization tree -------------------------------------------------

    def get_organization(self, organization_id: int) -> Organization | None:
        return self.session.get(Organization, organization_id)

    def _sync_code(self, unit, code: str | None) -> None:
        if code and unit.code != code:
            unit.code = code

    def find_or_create_department(
        self, organization_id: int, name: str, code: str | None
    ) -> tuple[Department, bool]:
        department = self.session.scalars(
            select(Department).where(Department.organization_id == organization_id, Department.name == name)
        ).first()
        if department is not None:
            self._sync_code(department, code)
            return department, False
        department = Department(organization_id=organization_id, name=name, code=code)
        self.session.add(department)
        self.session.flush()
        return department, True

    def find_or_create_section(self, department: Department, name: str, code: str | None) -> tuple[Section, bool]:
        section = self.session.scalars(
            select(Section).where(Section.department_id == department.id, Section.name == name)
        ).first()
        if section is not None:
            self._sync_code(section, code)
            return section, False
        section = Section(department_id=department.id, name=name, code=code)
        self.session.add(section)
        self.session.flush()
        return section, True

    def find_or_create_course(self, section: Section, name: str, code: str | None) -> tuple[Course, bool]:
        course = self.session.scalars(
            select(Course).where(Course.section_id == section.id, Course.name == name)
        ).first()
        if course is not None:
            self._sync_code(course, code)
            return course, False
        course = Course(section_id=section.id, name=name, code=code)
        self.session.add(course)
        self.session.flush()
        return course, True

    def iter_units(self, organization_id: int, level: UnitLevel) -> Sequence[Department | Section | Course]:
        stmt = select(Department).where(Department.organization_id == organization_id)
        if level is UnitLevel.SECTION:
            stmt = select(Section).join(Department, Section.department_id == Department.id).where(
                Department.organization_id == organization_id
            )
        elif level is UnitLevel.COURSE:
            stmt = (
                select(Course)
                .join(Section, Course.section_id == Section.id)
                .join(Department, Section.department_id == Department.id)
                .where(Department.organization_id == organization_id)
            )
        model = UNIT_MODELS[level]
        return self.session.scalars(stmt.order_by(model.id)).all()

    def active_employees_in(self, level: UnitLevel, unit_id: int) -> Sequence[Employee]:
        column = {
            UnitLevel.DEPARTMENT: Employee.department_id,
            UnitLevel.SECTION: Employee.section_id,
            UnitLevel.COURSE: Employee.course_id,
        }[level]
        stmt = select(Employee).where(column == unit_id, Employee.is_active.is_(True)).order_by(Employee.id)
        return self.session.scalars(stmt).all()

    def set_manager(self, unit: Department | Section | Course, employee: Employee | None) -> None:
        unit.manager_id = employee.id if employee is not None else None

    # Employees ---------------------------------------------------------

    def list_employee_views(self, organization_id: int) -> list[EmployeeView]:
        stmt = (
            select(Employee)
            .where(Employee.organization_id == organization_id)
            .options(joinedload(Employee.department), joinedload(Employee.section), joinedload(Employee.course))
            .order_by(Employee.id)
        )
        return [_view_from_employee(employee) for employee in self.session.scalars(stmt).unique().all()]

    def find_employee(self, organization_id: int, employee_number: str) -> Employee | None:
        return self.session.scalars(
            select(Employee).where(
                Employee.organization_id == organization_id,
                Employee.employee_number == employee_number,
            )
        ).first()

    def add_employee(self, organization_id: int, **fields) -> Employee:
        employee = Employee(organization_id=organization_id, is_active=True, **fields)
        self.session.add(employee)
        self.session.flush()
        return employee

    def update_employee(self, employee: Employee, **fields) -> Employee:
        for name, value in fields.items():
            if getattr(employee, name) != value:
                setattr(employee, name, value)
        self.session.flush()
        return employee

    def view_of(self, employee: Employee) -> EmployeeView:
        return _view_from_employee(employee)

    def deactivate_missing(self, organization_id: int, keep_numbers: Iterable[str]) -> list[EmployeeView]:
        criteria = (
            Employee.organization_id == organization_id,
            Employee.is_active.is_(True),
            Employee.employee_number.not_in(list(keep_numbers)),
        )
        retirees = self.session.scalars(
            select(Employee)
            .where(*criteria)
            .options(joinedload(Employee.department), joinedload(Employee.section), joinedload(Employee.course))
            .order_by(Employee.id)
        ).unique().all()
        if not retirees:
            return []
        views = [replace(_view_from_employee(employee), is_active=False) for employee in retirees]
        self.session.execute(
            update(Employee)
            .where(*criteria)
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return views

    # Audit -------------------------------------------------------------

    def add_change_logs(self, entries: Iterable[ChangeLogEntry]) -> int:
        entries = list(entries)
        self.session.add_all(entries)
        self.session.flush()
        return len(entries)

    def record_employee_history(
        self,
        view: EmployeeView,
        *,
        change_type: str,
        reason: str | None,
        actor: str,
        at: datetime,
    ) -> EmployeeHistory:
        open_rows = self.session.scalars(
            select(EmployeeHistory).where(
                EmployeeHistory.employee_id == view.id,
                EmployeeHistory.valid_to.is_(None),
            )
        ).all()
        for row in open_rows:
            row.valid_to = at

        history = EmployeeHistory(
            employee_id=view.id,
            valid_from=at,
            employee_number=view.employee_number,
            name=view.name,
            position=view.position,
            position_code=view.position_code,
            qualification_grade=view.qualification_grade,
            employment_type=view.employment_type,
            is_active=view.is_active,
            department_id=view.department_id,
            department_name=view.department,
            section_id=view.section_id,
            section_name=view.section,
            course_id=view.course_id,
            course_name=view.course,
            change_type=change_type,
            change_reason=reason,
            changed_by=actor,
        )
        self.session.add(history)
        return history


__all__ = ["RosterUnitOfWork", "SqlAlchemyRosterUnitOfWork", "UNIT_MODELS"]
