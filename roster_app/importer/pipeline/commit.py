"""
Apply a roster batch to the store inside one transaction.

The committer re-runs reconciliation against the live state so it never
trusts a stale preview, then creates missing units, upserts employees,
retires absentees, infers managers and writes the audit trail. Any exception
rolls the whole unit of work back and is reported as a failed ``CommitResult``.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Sequence

from flask import current_app, has_app_context

from config.monitoring import RosterImportMonitoring
from roster_app.errors import OrganizationNotFound
from roster_app.models import ChangeType, Department, Section, UnitLevel, utcnow

from .audit import build_field_change_entries, generate_batch_id, new_change_log
from .dedupe import deduplicate_batch
from .managers import ManagerPolicy
from .reconcile import PreviewResult, TransferredEmployee, UpdatedEmployee, reconcile
from .rows import ProcessedEmployee
from .unit_of_work import RosterUnitOfWork

DEFAULT_DEPARTMENT_CODE_LENGTH = 2
DEFAULT_SECTION_CODE_LENGTH = 4

EMPLOYEE_ENTITY = "employee"
ORGANIZATION_ENTITY = "organization"


@dataclass
class CommitStatistics:
    total_records: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    retired: int = 0
    transferred: int = 0
    promoted: int = 0
    rejoined: int = 0
    unchanged: int = 0
    departments_created: int = 0
    sections_created: int = 0
    courses_created: int = 0
    managers_assigned: int = 0
    change_log_count: int = 0
    excluded_duplicates: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

    def summary(self) -> str:
        parts = [f"{name}={value}" for name, value in self.as_dict().items() if value and name != "total_records"]
        return ", ".join(parts) if parts else "no changes"


@dataclass(frozen=True)
class CommitResult:
    success: bool
    message: str
    batch_id: str | None = None
    statistics: CommitStatistics | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success, "message": self.message, "batch_id": self.batch_id}
        if self.statistics is not None:
            payload["statistics"] = self.statistics.as_dict()
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class _UnitMaps:
    departments: dict[str, Department] = field(default_factory=dict)
    sections: dict[tuple[str, str], Section] = field(default_factory=dict)
    courses: dict[tuple[str, str, str], object] = field(default_factory=dict)


def derive_unit_codes(
    affiliation_code: str | None,
    *,
    department_code_length: int = DEFAULT_DEPARTMENT_CODE_LENGTH,
    section_code_length: int = DEFAULT_SECTION_CODE_LENGTH,
) -> tuple[str | None, str | None, str | None]:
    """Department and section codes are prefixes of the affiliation code; the course gets all of it."""

    if not affiliation_code:
        return None, None, None
    return (
        affiliation_code[:department_code_length],
        affiliation_code[:section_code_length],
        affiliation_code,
    )


def _log(level: str, message: str, *args, **kwargs) -> None:
    if has_app_context():
        getattr(current_app.logger, level)(message, *args, **kwargs)


def _metrics_enabled() -> bool:
    return has_app_context() and bool(current_app.config.get("ROSTER_METRICS_ENABLED", True))


def _employee_change_type(rejoined: bool, transferred: bool, promoted: bool) -> ChangeType:
    if rejoined:
        return ChangeType.REJOINING
    if transferred:
        return ChangeType.TRANSFER
    if promoted:
        return ChangeType.PROMOTION
    return ChangeType.UPDATE


def _employee_fields(employee: ProcessedEmployee, maps: _UnitMaps) -> dict[str, object] | None:
    department = maps.departments.get(employee.department)
    if department is None:
        return None
    section = maps.sections.get((employee.department, employee.section)) if employee.section else None
    course = (
        maps.courses.get((employee.department, employee.section, employee.course))
        if employee.section and employee.course
        else None
    )
    return {
        "employee_number": employee.employee_number,
        "name": employee.name,
        "name_kana": employee.name_kana,
        "email": employee.email,
        "phone": employee.phone,
        "position": employee.position,
        "position_code": employee.position_code,
        "qualification_grade": employee.qualification_grade,
        "qualification_grade_code": employee.qualification_grade_code,
        "employment_type": employee.employment_type,
        "employment_type_code": employee.employment_type_code,
        "affiliation_code": employee.affiliation_code,
        "join_date": employee.join_date,
        "birth_date": employee.birth_date,
        "department": department,
        "section": section,
        "course": course,
    }


def _ensure_units(
    uow: RosterUnitOfWork,
    organization_id: int,
    employees: Sequence[ProcessedEmployee],
    statistics: CommitStatistics,
    *,
    department_code_length: int,
    section_code_length: int,
) -> _UnitMaps:
    maps = _UnitMaps()
    for employee in employees:
        if employee.is_executive:
            department_code = section_code = course_code = None
        else:
            department_code, section_code, course_code = derive_unit_codes(
                employee.affiliation_code,
                department_code_length=department_code_length,
                section_code_length=section_code_length,
            )

        department = maps.departments.get(employee.department)
        if department is None:
            department, created = uow.find_or_create_department(organization_id, employee.department, department_code)
            maps.departments[employee.department] = department
            if created:
                statistics.departments_created += 1
                _log("info", "Created department %s (code=%s)", department.name, department.code)

        if not employee.section:
            continue
        section_key = (employee.department, employee.section)
        section = maps.sections.get(section_key)
        if section is None:
            section, created = uow.find_or_create_section(department, employee.section, section_code)
            maps.sections[section_key] = section
            if created:
                statistics.sections_created += 1
                _log("info", "Created section %s under %s", section.name, department.name)

        if not employee.course:
            continue
        course_key = (employee.department, employee.section, employee.course)
        if course_key not in maps.courses:
            course, created = uow.find_or_create_course(section, employee.course, course_code)
            maps.courses[course_key] = course
            if created:
                statistics.courses_created += 1
                _log("info", "Created course %s under %s / %s", course.name, department.name, section.name)
    return maps


def _assign_managers(uow: RosterUnitOfWork, organization_id: int, policy: ManagerPolicy) -> int:
    assigned = 0
    for level in (UnitLevel.DEPARTMENT, UnitLevel.SECTION, UnitLevel.COURSE):
        for unit in uow.iter_units(organization_id, level):
            manager = policy.pick(level, uow.active_employees_in(level, unit.id))
            if manager is None or unit.manager_id == manager.id:
                continue
            uow.set_manager(unit, manager)
            assigned += 1
            _log("info", "Assigned %s as manager of %s %s", manager.name, level.value, unit.name)
    return assigned


def _apply_batch(
    uow: RosterUnitOfWork,
    organization_id: int,
    employees: Sequence[ProcessedEmployee],
    *,
    actor: str,
    batch_id: str,
    manager_policy: ManagerPolicy,
    department_code_length: int,
    section_code_length: int,
) -> tuple[CommitStatistics, PreviewResult]:
    now = utcnow()
    deduplicated = deduplicate_batch(employees)
    kept = deduplicated.employees
    preview = reconcile(kept, uow.list_employee_views(organization_id))
    statistics = CommitStatistics(
        total_records=len(employees),
        excluded_duplicates=len(deduplicated.excluded),
        unchanged=len(preview.unchanged),
    )

    new_numbers = {employee.employee_number for employee in preview.new_employees}
    changed: dict[str, UpdatedEmployee | TransferredEmployee] = {}
    for entry in (*preview.updated_employees, *preview.transferred_employees):
        changed[entry.employee.employee_number] = entry

    maps = _ensure_units(
        uow,
        organization_id,
        kept,
        statistics,
        department_code_length=department_code_length,
        section_code_length=section_code_length,
    )

    kept_numbers = {employee.employee_number for employee in kept}
    entries = []
    for employee in kept:
        fields = _employee_fields(employee, maps)
        if fields is None:
            statistics.skipped += 1
            _log(
                "warning",
                "Skipped employee %s: department %r could not be resolved",
                employee.employee_number,
                employee.department,
            )
            continue

        number = employee.employee_number
        if number in new_numbers:
            record = uow.add_employee(organization_id, **fields)
            statistics.created += 1
            view = uow.view_of(record)
            entries.append(
                new_change_log(
                    entity_type=EMPLOYEE_ENTITY,
                    entity_id=record.id,
                    change_type=ChangeType.CREATE,
                    actor=actor,
                    description=f"新規登録: {record.name} ({number})",
                    batch_id=batch_id,
                    changed_at=now,
                )
            )
            uow.record_employee_history(
                view, change_type=ChangeType.CREATE.value, reason="Created by roster import", actor=actor, at=now
            )
            continue

        if number in changed:
            entry = changed[number]
            transferred = isinstance(entry, TransferredEmployee)
            change_type = _employee_change_type(entry.rejoined, transferred, entry.promoted)
            changes = entry.changes
            record = uow.find_employee(organization_id, entry.existing.employee_number)
            fields["is_active"] = True
            uow.update_employee(record, **fields)
            statistics.updated += 1
            statistics.transferred += int(transferred)
            statistics.promoted += int(entry.promoted)
            statistics.rejoined += int(entry.rejoined)
            entries.extend(
                build_field_change_entries(
                    record.id,
                    changes,
                    change_type=change_type,
                    actor=actor,
                    batch_id=batch_id,
                    changed_at=now,
                )
            )
            uow.record_employee_history(
                uow.view_of(record),
                change_type=change_type.value,
                reason=", ".join(change.label for change in changes),
                actor=actor,
                at=now,
            )
            continue

        # Unchanged by comparable fields; keep secondary columns (dates, codes) current.
        record = uow.find_employee(organization_id, number)
        if record is not None:
            uow.update_employee(record, **fields)

    retirees = uow.deactivate_missing(organization_id, kept_numbers)
    statistics.retired = len(retirees)
    for view in retirees:
        entries.append(
            new_change_log(
                entity_type=EMPLOYEE_ENTITY,
                entity_id=view.id,
                change_type=ChangeType.RETIREMENT,
                actor=actor,
                field_name="is_active",
                old_value="true",
                new_value="false",
                description=f"退職: {view.name} ({view.employee_number})",
                batch_id=batch_id,
                changed_at=now,
            )
        )
        uow.record_employee_history(
            view, change_type=ChangeType.RETIREMENT.value, reason="Absent from roster import", actor=actor, at=now
        )
    if retirees:
        _log("info", "Retired %d employees absent from batch %s", len(retirees), batch_id)

    statistics.managers_assigned = _assign_managers(uow, organization_id, manager_policy)

    entries.append(
        new_change_log(
            entity_type=ORGANIZATION_ENTITY,
            entity_id=organization_id,
            change_type=ChangeType.IMPORT,
            actor=actor,
            description=f"Roster import: {statistics.summary()}",
            batch_id=batch_id,
            changed_at=now,
        )
    )
    statistics.change_log_count = uow.add_change_logs(entries)
    return statistics, preview


def commit_import(
    uow: RosterUnitOfWork,
    employees: Sequence[ProcessedEmployee],
    *,
    organization_id: int,
    actor: str,
    batch_id: str | None = None,
    manager_policy: ManagerPolicy | None = None,
    department_code_length: int = DEFAULT_DEPARTMENT_CODE_LENGTH,
    section_code_length: int = DEFAULT_SECTION_CODE_LENGTH,
) -> CommitResult:
    """
    Apply ``employees`` to ``organization_id`` atomically.

    Raises ``OrganizationNotFound`` before any write when the organization is
    unknown. Every other failure rolls back and returns ``success=False``.
    """

    if uow.get_organization(organization_id) is None:
        raise OrganizationNotFound(organization_id)

    batch_id = batch_id or generate_batch_id()
    manager_policy = manager_policy or ManagerPolicy()
    started = time.monotonic()

    try:
        with uow:
            statistics, _ = _apply_batch(
                uow,
                organization_id,
                employees,
                actor=actor,
                batch_id=batch_id,
                manager_policy=manager_policy,
                department_code_length=department_code_length,
                section_code_length=section_code_length,
            )
    except Exception as exc:
        duration = time.monotonic() - started
        _log(
            "error",
            "Roster commit %s for organization %s failed: %s",
            batch_id,
            organization_id,
            exc,
            exc_info=True,
            extra={"roster_batch_id": batch_id, "roster_organization_id": organization_id},
        )
        if _metrics_enabled():
            RosterImportMonitoring.record_commit(status="failed", duration_seconds=duration)
        return CommitResult(
            success=False,
            message=f"Import failed and was rolled back: {exc}",
            batch_id=batch_id,
            error=str(exc),
        )

    duration = time.monotonic() - started
    _log(
        "info",
        "Roster commit %s for organization %s completed: %s",
        batch_id,
        organization_id,
        statistics.summary(),
        extra={
            "roster_batch_id": batch_id,
            "roster_organization_id": organization_id,
            "roster_statistics": statistics.as_dict(),
        },
    )
    if _metrics_enabled():
        RosterImportMonitoring.record_commit(status="succeeded", duration_seconds=duration)
        RosterImportMonitoring.record_employee_outcomes(
            created=statistics.created,
            updated=statistics.updated,
            retired=statistics.retired,
            skipped=statistics.skipped,
        )
        RosterImportMonitoring.record_units_created(
            department=statistics.departments_created,
            section=statistics.sections_created,
            course=statistics.courses_created,
        )
    return CommitResult(
        success=True,
        message=f"Import completed: {statistics.summary()}",
        batch_id=batch_id,
        statistics=statistics,
    )


__all__ = [
    "CommitResult",
    "CommitStatistics",
    "commit_import",
    "derive_unit_codes",
]
