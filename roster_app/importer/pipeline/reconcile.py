"""
Side-effect-free classification of a roster batch against persisted state.

``reconcile`` compares processed rows with ``EmployeeView`` snapshots of the
stored employees and sorts every record into new, updated, transferred,
unchanged or retired. ``preview_import`` wires it to a unit of work so the
CLI can show an operator what a commit would do without writing anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from flask import current_app, has_app_context

from config.monitoring import RosterImportMonitoring
from roster_app.errors import OrganizationNotFound, RowError

from .dedupe import ExcludedDuplicate, deduplicate_batch
from .rows import ParsedBatch, ProcessedEmployee

if TYPE_CHECKING:  # pragma: no cover
    from .unit_of_work import RosterUnitOfWork

# Ordered (attribute, label) pairs compared field by field.
COMPARABLE_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "氏名"),
    ("name_kana", "フリガナ"),
    ("email", "メール"),
    ("phone", "電話番号"),
    ("position", "役職"),
    ("position_code", "役職コード"),
    ("qualification_grade", "資格等級"),
    ("qualification_grade_code", "資格等級コード"),
    ("employment_type", "雇用区分"),
    ("employment_type_code", "雇用区分コード"),
)

UNIT_FIELDS: tuple[tuple[str, str], ...] = (
    ("department", "本部"),
    ("section", "部"),
    ("course", "課"),
)

POSITION_FIELDS = frozenset({"position", "position_code"})
UNIT_FIELD_NAMES = frozenset(name for name, _ in UNIT_FIELDS)

EMPLOYEE_NUMBER_LABEL = "社員番号"
ACTIVE_LABEL = "在籍"


@dataclass(frozen=True)
class EmployeeView:
    """Read-only projection of a stored employee with resolved unit names."""

    id: int
    employee_number: str
    name: str
    is_active: bool
    department: str | None = None
    section: str | None = None
    course: str | None = None
    department_id: int | None = None
    section_id: int | None = None
    course_id: int | None = None
    name_kana: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    position_code: str | None = None
    qualification_grade: str | None = None
    qualification_grade_code: str | None = None
    employment_type: str | None = None
    employment_type_code: str | None = None

    @property
    def unit_label(self) -> str:
        return unit_label(self.department, self.section, self.course)

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "employee_number": self.employee_number,
            "name": self.name,
            "is_active": self.is_active,
            "department": self.department,
            "section": self.section,
            "course": self.course,
            "position": self.position,
        }


@dataclass(frozen=True)
class FieldChange:
    field: str
    label: str
    old: str | None
    new: str | None

    def as_dict(self) -> dict[str, object]:
        return {"field": self.field, "label": self.label, "old": self.old, "new": self.new}


@dataclass(frozen=True)
class UpdatedEmployee:
    employee: ProcessedEmployee
    existing: EmployeeView
    changes: tuple[FieldChange, ...]

    @property
    def rejoined(self) -> bool:
        return not self.existing.is_active

    @property
    def promoted(self) -> bool:
        return any(change.field in POSITION_FIELDS for change in self.changes)

    def as_dict(self) -> dict[str, object]:
        return {
            "employee_number": self.employee.employee_number,
            "name": self.employee.name,
            "changes": [change.as_dict() for change in self.changes],
        }


@dataclass(frozen=True)
class TransferredEmployee:
    employee: ProcessedEmployee
    existing: EmployeeView
    old_unit: str
    new_unit: str
    changes: tuple[FieldChange, ...]

    @property
    def rejoined(self) -> bool:
        return not self.existing.is_active

    @property
    def promoted(self) -> bool:
        return any(change.field in POSITION_FIELDS for change in self.changes)

    def as_dict(self) -> dict[str, object]:
        return {
            "employee_number": self.employee.employee_number,
            "name": self.employee.name,
            "old_unit": self.old_unit,
            "new_unit": self.new_unit,
            "changes": [change.as_dict() for change in self.changes],
        }


@dataclass
class PreviewResult:
    """Classified difference between a batch and persisted state."""

    new_employees: list[ProcessedEmployee] = field(default_factory=list)
    updated_employees: list[UpdatedEmployee] = field(default_factory=list)
    transferred_employees: list[TransferredEmployee] = field(default_factory=list)
    retired_employees: list[EmployeeView] = field(default_factory=list)
    excluded_duplicates: list[ExcludedDuplicate] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    total_records: int = 0
    rows_skipped: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(
            self.new_employees or self.updated_employees or self.transferred_employees or self.retired_employees
        )

    def counts(self) -> dict[str, int]:
        return {
            "total_records": self.total_records,
            "new": len(self.new_employees),
            "updated": len(self.updated_employees),
            "transferred": len(self.transferred_employees),
            "retired": len(self.retired_employees),
            "unchanged": len(self.unchanged),
            "excluded_duplicates": len(self.excluded_duplicates),
            "errors": len(self.errors),
            "rows_skipped": self.rows_skipped,
        }

    def as_dict(self) -> dict[str, object]:
        return {
            "counts": self.counts(),
            "new_employees": [employee.as_dict() for employee in self.new_employees],
            "updated_employees": [entry.as_dict() for entry in self.updated_employees],
            "transferred_employees": [entry.as_dict() for entry in self.transferred_employees],
            "retired_employees": [view.as_dict() for view in self.retired_employees],
            "excluded_duplicates": [entry.as_dict() for entry in self.excluded_duplicates],
            "errors": [error.as_dict() for error in self.errors],
            "unchanged": list(self.unchanged),
        }


def unit_label(department: str | None, section: str | None = None, course: str | None = None) -> str:
    return " / ".join(part for part in (department, section, course) if part)


def normalize_value(value: object | None) -> str | None:
    """Collapse empty/None to ``None`` and everything else to trimmed text."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def detect_field_changes(existing: EmployeeView, incoming: ProcessedEmployee) -> list[FieldChange]:
    """Compare comparable and unit fields; order follows the field tables."""

    changes: list[FieldChange] = []
    for name, label in (*COMPARABLE_FIELDS, *UNIT_FIELDS):
        old = normalize_value(getattr(existing, name))
        new = normalize_value(getattr(incoming, name))
        if old != new:
            changes.append(FieldChange(field=name, label=label, old=old, new=new))
    return changes


def reconcile(
    employees: Sequence[ProcessedEmployee],
    existing: Iterable[EmployeeView],
    *,
    errors: Sequence[RowError] = (),
    rows_skipped: int = 0,
) -> PreviewResult:
    """
    Classify ``employees`` against ``existing`` without side effects.

    Persisted employees are matched by employee number. An unmatched row may
    reclaim an inactive employee with the same email whose number is absent
    from the batch; active employees are never matched by email. Retirees are
    the active persisted numbers missing from the deduplicated batch.
    """

    deduplicated = deduplicate_batch(employees)
    incoming_numbers = deduplicated.employee_numbers
    views = sorted(existing, key=lambda view: view.id)
    by_number = {view.employee_number: view for view in views}

    reclaimable_by_email: dict[str, EmployeeView] = {}
    for view in views:
        if view.is_active or not view.email or view.employee_number in incoming_numbers:
            continue
        reclaimable_by_email.setdefault(view.email.lower(), view)

    result = PreviewResult(
        excluded_duplicates=list(deduplicated.excluded),
        errors=list(errors),
        total_records=len(employees),
        rows_skipped=rows_skipped,
    )

    for employee in deduplicated.employees:
        view = by_number.get(employee.employee_number)
        identity_change: FieldChange | None = None
        if view is None and employee.email:
            view = reclaimable_by_email.pop(employee.email.lower(), None)
            if view is not None:
                identity_change = FieldChange(
                    field="employee_number",
                    label=EMPLOYEE_NUMBER_LABEL,
                    old=view.employee_number,
                    new=employee.employee_number,
                )
        if view is None:
            result.new_employees.append(employee)
            continue

        changes = detect_field_changes(view, employee)
        if identity_change is not None:
            changes.insert(0, identity_change)
        if not view.is_active:
            changes.append(FieldChange(field="is_active", label=ACTIVE_LABEL, old="false", new="true"))

        if any(change.field in UNIT_FIELD_NAMES for change in changes):
            result.transferred_employees.append(
                TransferredEmployee(
                    employee=employee,
                    existing=view,
                    old_unit=view.unit_label,
                    new_unit=unit_label(*employee.unit_path),
                    changes=tuple(changes),
                )
            )
        elif changes:
            result.updated_employees.append(UpdatedEmployee(employee=employee, existing=view, changes=tuple(changes)))
        else:
            result.unchanged.append(employee.employee_number)

    result.retired_employees = [
        view for view in views if view.is_active and view.employee_number not in incoming_numbers
    ]
    return result


def preview_import(uow: "RosterUnitOfWork", organization_id: int, batch: ParsedBatch) -> PreviewResult:
    """Load persisted views for ``organization_id`` and reconcile ``batch`` against them."""

    if uow.get_organization(organization_id) is None:
        raise OrganizationNotFound(organization_id)

    result = reconcile(
        batch.employees,
        uow.list_employee_views(organization_id),
        errors=batch.errors,
        rows_skipped=batch.rows_skipped,
    )

    if has_app_context():
        if current_app.config.get("ROSTER_METRICS_ENABLED", True):
            RosterImportMonitoring.record_preview(
                status="changes" if result.has_changes else "no_changes",
                row_count=result.total_records,
            )
        current_app.logger.info(
            "Roster preview for organization %s: %s",
            organization_id,
            result.counts(),
            extra={"roster_organization_id": organization_id, "roster_preview_counts": result.counts()},
        )
    return result


__all__ = [
    "COMPARABLE_FIELDS",
    "EmployeeView",
    "FieldChange",
    "PreviewResult",
    "TransferredEmployee",
    "UNIT_FIELDS",
    "UpdatedEmployee",
    "detect_field_changes",
    "normalize_value",
    "preview_import",
    "reconcile",
    "unit_label",
]
