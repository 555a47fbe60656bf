"""
Append-only change log and organization snapshot helpers.

Change-log rows are only ever inserted; the model layer rejects updates and
deletes. Snapshots materialize the whole department/section/course tree so two
points in time can be compared without replaying import runs.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from sqlalchemy import func, select

from roster_app.errors import OrganizationNotFound
from roster_app.models import (
    ChangeLogEntry,
    ChangeType,
    Course,
    Department,
    Employee,
    Organization,
    OrganizationSnapshotRecord,
    Section,
    db,
    utcnow,
)

from .reconcile import FieldChange

EMPTY_VALUE_LABEL = "(なし)"
BATCH_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
BATCH_SUFFIX_LENGTH = 6


def generate_batch_id() -> str:
    """Return a correlation token such as ``BATCH-1700000000000-k3x9qa``."""

    suffix = "".join(secrets.choice(BATCH_SUFFIX_ALPHABET) for _ in range(BATCH_SUFFIX_LENGTH))
    return f"BATCH-{int(time.time() * 1000)}-{suffix}"


def format_change_description(label: str, old: str | None, new: str | None) -> str:
    return f"{label}: {old or EMPTY_VALUE_LABEL} → {new or EMPTY_VALUE_LABEL}"


def new_change_log(
    *,
    entity_type: str,
    entity_id: int,
    change_type: ChangeType,
    actor: str,
    field_name: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
    description: str | None = None,
    batch_id: str | None = None,
    changed_at: datetime | None = None,
) -> ChangeLogEntry:
    """Build an unsaved change-log entry."""

    return ChangeLogEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        change_type=change_type,
        field_name=field_name,
        old_value=old_value,
        new_value=new_value,
        description=description,
        batch_id=batch_id,
        changed_by=actor,
        changed_at=changed_at or utcnow(),
    )


def record_change_log(entry: ChangeLogEntry, *, session=None) -> ChangeLogEntry:
    session = session or db.session
    session.add(entry)
    session.flush()
    return entry


def record_change_logs(entries: Iterable[ChangeLogEntry], *, session=None) -> list[ChangeLogEntry]:
    session = session or db.session
    entries = list(entries)
    session.add_all(entries)
    session.flush()
    return entries


def build_field_change_entries(
    entity_id: int,
    changes: Sequence[FieldChange],
    *,
    change_type: ChangeType,
    actor: str,
    batch_id: str | None = None,
    entity_type: str = "employee",
    changed_at: datetime | None = None,
) -> list[ChangeLogEntry]:
    """One entry per changed field, described as ``label: old → new``."""

    changed_at = changed_at or utcnow()
    return [
        new_change_log(
            entity_type=entity_type,
            entity_id=entity_id,
            change_type=change_type,
            actor=actor,
            field_name=change.field,
            old_value=change.old,
            new_value=change.new,
            description=format_change_description(change.label, change.old, change.new),
            batch_id=batch_id,
            changed_at=changed_at,
        )
        for change in changes
    ]


def get_change_logs_by_batch_id(batch_id: str) -> list[ChangeLogEntry]:
    stmt = select(ChangeLogEntry).where(ChangeLogEntry.batch_id == batch_id).order_by(ChangeLogEntry.id)
    return list(db.session.scalars(stmt).all())


def get_entity_history(entity_type: str, entity_id: int, limit: int = 50) -> list[ChangeLogEntry]:
    """Most recent entries first."""

    stmt = (
        select(ChangeLogEntry)
        .where(ChangeLogEntry.entity_type == entity_type, ChangeLogEntry.entity_id == entity_id)
        .order_by(ChangeLogEntry.changed_at.desc(), ChangeLogEntry.id.desc())
        .limit(limit)
    )
    return list(db.session.scalars(stmt).all())


@dataclass(frozen=True)
class ChangeStatistics:
    total: int
    by_change_type: Mapping[str, int]
    by_entity_type: Mapping[str, int]

    def as_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "by_change_type": dict(self.by_change_type),
            "by_entity_type": dict(self.by_entity_type),
        }


def get_change_statistics(start: datetime | None = None, end: datetime | None = None) -> ChangeStatistics:
    """Count change-log entries in ``[start, end]`` by change type and entity type."""

    filters = []
    if start is not None:
        filters.append(ChangeLogEntry.changed_at >= start)
    if end is not None:
        filters.append(ChangeLogEntry.changed_at <= end)

    by_type_rows = db.session.execute(
        select(ChangeLogEntry.change_type, func.count(ChangeLogEntry.id))
        .where(*filters)
        .group_by(ChangeLogEntry.change_type)
    ).all()
    by_entity_rows = db.session.execute(
        select(ChangeLogEntry.entity_type, func.count(ChangeLogEntry.id))
        .where(*filters)
        .group_by(ChangeLogEntry.entity_type)
    ).all()

    by_change_type = {
        (change_type.value if isinstance(change_type, ChangeType) else str(change_type)): count
        for change_type, count in by_type_rows
    }
    by_entity_type = {entity_type: count for entity_type, count in by_entity_rows}
    return ChangeStatistics(
        total=sum(by_change_type.values()),
        by_change_type=by_change_type,
        by_entity_type=by_entity_type,
    )


# Snapshots ---------------------------------------------------------------


@dataclass(frozen=True)
class UnitSnapshot:
    id: int
    name: str
    code: str | None
    manager_id: int | None
    parent_id: int | None

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "manager_id": self.manager_id,
            "parent_id": self.parent_id,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "UnitSnapshot":
        return cls(
            id=int(payload["id"]),
            name=str(payload["name"]),
            code=payload.get("code"),
            manager_id=payload.get("manager_id"),
            parent_id=payload.get("parent_id"),
        )


@dataclass(frozen=True)
class OrganizationSnapshot:
    """Immutable point-in-time copy of an organization tree."""

    organization_id: int
    organization_name: str
    taken_at: datetime
    departments: tuple[UnitSnapshot, ...]
    sections: tuple[UnitSnapshot, ...]
    courses: tuple[UnitSnapshot, ...]
    employee_count: int

    def as_dict(self) -> dict[str, object]:
        return {
            "organization_id": self.organization_id,
            "organization_name": self.organization_name,
            "taken_at": self.taken_at.isoformat(),
            "departments": [unit.as_dict() for unit in self.departments],
            "sections": [unit.as_dict() for unit in self.sections],
            "courses": [unit.as_dict() for unit in self.courses],
            "employee_count": self.employee_count,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "OrganizationSnapshot":
        return cls(
            organization_id=int(payload["organization_id"]),
            organization_name=str(payload.get("organization_name") or ""),
            taken_at=datetime.fromisoformat(str(payload["taken_at"])),
            departments=tuple(UnitSnapshot.from_dict(unit) for unit in payload.get("departments", ())),
            sections=tuple(UnitSnapshot.from_dict(unit) for unit in payload.get("sections", ())),
            courses=tuple(UnitSnapshot.from_dict(unit) for unit in payload.get("courses", ())),
            employee_count=int(payload.get("employee_count", 0)),
        )


@dataclass(frozen=True)
class SnapshotDiff:
    added_departments: tuple[int, ...] = ()
    removed_departments: tuple[int, ...] = ()
    added_sections: tuple[int, ...] = ()
    removed_sections: tuple[int, ...] = ()
    added_courses: tuple[int, ...] = ()
    removed_courses: tuple[int, ...] = ()
    employee_count_diff: int = 0

    @property
    def has_drift(self) -> bool:
        return bool(
            self.added_departments
            or self.removed_departments
            or self.added_sections
            or self.removed_sections
            or self.added_courses
            or self.removed_courses
            or self.employee_count_diff
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "added_departments": list(self.added_departments),
            "removed_departments": list(self.removed_departments),
            "added_sections": list(self.added_sections),
            "removed_sections": list(self.removed_sections),
            "added_courses": list(self.added_courses),
            "removed_courses": list(self.removed_courses),
            "employee_count_diff": self.employee_count_diff,
        }


def _unit_snapshot(unit, parent_id: int | None) -> UnitSnapshot:
    return UnitSnapshot(id=unit.id, name=unit.name, code=unit.code, manager_id=unit.manager_id, parent_id=parent_id)


def create_organization_snapshot(organization_id: int) -> OrganizationSnapshot:
    """Materialize the current tree and active head count of an organization."""

    organization = db.session.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFound(organization_id)

    departments = db.session.scalars(
        select(Department).where(Department.organization_id == organization_id).order_by(Department.id)
    ).all()
    sections = db.session.scalars(
        select(Section)
        .join(Department, Section.department_id == Department.id)
        .where(Department.organization_id == organization_id)
        .order_by(Section.id)
    ).all()
    courses = db.session.scalars(
        select(Course)
        .join(Section, Course.section_id == Section.id)
        .join(Department, Section.department_id == Department.id)
        .where(Department.organization_id == organization_id)
        .order_by(Course.id)
    ).all()
    employee_count = db.session.scalar(
        select(func.count(Employee.id)).where(
            Employee.organization_id == organization_id,
            Employee.is_active.is_(True),
        )
    )

    return OrganizationSnapshot(
        organization_id=organization.id,
        organization_name=organization.name,
        taken_at=utcnow(),
        departments=tuple(_unit_snapshot(unit, organization.id) for unit in departments),
        sections=tuple(_unit_snapshot(unit, unit.department_id) for unit in sections),
        courses=tuple(_unit_snapshot(unit, unit.section_id) for unit in courses),
        employee_count=int(employee_count or 0),
    )


def _id_diff(old: Iterable[UnitSnapshot], new: Iterable[UnitSnapshot]) -> tuple[tuple[int, ...], tuple[int, ...]]:
    old_ids = {unit.id for unit in old}
    new_ids = {unit.id for unit in new}
    return tuple(sorted(new_ids - old_ids)), tuple(sorted(old_ids - new_ids))


def compare_snapshots(old: OrganizationSnapshot, new: OrganizationSnapshot) -> SnapshotDiff:
    added_departments, removed_departments = _id_diff(old.departments, new.departments)
    added_sections, removed_sections = _id_diff(old.sections, new.sections)
    added_courses, removed_courses = _id_diff(old.courses, new.courses)
    return SnapshotDiff(
        added_departments=added_departments,
        removed_departments=removed_departments,
        added_sections=added_sections,
        removed_sections=removed_sections,
        added_courses=added_courses,
        removed_courses=removed_courses,
        employee_count_diff=new.employee_count - old.employee_count,
    )


def save_organization_snapshot(
    snapshot: OrganizationSnapshot,
    *,
    label: str | None = None,
    session=None,
) -> OrganizationSnapshotRecord:
    session = session or db.session
    record = OrganizationSnapshotRecord(
        organization_id=snapshot.organization_id,
        label=label,
        payload_json=snapshot.as_dict(),
        employee_count=snapshot.employee_count,
        taken_at=snapshot.taken_at,
    )
    session.add(record)
    session.flush()
    return record


def load_organization_snapshot(record_id: int) -> OrganizationSnapshot | None:
    record = db.session.get(OrganizationSnapshotRecord, record_id)
    if record is None:
        return None
    return OrganizationSnapshot.from_dict(record.payload_json)


__all__ = [
    "ChangeStatistics",
    "OrganizationSnapshot",
    "SnapshotDiff",
    "UnitSnapshot",
    "build_field_change_entries",
    "compare_snapshots",
    "create_organization_snapshot",
    "format_change_description",
    "generate_batch_id",
    "get_change_logs_by_batch_id",
    "get_change_statistics",
    "get_entity_history",
    "load_organization_snapshot",
    "new_change_log",
    "record_change_log",
    "record_change_logs",
    "save_organization_snapshot",
]
