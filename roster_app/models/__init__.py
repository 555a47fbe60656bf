"""Roster persistence models."""

from .audit import ChangeLogEntry, ChangeType, OrganizationSnapshotRecord
from .base import BaseModel, db, utcnow
from .employee import Employee, EmployeeHistory
from .organization import Course, Department, Organization, Section, UnitLevel

__all__ = [
    "BaseModel",
    "ChangeLogEntry",
    "ChangeType",
    "Course",
    "Department",
    "Employee",
    "EmployeeHistory",
    "Organization",
    "OrganizationSnapshotRecord",
    "Section",
    "UnitLevel",
    "db",
    "utcnow",
]
