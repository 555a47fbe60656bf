"""Intra-batch duplicate detection for processed roster rows."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

from .rows import ProcessedEmployee

REASON_EXECUTIVE_NAME = "Duplicate executive/advisor (same name)"
REASON_EMPLOYEE_NUMBER = "Duplicate employee number"
REASON_EMAIL = "Duplicate email address shared by different employee numbers"

_WHITESPACE_RE = re.compile(r"[\s　]+")


@dataclass(frozen=True)
class ExcludedDuplicate:
    employee: ProcessedEmployee
    reason: str
    kept_employee_number: str

    def as_dict(self) -> dict[str, object]:
        return {
            "employee_number": self.employee.employee_number,
            "name": self.employee.name,
            "row_number": self.employee.row_number,
            "reason": self.reason,
            "kept_employee_number": self.kept_employee_number,
        }


@dataclass
class DeduplicatedBatch:
    employees: list[ProcessedEmployee] = field(default_factory=list)
    excluded: list[ExcludedDuplicate] = field(default_factory=list)

    @property
    def employee_numbers(self) -> set[str]:
        return {employee.employee_number for employee in self.employees}


def _name_key(name: str) -> str:
    return _WHITESPACE_RE.sub("", name)


def deduplicate_batch(employees: Sequence[ProcessedEmployee]) -> DeduplicatedBatch:
    """
    Drop rows that resolve to an identity already present in the batch.

    Rules run in order: executives sharing a name (whitespace ignored) keep the
    lowest employee number; a repeated employee number keeps its first row; an
    email shared by different employee numbers keeps its first row. Input
    order is preserved for the rows that remain.
    """

    excluded: list[ExcludedDuplicate] = []
    dropped: set[int] = set()

    executives_by_name: dict[str, list[int]] = {}
    for index, employee in enumerate(employees):
        if employee.is_executive:
            executives_by_name.setdefault(_name_key(employee.name), []).append(index)
    for indexes in executives_by_name.values():
        if len(indexes) < 2:
            continue
        ordered = sorted(indexes, key=lambda i: (employees[i].employee_number, i))
        kept = employees[ordered[0]]
        for index in ordered[1:]:
            dropped.add(index)
            excluded.append(ExcludedDuplicate(employees[index], REASON_EXECUTIVE_NAME, kept.employee_number))

    first_by_number: dict[str, ProcessedEmployee] = {}
    for index, employee in enumerate(employees):
        if index in dropped:
            continue
        kept = first_by_number.get(employee.employee_number)
        if kept is None:
            first_by_number[employee.employee_number] = employee
            continue
        dropped.add(index)
        excluded.append(ExcludedDuplicate(employee, REASON_EMPLOYEE_NUMBER, kept.employee_number))

    first_by_email: dict[str, ProcessedEmployee] = {}
    for index, employee in enumerate(employees):
        if index in dropped or not employee.email:
            continue
        email_key = employee.email.lower()
        kept = first_by_email.get(email_key)
        if kept is None:
            first_by_email[email_key] = employee
            continue
        dropped.add(index)
        excluded.append(ExcludedDuplicate(employee, REASON_EMAIL, kept.employee_number))

    remaining = [employee for index, employee in enumerate(employees) if index not in dropped]
    return DeduplicatedBatch(employees=remaining, excluded=excluded)


__all__ = [
    "DeduplicatedBatch",
    "ExcludedDuplicate",
    "REASON_EMAIL",
    "REASON_EMPLOYEE_NUMBER",
    "REASON_EXECUTIVE_NAME",
    "deduplicate_batch",
]
