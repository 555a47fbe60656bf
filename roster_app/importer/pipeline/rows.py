"""
Turn raw roster rows into canonical ``ProcessedEmployee`` records.

The export carries the whole hierarchy in one free-text affiliation cell
(``本部 部 課``), so the three unit levels are recovered positionally from its
whitespace-separated tokens. Explicit section/course columns win when filled.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, NamedTuple

from roster_app.errors import RowError

from .normalize import clean_text, parse_date, to_full_width_kana

DEFAULT_POSITION = "一般"
EXECUTIVE_CODE_PREFIX = "999999"
EXECUTIVE_DEPARTMENT_NAME = "役員・顧問"

REQUIRED_ROW_FIELDS = ("employee_number", "name")

_AFFILIATION_SPLIT_RE = re.compile(r"[\s　]+")


@dataclass(frozen=True)
class RowParserSettings:
    """Deployment-specific values used while processing rows."""

    default_position: str = DEFAULT_POSITION
    executive_code_prefix: str = EXECUTIVE_CODE_PREFIX
    executive_department_name: str = EXECUTIVE_DEPARTMENT_NAME

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "RowParserSettings":
        return cls(
            default_position=str(config.get("ROSTER_DEFAULT_POSITION") or DEFAULT_POSITION),
            executive_code_prefix=str(config.get("ROSTER_EXECUTIVE_CODE_PREFIX") or EXECUTIVE_CODE_PREFIX),
            executive_department_name=str(
                config.get("ROSTER_EXECUTIVE_DEPARTMENT_NAME") or EXECUTIVE_DEPARTMENT_NAME
            ),
        )

    def is_executive_code(self, affiliation_code: str | None) -> bool:
        return bool(affiliation_code) and bool(self.executive_code_prefix) and affiliation_code.startswith(
            self.executive_code_prefix
        )


class Affiliation(NamedTuple):
    department: str | None
    section: str | None = None
    course: str | None = None


@dataclass(frozen=True)
class ProcessedEmployee:
    """Canonical, run-scoped representation of one roster row."""

    employee_number: str
    name: str
    department: str
    position: str
    section: str | None = None
    course: str | None = None
    name_kana: str | None = None
    email: str | None = None
    phone: str | None = None
    position_code: str | None = None
    qualification_grade: str | None = None
    qualification_grade_code: str | None = None
    employment_type: str | None = None
    employment_type_code: str | None = None
    affiliation_code: str | None = None
    join_date: date | None = None
    birth_date: date | None = None
    is_executive: bool = False
    row_number: int = 0

    @property
    def unit_path(self) -> tuple[str, str | None, str | None]:
        return (self.department, self.section, self.course)

    def as_dict(self) -> dict[str, object]:
        return {
            "employee_number": self.employee_number,
            "name": self.name,
            "name_kana": self.name_kana,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "section": self.section,
            "course": self.course,
            "position": self.position,
            "position_code": self.position_code,
            "qualification_grade": self.qualification_grade,
            "qualification_grade_code": self.qualification_grade_code,
            "employment_type": self.employment_type,
            "employment_type_code": self.employment_type_code,
            "affiliation_code": self.affiliation_code,
            "join_date": self.join_date.isoformat() if self.join_date else None,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "is_executive": self.is_executive,
            "row_number": self.row_number,
        }


@dataclass
class ParsedBatch:
    """Result of processing every row of one input file."""

    employees: list[ProcessedEmployee] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    rows_skipped: int = 0

    @property
    def rows_processed(self) -> int:
        return len(self.employees)


def parse_affiliation(text: str | None) -> Affiliation:
    """
    Split affiliation text into department, section and course.

    One token yields a department only, two add a section, three fill every
    level. With four or more tokens the tail from the third token on is kept
    as the course name, joined by single spaces.
    """

    if not text:
        return Affiliation(None)
    parts = [part for part in _AFFILIATION_SPLIT_RE.split(text.strip()) if part]
    if not parts:
        return Affiliation(None)
    department = parts[0]
    section = parts[1] if len(parts) > 1 else None
    course = " ".join(parts[2:]) if len(parts) > 2 else None
    return Affiliation(department, section, course)


def has_required_values(values: Mapping[str, object | None], settings: RowParserSettings | None = None) -> bool:
    """Rows need an employee number, a name, and affiliation text unless executive."""

    settings = settings or RowParserSettings()
    if any(clean_text(values.get(name)) is None for name in REQUIRED_ROW_FIELDS):
        return False
    if settings.is_executive_code(clean_text(values.get("affiliation_code"))):
        return True
    return parse_affiliation(clean_text(values.get("affiliation"))).department is not None


def _parse_date_field(
    values: Mapping[str, object | None],
    field_name: str,
    *,
    row_number: int,
    errors: list[RowError] | None,
) -> date | None:
    raw = values.get(field_name)
    parsed = parse_date(raw)
    if parsed is None and clean_text(raw) is not None and errors is not None:
        errors.append(RowError(row_number, f"Unrecognized {field_name} value {clean_text(raw)!r}; left blank."))
    return parsed


def process_row(
    values: Mapping[str, object | None],
    *,
    row_number: int = 0,
    settings: RowParserSettings | None = None,
    errors: list[RowError] | None = None,
) -> ProcessedEmployee:
    """
    Build a ``ProcessedEmployee`` from canonical column values.

    Callers filter rows with ``has_required_values`` first. Unparseable dates
    are appended to ``errors`` (when given) and left as ``None``.
    """

    settings = settings or RowParserSettings()
    affiliation_code = clean_text(values.get("affiliation_code"))
    is_executive = settings.is_executive_code(affiliation_code)

    if is_executive:
        department = settings.executive_department_name
        section = None
        course = None
    else:
        affiliation = parse_affiliation(clean_text(values.get("affiliation")))
        department = affiliation.department
        section = clean_text(values.get("section")) or affiliation.section
        course = clean_text(values.get("course")) or affiliation.course
        if course and not section:
            # Courses hang off a section; there is nowhere to attach this one.
            if errors is not None:
                errors.append(RowError(row_number, f"Course {course!r} ignored because the row has no section."))
            course = None

    return ProcessedEmployee(
        employee_number=clean_text(values.get("employee_number")),
        name=clean_text(values.get("name")),
        name_kana=to_full_width_kana(clean_text(values.get("name_kana"))),
        email=clean_text(values.get("email")),
        phone=clean_text(values.get("phone")),
        department=department,
        section=section,
        course=course,
        position=clean_text(values.get("position")) or settings.default_position,
        position_code=clean_text(values.get("position_code")),
        qualification_grade=clean_text(values.get("qualification_grade")),
        qualification_grade_code=clean_text(values.get("qualification_grade_code")),
        employment_type=clean_text(values.get("employment_type")),
        employment_type_code=clean_text(values.get("employment_type_code")),
        affiliation_code=affiliation_code,
        join_date=_parse_date_field(values, "join_date", row_number=row_number, errors=errors),
        birth_date=_parse_date_field(values, "birth_date", row_number=row_number, errors=errors),
        is_executive=is_executive,
        row_number=row_number,
    )


def process_rows(rows: Iterable, settings: RowParserSettings | None = None) -> ParsedBatch:
    """
    Process reader output into a ``ParsedBatch``.

    ``rows`` yields objects with ``row_number`` and ``values`` attributes, or
    plain mappings (numbered from 1). Non-blank rows missing a required value
    are counted in ``rows_skipped`` and reported as a ``RowError``.
    """

    settings = settings or RowParserSettings()
    batch = ParsedBatch()
    for index, row in enumerate(rows, start=1):
        if isinstance(row, Mapping):
            row_number, values = index, row
        else:
            row_number, values = row.row_number, row.values

        if not has_required_values(values, settings):
            batch.rows_skipped += 1
            if any(clean_text(value) is not None for value in values.values()):
                batch.errors.append(
                    RowError(row_number, "Row skipped: employee number, name and affiliation are required.")
                )
            continue
        batch.employees.append(process_row(values, row_number=row_number, settings=settings, errors=batch.errors))
    return batch


__all__ = [
    "Affiliation",
    "DEFAULT_POSITION",
    "EXECUTIVE_CODE_PREFIX",
    "EXECUTIVE_DEPARTMENT_NAME",
    "ParsedBatch",
    "ProcessedEmployee",
    "RowParserSettings",
    "has_required_values",
    "parse_affiliation",
    "process_row",
    "process_rows",
]
