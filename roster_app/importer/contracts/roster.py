"""Canonical roster ingest contract definitions.

The HR export uses Japanese column headers; each canonical field lists those
headers (and English equivalents) as aliases so the readers can map any
supported header row onto one set of field names. Columns outside the
contract are ignored because exports routinely carry extra data.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Tuple

Normalizer = Callable[[object | None], object | None]


def _strip_string(value: object | None) -> object | None:
    if isinstance(value, str):
        return value.strip()
    return value


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical roster field."""

    name: str
    description: str
    required: bool = False
    aliases: Tuple[str, ...] = ()
    normalizer: Normalizer | None = _strip_string

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical header plus aliases for validation."""

        return (self.name, *self.aliases)


ROSTER_CANONICAL_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="employee_number",
        description="Business-assigned employee number; the stable identity across imports.",
        required=True,
        aliases=("社員番号", "employee_id", "employee_no"),
    ),
    FieldSpec(
        name="name",
        description="Employee display name.",
        required=True,
        aliases=("氏名", "full_name"),
    ),
    FieldSpec(
        name="name_kana",
        description="Phonetic name; half-width katakana is widened during processing.",
        aliases=("氏名(フリガナ)", "フリガナ", "kana"),
    ),
    FieldSpec(
        name="email",
        description="Company email address.",
        aliases=("社用e-Mail１", "メール", "email_address"),
    ),
    FieldSpec(
        name="affiliation",
        description="Whitespace-separated department, section and course names.",
        required=True,
        aliases=("所属", "department_path"),
    ),
    FieldSpec(
        name="affiliation_code",
        description="Affiliation code; prefixes yield department and section codes.",
        aliases=("所属コード", "department_code"),
    ),
    FieldSpec(
        name="section",
        description="Explicit section name overriding the affiliation text.",
        aliases=("セクション",),
    ),
    FieldSpec(
        name="course",
        description="Explicit course name overriding the affiliation text.",
        aliases=("コース",),
    ),
    FieldSpec(
        name="position",
        description="Position title.",
        aliases=("役職", "title"),
    ),
    FieldSpec(
        name="position_code",
        description="Position code.",
        aliases=("役職コード",),
    ),
    FieldSpec(
        name="phone",
        description="Phone number.",
        aliases=("電話番号", "phone_number"),
    ),
    FieldSpec(
        name="join_date",
        description="Date joined (serial, era, 年月日 or Y/M/D).",
        aliases=("入社年月日", "hire_date"),
    ),
    FieldSpec(
        name="birth_date",
        description="Date of birth (serial, era, 年月日 or Y/M/D).",
        aliases=("生年月日", "dob"),
    ),
    FieldSpec(
        name="qualification_grade",
        description="Qualification grade name.",
        aliases=("資格等級", "grade"),
    ),
    FieldSpec(
        name="qualification_grade_code",
        description="Qualification grade code.",
        aliases=("資格等級コード", "grade_code"),
    ),
    FieldSpec(
        name="employment_type",
        description="Employment type name.",
        aliases=("雇用区分",),
    ),
    FieldSpec(
        name="employment_type_code",
        description="Employment type code.",
        aliases=("雇用区分コード",),
    ),
)


def get_roster_field_specs() -> Tuple[FieldSpec, ...]:
    """Return the canonical roster field specifications."""

    return ROSTER_CANONICAL_FIELDS


def get_roster_required_headers() -> Tuple[str, ...]:
    """Headers that must be present in every roster file."""

    return tuple(field.name for field in ROSTER_CANONICAL_FIELDS if field.required)


def get_roster_alias_map() -> Mapping[str, str]:
    """Map normalized header tokens to canonical names (includes aliases)."""

    mapping: dict[str, str] = {}
    for field in ROSTER_CANONICAL_FIELDS:
        for header in field.headers():
            mapping[normalize_header(header)] = field.name
    return mapping


def normalize_header(header: str) -> str:
    """Normalize a header for comparison (case, width, space and separator agnostic)."""

    token = unicodedata.normalize("NFKC", header).strip().lower()
    for char in (" ", "-", "."):
        token = token.replace(char, "_")
    return token


def required_headers_missing(headers: Iterable[str]) -> Tuple[str, ...]:
    """Return the canonical names of required fields no header maps to."""

    alias_map = get_roster_alias_map()
    present = {alias_map.get(normalize_header(header)) for header in headers}
    return tuple(name for name in get_roster_required_headers() if name not in present)
