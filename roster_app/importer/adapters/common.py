"""Shared header mapping and row types for roster readers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from roster_app.errors import RosterHeaderError
from roster_app.importer.contracts import (
    get_roster_alias_map,
    get_roster_field_specs,
    get_roster_required_headers,
    normalize_header,
)


@dataclass(frozen=True)
class HeaderMapping:
    """Positions of canonical fields within the raw header row."""

    raw_headers: tuple[str, ...]
    positions: Mapping[str, int]
    ignored: tuple[str, ...] = ()

    @property
    def canonical_headers(self) -> tuple[str, ...]:
        return tuple(name for name, _ in sorted(self.positions.items(), key=lambda item: item[1]))


@dataclass(frozen=True)
class RawRosterRow:
    """One non-blank data row keyed by canonical field names."""

    row_number: int
    values: dict[str, object | None]


@dataclass
class RosterReadStatistics:
    """Accumulated statistics from reading a roster file."""

    rows_processed: int = 0
    rows_skipped_blank: int = 0


@dataclass
class RosterReadResult:
    rows: list[RawRosterRow] = field(default_factory=list)
    header: HeaderMapping | None = None
    statistics: RosterReadStatistics = field(default_factory=RosterReadStatistics)


def sanitize_header(header: object | None) -> str:
    token = "" if header is None else str(header).strip()
    return token.lstrip("\ufeff")


def map_headers(raw_headers: Sequence[object | None]) -> HeaderMapping:
    """
    Resolve a header row against the roster contract.

    Unknown columns are ignored. Raises ``RosterHeaderError`` when a required
    field has no column or a canonical field is claimed by two columns.
    """

    sanitized = tuple(sanitize_header(header) for header in raw_headers)
    alias_map = get_roster_alias_map()
    positions: dict[str, int] = {}
    duplicates: list[str] = []
    ignored: list[str] = []

    for index, header in enumerate(sanitized):
        if not header:
            continue
        canonical = alias_map.get(normalize_header(header))
        if canonical is None:
            ignored.append(header)
            continue
        if canonical in positions:
            duplicates.append(canonical)
            continue
        positions[canonical] = index

    missing = [name for name in get_roster_required_headers() if name not in positions]
    if missing or duplicates:
        raise RosterHeaderError(missing=missing, duplicates=duplicates)
    return HeaderMapping(raw_headers=sanitized, positions=positions, ignored=tuple(ignored))


def row_is_blank(values: Sequence[object | None]) -> bool:
    return all(value is None or (isinstance(value, str) and value.strip() == "") for value in values)


def build_values(cells: Sequence[object | None], header: HeaderMapping) -> dict[str, object | None]:
    """Pick canonical fields out of ``cells`` and apply the field normalizers."""

    specs = {spec.name: spec for spec in get_roster_field_specs()}
    values: dict[str, object | None] = {}
    for name, index in header.positions.items():
        value = cells[index] if index < len(cells) else None
        spec = specs[name]
        values[name] = spec.normalizer(value) if spec.normalizer else value
    return values
