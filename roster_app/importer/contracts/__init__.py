"""Canonical ingest contract helpers for roster readers."""

from __future__ import annotations

from .roster import (
    ROSTER_CANONICAL_FIELDS,
    FieldSpec,
    get_roster_alias_map,
    get_roster_field_specs,
    get_roster_required_headers,
    normalize_header,
    required_headers_missing,
)

__all__ = [
    "FieldSpec",
    "ROSTER_CANONICAL_FIELDS",
    "get_roster_alias_map",
    "get_roster_field_specs",
    "get_roster_required_headers",
    "normalize_header",
    "required_headers_missing",
]
