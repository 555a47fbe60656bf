"""Exception hierarchy shared by the roster readers, pipeline, and models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class RosterImportError(Exception):
    """Base exception for roster import failures."""


class RosterFileError(RosterImportError):
    """Raised when an input file cannot be read as a roster."""


class RosterHeaderError(RosterImportError):
    """Raised when the header row does not meet the roster contract."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate canonical columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each canonical field appears only once."
            )

        message = (
            "Roster header validation failed. " + " ".join(details) if details else "Roster header validation failed."
        )
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


class OrganizationNotFound(RosterImportError):
    """Raised when an import targets an organization id that does not exist."""

    def __init__(self, organization_id: int) -> None:
        super().__init__(f"Organization {organization_id} does not exist.")
        self.organization_id = organization_id


class AppendOnlyViolation(RosterImportError):
    """Raised when code attempts to mutate or delete an audit record."""


@dataclass(frozen=True)
class RowError:
    """A non-fatal problem tied to one input row."""

    row_number: int
    message: str

    def as_dict(self) -> dict[str, object]:
        return {"row_number": self.row_number, "message": self.message}


__all__ = [
    "AppendOnlyViolation",
    "OrganizationNotFound",
    "RosterFileError",
    "RosterHeaderError",
    "RosterImportError",
    "RowError",
]
