"""Position-title heuristics for choosing unit managers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence

from roster_app.models import UnitLevel

DEFAULT_MANAGER_KEYWORDS: Mapping[UnitLevel, tuple[str, ...]] = {
    UnitLevel.DEPARTMENT: ("本部長", "統括", "事業部長", "役員"),
    UnitLevel.SECTION: ("部長", "室長", "支店長"),
    UnitLevel.COURSE: ("課長", "グループ長", "チーム長"),
}


class HasPosition(Protocol):
    position: str | None


@dataclass(frozen=True)
class ManagerPolicy:
    """
    Table-driven manager selection.

    The first employee (in the order given) whose position contains any of
    the keywords for the unit's level wins.
    """

    keywords: Mapping[UnitLevel, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_MANAGER_KEYWORDS))

    def pick(self, level: UnitLevel, employees: Sequence[HasPosition]) -> HasPosition | None:
        keywords = self.keywords.get(level, ())
        for employee in employees:
            if employee.position and any(keyword in employee.position for keyword in keywords):
                return employee
        return None


__all__ = ["DEFAULT_MANAGER_KEYWORDS", "ManagerPolicy"]
