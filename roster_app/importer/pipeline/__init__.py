"""Roster import pipeline: normalize, parse, reconcile, commit, audit."""

from __future__ import annotations

from .audit import (
    ChangeStatistics,
    OrganizationSnapshot,
    SnapshotDiff,
    UnitSnapshot,
    build_field_change_entries,
    compare_snapshots,
    create_organization_snapshot,
    format_change_description,
    generate_batch_id,
    get_change_logs_by_batch_id,
    get_change_statistics,
    get_entity_history,
    load_organization_snapshot,
    new_change_log,
    record_change_log,
    record_change_logs,
    save_organization_snapshot,
)
from .commit import CommitResult, CommitStatistics, commit_import, derive_unit_codes
from .dedupe import DeduplicatedBatch, ExcludedDuplicate, deduplicate_batch
from .managers import DEFAULT_MANAGER_KEYWORDS, ManagerPolicy
from .normalize import clean_text, excel_serial_to_date, parse_date, to_full_width_kana
from .reconcile import (
    COMPARABLE_FIELDS,
    EmployeeView,
    FieldChange,
    PreviewResult,
    TransferredEmployee,
    UpdatedEmployee,
    detect_field_changes,
    preview_import,
    reconcile,
    unit_label,
)
from .rows import (
    Affiliation,
    ParsedBatch,
    ProcessedEmployee,
    RowParserSettings,
    has_required_values,
    parse_affiliation,
    process_row,
    process_rows,
)
from .unit_of_work import RosterUnitOfWork, SqlAlchemyRosterUnitOfWork

__all__ = [
    "Affiliation",
    "COMPARABLE_FIELDS",
    "ChangeStatistics",
    "CommitResult",
    "CommitStatistics",
    "DEFAULT_MANAGER_KEYWORDS",
    "DeduplicatedBatch",
    "EmployeeView",
    "ExcludedDuplicate",
    "FieldChange",
    "ManagerPolicy",
    "OrganizationSnapshot",
    "ParsedBatch",
    "PreviewResult",
    "ProcessedEmployee",
    "RosterUnitOfWork",
    "RowParserSettings",
    "SnapshotDiff",
    "SqlAlchemyRosterUnitOfWork",
    "TransferredEmployee",
    "UnitSnapshot",
    "UpdatedEmployee",
    "build_field_change_entries",
    "clean_text",
    "commit_import",
    "compare_snapshots",
    "create_organization_snapshot",
    "deduplicate_batch",
    "derive_unit_codes",
    "detect_field_changes",
    "excel_serial_to_date",
    "format_change_description",
    "generate_batch_id",
    "get_change_logs_by_batch_id",
    "get_change_statistics",
    "get_entity_history",
    "has_required_values",
    "load_organization_snapshot",
    "new_change_log",
    "parse_affiliation",
    "parse_date",
    "preview_import",
    "process_row",
    "process_rows",
    "reconcile",
    "record_change_log",
    "record_change_logs",
    "save_organization_snapshot",
    "to_full_width_kana",
    "unit_label",
]
