# roster_app/models/audit.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, Index, event
from sqlalchemy.orm import Mapped, mapped_column

from roster_app.errors import AppendOnlyViolation

from .base import BaseModel, db, utcnow


class ChangeType(str, enum.Enum):
    """Kinds of change recorded in the audit ledger."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    TRANSFER = "TRANSFER"
    PROMOTION = "PROMOTION"
    RETIREMENT = "RETIREMENT"
    REJOINING = "REJOINING"
    IMPORT = "IMPORT"
    BULK_UPDATE = "BULK_UPDATE"
    EXPORT = "EXPORT"


class ChangeLogEntry(BaseModel):
    """Append-only audit entry; one row per changed field or lifecycle event."""

    __tablename__ = "change_logs"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    entity_id: Mapped[int] = mapped_column(db.Integer, nullable=False, index=True)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(ChangeType, name="change_type_enum"),
        nullable=False,
        index=True,
    )
    field_name: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    old_value: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    description: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    batch_id: Mapped[str | None] = mapped_column(db.String(64), nullable=True, index=True)
    changed_by: Mapped[str] = mapped_column(db.String(200), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_change_logs_entity", "entity_type", "entity_id"),
        Index("idx_change_logs_changed_at", "changed_at"),
    )

    def __repr__(self):
        return f"<ChangeLogEntry {self.change_type} {self.entity_type}:{self.entity_id}>"


class OrganizationSnapshotRecord(BaseModel):
    """Persisted, immutable copy of an organization tree."""

    __tablename__ = "organization_snapshots"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(db.Integer, nullable=False, index=True)
    label: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    payload_json: Mapped[dict] = mapped_column(db.JSON, nullable=False)
    employee_count: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    taken_at: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<OrganizationSnapshotRecord {self.organization_id} {self.taken_at}>"


def _reject_mutation(mapper, connection, target):
    raise AppendOnlyViolation(f"{type(target).__name__} rows are append-only and cannot be modified or deleted.")


for _model in (ChangeLogEntry, OrganizationSnapshotRecord):
    event.listen(_model, "before_update", _reject_mutation)
    event.listen(_model, "before_delete", _reject_mutation)
