# roster_app/models/employee.py

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class Employee(BaseModel):
    """
    A person on the organization roster.

    ``employee_number`` is the business-assigned identifier used to match
    import rows across runs; ``id`` is only a surrogate key. Rows are never
    deleted, retirement flips ``is_active``.
    """

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_number: Mapped[str] = mapped_column(db.String(64), nullable=False)
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    name_kana: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    position: Mapped[str] = mapped_column(db.String(100), nullable=False)
    position_code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    qualification_grade: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    qualification_grade_code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    employment_type_code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    affiliation_code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    join_date: Mapped[date | None] = mapped_column(db.Date, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(db.Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True, index=True)

    department_id: Mapped[int] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    section_id: Mapped[int | None] = mapped_column(ForeignKey("sections.id"), nullable=True, index=True)
    course_id: Mapped[int | None] = mapped_column(ForeignKey("courses.id"), nullable=True, index=True)

    organization = relationship("Organization")
    department = relationship("Department", foreign_keys=[department_id])
    section = relationship("Section", foreign_keys=[section_id])
    course = relationship("Course", foreign_keys=[course_id])
    histories = relationship(
        "EmployeeHistory",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="EmployeeHistory.valid_from",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "employee_number", name="uq_employees_org_number"),
        Index("idx_employees_org_active", "organization_id", "is_active"),
    )

    def __repr__(self):
        return f"<Employee {self.employee_number} {self.name}>"


class EmployeeHistory(BaseModel):
    """
    Effective-dated copy of an employee's roster state.

    Exactly one row per employee has ``valid_to`` unset; writing a new row
    closes the previous one.
    """

    __tablename__ = "employee_histories"

    id: Mapped[int] = mapped_column(primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    valid_from: Mapped[datetime] = mapped_column(db.DateTime(timezone=True), nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)

    employee_number: Mapped[str] = mapped_column(db.String(64), nullable=False)
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    position: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    position_code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    qualification_grade: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False)
    department_id: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    department_name: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    section_id: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    section_name: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    course_id: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    course_name: Mapped[str | None] = mapped_column(db.String(200), nullable=True)

    change_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    change_reason: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    changed_by: Mapped[str] = mapped_column(db.String(200), nullable=False)

    employee = relationship("Employee", back_populates="histories")

    __table_args__ = (Index("idx_employee_histories_open", "employee_id", "valid_to"),)
