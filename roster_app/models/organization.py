# roster_app/models/organization.py

from __future__ import annotations

import enum

from flask import current_app
from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class UnitLevel(str, enum.Enum):
    """The three levels of the organization hierarchy."""

    DEPARTMENT = "department"
    SECTION = "section"
    COURSE = "course"


class Organization(BaseModel):
    """Root of a department/section/course hierarchy."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    slug: Mapped[str] = mapped_column(db.String(100), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, default=True, nullable=False, index=True)

    departments = relationship(
        "Department",
        back_populates="organization",
        cascade="all, delete-orphan",
        order_by="Department.id",
    )

    def __repr__(self):
        return f"<Organization {self.name}>"

    @staticmethod
    def find_by_slug(slug):
        """Find organization by slug with error handling"""
        try:
            return Organization.query.filter_by(slug=slug).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding organization by slug {slug}: {str(e)}")
            return None

    @staticmethod
    def find_by_id(org_id):
        """Find organization by ID with error handling"""
        try:
            return db.session.get(Organization, org_id)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding organization by id {org_id}: {str(e)}")
            return None


class Department(BaseModel):
    """Top hierarchy level; names are unique within an organization."""

    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", use_alter=True, name="fk_departments_manager_id", ondelete="SET NULL"),
        nullable=True,
    )

    organization = relationship("Organization", back_populates="departments")
    sections = relationship(
        "Section",
        back_populates="department",
        cascade="all, delete-orphan",
        order_by="Section.id",
    )
    manager = relationship("Employee", foreign_keys=[manager_id], post_update=True)

    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_departments_org_name"),)

    level = UnitLevel.DEPARTMENT

    def __repr__(self):
        return f"<Department {self.name}>"


class Section(BaseModel):
    """Middle hierarchy level; names are unique within a department."""

    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(primary_key=True)
    department_id: Mapped[int] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", use_alter=True, name="fk_sections_manager_id", ondelete="SET NULL"),
        nullable=True,
    )

    department = relationship("Department", back_populates="sections")
    courses = relationship(
        "Course",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Course.id",
    )
    manager = relationship("Employee", foreign_keys=[manager_id], post_update=True)

    __table_args__ = (UniqueConstraint("department_id", "name", name="uq_sections_department_name"),)

    level = UnitLevel.SECTION

    def __repr__(self):
        return f"<Section {self.name}>"


class Course(BaseModel):
    """Leaf hierarchy level; names are unique within a section."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True)
    section_id: Mapped[int] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(db.String(32), nullable=True)
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", use_alter=True, name="fk_courses_manager_id", ondelete="SET NULL"),
        nullable=True,
    )

    section = relationship("Section", back_populates="courses")
    manager = relationship("Employee", foreign_keys=[manager_id], post_update=True)

    __table_args__ = (
        UniqueConstraint("section_id", "name", name="uq_courses_section_name"),
        Index("idx_courses_section", "section_id"),
    )

    level = UnitLevel.COURSE

    def __repr__(self):
        return f"<Course {self.name}>"
