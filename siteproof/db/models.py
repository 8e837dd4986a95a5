"""SQLAlchemy async database models for SiteProof.

Maps to the PostgreSQL schema. Every reference to an inspection template uses
``itp_template_id`` and every reference to a template line uses ``itp_item_id``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """created_at / updated_at audit columns.

    Python-side defaults keep the values loaded on the instance after flush,
    so async sessions never need a lazy refresh to read them.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class UserModel(Base):
    """Registered user (email + bcrypt password hash)."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, default="default")
    role: Mapped[str] = mapped_column(Text, nullable=False, default="inspector")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


class AuditLogModel(Base):
    """Append-only audit trail of user actions."""

    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    username: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    resource_type: Mapped[str | None] = mapped_column(Text)
    resource_id: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_audit_logs_action", "action"),
        Index("idx_audit_logs_created", "created_at"),
    )


class ProjectModel(TimestampMixin, Base):
    """Construction project."""

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, default="default")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    project_number: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(Text)

    # active, completed, on_hold, cancelled
    status: Mapped[str] = mapped_column(Text, default="active", nullable=False)

    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    created_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_projects_org", "org_id"),
        Index("idx_projects_status", "status"),
    )


class LotModel(TimestampMixin, Base):
    """Inspection lot: a discrete unit of work within a project."""

    __tablename__ = "lots"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lot_number: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location_description: Mapped[str | None] = mapped_column(Text)

    # pending, in_progress, completed, approved, rejected
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)

    # Primary template; additional templates live in lot_itp_templates
    itp_template_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("itp_templates.id", ondelete="SET NULL")
    )
    created_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("project_id", "lot_number", name="uq_lots_project_lot_number"),
        Index("idx_lots_status", "status"),
    )


class ITPTemplateModel(TimestampMixin, Base):
    """Reusable Inspection & Test Plan template."""

    __tablename__ = "itp_templates"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    org_id: Mapped[str] = mapped_column(Text, nullable=False, default="default")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)  # e.g. Earthworks, Concrete
    version: Mapped[str] = mapped_column(Text, default="1.0", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("idx_itp_templates_active", "is_active"),)


class ITPItemModel(Base):
    """Single inspection line within a template."""

    __tablename__ = "itp_items"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    itp_template_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("itp_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_number: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    specification_reference: Mapped[str | None] = mapped_column(Text)
    inspection_method: Mapped[str | None] = mapped_column(Text)
    acceptance_criteria: Mapped[str | None] = mapped_column(Text)

    # pass_fail, numeric, text, photo_required
    item_type: Mapped[str] = mapped_column(Text, default="pass_fail", nullable=False)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_itp_items_template_order", "itp_template_id", "order_index"),)


class LotITPTemplateModel(TimestampMixin, Base):
    """Lot <-> template assignment; each row is one ITP instance on a lot."""

    __tablename__ = "lot_itp_templates"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    itp_template_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("itp_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    instance_name: Mapped[str | None] = mapped_column(Text)

    # pending, in_progress, completed, approved
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    assigned_by: Mapped[str | None] = mapped_column(Text)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("lot_id", "itp_template_id", name="uq_lot_itp_templates_lot_template"),
        Index("idx_lot_itp_templates_active", "lot_id", "is_active"),
    )


class ConformanceRecordModel(TimestampMixin, Base):
    """Result of checking one ITP item against one lot."""

    __tablename__ = "conformance_records"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    itp_template_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("itp_templates.id", ondelete="CASCADE"), nullable=False
    )
    itp_item_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("itp_items.id", ondelete="CASCADE"), nullable=False
    )

    # pass, fail, na, pending
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    result_numeric: Mapped[Decimal | None] = mapped_column(Numeric(14, 4))
    result_text: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    corrective_action: Mapped[str | None] = mapped_column(Text)
    photo_url: Mapped[str | None] = mapped_column(Text)
    is_non_conformance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checked_by: Mapped[str | None] = mapped_column(Text)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("lot_id", "itp_item_id", name="uq_conformance_lot_item"),
        CheckConstraint(
            "status IN ('pass', 'fail', 'na', 'pending')", name="check_conformance_status"
        ),
        Index("idx_conformance_lot_template", "lot_id", "itp_template_id"),
    )


class ComplianceCheckModel(TimestampMixin, Base):
    """Environmental / regulatory compliance check recorded against a lot."""

    __tablename__ = "compliance_checks"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_type: Mapped[str] = mapped_column(Text, nullable=False)

    # compliant, non_compliant, pending
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    photo_url: Mapped[str | None] = mapped_column(Text)
    checked_by: Mapped[str | None] = mapped_column(Text)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('compliant', 'non_compliant', 'pending')", name="check_compliance_status"
        ),
    )


class LabourDocketModel(Base):
    """Daily labour docket line for a lot."""

    __tablename__ = "daily_labour"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    worker_name: Mapped[str] = mapped_column(Text, nullable=False)
    trade: Mapped[str | None] = mapped_column(Text)
    hours_worked: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("0"), nullable=False)
    overtime_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    task_description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("hours_worked >= 0", name="check_hours_non_negative"),
    )


class MaterialsDocketModel(Base):
    """Daily materials delivery docket for a lot."""

    __tablename__ = "daily_materials"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    material_type: Mapped[str] = mapped_column(Text, nullable=False)
    supplier: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit_measure: Mapped[str | None] = mapped_column(Text)  # t, m3, ea
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    total_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    delivery_docket: Mapped[str | None] = mapped_column(Text)
    quality_notes: Mapped[str | None] = mapped_column(Text)
    received_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_quantity_positive"),
    )
