# hosteldesk/db/models.py
from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    Float,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    func,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hosteldesk.db.base import Base

# ==== Енуми (python + sqlalchemy) ====


class RoleEnum(str, enum.Enum):
    STUDENT = "STUDENT"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class StaffVertical(str, enum.Enum):
    ELECTRICAL = "ELECTRICAL"
    PLUMBING = "PLUMBING"
    HVAC = "HVAC"
    CARPENTRY = "CARPENTRY"
    IT_SUPPORT = "IT_SUPPORT"
    HOUSEKEEPING = "HOUSEKEEPING"
    SECURITY = "SECURITY"
    GENERAL_MAINTENANCE = "GENERAL_MAINTENANCE"
    BLOCK_A_WARDEN = "BLOCK_A_WARDEN"
    BLOCK_B_WARDEN = "BLOCK_B_WARDEN"
    BLOCK_C_WARDEN = "BLOCK_C_WARDEN"


class HostelBlock(str, enum.Enum):
    BLOCK_A = "BLOCK_A"
    BLOCK_B = "BLOCK_B"
    BLOCK_C = "BLOCK_C"
    BLOCK_D = "BLOCK_D"
    BLOCK_E = "BLOCK_E"
    BLOCK_F = "BLOCK_F"
    BLOCK_G = "BLOCK_G"
    BLOCK_H = "BLOCK_H"

    @property
    def display_name(self) -> str:
        return "Block " + self.value[-1]


class TicketStatus(str, enum.Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"
    REOPENED = "REOPENED"


class TicketPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EMERGENCY = "EMERGENCY"


class TicketCategory(str, enum.Enum):
    # детальні категорії форми створення заявки
    ELECTRICAL_ISSUES = "ELECTRICAL_ISSUES"
    PLUMBING_WATER = "PLUMBING_WATER"
    HVAC = "HVAC"
    STRUCTURAL_CIVIL = "STRUCTURAL_CIVIL"
    FURNITURE_FIXTURES = "FURNITURE_FIXTURES"
    NETWORK_INTERNET = "NETWORK_INTERNET"
    COMPUTER_HARDWARE = "COMPUTER_HARDWARE"
    AUDIO_VISUAL_EQUIPMENT = "AUDIO_VISUAL_EQUIPMENT"
    SECURITY_SYSTEMS = "SECURITY_SYSTEMS"
    HOUSEKEEPING_CLEANLINESS = "HOUSEKEEPING_CLEANLINESS"
    SAFETY_SECURITY = "SAFETY_SECURITY"
    LANDSCAPING_OUTDOOR = "LANDSCAPING_OUTDOOR"
    GENERAL = "GENERAL"
    # групи, за якими підбирається персонал
    MAINTENANCE = "MAINTENANCE"
    HOUSEKEEPING = "HOUSEKEEPING"
    SECURITY = "SECURITY"
    FACILITIES = "FACILITIES"
    STUDENT_SERVICES = "STUDENT_SERVICES"
    # довільна категорія (текст у custom_category)
    CUSTOM = "CUSTOM"


class AssetType(str, enum.Enum):
    FURNITURE = "FURNITURE"
    APPLIANCE = "APPLIANCE"
    ELECTRONICS = "ELECTRONICS"
    SAFETY = "SAFETY"
    MAINTENANCE_EQUIPMENT = "MAINTENANCE_EQUIPMENT"
    RECREATION = "RECREATION"
    KITCHEN = "KITCHEN"
    OTHER = "OTHER"


class AssetStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_ORDER = "OUT_OF_ORDER"
    RETIRED = "RETIRED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"
    STORED = "STORED"
    RESERVED = "RESERVED"
    IN_TRANSIT = "IN_TRANSIT"


# ==== Міксини ====


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ==== Моделі ====


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[RoleEnum] = mapped_column(
        Enum(RoleEnum, name="role_enum"),
        default=RoleEnum.STUDENT,
        nullable=False,
    )
    # лише для STAFF
    staff_vertical: Mapped[Optional[StaffVertical]] = mapped_column(
        Enum(StaffVertical, name="staff_vertical_enum"),
        nullable=True,
    )
    staff_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    # лише для STUDENT
    student_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    room_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    hostel_block: Mapped[Optional[HostelBlock]] = mapped_column(
        Enum(HostelBlock, name="hostel_block_enum"),
        nullable=True,
    )
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tickets_created: Mapped[List["Ticket"]] = relationship(
        back_populates="created_by",
        foreign_keys="Ticket.created_by_id",
    )
    tickets_assigned: Mapped[List["Ticket"]] = relationship(
        back_populates="assigned_to",
        foreign_keys="Ticket.assigned_to_id",
    )

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[TicketCategory] = mapped_column(
        Enum(TicketCategory, name="ticket_category_enum"),
        default=TicketCategory.GENERAL,
        nullable=False,
    )
    custom_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    priority: Mapped[TicketPriority] = mapped_column(
        Enum(TicketPriority, name="ticket_priority_enum"),
        default=TicketPriority.MEDIUM,
        nullable=False,
    )
    status: Mapped[TicketStatus] = mapped_column(
        Enum(TicketStatus, name="ticket_status_enum"),
        default=TicketStatus.OPEN,
        nullable=False,
    )

    created_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    hostel_block: Mapped[Optional[HostelBlock]] = mapped_column(
        Enum(HostelBlock, name="hostel_block_enum"),
        nullable=True,
    )
    room_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location_details: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # created_at/updated_at задаємо з Python, щоб SLA-розрахунок мав точний час
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_breach_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # оцінка автора після вирішення, 1..5
    satisfaction_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped["User"] = relationship(
        back_populates="tickets_created",
        foreign_keys=[created_by_id],
    )
    assigned_to: Mapped[Optional["User"]] = relationship(
        back_populates="tickets_assigned",
        foreign_keys=[assigned_to_id],
    )
    comments: Mapped[List["TicketComment"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
    )
    history: Mapped[List["TicketHistory"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
    )
    escalations: Mapped[List["TicketEscalation"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_tickets_status_priority", "status", "priority"),
        Index("ix_tickets_created_at", "created_at"),
    )

    @property
    def effective_category(self) -> str:
        if self.category == TicketCategory.CUSTOM and self.custom_category:
            return self.custom_category
        return getattr(self.category, "value", str(self.category))

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} status={self.status} priority={self.priority}>"


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    body: Mapped[str] = mapped_column(Text)
    is_internal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    ticket: Mapped["Ticket"] = relationship(back_populates="comments")
    author: Mapped["User"] = relationship()


class TicketHistory(Base):
    """Журнал змін статусу/виконавця (хто, коли, що було і що стало)."""

    __tablename__ = "ticket_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    changed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    field: Mapped[str] = mapped_column(String(32))
    old_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    ticket: Mapped["Ticket"] = relationship(back_populates="history")
    changed_by: Mapped[Optional["User"]] = relationship()


class CategoryStaffMapping(TimestampMixin, Base):
    __tablename__ = "category_staff_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    staff_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    # NULL = усі корпуси
    hostel_block: Mapped[Optional[HostelBlock]] = mapped_column(
        Enum(HostelBlock, name="hostel_block_enum"),
        nullable=True,
    )
    # значення TicketCategory або довільна категорія
    category: Mapped[str] = mapped_column(String(100), index=True)
    priority_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)  # 1 = найвищий
    capacity_weight: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    expertise_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)  # 1..5
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    staff: Mapped["User"] = relationship()


class TicketEscalation(Base):
    __tablename__ = "ticket_escalations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    escalated_from_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    escalated_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reason: Mapped[str] = mapped_column(Text)
    escalation_level: Mapped[int] = mapped_column(Integer, nullable=False)
    is_auto_escalated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    escalated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    ticket: Mapped["Ticket"] = relationship(back_populates="escalations")
    escalated_from: Mapped[Optional["User"]] = relationship(foreign_keys=[escalated_from_id])
    escalated_to: Mapped[Optional["User"]] = relationship(foreign_keys=[escalated_to_id])


# --- Облік майна ---


class Asset(TimestampMixin, Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    asset_tag: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[AssetType] = mapped_column(
        Enum(AssetType, name="asset_type_enum"),
        default=AssetType.OTHER,
        nullable=False,
    )
    status: Mapped[AssetStatus] = mapped_column(
        Enum(AssetStatus, name="asset_status_enum"),
        default=AssetStatus.ACTIVE,
        nullable=False,
    )
    building: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    room_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    purchase_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    warranty_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    purchase_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    movements: Mapped[List["AssetMovement"]] = relationship(
        back_populates="asset",
        cascade="all, delete-orphan",
    )
    maintenance_schedules: Mapped[List["MaintenanceSchedule"]] = relationship(
        back_populates="asset",
        cascade="all, delete-orphan",
    )


class AssetMovement(Base):
    __tablename__ = "asset_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    asset_id: Mapped[int] = mapped_column(
        ForeignKey("assets.id", ondelete="CASCADE"),
        index=True,
    )
    from_building: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    from_room: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    to_building: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    to_room: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    moved_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    moved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    asset: Mapped["Asset"] = relationship(back_populates="movements")


class MaintenanceSchedule(Base):
    __tablename__ = "maintenance_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    asset_id: Mapped[int] = mapped_column(
        ForeignKey("assets.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    frequency_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    asset: Mapped["Asset"] = relationship(back_populates="maintenance_schedules")
