from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rosterdesk.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShiftDefinitionRecord(Base):
    __tablename__ = "shift_definitions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class TaskRecord(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class StaffRecord(Base):
    __tablename__ = "staff"
    __table_args__ = (
        CheckConstraint("experience_level IN ('experienced', 'fresher')", name="ck_staff_experience_level"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    role: Mapped[str | None] = mapped_column(String(120), nullable=True)
    experience_level: Mapped[str] = mapped_column(String(20), nullable=False, default="fresher")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_shift_preference: Mapped[str | None] = mapped_column(String(120), nullable=True)
    week_off_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RosterRecord(Base):
    __tablename__ = "rosters"
    __table_args__ = (
        UniqueConstraint("store_id", "date", "shift_id", name="uq_rosters_store_date_shift"),
        CheckConstraint("status IN ('draft', 'published')", name="ck_rosters_status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    on_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    shift_id: Mapped[str] = mapped_column(ForeignKey("shift_definitions.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    coverage: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    slots = relationship(
        "RosterSlotRecord",
        back_populates="roster",
        cascade="all, delete-orphan",
        order_by="RosterSlotRecord.position",
    )


class RosterSlotRecord(Base):
    __tablename__ = "roster_slots"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published')", name="ck_roster_slots_status"),
    )

    id: Mapped[str] = mapped_column(String(96), primary_key=True)
    roster_id: Mapped[str] = mapped_column(ForeignKey("rosters.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    shift_id: Mapped[str] = mapped_column(String(64), nullable=False)
    on_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    assigned_tasks: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    roster = relationship("RosterRecord", back_populates="slots")
