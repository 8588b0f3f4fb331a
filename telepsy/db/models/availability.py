# telepsy/db/models/availability.py

from __future__ import annotations
from datetime import date, datetime
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow


def new_slot_id() -> str:
    return uuid.uuid4().hex


class AvailabilityDay(Base):
    """One calendar day of a psychologist's availability."""

    __tablename__ = "availability_days"
    __table_args__ = (
        sa.UniqueConstraint("psychologist_id", "day", name="uq_availability_days_psychologist_id_day"),
        sa.Index("ix_availability_days_day", "day"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    psychologist_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("psychologists.id", ondelete="CASCADE"), nullable=False)
    day: Mapped[date] = mapped_column(sa.Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    psychologist: Mapped["Psychologist"] = relationship(back_populates="availability_days")
    # selectin: slots are always needed with their day and async sessions can't lazy-load
    slots: Mapped[list["AvailabilitySlot"]] = relationship(
        back_populates="availability_day",
        cascade="all, delete-orphan",
        order_by="AvailabilitySlot.start",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<AvailabilityDay psychologist={self.psychologist_id} {self.day} slots={len(self.slots)}>"


class AvailabilitySlot(Base):
    """A [start, end) minute-of-day range on an AvailabilityDay."""

    __tablename__ = "availability_slots"
    __table_args__ = (
        sa.CheckConstraint("start >= 0 AND start < \"end\" AND \"end\" <= 1440", name="ck_availability_slots_range"),
        sa.Index("ix_availability_slots_recurring_origin_slot", "recurring_origin_slot"),
        sa.Index("ix_availability_slots_slot_id", "slot_id"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    # Stable external id; survives a week being re-saved and anchors recurrences
    slot_id: Mapped[str] = mapped_column(sa.String(32), nullable=False, default=new_slot_id)
    availability_day_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("availability_days.id", ondelete="CASCADE"), nullable=False)
    start: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    end: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    recurring: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    recurring_end: Mapped[date | None] = mapped_column(sa.Date)
    recurring_origin_slot: Mapped[str | None] = mapped_column(sa.String(32))

    availability_day: Mapped["AvailabilityDay"] = relationship(back_populates="slots")

    def covers(self, start: int, end: int) -> bool:
        return self.start <= start and self.end >= end

    def __repr__(self):
        return f"<AvailabilitySlot {self.slot_id} {self.start}-{self.end}{' recurring' if self.recurring else ''}>"
