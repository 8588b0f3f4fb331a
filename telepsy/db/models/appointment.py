# telepsy/db/models/appointment.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.UniqueConstraint("number", name="uq_appointments_number"),
        # One live appointment per psychologist per start instant
        sa.Index(
            "uq_appointments_psychologist_id_starts_at_active",
            "psychologist_id",
            "starts_at",
            unique=True,
            postgresql_where=sa.text("NOT cancelled"),
            sqlite_where=sa.text("NOT cancelled"),
        ),
        sa.Index("ix_appointments_user_id", "user_id"),
        sa.Index("ix_appointments_business_id", "business_id"),
        sa.Index("ix_appointments_starts_at", "starts_at"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    # Zero-padded sequential number, e.g. "000042"
    number: Mapped[str] = mapped_column(sa.String(12), nullable=False)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    psychologist_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("psychologists.id"), nullable=False)
    business_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("businesses.id"), nullable=False)
    treatment_id: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("treatments.id", ondelete="SET NULL"))

    # Store as timezone-aware UTC
    starts_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=45)

    cancelled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    cancelled_by: Mapped[str | None] = mapped_column(sa.String(16))
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    # Late cancellations are still billed to the business
    cancelled_paid: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    finished: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    next_appointment_id: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("appointments.id", ondelete="SET NULL"))

    # Clinical report
    diagnostics: Mapped[list[str] | None] = mapped_column(sa.JSON)
    clinical_intervention: Mapped[str | None] = mapped_column(sa.Text)
    clinical_record: Mapped[str | None] = mapped_column(sa.Text)
    goals_next_appointment: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def is_scheduled(self) -> bool:
        """Neither cancelled nor finished, so it can still be moved or cancelled."""
        return not self.cancelled and not self.finished

    def __repr__(self):
        return f"<Appointment {self.number} psychologist={self.psychologist_id} {self.starts_at.isoformat()}>"
