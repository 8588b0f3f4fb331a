# telepsy/db/models/treatment.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow


class Treatment(Base):
    __tablename__ = "treatments"
    __table_args__ = (
        sa.Index("ix_treatments_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    diagnostics: Mapped[list[str] | None] = mapped_column(sa.JSON)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    medication: Mapped[bool | None] = mapped_column(sa.Boolean)
    medication_description: Mapped[str | None] = mapped_column(sa.Text)
    goals: Mapped[str | None] = mapped_column(sa.Text)
    anamnesis: Mapped[str | None] = mapped_column(sa.Text)
    # Null while the treatment is open
    clinical_discharge: Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
