# telepsy/db/models/business.py

from __future__ import annotations
from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(160), nullable=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    # Monthly cap per employee; null/0 means unlimited
    consultations_per_user: Mapped[int | None] = mapped_column(sa.Integer)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    contracts: Mapped[list["Contract"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
    )


class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(sa.BigInteger, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    # Number of consultations bought with this contract
    value: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(sa.Text)
    start_date: Mapped[date | None] = mapped_column(sa.Date)
    end_date: Mapped[date | None] = mapped_column(sa.Date)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    business: Mapped["Business"] = relationship(back_populates="contracts")
