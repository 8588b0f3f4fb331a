# telepsy/db/models/psychologist.py

from __future__ import annotations
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow


class Psychologist(Base):
    __tablename__ = "psychologists"

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    # Only confirmed psychologists are offered to users
    is_confirmed: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    availability_days: Mapped[list["AvailabilityDay"]] = relationship(
        back_populates="psychologist",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
