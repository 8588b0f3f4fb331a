# telepsy/db/models/user.py

from __future__ import annotations
from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from telepsy.db.session import Base
from telepsy.db.types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)
    business_id: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("businesses.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    external_name: Mapped[str | None] = mapped_column(sa.String(120))
    birthdate: Mapped[date | None] = mapped_column(sa.Date)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    # Psychologist assigned on the first successful booking
    psychologist_id: Mapped[int | None] = mapped_column(sa.BigInteger, sa.ForeignKey("psychologists.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
