# telepsy/crud/directory.py
"""
Lookups over businesses, users and the psychologist roster that the
scheduling core consumes.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.db.models.appointment import Appointment
from telepsy.db.models.business import Business, Contract
from telepsy.db.models.psychologist import Psychologist
from telepsy.db.models.user import User


@dataclass(frozen=True)
class BusinessQuota:
    business_id: int
    consultations_bought: int
    consultations_used: int
    consultations_per_user: int

    @property
    def exhausted(self) -> bool:
        return self.consultations_used >= self.consultations_bought

    @property
    def has_monthly_cap(self) -> bool:
        return self.consultations_per_user > 0


async def get_business_quota(db: AsyncSession, user_id: int) -> Optional[BusinessQuota]:
    """Quota of the active business the user is an active member of, if any."""
    res = await db.execute(
        sa.select(Business)
        .join(User, User.business_id == Business.id)
        .where(
            User.id == user_id,
            User.is_active.is_(True),
            Business.is_active.is_(True),
        )
    )
    business = res.scalar_one_or_none()
    if business is None:
        return None

    bought = await db.scalar(
        sa.select(sa.func.coalesce(sa.func.sum(Contract.value), 0)).where(Contract.business_id == business.id)
    )
    used = await db.scalar(
        sa.select(sa.func.count(Appointment.id)).where(
            Appointment.business_id == business.id,
            Appointment.cancelled.is_(False),
        )
    )
    return BusinessQuota(
        business_id=business.id,
        consultations_bought=int(bought or 0),
        consultations_used=int(used or 0),
        consultations_per_user=int(business.consultations_per_user or 0),
    )


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def assign_psychologist(db: AsyncSession, user_id: int, psychologist_id: int) -> None:
    await db.execute(
        sa.update(User)
        .where(User.id == user_id)
        .values(psychologist_id=psychologist_id)
        .execution_options(synchronize_session="evaluate")
    )


async def get_psychologist(db: AsyncSession, psychologist_id: int) -> Optional[Psychologist]:
    return await db.get(Psychologist, psychologist_id)


async def get_active_psychologist_ids(db: AsyncSession) -> set[int]:
    res = await db.execute(
        sa.select(Psychologist.id).where(
            Psychologist.is_active.is_(True),
            Psychologist.is_confirmed.is_(True),
        )
    )
    return set(res.scalars().all())
