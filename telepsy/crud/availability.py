# telepsy/crud/availability.py

from __future__ import annotations
from datetime import date
from typing import Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot
from telepsy.db.models.psychologist import Psychologist


async def get_days(
    db: AsyncSession,
    *,
    psychologist_id: int,
    start_date: date,
    end_date: date,
) -> Sequence[AvailabilityDay]:
    q = (
        sa.select(AvailabilityDay)
        .where(
            AvailabilityDay.psychologist_id == psychologist_id,
            AvailabilityDay.day >= start_date,
            AvailabilityDay.day <= end_date,
        )
        .order_by(AvailabilityDay.day.asc())
    )
    res = await db.execute(q)
    return res.scalars().all()


async def get_day(db: AsyncSession, *, psychologist_id: int, day: date) -> Optional[AvailabilityDay]:
    res = await db.execute(
        sa.select(AvailabilityDay).where(
            AvailabilityDay.psychologist_id == psychologist_id,
            AvailabilityDay.day == day,
        )
    )
    return res.scalar_one_or_none()


async def replace_days(
    db: AsyncSession,
    *,
    psychologist_id: int,
    start_date: date,
    end_date: date,
    days: Iterable[AvailabilityDay],
) -> list[AvailabilityDay]:
    """Delete every day-record of the psychologist in [start_date, end_date] and insert `days`.

    Runs inside the caller's transaction; the caller commits.
    """
    in_range = (
        sa.select(AvailabilityDay.id)
        .where(
            AvailabilityDay.psychologist_id == psychologist_id,
            AvailabilityDay.day >= start_date,
            AvailabilityDay.day <= end_date,
        )
        .scalar_subquery()
    )
    await db.execute(
        sa.delete(AvailabilitySlot)
        .where(AvailabilitySlot.availability_day_id.in_(in_range))
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        sa.delete(AvailabilityDay)
        .where(
            AvailabilityDay.psychologist_id == psychologist_id,
            AvailabilityDay.day >= start_date,
            AvailabilityDay.day <= end_date,
        )
        .execution_options(synchronize_session="fetch")
    )
    new_days = list(days)
    db.add_all(new_days)
    await db.flush()
    return new_days


async def days_with_origin(
    db: AsyncSession,
    *,
    psychologist_id: int,
    origin_slot_id: str,
    after: date,
) -> Sequence[AvailabilityDay]:
    """Days strictly after `after` holding at least one slot spawned from `origin_slot_id`."""
    holders = (
        sa.select(AvailabilitySlot.availability_day_id)
        .where(AvailabilitySlot.recurring_origin_slot == origin_slot_id)
    )
    res = await db.execute(
        sa.select(AvailabilityDay)
        .where(
            AvailabilityDay.psychologist_id == psychologist_id,
            AvailabilityDay.day > after,
            AvailabilityDay.id.in_(holders),
        )
        .order_by(AvailabilityDay.day.asc())
    )
    return res.scalars().all()


async def bookable_days(
    db: AsyncSession,
    *,
    start_date: date,
    end_date: date,
    psychologist_id: Optional[int] = None,
) -> Sequence[AvailabilityDay]:
    """Day-records in range belonging to active, confirmed psychologists."""
    q = (
        sa.select(AvailabilityDay)
        .join(Psychologist, AvailabilityDay.psychologist_id == Psychologist.id)
        .where(
            AvailabilityDay.day >= start_date,
            AvailabilityDay.day <= end_date,
            Psychologist.is_active.is_(True),
            Psychologist.is_confirmed.is_(True),
        )
        .order_by(AvailabilityDay.day.asc(), AvailabilityDay.psychologist_id.asc())
    )
    if psychologist_id is not None:
        q = q.where(AvailabilityDay.psychologist_id == psychologist_id)
    res = await db.execute(q)
    return res.scalars().all()
