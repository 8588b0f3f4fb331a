# telepsy/crud/appointment.py

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.db.models.appointment import Appointment
from telepsy.db.models.business import Business
from telepsy.db.models.psychologist import Psychologist
from telepsy.db.models.user import User

NUMBER_WIDTH = 6


def format_number(value: int) -> str:
    return str(value).zfill(NUMBER_WIDTH)


def is_number_collision(exc: IntegrityError) -> bool:
    """True when the violated constraint is the appointment number, not the psychologist/start index."""
    return "number" in str(exc.orig).lower()


async def next_number(db: AsyncSession) -> str:
    """Highest existing number plus one, zero-padded."""
    current = await db.scalar(sa.select(sa.func.max(sa.cast(Appointment.number, sa.Integer))))
    return format_number(int(current or 0) + 1)


async def create_appointment(db: AsyncSession, **fields) -> Appointment:
    """Add and flush, so constraint violations surface here. The caller commits."""
    appt = Appointment(**fields)
    db.add(appt)
    await db.flush()
    return appt


async def get_appointment(db: AsyncSession, appointment_id: int) -> Optional[Appointment]:
    return await db.get(Appointment, appointment_id)


async def list_active_within(
    db: AsyncSession,
    *,
    psychologist_ids: Iterable[int],
    start_utc: datetime,
    end_utc: datetime,
) -> Sequence[Appointment]:
    """Non-cancelled appointments whose whole [starts_at, ends_at] lies inside [start_utc, end_utc]."""
    ids = list(psychologist_ids)
    if not ids:
        return []
    q = (
        sa.select(Appointment)
        .where(
            Appointment.psychologist_id.in_(ids),
            Appointment.cancelled.is_(False),
            Appointment.starts_at >= start_utc,
            Appointment.ends_at <= end_utc,
        )
        .order_by(Appointment.starts_at.asc())
    )
    res = await db.execute(q)
    return res.scalars().all()


async def busy_psychologist_ids(
    db: AsyncSession,
    *,
    psychologist_ids: Iterable[int],
    range_start: datetime,
    range_end: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> set[int]:
    """Psychologists with a non-cancelled appointment intersecting the closed range."""
    ids = list(psychologist_ids)
    if not ids:
        return set()
    q = sa.select(Appointment.psychologist_id).where(
        Appointment.psychologist_id.in_(ids),
        Appointment.cancelled.is_(False),
        Appointment.starts_at <= range_end,
        Appointment.ends_at >= range_start,
    )
    if exclude_appointment_id is not None:
        q = q.where(Appointment.id != exclude_appointment_id)
    res = await db.execute(q)
    return set(res.scalars().all())


async def count_by_psychologist(
    db: AsyncSession,
    *,
    psychologist_ids: Iterable[int],
    start_utc: datetime,
    end_utc: datetime,
) -> dict[int, int]:
    """Non-cancelled appointments per psychologist starting in [start_utc, end_utc)."""
    ids = list(psychologist_ids)
    if not ids:
        return {}
    q = (
        sa.select(Appointment.psychologist_id, sa.func.count(Appointment.id))
        .where(
            Appointment.psychologist_id.in_(ids),
            Appointment.cancelled.is_(False),
            Appointment.starts_at >= start_utc,
            Appointment.starts_at < end_utc,
        )
        .group_by(Appointment.psychologist_id)
    )
    res = await db.execute(q)
    return {pid: count for pid, count in res.all()}


async def count_user_appointments(
    db: AsyncSession,
    *,
    user_id: int,
    start_utc: datetime,
    end_utc: datetime,
) -> int:
    """Every appointment of the user starting in [start_utc, end_utc), cancelled ones included."""
    q = sa.select(sa.func.count(Appointment.id)).where(
        Appointment.user_id == user_id,
        Appointment.starts_at >= start_utc,
        Appointment.starts_at < end_utc,
    )
    return int(await db.scalar(q) or 0)


async def list_appointments(
    db: AsyncSession,
    *,
    user_id: Optional[int] = None,
    psychologist_id: Optional[int] = None,
    start_utc: Optional[datetime] = None,
    end_utc: Optional[datetime] = None,
    cancelled: Optional[bool] = None,
    finished: Optional[bool] = None,
    limit: Optional[int] = None,
) -> Sequence[Appointment]:
    """Appointments starting in [start_utc, end_utc), oldest first. None leaves a filter off."""
    q = sa.select(Appointment)
    if user_id is not None:
        q = q.where(Appointment.user_id == user_id)
    if psychologist_id is not None:
        q = q.where(Appointment.psychologist_id == psychologist_id)
    if start_utc is not None:
        q = q.where(Appointment.starts_at >= start_utc)
    if end_utc is not None:
        q = q.where(Appointment.starts_at < end_utc)
    if cancelled is not None:
        q = q.where(Appointment.cancelled.is_(cancelled))
    if finished is not None:
        q = q.where(Appointment.finished.is_(finished))
    q = q.order_by(Appointment.starts_at.asc(), Appointment.id.asc())
    if limit is not None:
        q = q.limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


def _contains(column, text: str):
    return column.ilike(f"%{text}%")


async def search_appointments(
    db: AsyncSession,
    *,
    text: Optional[str] = None,
    user_name: Optional[str] = None,
    psychologist_name: Optional[str] = None,
    business_name: Optional[str] = None,
    business_id: Optional[int] = None,
    psychologist_id: Optional[int] = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[sa.Row], int]:
    """
    Back-office search joined to the user, psychologist and business.

    `text` matches the user's email, the psychologist's name or the business
    name; the other filters all have to hold. Rows come newest first as
    (Appointment, user_name, user_email, psychologist_name, business_name),
    together with the total match count ignoring the page.
    """
    conditions = []
    if text:
        conditions.append(sa.or_(
            _contains(User.email, text),
            _contains(Psychologist.name, text),
            _contains(Business.name, text),
        ))
    if user_name:
        conditions.append(_contains(User.name, user_name))
    if psychologist_name:
        conditions.append(_contains(Psychologist.name, psychologist_name))
    if business_name:
        conditions.append(_contains(Business.name, business_name))
    if business_id is not None:
        conditions.append(Appointment.business_id == business_id)
    if psychologist_id is not None:
        conditions.append(Appointment.psychologist_id == psychologist_id)

    def joined(q):
        return (
            q.join(User, User.id == Appointment.user_id)
            .join(Psychologist, Psychologist.id == Appointment.psychologist_id)
            .join(Business, Business.id == Appointment.business_id)
            .where(*conditions)
        )

    total = await db.scalar(joined(sa.select(sa.func.count(Appointment.id)).select_from(Appointment)))
    q = joined(sa.select(
        Appointment,
        User.name.label("user_name"),
        User.email.label("user_email"),
        Psychologist.name.label("psychologist_name"),
        Business.name.label("business_name"),
    ).select_from(Appointment))
    q = q.order_by(Appointment.starts_at.desc(), Appointment.id.desc()).offset(offset).limit(limit)
    res = await db.execute(q)
    return list(res.all()), int(total or 0)
