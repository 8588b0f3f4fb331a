# telepsy/services/listings.py
"""
Read-only appointment listings: a user's and a psychologist's upcoming and
past appointments, and the back-office search.

An appointment counts as upcoming until UPCOMING_GRACE_MIN after its start,
so a session in progress is still listed with the next ones. Past listings
never reach into that grace window.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.business import ensure_utc, local_day_bounds, parse_date, utcnow
from telepsy.core.config import settings
from telepsy.core.errors import InvalidParameter
from telepsy.core.logging import get_logger
from telepsy.crud import appointment as crud_appointment
from telepsy.db.models.appointment import Appointment

logger = get_logger(__name__)


@dataclass
class Agenda:
    next_appointments: Sequence[Appointment]
    pending_report: Sequence[Appointment]


@dataclass
class SearchFilter:
    field: str
    query: str


@dataclass
class SearchPage:
    rows: list = field(default_factory=list)
    total: int = 0


def _cutoff(now: Optional[datetime]) -> datetime:
    return ensure_utc(now or utcnow()) - timedelta(minutes=settings.UPCOMING_GRACE_MIN)


def _past_range(start_date: str | date, end_date: str | date, now: Optional[datetime]) -> tuple[datetime, datetime]:
    start, end = parse_date(start_date), parse_date(end_date)
    if start > end:
        raise InvalidParameter("Start date must not be after end date")
    range_start, _ = local_day_bounds(start)
    _, range_end = local_day_bounds(end)
    return range_start, min(range_end, _cutoff(now))


async def upcoming_for_user(
    db: AsyncSession, *, user_id: int, now: Optional[datetime] = None
) -> Sequence[Appointment]:
    return await crud_appointment.list_appointments(
        db, user_id=user_id, start_utc=_cutoff(now), cancelled=False
    )


async def past_for_user(
    db: AsyncSession,
    *,
    user_id: int,
    start_date: str | date,
    end_date: str | date,
    now: Optional[datetime] = None,
) -> Sequence[Appointment]:
    """Every appointment of the user in the local date range, cancelled ones included."""
    start_utc, end_utc = _past_range(start_date, end_date, now)
    if end_utc <= start_utc:
        return []
    return await crud_appointment.list_appointments(db, user_id=user_id, start_utc=start_utc, end_utc=end_utc)


async def psychologist_agenda(
    db: AsyncSession, *, psychologist_id: int, now: Optional[datetime] = None
) -> Agenda:
    """Live appointments still to come, and the earlier ones still waiting for a report."""
    cutoff = _cutoff(now)
    upcoming = await crud_appointment.list_appointments(
        db, psychologist_id=psychologist_id, start_utc=cutoff, cancelled=False
    )
    pending = await crud_appointment.list_appointments(
        db, psychologist_id=psychologist_id, end_utc=cutoff, cancelled=False, finished=False
    )
    return Agenda(next_appointments=upcoming, pending_report=pending)


async def past_for_psychologist(
    db: AsyncSession,
    *,
    psychologist_id: int,
    start_date: str | date,
    end_date: str | date,
    now: Optional[datetime] = None,
) -> Sequence[Appointment]:
    start_utc, end_utc = _past_range(start_date, end_date, now)
    if end_utc <= start_utc:
        return []
    return await crud_appointment.list_appointments(
        db, psychologist_id=psychologist_id, start_utc=start_utc, end_utc=end_utc
    )


def _as_id(f: SearchFilter) -> int:
    try:
        return int(f.query)
    except (TypeError, ValueError):
        raise InvalidParameter(f"Filter '{f.field}' expects an id")


async def search_appointments(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    filters: Iterable[SearchFilter] = (),
    page: int = 0,
    per_page: Optional[int] = None,
) -> SearchPage:
    """
    Back-office search, newest first.

    Filter fields: userName, psychologistName and clientName (business name)
    match text; business and psychologist take an id. Unknown fields are
    ignored.
    """
    per_page = per_page or settings.SEARCH_PAGE_SIZE
    if page < 0 or per_page < 0:
        raise InvalidParameter("Page and page size must not be negative")

    criteria: dict = {}
    for f in filters:
        if f.field == "userName":
            criteria["user_name"] = f.query
        elif f.field == "psychologistName":
            criteria["psychologist_name"] = f.query
        elif f.field == "clientName":
            criteria["business_name"] = f.query
        elif f.field == "business":
            criteria["business_id"] = _as_id(f)
        elif f.field == "psychologist":
            criteria["psychologist_id"] = _as_id(f)

    rows, total = await crud_appointment.search_appointments(
        db, text=search, offset=page * per_page, limit=per_page, **criteria
    )
    logger.debug("appointments_searched", search=search, page=page, total=total)
    return SearchPage(rows=rows, total=total)
