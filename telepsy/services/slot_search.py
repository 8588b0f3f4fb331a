# telepsy/services/slot_search.py
"""
Bookable start times per day.

Each availability slot is cut into markers on the booking grid, keeping only
the starts where a whole appointment ends inside the slot. Markers
within the buffer before an appointment, or covered by it, are removed for
that psychologist. Markers from every psychologist of the same day are then
merged into one sorted list.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.business import (
    LOCAL_TZ,
    ensure_utc,
    format_minutes,
    local_day_bounds,
    local_minute_of_day,
    local_today,
    utcnow,
)
from telepsy.core.config import settings
from telepsy.core.errors import InvalidParameter
from telepsy.core.logging import get_logger
from telepsy.crud import appointment as crud_appointment
from telepsy.crud import availability as crud_availability
from telepsy.db.models.appointment import Appointment
from telepsy.db.models.availability import AvailabilitySlot

logger = get_logger(__name__)


class DaySlots(TypedDict):
    date: date
    slots: list[str]


def slot_markers(slots: Iterable[AvailabilitySlot], grid: int, duration: int) -> set[str]:
    """start + k*grid for every grid step where a full appointment still ends inside the slot."""
    markers = set()
    for slot in slots:
        minute = slot.start
        while minute + duration <= slot.end:
            markers.add(format_minutes(minute))
            minute += grid
    return markers


def occupied_markers(appointments: Iterable[Appointment], grid: int, buffer_min: int) -> set[str]:
    """Markers from start-buffer, stepping by grid, while before the appointment's end."""
    markers = set()
    for appt in appointments:
        cursor = ensure_utc(appt.starts_at) - timedelta(minutes=buffer_min)
        end = ensure_utc(appt.ends_at)
        while cursor < end:
            markers.add(format_minutes(local_minute_of_day(cursor)))
            cursor += timedelta(minutes=grid)
    return markers


def _effective_start(start_date: date, today: date) -> date:
    # A search from the first of the current month means "from now on"
    if start_date == today.replace(day=1):
        return today
    return start_date


async def search_slots(
    db: AsyncSession,
    *,
    start_date: date,
    end_date: date,
    psychologist_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[DaySlots]:
    if start_date > end_date:
        raise InvalidParameter("Start date must not be after end date")

    now = ensure_utc(now or utcnow())
    today = local_today(now)
    start_date = _effective_start(start_date, today)
    grid = settings.SLOT_GRID_MIN

    days = await crud_availability.bookable_days(
        db, start_date=start_date, end_date=end_date, psychologist_id=psychologist_id
    )
    if not days:
        return []

    range_start, _ = local_day_bounds(start_date)
    _, range_end = local_day_bounds(end_date)
    appointments = await crud_appointment.list_active_within(
        db,
        psychologist_ids={d.psychologist_id for d in days},
        start_utc=range_start,
        end_utc=range_end,
    )

    # (psychologist_id, local day) -> appointments lying inside that local day
    booked: dict[tuple[int, date], list[Appointment]] = defaultdict(list)
    for appt in appointments:
        local_start = ensure_utc(appt.starts_at).astimezone(LOCAL_TZ).date()
        _, day_end = local_day_bounds(local_start)
        if ensure_utc(appt.ends_at) <= day_end:
            booked[(appt.psychologist_id, local_start)].append(appt)

    earliest_today = None
    if start_date <= today <= end_date:
        earliest_today = format_minutes(
            local_minute_of_day(now + timedelta(minutes=settings.BOOKING_LEAD_MIN))
        )
        # Lead time crossing midnight leaves nothing bookable today
        if (now + timedelta(minutes=settings.BOOKING_LEAD_MIN)).astimezone(LOCAL_TZ).date() > today:
            earliest_today = "24:00"

    by_day: dict[date, set[str]] = {}
    for record in days:
        free = slot_markers(record.slots, grid, settings.APPOINTMENT_DURATION_MIN) - occupied_markers(
            booked.get((record.psychologist_id, record.day), []),
            grid,
            settings.OCCUPIED_BUFFER_MIN,
        )
        if record.day == today and earliest_today is not None:
            free = {m for m in free if m >= earliest_today}
        by_day.setdefault(record.day, set()).update(free)

    result = [{"date": d, "slots": sorted(markers)} for d, markers in sorted(by_day.items())]
    logger.debug("slots_searched", start_date=start_date.isoformat(), end_date=end_date.isoformat(), days=len(result))
    return result
