# telepsy/services/allocator.py

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.business import local_day_bounds
from telepsy.core.logging import get_logger
from telepsy.crud import appointment as crud_appointment
from telepsy.crud import availability as crud_availability

logger = get_logger(__name__)


async def pick_psychologist(
    db: AsyncSession,
    *,
    day: date,
    window_start: int,
    window_end: int,
    range_start: datetime,
    range_end: datetime,
    psychologist_id: Optional[int] = None,
    exclude_appointment_id: Optional[int] = None,
) -> Optional[int]:
    """Least-loaded psychologist free for the window, or None.

    A candidate has one slot on `day` covering [window_start, window_end]
    (minutes of day) and no live appointment touching [range_start, range_end].
    Load is the number of live appointments on that local day; ties go to the
    lowest id.
    """
    days = await crud_availability.bookable_days(
        db, start_date=day, end_date=day, psychologist_id=psychologist_id
    )
    candidates = {
        d.psychologist_id
        for d in days
        if any(slot.covers(window_start, window_end) for slot in d.slots)
    }
    if not candidates:
        return None

    candidates -= await crud_appointment.busy_psychologist_ids(
        db,
        psychologist_ids=candidates,
        range_start=range_start,
        range_end=range_end,
        exclude_appointment_id=exclude_appointment_id,
    )
    if not candidates:
        return None

    day_start, day_end = local_day_bounds(day)
    load = await crud_appointment.count_by_psychologist(
        db, psychologist_ids=candidates, start_utc=day_start, end_utc=day_end
    )
    picked = min(candidates, key=lambda pid: (load.get(pid, 0), pid))
    logger.debug("psychologist_picked", psychologist_id=picked, day=day.isoformat(), load=load.get(picked, 0))
    return picked
