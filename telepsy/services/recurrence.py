# telepsy/services/recurrence.py
"""
Weekly recurrence of an availability slot.

A slot marked recurring on `date` is copied onto the same weekday every week
up to and including `recurring_end`. Slots already on a target day are carved
around the new window so the day stays disjoint.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.business import MINUTES_PER_DAY, daterange
from telepsy.core.errors import InvalidParameter, MissingFields, NotFound
from telepsy.core.logging import get_logger
from telepsy.crud import availability as crud_availability
from telepsy.crud import directory as crud_directory
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot

logger = get_logger(__name__)

WEEK_DAYS = 7


def carve(slot_start: int, slot_end: int, start: int, end: int) -> list[tuple[int, int]]:
    """Parts of [slot_start, slot_end) left after removing [start, end).

    Touching edges do not overlap, so the slot comes back unchanged.
    """
    if slot_end <= start or slot_start >= end:
        return [(slot_start, slot_end)]
    parts = []
    if slot_start < start:
        parts.append((slot_start, start))
    if slot_end > end:
        parts.append((end, slot_end))
    return parts


def weekly_dates(first: date, recurring_end: date) -> list[date]:
    """first+7, first+14, ... up to and including recurring_end."""
    return list(daterange(first, recurring_end, step_days=WEEK_DAYS))[1:]


def _recurring_copy(start: int, end: int, recurring_end: date, origin: str) -> AvailabilitySlot:
    return AvailabilitySlot(
        start=start,
        end=end,
        recurring=True,
        recurring_end=recurring_end,
        recurring_origin_slot=origin,
    )


def merge_recurring(day: AvailabilityDay, start: int, end: int, recurring_end: date, origin: str) -> None:
    """Fit a recurring [start, end) into an existing day, trimming or splitting what it overlaps."""
    merged: list[AvailabilitySlot] = []
    for slot in list(day.slots):
        parts = carve(slot.start, slot.end, start, end)
        if not parts:
            continue
        # First fragment keeps the row (and its slot_id); a split adds a sibling with the same tags
        slot.start, slot.end = parts[0]
        merged.append(slot)
        for frag_start, frag_end in parts[1:]:
            merged.append(AvailabilitySlot(
                start=frag_start,
                end=frag_end,
                recurring=slot.recurring,
                recurring_end=slot.recurring_end,
                recurring_origin_slot=slot.recurring_origin_slot,
            ))
    merged.append(_recurring_copy(start, end, recurring_end, origin))
    day.slots = sorted(merged, key=lambda s: s.start)


async def create_recurring_slot(
    db: AsyncSession,
    *,
    psychologist_id: int,
    slot_id: Optional[str],
    day: Optional[date],
    start: Optional[int],
    end: Optional[int],
    recurring_end: Optional[date],
) -> list[date]:
    """Expand a slot weekly until recurring_end. Returns the dates written."""
    missing = [
        name for name, value in (
            ("slot_id", slot_id), ("date", day), ("start", start), ("end", end), ("recurring_end", recurring_end),
        )
        if value is None or value == ""
    ]
    if missing:
        raise MissingFields(missing)
    if recurring_end < day:
        raise InvalidParameter("recurring_end must not be before date")
    if not 0 <= start < end <= MINUTES_PER_DAY:
        raise InvalidParameter("Slot start must be before its end and within the day")
    if await crud_directory.get_psychologist(db, psychologist_id) is None:
        raise NotFound("Psychologist not found")

    targets = weekly_dates(day, recurring_end)
    existing = {
        d.day: d
        for d in await crud_availability.get_days(
            db, psychologist_id=psychologist_id, start_date=day, end_date=recurring_end
        )
    }

    for target in targets:
        record = existing.get(target)
        if record is None:
            db.add(AvailabilityDay(
                psychologist_id=psychologist_id,
                day=target,
                slots=[_recurring_copy(start, end, recurring_end, slot_id)],
            ))
        else:
            merge_recurring(record, start, end, recurring_end, slot_id)

    origin_day = existing.get(day)
    origin = next((s for s in origin_day.slots if s.slot_id == slot_id), None) if origin_day else None
    if origin is None:
        logger.warning("recurring_origin_missing", psychologist_id=psychologist_id, slot_id=slot_id, date=str(day))
    else:
        origin.recurring = True
        origin.recurring_end = recurring_end
        origin.recurring_origin_slot = slot_id

    await db.commit()
    logger.info(
        "recurring_slot_expanded",
        psychologist_id=psychologist_id,
        slot_id=slot_id,
        weeks=len(targets),
        recurring_end=str(recurring_end),
    )
    return targets


async def delete_recurring_slot(
    db: AsyncSession,
    *,
    psychologist_id: int,
    slot_id: str,
    from_date: date,
) -> int:
    """Remove every copy of a recurring slot after from_date. Returns the number of days touched."""
    days = await crud_availability.days_with_origin(
        db, psychologist_id=psychologist_id, origin_slot_id=slot_id, after=from_date
    )
    for record in days:
        remaining = [s for s in record.slots if s.recurring_origin_slot != slot_id]
        if remaining:
            record.slots = remaining
        else:
            await db.delete(record)
    await db.commit()
    logger.info("recurring_slot_deleted", psychologist_id=psychologist_id, slot_id=slot_id, days=len(days))
    return len(days)
