# telepsy/services/availability.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.business import MINUTES_PER_DAY
from telepsy.core.config import settings
from telepsy.core.errors import InvalidParameter, NotFound
from telepsy.core.logging import get_logger
from telepsy.crud import availability as crud_availability
from telepsy.crud import directory as crud_directory
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot

logger = get_logger(__name__)


@dataclass
class SlotInput:
    start: int
    end: int
    slot_id: Optional[str] = None
    recurring: bool = False
    recurring_end: Optional[date] = None
    recurring_origin_slot: Optional[str] = None


@dataclass
class DayInput:
    day: date
    slots: list[SlotInput] = field(default_factory=list)


def _validate(start_date: date, end_date: date, days: Sequence[DayInput]) -> None:
    if start_date > end_date:
        raise InvalidParameter("Start date must not be after end date")
    if len(days) > settings.MAX_DAYS_PER_SAVE:
        raise InvalidParameter(f"At most {settings.MAX_DAYS_PER_SAVE} days can be saved at once")
    seen = set()
    for d in days:
        if not start_date <= d.day <= end_date:
            raise InvalidParameter(f"Day {d.day.isoformat()} is outside the requested range")
        if d.day in seen:
            raise InvalidParameter(f"Day {d.day.isoformat()} appears more than once")
        seen.add(d.day)
        for s in d.slots:
            if not 0 <= s.start < s.end <= MINUTES_PER_DAY:
                raise InvalidParameter(f"Invalid slot on {d.day.isoformat()}: start must be before end within the day")


async def get_availability(
    db: AsyncSession, *, psychologist_id: int, start_date: date, end_date: date
) -> Sequence[AvailabilityDay]:
    if start_date > end_date:
        raise InvalidParameter("Start date must not be after end date")
    return await crud_availability.get_days(
        db, psychologist_id=psychologist_id, start_date=start_date, end_date=end_date
    )


async def save_availability(
    db: AsyncSession,
    *,
    psychologist_id: int,
    start_date: date,
    end_date: date,
    days: Sequence[DayInput],
) -> list[AvailabilityDay]:
    """Replace the psychologist's availability in [start_date, end_date] with `days`."""
    if await crud_directory.get_psychologist(db, psychologist_id) is None:
        raise NotFound("Psychologist not found")
    _validate(start_date, end_date, days)

    records = [
        AvailabilityDay(
            psychologist_id=psychologist_id,
            day=d.day,
            slots=[
                AvailabilitySlot(
                    # Keep client slot ids so recurrences stay anchored across saves
                    **({"slot_id": s.slot_id} if s.slot_id else {}),
                    start=s.start,
                    end=s.end,
                    recurring=s.recurring,
                    recurring_end=s.recurring_end,
                    recurring_origin_slot=s.recurring_origin_slot,
                )
                for s in sorted(d.slots, key=lambda s: s.start)
            ],
        )
        for d in days
    ]
    saved = await crud_availability.replace_days(
        db, psychologist_id=psychologist_id, start_date=start_date, end_date=end_date, days=records
    )
    await db.commit()
    logger.info(
        "availability_saved",
        psychologist_id=psychologist_id,
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        days=len(saved),
    )
    return saved
