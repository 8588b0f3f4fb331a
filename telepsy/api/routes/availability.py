# telepsy/api/routes/availability.py

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.api.deps import get_actor
from telepsy.core.actors import Actor, PsychologistActor, StaffActor
from telepsy.core.business import parse_date, parse_slot_bound
from telepsy.core.errors import PermissionDenied
from telepsy.db.session import get_session
from telepsy.schemas.availability import AvailabilityIn, DayOut, RecurringSlotIn, RecurringSlotOut
from telepsy.services import availability as availability_service
from telepsy.services import recurrence

router = APIRouter(prefix="/psychologists/{psychologist_id}/availability", tags=["availability"])


def _check_owner(actor: Actor, psychologist_id: int) -> None:
    """Staff manage anyone's calendar; psychologists only their own."""
    if isinstance(actor, StaffActor):
        return
    if isinstance(actor, PsychologistActor) and actor.id == psychologist_id:
        return
    raise PermissionDenied("Not allowed to manage this psychologist's availability")


@router.get("/{start_date}/{end_date}", response_model=list[DayOut])
async def get_availability_ep(
    psychologist_id: int,
    start_date: str,
    end_date: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
):
    _check_owner(actor, psychologist_id)
    days = await availability_service.get_availability(
        db,
        psychologist_id=psychologist_id,
        start_date=parse_date(start_date),
        end_date=parse_date(end_date),
    )
    return [DayOut.from_day(d) for d in days]


@router.put("/{start_date}/{end_date}", response_model=list[DayOut])
async def save_availability_ep(
    psychologist_id: int,
    start_date: str,
    end_date: str,
    payload: AvailabilityIn,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
):
    _check_owner(actor, psychologist_id)
    saved = await availability_service.save_availability(
        db,
        psychologist_id=psychologist_id,
        start_date=parse_date(start_date),
        end_date=parse_date(end_date),
        days=[d.to_input() for d in payload.days],
    )
    return [DayOut.from_day(d) for d in saved]


@router.patch("/recurring", response_model=RecurringSlotOut)
async def create_recurring_slot_ep(
    psychologist_id: int,
    payload: RecurringSlotIn,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
):
    _check_owner(actor, psychologist_id)
    dates = await recurrence.create_recurring_slot(
        db,
        psychologist_id=psychologist_id,
        slot_id=payload.slot_id,
        day=parse_date(payload.date) if payload.date else None,
        start=parse_slot_bound(payload.start) if payload.start else None,
        end=parse_slot_bound(payload.end) if payload.end else None,
        recurring_end=parse_date(payload.recurring_end) if payload.recurring_end else None,
    )
    return RecurringSlotOut(slot_id=payload.slot_id, dates=dates)


@router.delete("/slots/{slot_id}/date/{from_date}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring_slot_ep(
    psychologist_id: int,
    slot_id: str,
    from_date: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
):
    _check_owner(actor, psychologist_id)
    await recurrence.delete_recurring_slot(
        db,
        psychologist_id=psychologist_id,
        slot_id=slot_id,
        from_date=parse_date(from_date),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
