# telepsy/api/routes/agenda.py

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.api.deps import require_psychologist, require_user
from telepsy.core.actors import PsychologistActor, UserActor
from telepsy.db.session import get_session
from telepsy.schemas.appointment import AgendaOut, AppointmentOut
from telepsy.services import listings

router = APIRouter(tags=["agenda"])


@router.get("/users/me/appointments", response_model=list[AppointmentOut])
async def user_upcoming_ep(
    actor: UserActor = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    appts = await listings.upcoming_for_user(db, user_id=actor.id)
    return [AppointmentOut.from_appointment(a) for a in appts]


@router.get("/users/me/appointments/{start_date}/{end_date}", response_model=list[AppointmentOut])
async def user_past_ep(
    start_date: str,
    end_date: str,
    actor: UserActor = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    appts = await listings.past_for_user(db, user_id=actor.id, start_date=start_date, end_date=end_date)
    return [AppointmentOut.from_appointment(a) for a in appts]


@router.get("/psychologists/me/appointments", response_model=AgendaOut)
async def psychologist_agenda_ep(
    actor: PsychologistActor = Depends(require_psychologist),
    db: AsyncSession = Depends(get_session),
):
    agenda = await listings.psychologist_agenda(db, psychologist_id=actor.id)
    return AgendaOut.from_agenda(agenda)


@router.get("/psychologists/me/appointments/{start_date}/{end_date}", response_model=list[AppointmentOut])
async def psychologist_past_ep(
    start_date: str,
    end_date: str,
    actor: PsychologistActor = Depends(require_psychologist),
    db: AsyncSession = Depends(get_session),
):
    appts = await listings.past_for_psychologist(
        db, psychologist_id=actor.id, start_date=start_date, end_date=end_date
    )
    return [AppointmentOut.from_appointment(a) for a in appts]
