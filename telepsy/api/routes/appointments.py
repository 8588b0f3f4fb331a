# telepsy/api/routes/appointments.py

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.api.deps import get_actor, get_notifier, require_psychologist, require_staff, require_user
from telepsy.core.actors import Actor, PsychologistActor, StaffActor, UserActor
from telepsy.db.session import get_session
from telepsy.schemas.appointment import (
    AppointmentBook,
    AppointmentOut,
    AppointmentReschedule,
    AppointmentRowOut,
    AppointmentSearchIn,
    AppointmentSearchOut,
    PatientOut,
    ReportIn,
    ReportOut,
    ReportResult,
    TreatmentOut,
)
from telepsy.services import appointments as appointment_service
from telepsy.services import listings
from telepsy.services.notifications import Notifier

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def book_appointment_ep(
    payload: AppointmentBook,
    actor: UserActor = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    appt = await appointment_service.book_appointment(
        db, user_id=actor.id, day=payload.date, time=payload.time, notifier=notifier
    )
    return AppointmentOut.from_appointment(appt)


@router.post("/search", response_model=AppointmentSearchOut)
async def search_appointments_ep(
    payload: AppointmentSearchIn,
    actor: StaffActor = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
):
    found = await listings.search_appointments(
        db,
        search=payload.search,
        filters=payload.to_filters(),
        page=payload.page,
        per_page=payload.per_page,
    )
    return AppointmentSearchOut(
        appointments=[AppointmentRowOut.from_row(row) for row in found.rows],
        total=found.total,
    )


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment_ep(
    appointment_id: int,
    actor: StaffActor = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
):
    appt = await appointment_service.get_appointment(db, appointment_id)
    return AppointmentOut.from_appointment(appt)


@router.get("/{appointment_id}/report", response_model=ReportOut)
async def get_report_ep(
    appointment_id: int,
    actor: PsychologistActor = Depends(require_psychologist),
    db: AsyncSession = Depends(get_session),
):
    view = await appointment_service.get_report(db, appointment_id=appointment_id, psychologist_id=actor.id)
    return ReportOut(
        appointment=AppointmentOut.from_appointment(view.appointment),
        user=PatientOut.model_validate(view.user) if view.user else None,
        treatment=TreatmentOut.model_validate(view.treatment) if view.treatment else None,
    )


@router.post("/{appointment_id}/report", response_model=ReportResult)
async def submit_report_ep(
    appointment_id: int,
    payload: ReportIn,
    actor: PsychologistActor = Depends(require_psychologist),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    appt, follow_up = await appointment_service.submit_report(
        db,
        appointment_id=appointment_id,
        psychologist_id=actor.id,
        report=payload.to_input(),
        notifier=notifier,
    )
    return ReportResult(
        appointment=AppointmentOut.from_appointment(appt),
        next_appointment=AppointmentOut.from_appointment(follow_up) if follow_up else None,
    )


@router.patch("/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_appointment_ep(
    appointment_id: int,
    payload: AppointmentReschedule,
    actor: UserActor = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    appt = await appointment_service.reschedule_appointment(
        db,
        appointment_id=appointment_id,
        user_id=actor.id,
        day=payload.date,
        time=payload.time,
        notifier=notifier,
    )
    return AppointmentOut.from_appointment(appt)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment_ep(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    appt = await appointment_service.cancel_appointment(
        db, appointment_id=appointment_id, actor=actor, notifier=notifier
    )
    return AppointmentOut.from_appointment(appt)
