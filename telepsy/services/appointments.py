# telepsy/services/appointments.py
"""
Appointment lifecycle: book, report (finish and optionally chain a follow-up),
reschedule and cancel.

Every operation runs in the caller's session and commits once. Any failure
rolls back, so nothing is persisted on error. Notifications go out only after
a successful commit.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.actors import Actor, PsychologistActor, UserActor
from telepsy.core.business import (
    ensure_utc,
    local_month_bounds,
    local_window,
    parse_date,
    parse_minutes,
    utcnow,
)
from telepsy.core.config import settings
from telepsy.core.errors import (
    InternalError,
    InvalidParameter,
    MissingFields,
    NoCapacity,
    NotFound,
    PermissionDenied,
    QuotaExceeded,
    SchedulingError,
    SlotConflict,
)
from telepsy.core.logging import get_logger
from telepsy.crud import appointment as crud_appointment
from telepsy.crud import directory as crud_directory
from telepsy.crud import treatment as crud_treatment
from telepsy.crud.directory import BusinessQuota
from telepsy.db.models.appointment import Appointment
from telepsy.db.models.treatment import Treatment
from telepsy.db.models.user import User
from telepsy.services import allocator
from telepsy.services.notifications import Notifier

logger = get_logger(__name__)

T = TypeVar("T")


# ---------- Inputs / views ----------

@dataclass
class ReportInput:
    diagnostics: Optional[list[str]] = None
    medication: Optional[bool] = None
    medication_description: Optional[str] = None
    goals: Optional[str] = None
    anamnesis: Optional[str] = None
    clinical_discharge: bool = False
    clinical_intervention: Optional[str] = None
    clinical_record: Optional[str] = None
    goals_next_appointment: Optional[str] = None
    next_date: Optional[str] = None
    next_time: Optional[str] = None
    birthdate: Optional[str] = None
    external_name: Optional[str] = None


@dataclass
class ReportView:
    appointment: Appointment
    user: Optional[User]
    treatment: Optional[Treatment]


TREATMENT_FIELDS = ("diagnostics", "medication", "medication_description", "goals", "anamnesis")


# ---------- Internal helpers ----------

def _require(**values) -> None:
    missing = [name for name, value in values.items() if value in (None, "")]
    if missing:
        raise MissingFields(missing)


async def _run_in_transaction(db: AsyncSession, attempt: Callable[[], Awaitable[T]]) -> T:
    """Run attempt() and commit, retrying when the appointment number was taken concurrently."""
    for n in range(1, settings.NUMBER_RETRY_LIMIT + 1):
        try:
            result = await attempt()
            await db.commit()
            return result
        except IntegrityError as e:
            await db.rollback()
            if not crud_appointment.is_number_collision(e):
                raise
            logger.warning("appointment_number_collision", attempt=n)
        except SchedulingError:
            await db.rollback()
            raise
    raise InternalError("Could not allocate an appointment number")


async def _insert_numbered(db: AsyncSession, conflict: type[SchedulingError], **fields) -> Appointment:
    """Insert under the next number. A clash on psychologist+start becomes `conflict`."""
    number = await crud_appointment.next_number(db)
    try:
        return await crud_appointment.create_appointment(db, number=number, **fields)
    except IntegrityError as e:
        if crud_appointment.is_number_collision(e):
            raise
        raise conflict() from e


async def _active_quota(db: AsyncSession, user_id: int) -> BusinessQuota:
    quota = await crud_directory.get_business_quota(db, user_id)
    if quota is None:
        raise NotFound("User is not an active member of an active business")
    if quota.exhausted:
        raise QuotaExceeded(QuotaExceeded.BUSINESS)
    return quota


async def _check_monthly_cap(db: AsyncSession, quota: BusinessQuota, user_id: int, day: date) -> None:
    if not quota.has_monthly_cap:
        return
    month_start, month_end = local_month_bounds(day)
    used = await crud_appointment.count_user_appointments(
        db, user_id=user_id, start_utc=month_start, end_utc=month_end
    )
    if used >= quota.consultations_per_user:
        raise QuotaExceeded(QuotaExceeded.MONTHLY)


async def _load(db: AsyncSession, appointment_id: int) -> Appointment:
    appt = await crud_appointment.get_appointment(db, appointment_id)
    if appt is None:
        raise NotFound("Appointment not found")
    return appt


# ---------- Operations ----------

async def book_appointment(
    db: AsyncSession,
    *,
    user_id: int,
    day: Optional[str | date],
    time: Optional[str],
    notifier: Optional[Notifier] = None,
) -> Appointment:
    _require(date=day, time=time)
    day = parse_date(day)
    minute = parse_minutes(time)
    duration = settings.APPOINTMENT_DURATION_MIN
    starts_at, ends_at = local_window(day, minute, duration)

    async def attempt() -> Appointment:
        quota = await _active_quota(db, user_id)
        await _check_monthly_cap(db, quota, user_id, day)

        user = await crud_directory.get_user(db, user_id)
        assigned = user.psychologist_id
        conflict = SlotConflict if assigned is not None else NoCapacity
        picked = await allocator.pick_psychologist(
            db,
            day=day,
            window_start=minute,
            window_end=minute + duration,
            range_start=starts_at,
            range_end=ends_at,
            psychologist_id=assigned,
        )
        if picked is None:
            raise conflict()
        if assigned is None:
            await crud_directory.assign_psychologist(db, user_id, picked)

        return await _insert_numbered(
            db,
            conflict,
            user_id=user_id,
            psychologist_id=picked,
            business_id=quota.business_id,
            starts_at=starts_at,
            ends_at=ends_at,
            duration=duration,
        )

    appt = await _run_in_transaction(db, attempt)
    logger.info(
        "appointment_booked",
        appointment_id=appt.id,
        number=appt.number,
        user_id=user_id,
        psychologist_id=appt.psychologist_id,
        starts_at=appt.starts_at.isoformat(),
    )
    await (notifier or Notifier()).appointment_booked(appt)
    return appt


async def get_appointment(db: AsyncSession, appointment_id: int) -> Appointment:
    return await _load(db, appointment_id)


async def get_report(db: AsyncSession, *, appointment_id: int, psychologist_id: int) -> ReportView:
    """What a psychologist sees before writing the report of an open appointment."""
    appt = await crud_appointment.get_appointment(db, appointment_id)
    if appt is None or appt.psychologist_id != psychologist_id or appt.finished:
        raise NotFound("Appointment not found")
    user = await crud_directory.get_user(db, appt.user_id)
    treatment = await crud_treatment.get_open_treatment(db, appt.user_id)
    return ReportView(appointment=appt, user=user, treatment=treatment)


async def submit_report(
    db: AsyncSession,
    *,
    appointment_id: int,
    psychologist_id: int,
    report: ReportInput,
    notifier: Optional[Notifier] = None,
) -> tuple[Appointment, Optional[Appointment]]:
    """Finish an appointment with its clinical report. Returns (appointment, follow_up)."""
    follow_up_day = follow_up_minute = None
    if report.next_date and report.next_time:
        follow_up_day = parse_date(report.next_date)
        follow_up_minute = parse_minutes(report.next_time)

    async def attempt() -> tuple[Appointment, Optional[Appointment]]:
        appt = await crud_appointment.get_appointment(db, appointment_id)
        if appt is None or appt.psychologist_id != psychologist_id or appt.finished:
            raise NotFound("Appointment not found")

        quota = None
        if follow_up_day is not None:
            quota = await _active_quota(db, appt.user_id)
            await _check_monthly_cap(db, quota, appt.user_id, follow_up_day)

        discharge = appt.ends_at if report.clinical_discharge else None
        treatment = await crud_treatment.get_open_treatment(db, appt.user_id)
        if treatment is None:
            missing = [name for name in ("goals", "anamnesis", "diagnostics") if not getattr(report, name)]
            if missing:
                raise MissingFields(missing)
            treatment = await crud_treatment.create_treatment(
                db,
                user_id=appt.user_id,
                started_at=appt.starts_at,
                clinical_discharge=discharge,
                **{name: getattr(report, name) for name in TREATMENT_FIELDS},
            )
        else:
            for name in TREATMENT_FIELDS:
                value = getattr(report, name)
                if value is not None:
                    setattr(treatment, name, value)
            treatment.clinical_discharge = discharge

        follow_up = None
        if follow_up_day is not None:
            duration = settings.APPOINTMENT_DURATION_MIN
            starts_at, ends_at = local_window(follow_up_day, follow_up_minute, duration)
            picked = await allocator.pick_psychologist(
                db,
                day=follow_up_day,
                window_start=follow_up_minute,
                window_end=follow_up_minute + duration,
                range_start=starts_at,
                range_end=ends_at,
                psychologist_id=psychologist_id,
            )
            if picked is None:
                raise SlotConflict()
            follow_up = await _insert_numbered(
                db,
                SlotConflict,
                user_id=appt.user_id,
                psychologist_id=psychologist_id,
                business_id=quota.business_id,
                starts_at=starts_at,
                ends_at=ends_at,
                duration=duration,
            )

        appt.treatment_id = treatment.id
        appt.diagnostics = report.diagnostics
        appt.clinical_intervention = report.clinical_intervention
        appt.clinical_record = report.clinical_record
        appt.goals_next_appointment = report.goals_next_appointment
        appt.next_appointment_id = follow_up.id if follow_up is not None else None
        appt.finished = True

        if report.birthdate or report.external_name:
            user = await crud_directory.get_user(db, appt.user_id)
            if report.birthdate:
                user.birthdate = parse_date(report.birthdate)
            if report.external_name:
                user.external_name = report.external_name

        await db.flush()
        return appt, follow_up

    appt, follow_up = await _run_in_transaction(db, attempt)
    logger.info(
        "appointment_reported",
        appointment_id=appt.id,
        psychologist_id=psychologist_id,
        treatment_id=appt.treatment_id,
        next_appointment_id=appt.next_appointment_id,
        discharged=report.clinical_discharge,
    )
    await (notifier or Notifier()).appointment_reported(appt, follow_up)
    return appt, follow_up


async def reschedule_appointment(
    db: AsyncSession,
    *,
    appointment_id: int,
    user_id: int,
    day: Optional[str | date],
    time: Optional[str],
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Appointment:
    """Move a user's own appointment, keeping its number, psychologist and duration."""
    _require(date=day, time=time)
    day = parse_date(day)
    minute = parse_minutes(time)
    now = ensure_utc(now or utcnow())

    appt = await _load(db, appointment_id)
    if appt.user_id != user_id:
        raise PermissionDenied("Appointment belongs to another user")
    if not appt.is_scheduled:
        raise InvalidParameter("Appointment is no longer scheduled")
    if appt.starts_at < now + timedelta(minutes=settings.RESCHEDULE_CUTOFF_MIN):
        raise PermissionDenied("Appointment starts too soon to be rescheduled")

    starts_at, ends_at = local_window(day, minute, appt.duration)
    picked = await allocator.pick_psychologist(
        db,
        day=day,
        window_start=minute,
        window_end=minute + appt.duration,
        range_start=starts_at,
        range_end=ends_at,
        psychologist_id=appt.psychologist_id,
        exclude_appointment_id=appt.id,
    )
    if picked is None:
        raise SlotConflict()

    previous_start = appt.starts_at
    appt.starts_at = starts_at
    appt.ends_at = ends_at
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise SlotConflict() from e

    logger.info(
        "appointment_rescheduled",
        appointment_id=appt.id,
        psychologist_id=appt.psychologist_id,
        previous_start=previous_start.isoformat(),
        starts_at=starts_at.isoformat(),
    )
    await (notifier or Notifier()).appointment_rescheduled(appt, previous_start)
    return appt


async def cancel_appointment(
    db: AsyncSession,
    *,
    appointment_id: int,
    actor: Actor,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Appointment:
    """Cancel without deleting. Cancelling close to (or after) the start is still billed."""
    now = ensure_utc(now or utcnow())

    appt = await _load(db, appointment_id)
    if isinstance(actor, UserActor) and appt.user_id != actor.id:
        raise PermissionDenied("Appointment belongs to another user")
    if isinstance(actor, PsychologistActor) and appt.psychologist_id != actor.id:
        raise PermissionDenied("Appointment belongs to another psychologist")
    if not appt.is_scheduled:
        raise InvalidParameter("Appointment is no longer scheduled")

    appt.cancelled = True
    appt.cancelled_by = actor.cancelled_by
    appt.cancelled_at = now
    appt.cancelled_paid = appt.starts_at < now + timedelta(minutes=settings.LATE_CANCEL_MIN)
    await db.commit()

    logger.info(
        "appointment_cancelled",
        appointment_id=appt.id,
        cancelled_by=appt.cancelled_by,
        cancelled_paid=appt.cancelled_paid,
    )
    await (notifier or Notifier()).appointment_cancelled(appt)
    return appt
