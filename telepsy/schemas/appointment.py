# telepsy/schemas/appointment.py

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from telepsy.core.business import DATE_FORMAT, format_local
from telepsy.db.models.appointment import Appointment
from telepsy.services.appointments import ReportInput
from telepsy.services.listings import Agenda, SearchFilter


class AppointmentBook(BaseModel):
    # Optional so the core reports MISSING_FIELDS rather than a schema error
    date: Optional[str] = Field(None, examples=["2025-03-03"], description="Business-local date, yyyy-MM-dd")
    time: Optional[str] = Field(None, examples=["09:00"], description="Business-local time, HH:mm")


class AppointmentReschedule(AppointmentBook):
    pass


class AppointmentOut(BaseModel):
    id: int
    number: str
    user_id: int
    psychologist_id: int
    business_id: int
    treatment_id: Optional[int] = None
    starts_at: datetime
    ends_at: datetime
    duration: int
    date: str
    time: str
    cancelled: bool
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_paid: bool
    finished: bool
    next_appointment_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_appointment(cls, appt: Appointment) -> "AppointmentOut":
        return cls(
            id=appt.id,
            number=appt.number,
            user_id=appt.user_id,
            psychologist_id=appt.psychologist_id,
            business_id=appt.business_id,
            treatment_id=appt.treatment_id,
            starts_at=appt.starts_at,
            ends_at=appt.ends_at,
            duration=appt.duration,
            date=format_local(appt.starts_at, DATE_FORMAT),
            time=format_local(appt.starts_at, "%H:%M"),
            cancelled=appt.cancelled,
            cancelled_by=appt.cancelled_by,
            cancelled_at=appt.cancelled_at,
            cancelled_paid=appt.cancelled_paid,
            finished=appt.finished,
            next_appointment_id=appt.next_appointment_id,
        )


class TreatmentOut(BaseModel):
    id: int
    diagnostics: Optional[list[str]] = None
    started_at: Optional[datetime] = None
    medication: Optional[bool] = None
    medication_description: Optional[str] = None
    goals: Optional[str] = None
    anamnesis: Optional[str] = None
    clinical_discharge: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PatientOut(BaseModel):
    id: int
    name: str
    external_name: Optional[str] = None
    email: str
    birthdate: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class ReportOut(BaseModel):
    appointment: AppointmentOut
    user: Optional[PatientOut] = None
    treatment: Optional[TreatmentOut] = None


class ReportIn(BaseModel):
    diagnostics: Optional[list[str]] = None
    medication: Optional[bool] = None
    medication_description: Optional[str] = None
    goals: Optional[str] = None
    anamnesis: Optional[str] = None
    clinical_discharge: bool = False
    clinical_intervention: Optional[str] = None
    clinical_record: Optional[str] = None
    goals_next_appointment: Optional[str] = None
    next_appointment_date: Optional[str] = Field(None, examples=["2025-03-10"])
    next_appointment_time: Optional[str] = Field(None, examples=["09:00"])
    birthdate: Optional[str] = Field(None, examples=["1990-05-17"])
    external_name: Optional[str] = None

    def to_input(self) -> ReportInput:
        data = self.model_dump(exclude={"next_appointment_date", "next_appointment_time"})
        return ReportInput(
            next_date=self.next_appointment_date,
            next_time=self.next_appointment_time,
            **data,
        )


class ReportResult(BaseModel):
    appointment: AppointmentOut
    next_appointment: Optional[AppointmentOut] = None


class AgendaOut(BaseModel):
    next_appointments: list[AppointmentOut]
    pending_report: list[AppointmentOut]

    @classmethod
    def from_agenda(cls, agenda: Agenda) -> "AgendaOut":
        return cls(
            next_appointments=[AppointmentOut.from_appointment(a) for a in agenda.next_appointments],
            pending_report=[AppointmentOut.from_appointment(a) for a in agenda.pending_report],
        )


class SearchFilterIn(BaseModel):
    field: str = Field(..., examples=["psychologistName"])
    query: str


class AppointmentSearchIn(BaseModel):
    search: Optional[str] = Field(None, description="Matches user email, psychologist name or business name")
    filters: list[SearchFilterIn] = []
    page: int = 0
    per_page: Optional[int] = None

    def to_filters(self) -> list[SearchFilter]:
        return [SearchFilter(field=f.field, query=f.query) for f in self.filters]


class AppointmentRowOut(AppointmentOut):
    user_name: str
    user_email: str
    psychologist_name: str
    business_name: str

    @classmethod
    def from_row(cls, row) -> "AppointmentRowOut":
        base = AppointmentOut.from_appointment(row[0])
        return cls(
            **base.model_dump(),
            user_name=row.user_name,
            user_email=row.user_email,
            psychologist_name=row.psychologist_name,
            business_name=row.business_name,
        )


class AppointmentSearchOut(BaseModel):
    appointments: list[AppointmentRowOut]
    total: int
