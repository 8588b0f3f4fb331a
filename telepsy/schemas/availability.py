# telepsy/schemas/availability.py

from datetime import date as _Date
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from telepsy.core.business import format_slot_bound, parse_slot_bound
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot
from telepsy.services.availability import DayInput, SlotInput


class SlotIn(BaseModel):
    id: Optional[str] = Field(None, max_length=32, description="Stable slot id; generated when absent")
    start: str = Field(..., examples=["09:00"])
    end: str = Field(..., examples=["12:30"])
    recurring: bool = False
    recurring_end: Optional[_Date] = None
    recurring_origin_slot: Optional[str] = None

    def to_input(self) -> SlotInput:
        return SlotInput(
            slot_id=self.id,
            start=parse_slot_bound(self.start),
            end=parse_slot_bound(self.end),
            recurring=self.recurring,
            recurring_end=self.recurring_end,
            recurring_origin_slot=self.recurring_origin_slot,
        )


class DayIn(BaseModel):
    date: _Date
    slots: list[SlotIn] = Field(default_factory=list)

    def to_input(self) -> DayInput:
        return DayInput(day=self.date, slots=[s.to_input() for s in self.slots])


class AvailabilityIn(BaseModel):
    """Complete desired state of every day in the path's date range."""
    days: list[DayIn] = Field(default_factory=list)


class SlotOut(BaseModel):
    id: str
    start: str
    end: str
    recurring: bool
    recurring_end: Optional[_Date] = None
    recurring_origin_slot: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_slot(cls, slot: AvailabilitySlot) -> "SlotOut":
        return cls(
            id=slot.slot_id,
            start=format_slot_bound(slot.start),
            end=format_slot_bound(slot.end),
            recurring=slot.recurring,
            recurring_end=slot.recurring_end,
            recurring_origin_slot=slot.recurring_origin_slot,
        )


class DayOut(BaseModel):
    date: _Date
    slots: list[SlotOut]

    @classmethod
    def from_day(cls, day: AvailabilityDay) -> "DayOut":
        return cls(date=day.day, slots=[SlotOut.from_slot(s) for s in sorted(day.slots, key=lambda s: s.start)])


class RecurringSlotIn(BaseModel):
    # Optional so that absent fields are reported together as MISSING_FIELDS
    slot_id: Optional[str] = None
    date: Optional[str] = Field(None, examples=["2025-03-03"])
    start: Optional[str] = Field(None, examples=["09:00"])
    end: Optional[str] = Field(None, examples=["10:30"])
    recurring_end: Optional[str] = Field(None, examples=["2025-03-31"])


class RecurringSlotOut(BaseModel):
    slot_id: str
    dates: list[_Date]


class SlotSearchIn(BaseModel):
    start_date: str = Field(..., examples=["2025-03-01"])
    end_date: str = Field(..., examples=["2025-03-31"])
    psychologist_id: Optional[int] = Field(None, description="Staff only: restrict to one psychologist")


class DaySlotsOut(BaseModel):
    date: _Date
    slots: list[str]
