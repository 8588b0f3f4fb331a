"""
Tests for weekly recurrence expansion and removal.
"""

from datetime import date

import pytest

from telepsy.core.errors import InvalidParameter, MissingFields, NotFound
from telepsy.crud import availability as crud_availability
from telepsy.services.recurrence import (
    carve,
    create_recurring_slot,
    delete_recurring_slot,
    weekly_dates,
)

MONDAY = date(2025, 3, 3)
LAST_MONDAY = date(2025, 3, 31)


def _ranges(day):
    return [(s.start, s.end) for s in sorted(day.slots, key=lambda s: s.start)]


@pytest.mark.unit
class TestCarve:

    def test_no_overlap_keeps_slot(self):
        assert carve(480, 540, 540, 630) == [(480, 540)]
        assert carve(630, 700, 540, 630) == [(630, 700)]

    def test_window_inside_slot_splits(self):
        assert carve(480, 720, 540, 630) == [(480, 540), (630, 720)]

    def test_slot_inside_window_is_dropped(self):
        assert carve(560, 600, 540, 630) == []
        assert carve(540, 630, 540, 630) == []

    def test_partial_overlap_is_trimmed(self):
        assert carve(500, 600, 540, 630) == [(500, 540)]
        assert carve(600, 700, 540, 630) == [(630, 700)]

    def test_weekly_dates_include_final_week(self):
        assert weekly_dates(MONDAY, LAST_MONDAY) == [date(2025, 3, d) for d in (10, 17, 24, 31)]
        assert weekly_dates(MONDAY, date(2025, 3, 9)) == []


@pytest.mark.integration
class TestCreateRecurringSlot:

    @pytest.mark.asyncio
    async def test_expands_weekly_through_final_week(self, db, factory):
        psy = await factory.psychologist()
        origin_day = await factory.day(psy, MONDAY, ("09:00", "10:30"))
        slot_id = origin_day.slots[0].slot_id

        written = await create_recurring_slot(
            db,
            psychologist_id=psy.id,
            slot_id=slot_id,
            day=MONDAY,
            start=540,
            end=630,
            recurring_end=LAST_MONDAY,
        )

        assert written == [date(2025, 3, d) for d in (10, 17, 24, 31)]
        days = await crud_availability.get_days(db, psychologist_id=psy.id, start_date=MONDAY, end_date=LAST_MONDAY)
        assert [d.day for d in days] == [MONDAY] + written
        for d in days[1:]:
            assert _ranges(d) == [(540, 630)]
            slot = d.slots[0]
            assert slot.recurring is True
            assert slot.recurring_end == LAST_MONDAY
            assert slot.recurring_origin_slot == slot_id
            assert slot.slot_id != slot_id

        origin = days[0].slots[0]
        assert origin.recurring is True
        assert origin.recurring_origin_slot == slot_id

    @pytest.mark.asyncio
    async def test_existing_slots_are_carved_around_the_window(self, db, factory):
        psy = await factory.psychologist()
        origin_day = await factory.day(psy, MONDAY, ("09:00", "10:30"))
        # One week later: a wide slot that contains the window, and one that only touches it
        await factory.day(psy, date(2025, 3, 10), ("08:00", "12:00"), ("14:00", "15:00"))
        # Two weeks later: a slot partially overlapping the window
        await factory.day(psy, date(2025, 3, 17), ("10:00", "11:00"))

        await create_recurring_slot(
            db,
            psychologist_id=psy.id,
            slot_id=origin_day.slots[0].slot_id,
            day=MONDAY,
            start=540,
            end=630,
            recurring_end=date(2025, 3, 17),
        )

        week2 = await crud_availability.get_day(db, psychologist_id=psy.id, day=date(2025, 3, 10))
        assert _ranges(week2) == [(480, 540), (540, 630), (630, 720), (840, 900)]
        week3 = await crud_availability.get_day(db, psychologist_id=psy.id, day=date(2025, 3, 17))
        assert _ranges(week3) == [(540, 630), (630, 660)]

    @pytest.mark.asyncio
    async def test_missing_origin_slot_is_not_fatal(self, db, factory):
        psy = await factory.psychologist()

        written = await create_recurring_slot(
            db,
            psychologist_id=psy.id,
            slot_id="f" * 32,
            day=MONDAY,
            start=540,
            end=630,
            recurring_end=date(2025, 3, 10),
        )

        assert written == [date(2025, 3, 10)]

    @pytest.mark.asyncio
    async def test_validation(self, db, factory):
        psy = await factory.psychologist()

        with pytest.raises(MissingFields) as exc:
            await create_recurring_slot(
                db, psychologist_id=psy.id, slot_id=None, day=MONDAY, start=540, end=None, recurring_end=None
            )
        assert exc.value.fields == ["slot_id", "end", "recurring_end"]

        with pytest.raises(InvalidParameter):
            await create_recurring_slot(
                db, psychologist_id=psy.id, slot_id="a", day=MONDAY, start=540, end=630,
                recurring_end=date(2025, 3, 2),
            )

        with pytest.raises(NotFound):
            await create_recurring_slot(
                db, psychologist_id=psy.id + 100, slot_id="a", day=MONDAY, start=540, end=630,
                recurring_end=LAST_MONDAY,
            )


@pytest.mark.integration
class TestDeleteRecurringSlot:

    @pytest.mark.asyncio
    async def test_removes_copies_after_date_regardless_of_slot_count(self, db, factory):
        psy = await factory.psychologist()
        origin_day = await factory.day(psy, MONDAY, ("09:00", "10:30"))
        slot_id = origin_day.slots[0].slot_id
        await factory.day(psy, date(2025, 3, 17), ("08:00", "12:00"), ("14:00", "15:00"))
        await create_recurring_slot(
            db, psychologist_id=psy.id, slot_id=slot_id, day=MONDAY, start=540, end=630,
            recurring_end=LAST_MONDAY,
        )

        touched = await delete_recurring_slot(db, psychologist_id=psy.id, slot_id=slot_id, from_date=MONDAY)

        assert touched == 4
        days = await crud_availability.get_days(db, psychologist_id=psy.id, start_date=MONDAY, end_date=LAST_MONDAY)
        # Days that only held the copy are gone; the carved day keeps its other slots
        assert [d.day for d in days] == [MONDAY, date(2025, 3, 17)]
        assert _ranges(days[1]) == [(480, 540), (630, 720), (840, 900)]
        assert _ranges(days[0]) == [(540, 630)]

    @pytest.mark.asyncio
    async def test_only_days_after_from_date(self, db, factory):
        psy = await factory.psychologist()
        origin_day = await factory.day(psy, MONDAY, ("09:00", "10:30"))
        slot_id = origin_day.slots[0].slot_id
        await create_recurring_slot(
            db, psychologist_id=psy.id, slot_id=slot_id, day=MONDAY, start=540, end=630,
            recurring_end=LAST_MONDAY,
        )

        await delete_recurring_slot(db, psychologist_id=psy.id, slot_id=slot_id, from_date=date(2025, 3, 17))

        days = await crud_availability.get_days(db, psychologist_id=psy.id, start_date=MONDAY, end_date=LAST_MONDAY)
        assert [d.day for d in days] == [MONDAY, date(2025, 3, 10), date(2025, 3, 17)]
