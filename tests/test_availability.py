"""
Tests for saving and reading psychologist availability.
"""

from datetime import date, timedelta

import pytest

from telepsy.core.errors import InvalidParameter, NotFound
from telepsy.services.availability import DayInput, SlotInput, get_availability, save_availability

WEEK_START = date(2025, 3, 3)
WEEK_END = date(2025, 3, 9)


def _week(*slots_per_day):
    return [
        DayInput(day=WEEK_START + timedelta(days=i), slots=[SlotInput(start=s, end=e) for s, e in slots])
        for i, slots in enumerate(slots_per_day)
    ]


@pytest.mark.integration
class TestSaveAvailability:

    @pytest.mark.asyncio
    async def test_round_trip(self, db, factory):
        psy = await factory.psychologist()
        days = _week([(540, 630), (840, 960)], [], [(600, 1440)])

        await save_availability(db, psychologist_id=psy.id, start_date=WEEK_START, end_date=WEEK_END, days=days)
        stored = await get_availability(db, psychologist_id=psy.id, start_date=WEEK_START, end_date=WEEK_END)

        assert [d.day for d in stored] == [d.day for d in days]
        assert [[(s.start, s.end) for s in d.slots] for d in stored] == [
            [(540, 630), (840, 960)],
            [],
            [(600, 1440)],
        ]
        assert all(len(s.slot_id) == 32 for d in stored for s in d.slots)

    @pytest.mark.asyncio
    async def test_save_replaces_the_whole_range(self, db, factory):
        psy = await factory.psychologist()
        await factory.day(psy, WEEK_START, ("09:00", "10:00"))
        await factory.day(psy, date(2025, 3, 5), ("09:00", "10:00"))
        outside = await factory.day(psy, date(2025, 3, 10), ("09:00", "10:00"))

        await save_availability(
            db,
            psychologist_id=psy.id,
            start_date=WEEK_START,
            end_date=WEEK_END,
            days=[DayInput(day=WEEK_START, slots=[SlotInput(start=900, end=960, slot_id="a" * 32)])],
        )

        stored = await get_availability(db, psychologist_id=psy.id, start_date=WEEK_START, end_date=date(2025, 3, 10))
        assert [d.day for d in stored] == [WEEK_START, outside.day]
        assert [(s.slot_id, s.start, s.end) for s in stored[0].slots] == [("a" * 32, 900, 960)]

    @pytest.mark.asyncio
    async def test_other_psychologists_are_untouched(self, db, factory):
        psy = await factory.psychologist()
        other = await factory.psychologist()
        await factory.day(other, WEEK_START, ("09:00", "10:00"))

        await save_availability(db, psychologist_id=psy.id, start_date=WEEK_START, end_date=WEEK_END, days=[])

        stored = await get_availability(db, psychologist_id=other.id, start_date=WEEK_START, end_date=WEEK_END)
        assert len(stored) == 1

    @pytest.mark.asyncio
    async def test_unknown_psychologist(self, db):
        with pytest.raises(NotFound):
            await save_availability(db, psychologist_id=404, start_date=WEEK_START, end_date=WEEK_END, days=[])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_date,end_date,days", [
        # more than seven day records
        (WEEK_START, date(2025, 3, 31), [DayInput(day=WEEK_START + timedelta(days=i)) for i in range(8)]),
        # day outside the range
        (WEEK_START, WEEK_END, [DayInput(day=date(2025, 3, 10))]),
        # start after end
        (WEEK_END, WEEK_START, []),
        # empty slot
        (WEEK_START, WEEK_END, [DayInput(day=WEEK_START, slots=[SlotInput(start=600, end=600)])]),
        # slot past the end of the day
        (WEEK_START, WEEK_END, [DayInput(day=WEEK_START, slots=[SlotInput(start=1400, end=1500)])]),
        # same day twice
        (WEEK_START, WEEK_END, [DayInput(day=WEEK_START), DayInput(day=WEEK_START)]),
    ])
    async def test_invalid_input(self, db, factory, start_date, end_date, days):
        psy = await factory.psychologist()

        with pytest.raises(InvalidParameter):
            await save_availability(db, psychologist_id=psy.id, start_date=start_date, end_date=end_date, days=days)

        assert await get_availability(db, psychologist_id=psy.id, start_date=WEEK_START, end_date=WEEK_END) == []
