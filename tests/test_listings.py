"""
Tests for the user and psychologist agendas and the back-office search.
"""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from telepsy.core.errors import InvalidParameter
from telepsy.services.listings import (
    SearchFilter,
    past_for_psychologist,
    past_for_user,
    psychologist_agenda,
    search_appointments,
    upcoming_for_user,
)

UTC = timezone.utc
MONDAY = date(2025, 3, 3)
TUESDAY = date(2025, 3, 4)
# Lisbon is on UTC in early March, so local noon
NOW = datetime(2025, 3, 3, 12, 0, tzinfo=UTC)


def ids(appts):
    return [a.id for a in appts]


@pytest.mark.integration
class TestUserListings:

    @pytest_asyncio.fixture
    async def booked(self, factory):
        psy = await factory.psychologist()
        business = await factory.business()
        user = await factory.user(business)
        other = await factory.user(business)
        return {
            "user": user,
            "yesterday": await factory.appointment(user, psy, date(2025, 3, 2), "10:00"),
            "cancelled": await factory.appointment(user, psy, MONDAY, "08:00", cancelled=True, cancelled_by="user"),
            "morning": await factory.appointment(user, psy, MONDAY, "09:00"),
            "in_progress": await factory.appointment(user, psy, MONDAY, "11:15"),
            "afternoon": await factory.appointment(user, psy, MONDAY, "15:00"),
            "dropped": await factory.appointment(user, psy, MONDAY, "16:00", cancelled=True, cancelled_by="user"),
            "tomorrow": await factory.appointment(user, psy, TUESDAY, "10:00"),
            "someone_else": await factory.appointment(other, psy, MONDAY, "17:00"),
        }

    @pytest.mark.asyncio
    async def test_upcoming_keeps_the_last_hour_and_skips_cancelled(self, db, booked):
        result = await upcoming_for_user(db, user_id=booked["user"].id, now=NOW)

        assert ids(result) == [booked["in_progress"].id, booked["afternoon"].id, booked["tomorrow"].id]

    @pytest.mark.asyncio
    async def test_past_includes_cancelled_and_stops_an_hour_ago(self, db, booked):
        result = await past_for_user(db, user_id=booked["user"].id, start_date="2025-03-03", end_date="2025-03-03", now=NOW)

        assert ids(result) == [booked["cancelled"].id, booked["morning"].id]

    @pytest.mark.asyncio
    async def test_past_range_in_the_future_is_empty(self, db, booked):
        result = await past_for_user(db, user_id=booked["user"].id, start_date="2025-03-05", end_date="2025-03-09", now=NOW)

        assert result == []

    @pytest.mark.asyncio
    async def test_past_rejects_bad_ranges(self, db):
        with pytest.raises(InvalidParameter):
            await past_for_user(db, user_id=1, start_date="2025-03-05", end_date="2025-03-03", now=NOW)
        with pytest.raises(InvalidParameter):
            await past_for_user(db, user_id=1, start_date="03/03/2025", end_date="2025-03-03", now=NOW)


@pytest.mark.integration
class TestPsychologistListings:

    @pytest.mark.asyncio
    async def test_agenda_splits_next_and_pending_report(self, db, factory):
        psy = await factory.psychologist()
        user = await factory.user(await factory.business())
        await factory.appointment(user, psy, MONDAY, "08:00", finished=True)
        pending = await factory.appointment(user, psy, MONDAY, "09:00")
        await factory.appointment(user, psy, MONDAY, "10:00", cancelled=True, cancelled_by="psychologist")
        current = await factory.appointment(user, psy, MONDAY, "11:30")
        tomorrow = await factory.appointment(user, psy, TUESDAY, "09:00")
        await factory.appointment(user, await factory.psychologist(), MONDAY, "14:00")

        agenda = await psychologist_agenda(db, psychologist_id=psy.id, now=NOW)

        assert ids(agenda.next_appointments) == [current.id, tomorrow.id]
        assert ids(agenda.pending_report) == [pending.id]

    @pytest.mark.asyncio
    async def test_past_lists_every_state(self, db, factory):
        psy = await factory.psychologist()
        user = await factory.user(await factory.business())
        finished = await factory.appointment(user, psy, MONDAY, "08:00", finished=True)
        cancelled = await factory.appointment(user, psy, MONDAY, "10:00", cancelled=True, cancelled_by="user")
        await factory.appointment(user, psy, MONDAY, "11:30")

        result = await past_for_psychologist(
            db, psychologist_id=psy.id, start_date=MONDAY, end_date=MONDAY, now=NOW
        )

        assert ids(result) == [finished.id, cancelled.id]


@pytest.mark.integration
class TestSearchAppointments:

    @pytest_asyncio.fixture
    async def booked(self, factory):
        costa = await factory.psychologist(name="Dr. Ana Costa")
        pires = await factory.psychologist(name="Dr. Rui Pires")
        business = await factory.business()
        rita = await factory.user(business)
        joao = await factory.user(await factory.business())
        return {
            "costa": costa,
            "pires": pires,
            "rita": rita,
            "joao": joao,
            "first": await factory.appointment(rita, costa, MONDAY, "09:00"),
            "second": await factory.appointment(joao, pires, MONDAY, "10:00"),
            "third": await factory.appointment(rita, pires, TUESDAY, "09:00"),
        }

    @pytest.mark.asyncio
    async def test_text_matches_psychologist_name(self, db, booked):
        page = await search_appointments(db, search="costa")

        assert page.total == 1
        row = page.rows[0]
        assert row[0].id == booked["first"].id
        assert (row.psychologist_name, row.user_name) == ("Dr. Ana Costa", booked["rita"].name)

    @pytest.mark.asyncio
    async def test_text_matches_user_email(self, db, booked):
        page = await search_appointments(db, search=booked["rita"].email)

        assert [r[0].id for r in page.rows] == [booked["third"].id, booked["first"].id]

    @pytest.mark.asyncio
    async def test_filters_all_have_to_hold(self, db, booked):
        page = await search_appointments(
            db,
            filters=[
                SearchFilter("psychologist", str(booked["pires"].id)),
                SearchFilter("userName", booked["joao"].name),
            ],
        )

        assert page.total == 1
        assert page.rows[0][0].id == booked["second"].id

    @pytest.mark.asyncio
    async def test_business_filter_and_unknown_fields(self, db, booked):
        page = await search_appointments(
            db,
            filters=[
                SearchFilter("business", str(booked["rita"].business_id)),
                SearchFilter("colour", "blue"),
            ],
        )

        assert page.total == 2

    @pytest.mark.asyncio
    async def test_pages_are_newest_first(self, db, booked):
        page = await search_appointments(db, page=1, per_page=1)

        assert page.total == 3
        assert [r[0].id for r in page.rows] == [booked["second"].id]

    @pytest.mark.asyncio
    async def test_id_filter_must_be_numeric(self, db, booked):
        with pytest.raises(InvalidParameter):
            await search_appointments(db, filters=[SearchFilter("business", "acme")])
