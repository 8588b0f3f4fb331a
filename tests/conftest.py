"""
Shared fixtures: sqlite databases, model factories and a recording publisher.
"""

import os
import sys
from datetime import date

# Settings are read at import time; point them at sqlite before telepsy loads
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEPSY_API_KEY"] = ""
os.environ["NOTIFY_WEBHOOK_URL"] = ""

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from telepsy.db.base import init_db
from telepsy.db.models.appointment import Appointment
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot
from telepsy.db.models.business import Business, Contract
from telepsy.db.models.psychologist import Psychologist
from telepsy.db.models.user import User
from telepsy.core.business import local_window, parse_minutes
from telepsy.services.notifications import Notifier

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class RecordingPublisher:
    """Keeps every published event in memory."""

    def __init__(self):
        self.events = []

    async def publish(self, topic, payload):
        self.events.append((topic, payload))

    def topics(self):
        return [topic for topic, _ in self.events]


class Factory:
    """Builds persisted rows with sensible defaults."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def psychologist(self, *, is_active=True, is_confirmed=True, name=None) -> Psychologist:
        n = self._next()
        obj = Psychologist(
            name=name or f"Psychologist {n}",
            email=f"psy{n}@example.com",
            is_active=is_active,
            is_confirmed=is_confirmed,
        )
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def business(self, *, bought=10, per_user=0, is_active=True) -> Business:
        n = self._next()
        obj = Business(name=f"Business {n}", is_active=is_active, consultations_per_user=per_user)
        if bought:
            obj.contracts = [Contract(value=bought, description="Annual plan")]
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def user(self, business: Business, *, psychologist: Psychologist = None, is_active=True) -> User:
        n = self._next()
        obj = User(
            business_id=business.id,
            name=f"User {n}",
            email=f"user{n}@example.com",
            is_active=is_active,
            psychologist_id=psychologist.id if psychologist else None,
        )
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def day(self, psychologist: Psychologist, day: date, *slots) -> AvailabilityDay:
        """slots are ("HH:mm", "HH:mm") pairs."""
        obj = AvailabilityDay(
            psychologist_id=psychologist.id,
            day=day,
            slots=[AvailabilitySlot(start=parse_minutes(s), end=parse_minutes(e)) for s, e in slots],
        )
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def appointment(self, user: User, psychologist: Psychologist, day: date, time: str, **kw) -> Appointment:
        starts_at, ends_at = local_window(day, parse_minutes(time), 45)
        n = self._next()
        obj = Appointment(
            number=kw.pop("number", str(900000 + n)),
            user_id=user.id,
            psychologist_id=psychologist.id,
            business_id=user.business_id,
            starts_at=starts_at,
            ends_at=ends_at,
            duration=45,
            **kw,
        )
        self.session.add(obj)
        await self.session.commit()
        return obj


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def factory(session_factory):
    # Own session, so a rollback in the session under test never expires seeded rows
    async with session_factory() as session:
        yield Factory(session)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def notifier(publisher):
    return Notifier(publisher)


@pytest.fixture
def appointment_count(db):
    async def _count(**filters) -> int:
        q = sa.select(sa.func.count(Appointment.id)).filter_by(**filters)
        return int(await db.scalar(q))
    return _count
