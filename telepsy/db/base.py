# telepsy/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
from telepsy.db.session import Base, engine
from telepsy.db.models.psychologist import Psychologist  # noqa: F401
from telepsy.db.models.business import Business, Contract  # noqa: F401
from telepsy.db.models.user import User  # noqa: F401
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot  # noqa: F401
from telepsy.db.models.treatment import Treatment  # noqa: F401
from telepsy.db.models.appointment import Appointment  # noqa: F401


async def init_db(bind=None):
    """Create every table and index on `bind` (defaults to the app engine)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
