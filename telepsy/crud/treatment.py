# telepsy/crud/treatment.py

from __future__ import annotations
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.db.models.treatment import Treatment


async def get_open_treatment(db: AsyncSession, user_id: int) -> Optional[Treatment]:
    res = await db.execute(
        sa.select(Treatment)
        .where(Treatment.user_id == user_id, Treatment.clinical_discharge.is_(None))
        .order_by(Treatment.id.desc())
        .limit(1)
    )
    return res.scalar_one_or_none()


async def create_treatment(db: AsyncSession, **fields) -> Treatment:
    treatment = Treatment(**fields)
    db.add(treatment)
    await db.flush()
    return treatment
