# telepsy/api/routes/slots.py

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.api.deps import get_actor
from telepsy.core.actors import Actor, PsychologistActor, UserActor
from telepsy.core.business import parse_date
from telepsy.crud.directory import get_user
from telepsy.db.session import get_session
from telepsy.schemas.availability import DaySlotsOut, SlotSearchIn
from telepsy.services.slot_search import search_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.post("/search", response_model=list[DaySlotsOut])
async def search_slots_ep(
    payload: SlotSearchIn,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_session),
):
    # Psychologists see their own grid; users see their assigned psychologist once they have one
    psychologist_id = payload.psychologist_id
    if isinstance(actor, PsychologistActor):
        psychologist_id = actor.id
    elif isinstance(actor, UserActor):
        user = await get_user(db, actor.id)
        psychologist_id = user.psychologist_id if user else None

    return await search_slots(
        db,
        start_date=parse_date(payload.start_date),
        end_date=parse_date(payload.end_date),
        psychologist_id=psychologist_id,
    )
