# telepsy/api/deps.py
"""
Request-scoped dependencies: acting identity and notifier.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from telepsy.core.actors import ACTOR_TYPES, Actor, PsychologistActor, StaffActor, UserActor
from telepsy.core.errors import PermissionDenied
from telepsy.core.logging import set_actor_context
from telepsy.services.notifications import Notifier, build_publisher


async def get_actor(
    request: Request,
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
) -> Actor:
    actor_type = ACTOR_TYPES.get((x_actor_role or "").strip().lower())
    if actor_type is None or not x_actor_id or not x_actor_id.strip().isdigit():
        raise PermissionDenied("Missing or unknown actor")
    actor = actor_type(id=int(x_actor_id))
    set_actor_context(
        role=actor.role,
        actor_id=actor.id,
        endpoint=request.url.path,
        method=request.method,
    )
    return actor


def require_roles(*allowed: type):
    """Dependency factory: the actor must be one of `allowed`."""

    async def _check(actor: Actor = Depends(get_actor)) -> Actor:
        if not isinstance(actor, allowed):
            raise PermissionDenied(f"{actor.role} may not perform this action")
        return actor

    return _check


require_user = require_roles(UserActor)
require_psychologist = require_roles(PsychologistActor)
require_staff = require_roles(StaffActor)


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = Notifier(build_publisher())
        request.app.state.notifier = notifier
    return notifier
