# telepsy/core/actors.py
"""
Who is calling. Resolved once at the HTTP boundary and passed into the core.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class UserActor:
    id: int
    role: ClassVar[str] = "user"
    cancelled_by: ClassVar[str] = "user"


@dataclass(frozen=True)
class PsychologistActor:
    id: int
    role: ClassVar[str] = "psychologist"
    cancelled_by: ClassVar[str] = "psychologist"


@dataclass(frozen=True)
class StaffActor:
    id: int
    role: ClassVar[str] = "staff"
    cancelled_by: ClassVar[str] = "team"


Actor = Union[UserActor, PsychologistActor, StaffActor]

ACTOR_TYPES: dict[str, type] = {cls.role: cls for cls in (UserActor, PsychologistActor, StaffActor)}
