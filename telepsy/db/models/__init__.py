from telepsy.db.models.psychologist import Psychologist
from telepsy.db.models.business import Business, Contract
from telepsy.db.models.user import User
from telepsy.db.models.availability import AvailabilityDay, AvailabilitySlot
from telepsy.db.models.treatment import Treatment
from telepsy.db.models.appointment import Appointment

__all__ = [
    "Psychologist",
    "Business",
    "Contract",
    "User",
    "AvailabilityDay",
    "AvailabilitySlot",
    "Treatment",
    "Appointment",
]
