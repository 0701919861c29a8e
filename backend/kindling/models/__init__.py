from kindling.models.ad_slot import AdSlot
from kindling.models.enums import ReservationStatus, SlotPosition
from kindling.models.reservation import Reservation
from kindling.models.site import Site

__all__ = [
    "AdSlot",
    "Reservation",
    "ReservationStatus",
    "Site",
    "SlotPosition",
]
