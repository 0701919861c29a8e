"""Enumerations stored as plain strings (String columns + CHECK constraints)."""
from enum import Enum


class SlotPosition(str, Enum):
    BANNER = "BANNER"
    SIDEPANEL = "SIDEPANEL"
    INLINE = "INLINE"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


# Statuses that hold capacity in a slot's share budget. PENDING counts so a burst of
# unconfirmed requests cannot oversubscribe a slot while payment is in flight.
CAPACITY_HOLDING_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.ACTIVE.value)
