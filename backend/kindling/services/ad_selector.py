"""
Ad selection: pick one live sponsorship on a slot, weighted by share.

Each live reservation gets round(share_pct) tickets (at least 1, so every paying sponsor can be shown).
One ticket is drawn uniformly; a binary search over cumulative ticket counts finds its owner, which is
the same draw as duplicating entries per ticket without building the list. Read-only: no locks, no writes.
"""
import bisect
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from itertools import accumulate
from typing import Sequence

from sqlalchemy.orm import Session

from kindling.core.errors import NotFound
from kindling.models.ad_slot import AdSlot
from kindling.models.enums import ReservationStatus
from kindling.models.reservation import Reservation
from kindling.services.windows import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedAd:
    reservation_id: int
    sponsor_id: str
    sponsor_name: str | None
    creative: str

    def to_dict(self) -> dict:
        return {
            "id": self.reservation_id,
            "sponsor_id": self.sponsor_id,
            "sponsor_name": self.sponsor_name,
            "creative": self.creative,
        }


def tickets_for(share_pct) -> int:
    """round-half-up(share_pct), floored at 1 ticket."""
    rounded = int(Decimal(str(share_pct)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(1, rounded)


def pick_weighted(candidates: Sequence[Reservation], rng: random.Random | None = None) -> Reservation:
    """Draw one candidate with probability tickets / total tickets."""
    if not candidates:
        raise ValueError("pick_weighted needs at least one candidate")
    cumulative = list(accumulate(tickets_for(c.share_pct) for c in candidates))
    ticket = (rng or random).randrange(cumulative[-1])
    return candidates[bisect.bisect_right(cumulative, ticket)]


def live_reservations(db: Session, slot_id: int, at: datetime) -> list[Reservation]:
    """ACTIVE reservations on the slot with starts_at <= at < ends_at, oldest first."""
    return (
        db.query(Reservation)
        .filter(
            Reservation.slot_id == slot_id,
            Reservation.status == ReservationStatus.ACTIVE.value,
            Reservation.starts_at <= at,
            Reservation.ends_at > at,
        )
        .order_by(Reservation.id)
        .all()
    )


def select_ad(
    db: Session,
    slot_id: int,
    at: datetime | None = None,
    rng: random.Random | None = None,
) -> SelectedAd | None:
    """
    Winning creative for the slot at `at` (default now), or None when no sponsor is live.
    Raises NotFound only for an unknown slot.
    """
    if db.get(AdSlot, slot_id) is None:
        raise NotFound("Ad slot not found", slot_id=slot_id)
    at = as_utc(at) if at is not None else utcnow()
    live = live_reservations(db, slot_id, at)
    if not live:
        logger.debug("No active sponsors for slot %s at %s", slot_id, at.isoformat())
        return None
    winner = pick_weighted(live, rng)
    return SelectedAd(
        reservation_id=winner.id,
        sponsor_id=winner.sponsor_id,
        sponsor_name=winner.sponsor_name,
        creative=winner.creative,
    )
