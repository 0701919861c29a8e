"""
Expiry sweep: mark reservations whose window has ended as EXPIRED.

Housekeeping only. Capacity and selection queries filter on time themselves, so a late or skipped sweep
never changes who is admitted or served.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from kindling.models.enums import CAPACITY_HOLDING_STATUSES, ReservationStatus
from kindling.models.reservation import Reservation
from kindling.services.windows import as_utc, utcnow

logger = logging.getLogger(__name__)


def expire_reservations(db: Session, now: datetime | None = None) -> int:
    """Set status=EXPIRED on PENDING/ACTIVE rows with ends_at <= now. Returns rows updated."""
    now = as_utc(now) if now is not None else utcnow()
    updated = (
        db.query(Reservation)
        .filter(
            Reservation.status.in_(CAPACITY_HOLDING_STATUSES),
            Reservation.ends_at <= now,
        )
        .update({Reservation.status: ReservationStatus.EXPIRED.value}, synchronize_session=False)
    )
    db.commit()
    if updated:
        logger.info("Expired %s reservations ending at or before %s", updated, now.isoformat())
    return updated
