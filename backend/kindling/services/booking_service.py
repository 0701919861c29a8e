"""
Capacity allocator: admit a sponsorship into a slot's share budget for a time window, price it, persist it.

Admission (load slot, sum overlapping share, price, insert) runs as one short write transaction per attempt:
- the slot row is read FOR UPDATE, so on PostgreSQL a second booking for the same slot waits for the first;
- the insert is guarded by bumping ad_slots.capacity_version from the value read at the start. If another
  admission committed in between, the bump matches no row and the attempt raises ConcurrencyConflict.
Conflicts are retried from scratch up to booking_max_attempts; everything else is reported to the caller.
Failed attempts roll back, so a rejected booking never leaves a PENDING row behind.
"""
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from kindling.config import settings
from kindling.core.constants import MAX_SHARE_PCT, MIN_SHARE_PCT, SHARE_BUDGET_PCT
from kindling.core.errors import (
    CapacityExceeded,
    ConcurrencyConflict,
    InvalidInput,
    InvalidTransition,
    NotFound,
    PaymentRefused,
    SlotEngineError,
    SlotInactive,
)
from kindling.models.ad_slot import AdSlot
from kindling.models.enums import CAPACITY_HOLDING_STATUSES, ReservationStatus
from kindling.models.reservation import Reservation
from kindling.services.payments import PaymentProcessor, get_payment_processor
from kindling.services.pricing import billable_days, price
from kindling.services.windows import Window

logger = logging.getLogger(__name__)


def effective_share(slot: AdSlot, requested_share_pct: int | None = None) -> int:
    """
    Share a new reservation on this slot gets.
    Unlimited slots: always 100. Custom share allowed and given: clamped to 1..100. Else equal split.
    """
    if slot.unlimited:
        return SHARE_BUDGET_PCT
    if slot.allow_custom_share and requested_share_pct is not None:
        if isinstance(requested_share_pct, bool) or not isinstance(requested_share_pct, int):
            raise InvalidInput("share must be an integer percentage", field="share_pct")
        return min(max(MIN_SHARE_PCT, requested_share_pct), MAX_SHARE_PCT)
    # More than 100 sponsors would floor to 0; every reservation holds at least 1%
    return max(MIN_SHARE_PCT, SHARE_BUDGET_PCT // slot.max_sponsors)


def committed_share(db: Session, slot_id: int, window: Window) -> int:
    """Sum of share_pct over PENDING/ACTIVE reservations on the slot overlapping [start, end)."""
    total = (
        db.query(func.coalesce(func.sum(Reservation.share_pct), 0))
        .filter(
            Reservation.slot_id == slot_id,
            Reservation.status.in_(CAPACITY_HOLDING_STATUSES),
            Reservation.starts_at < window.ends_at,
            Reservation.ends_at > window.starts_at,
        )
        .scalar()
    )
    return int(total or 0)


def _load_slot_for_update(db: Session, slot_id: int) -> AdSlot:
    slot = db.query(AdSlot).filter(AdSlot.id == slot_id).with_for_update().first()
    if slot is None:
        raise NotFound("Ad slot not found", slot_id=slot_id)
    if not slot.active:
        raise SlotInactive("This ad slot is not active", slot_id=slot_id)
    return slot


def _claim_capacity(db: Session, slot_id: int, seen_version: int) -> None:
    """Advance capacity_version iff nobody else did since we read it."""
    result = db.execute(
        update(AdSlot)
        .where(AdSlot.id == slot_id, AdSlot.capacity_version == seen_version)
        .values(capacity_version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrencyConflict("Slot capacity changed during admission; retry", slot_id=slot_id)


def _admit_once(
    db: Session,
    slot_id: int,
    window: Window,
    requested_share_pct: int | None,
    creative: str,
    sponsor_id: str,
    sponsor_name: str | None,
) -> Reservation:
    slot = _load_slot_for_update(db, slot_id)
    share = effective_share(slot, requested_share_pct)
    seen_version = slot.capacity_version

    if not slot.unlimited:
        committed = committed_share(db, slot.id, window)
        if committed + share > SHARE_BUDGET_PCT:
            raise CapacityExceeded(available=SHARE_BUDGET_PCT - committed, requested=share)

    cents = price(
        slot.price_usd_cents_per_day_full_share,
        share,
        billable_days(window.starts_at, window.ends_at),
    )

    if not slot.unlimited:
        _claim_capacity(db, slot.id, seen_version)

    row = Reservation(
        slot_id=slot.id,
        sponsor_id=sponsor_id,
        sponsor_name=sponsor_name,
        status=ReservationStatus.PENDING.value,
        starts_at=window.starts_at,
        ends_at=window.ends_at,
        share_pct=share,
        creative=creative,
        price_usd_cents=cents,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def admit(
    db: Session,
    slot_id: int,
    window: Window,
    requested_share_pct: int | None = None,
    *,
    creative: str,
    sponsor_id: str,
    sponsor_name: str | None = None,
    max_attempts: int | None = None,
) -> Reservation:
    """
    Admit a PENDING reservation or raise NotFound / SlotInactive / InvalidInput / CapacityExceeded.
    ConcurrencyConflict only escapes once max_attempts admissions in a row lost the race.
    """
    creative = (creative or "").strip()
    if not creative:
        raise InvalidInput("Creative is required", field="creative")
    sponsor_id = (sponsor_id or "").strip()
    if not sponsor_id:
        raise InvalidInput("Sponsor is required", field="sponsor_id")
    attempts = settings.booking_max_attempts if max_attempts is None else max_attempts
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
        raise InvalidInput("max_attempts must be at least 1", field="max_attempts")

    for attempt in range(1, attempts + 1):
        try:
            row = _admit_once(db, slot_id, window, requested_share_pct, creative, sponsor_id, sponsor_name)
        except (ConcurrencyConflict, OperationalError) as e:
            db.rollback()
            logger.warning("Admission on slot %s conflicted (attempt %s/%s): %s", slot_id, attempt, attempts, e)
            if attempt == attempts:
                if isinstance(e, ConcurrencyConflict):
                    raise
                raise ConcurrencyConflict("Slot is busy; retry", slot_id=slot_id) from e
            continue
        except CapacityExceeded as e:
            db.rollback()
            logger.info(
                "Slot %s full for %s..%s: available=%s requested=%s",
                slot_id,
                window.starts_at.isoformat(),
                window.ends_at.isoformat(),
                e.available,
                e.requested,
            )
            raise
        except Exception:
            db.rollback()
            raise
        logger.info(
            "Admitted reservation %s on slot %s: share=%s%% price=%s cents",
            row.id,
            slot_id,
            row.share_pct,
            row.price_usd_cents,
        )
        return row
    raise ConcurrencyConflict("Slot is busy; retry", slot_id=slot_id)


def reserve(
    db: Session,
    slot_id: int,
    window: Window,
    requested_share_pct: int | None = None,
    *,
    creative: str,
    sponsor_id: str,
    sponsor_name: str | None = None,
    payments: PaymentProcessor | None = None,
    max_attempts: int | None = None,
) -> Reservation:
    """
    Admit the reservation, then open a checkout with the payment processor.
    Returns the reservation: ACTIVE if the processor confirmed at once (simulated mode), else PENDING.
    A refused charge cancels the reservation (releasing its share) and raises PaymentRefused.
    """
    row = admit(
        db,
        slot_id,
        window,
        requested_share_pct,
        creative=creative,
        sponsor_id=sponsor_id,
        sponsor_name=sponsor_name,
        max_attempts=max_attempts,
    )
    processor = payments or get_payment_processor()
    try:
        checkout = processor.start_checkout(row)
    except Exception as e:
        logger.exception("Checkout failed for reservation %s; cancelling", row.id)
        reservation_id = row.id
        row.status = ReservationStatus.CANCELLED.value
        db.commit()
        if isinstance(e, SlotEngineError):
            raise
        raise PaymentRefused("Payment refused", reservation_id=reservation_id) from e
    row.checkout_id = checkout.checkout_id
    if checkout.confirmed:
        row.status = ReservationStatus.ACTIVE.value
    db.commit()
    db.refresh(row)
    return row


def _load_reservation_for_update(db: Session, reservation_id: int) -> Reservation:
    row = db.query(Reservation).filter(Reservation.id == reservation_id).with_for_update().first()
    if row is None:
        raise NotFound("Sponsorship not found", reservation_id=reservation_id)
    return row


def _transition(
    db: Session,
    reservation_id: int,
    allowed_from: tuple[str, ...],
    to: ReservationStatus,
    sponsor_id: str | None = None,
) -> Reservation:
    """Move to `to` from any of allowed_from; already at `to` is a no-op."""
    row = _load_reservation_for_update(db, reservation_id)
    if sponsor_id is not None and row.sponsor_id != sponsor_id:
        db.rollback()
        raise NotFound("Sponsorship not found", reservation_id=reservation_id)
    if row.status == to.value:
        db.rollback()
        return row
    if row.status not in allowed_from:
        current = row.status
        db.rollback()
        raise InvalidTransition(
            f"Cannot move sponsorship from {current} to {to.value}",
            reservation_id=reservation_id,
            status=current,
        )
    previous = row.status
    row.status = to.value
    db.commit()
    db.refresh(row)
    logger.info("Reservation %s: %s -> %s", reservation_id, previous, to.value)
    return row


def confirm_reservation(db: Session, reservation_id: int) -> Reservation:
    """Payment captured: PENDING -> ACTIVE."""
    return _transition(db, reservation_id, (ReservationStatus.PENDING.value,), ReservationStatus.ACTIVE)


def fail_reservation(db: Session, reservation_id: int) -> Reservation:
    """Payment refused: PENDING -> CANCELLED, releasing the held share."""
    return _transition(db, reservation_id, (ReservationStatus.PENDING.value,), ReservationStatus.CANCELLED)


def cancel_reservation(db: Session, reservation_id: int, sponsor_id: str | None = None) -> Reservation:
    """Explicit cancellation of a PENDING or ACTIVE reservation. With sponsor_id, only the sponsor's own."""
    return _transition(
        db,
        reservation_id,
        (ReservationStatus.PENDING.value, ReservationStatus.ACTIVE.value),
        ReservationStatus.CANCELLED,
        sponsor_id=sponsor_id,
    )
