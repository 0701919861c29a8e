"""
Sites and ad slots: owner-side setup, the slot terms shown to sponsors, and remaining share for a window.
"""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from kindling.core.constants import SHARE_BUDGET_PCT
from kindling.core.errors import InvalidInput, NotFound, SlotEngineError, UrlAlreadyExists
from kindling.models.ad_slot import AdSlot
from kindling.models.enums import CAPACITY_HOLDING_STATUSES, ReservationStatus, SlotPosition
from kindling.models.reservation import Reservation
from kindling.models.site import Site
from kindling.services.booking_service import committed_share, effective_share
from kindling.services.windows import Window, as_utc, utcnow

logger = logging.getLogger(__name__)

UPDATABLE_SLOT_FIELDS = (
    "price_usd_cents_per_day_full_share",
    "max_sponsors",
    "allow_custom_share",
    "active",
    "position",
)


def _position(value: str) -> str:
    try:
        return SlotPosition((value or "").strip().upper()).value
    except ValueError:
        allowed = ", ".join(p.value for p in SlotPosition)
        raise InvalidInput(f"Position must be one of {allowed}", field="position") from None


def _validate_slot_terms(price_cents: int, max_sponsors: int) -> None:
    if isinstance(price_cents, bool) or not isinstance(price_cents, int) or price_cents <= 0:
        raise InvalidInput("Price must be greater than 0", field="price_usd_cents_per_day_full_share")
    if isinstance(max_sponsors, bool) or not isinstance(max_sponsors, int) or max_sponsors < 0:
        raise InvalidInput("Max sponsors cannot be negative", field="max_sponsors")


# --- Sites ---


def create_site(db: Session, owner_id: str, name: str, url: str) -> Site:
    """Register a site for an owner. URLs are unique across owners."""
    name, url = (name or "").strip(), (url or "").strip()
    if not name or not url:
        raise InvalidInput("Site name and URL are required", field="name" if not name else "url")
    if db.query(Site.id).filter(Site.url == url).first():
        raise UrlAlreadyExists("A site with this URL already exists", url=url)
    site = Site(owner_id=owner_id, name=name, url=url)
    db.add(site)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with another create for the same URL
        db.rollback()
        raise UrlAlreadyExists("A site with this URL already exists", url=url) from None
    db.refresh(site)
    logger.info("Created site %s (%s) for owner %s", site.id, url, owner_id)
    return site


def list_sites(db: Session, owner_id: str) -> list[Site]:
    """Owner's sites, most recent first, with slots loaded."""
    return (
        db.query(Site)
        .options(selectinload(Site.slots))
        .filter(Site.owner_id == owner_id)
        .order_by(Site.created_at.desc(), Site.id.desc())
        .all()
    )


def delete_site(db: Session, site_id: int, owner_id: str) -> None:
    """Delete an owned site; slots and their reservations cascade."""
    site = db.query(Site).filter(Site.id == site_id, Site.owner_id == owner_id).first()
    if site is None:
        raise NotFound("Site not found", site_id=site_id)
    db.delete(site)
    db.commit()
    logger.info("Deleted site %s for owner %s", site_id, owner_id)


# --- Slots ---


def create_slot(
    db: Session,
    site_id: int,
    position: str,
    price_usd_cents_per_day_full_share: int,
    max_sponsors: int = 1,
    allow_custom_share: bool = False,
    owner_id: str | None = None,
) -> AdSlot:
    """New active slot on a site. With owner_id, a site owned by someone else is NotFound."""
    site = db.get(Site, site_id)
    if site is None or (owner_id is not None and site.owner_id != owner_id):
        raise NotFound("Site not found", site_id=site_id)
    _validate_slot_terms(price_usd_cents_per_day_full_share, max_sponsors)
    slot = AdSlot(
        site_id=site_id,
        position=_position(position),
        price_usd_cents_per_day_full_share=price_usd_cents_per_day_full_share,
        max_sponsors=max_sponsors,
        allow_custom_share=bool(allow_custom_share),
        active=True,
        capacity_version=0,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    logger.info("Created %s slot %s on site %s", slot.position, slot.id, site_id)
    return slot


def get_slot(db: Session, slot_id: int) -> AdSlot:
    slot = db.get(AdSlot, slot_id)
    if slot is None:
        raise NotFound("Ad slot not found", slot_id=slot_id)
    return slot


def _peak_committed_share(db: Session, slot_id: int) -> int:
    """Highest share held at any instant by PENDING/ACTIVE reservations that have not ended yet."""
    rows = (
        db.query(Reservation.starts_at, Reservation.ends_at, Reservation.share_pct)
        .filter(
            Reservation.slot_id == slot_id,
            Reservation.status.in_(CAPACITY_HOLDING_STATUSES),
            Reservation.ends_at > utcnow(),
        )
        .all()
    )
    # ends sort before starts at the same instant: windows are half-open
    events = sorted(
        [(as_utc(start), 1, share) for start, _, share in rows]
        + [(as_utc(end), 0, -share) for _, end, share in rows]
    )
    peak = held = 0
    for _, _, delta in events:
        held += delta
        peak = max(peak, held)
    return peak


def update_slot(db: Session, slot_id: int, owner_id: str | None = None, **fields: Any) -> AdSlot:
    """
    Owner edits: price, capacity, custom-share flag, active flag, position. Unknown fields are rejected.
    Lowering capacity does not evict existing reservations; it only affects future admissions.
    Turning an unlimited slot into a limited one is refused while its open reservations overlap past 100%.
    Capacity edits bump capacity_version so an admission checked against the old terms cannot commit.
    """
    unknown = set(fields) - set(UPDATABLE_SLOT_FIELDS)
    if unknown:
        raise InvalidInput(f"Cannot update fields: {', '.join(sorted(unknown))}")
    slot = db.query(AdSlot).filter(AdSlot.id == slot_id).with_for_update().first()
    try:
        if slot is None:
            raise NotFound("Ad slot not found", slot_id=slot_id)
        if owner_id is not None and slot.site.owner_id != owner_id:
            raise NotFound("Ad slot not found", slot_id=slot_id)
        _validate_slot_terms(
            fields.get("price_usd_cents_per_day_full_share", slot.price_usd_cents_per_day_full_share),
            fields.get("max_sponsors", slot.max_sponsors),
        )
        if "position" in fields:
            fields["position"] = _position(fields["position"])
        new_max = fields.get("max_sponsors", slot.max_sponsors)
        if slot.unlimited and new_max > 0:
            peak = _peak_committed_share(db, slot.id)
            if peak > SHARE_BUDGET_PCT:
                raise InvalidInput(
                    "Open reservations overlap beyond 100% share; the slot must stay unlimited until they end",
                    field="max_sponsors",
                    committed=peak,
                )
    except SlotEngineError:
        db.rollback()
        raise
    capacity_changed = any(
        key in fields and fields[key] != getattr(slot, key) for key in ("max_sponsors", "allow_custom_share")
    )
    for key, value in fields.items():
        setattr(slot, key, value)
    if capacity_changed:
        slot.capacity_version = slot.capacity_version + 1
    db.commit()
    db.refresh(slot)
    logger.info("Updated slot %s: %s", slot_id, sorted(fields))
    return slot


def current_sponsorships(db: Session, slot_id: int) -> list[Reservation]:
    """ACTIVE reservations that have not ended yet (live now or upcoming)."""
    return (
        db.query(Reservation)
        .filter(
            Reservation.slot_id == slot_id,
            Reservation.status == ReservationStatus.ACTIVE.value,
            Reservation.ends_at > utcnow(),
        )
        .order_by(Reservation.starts_at, Reservation.id)
        .all()
    )


def get_availability(db: Session, slot_id: int, window: Window) -> dict[str, Any]:
    """Share still free on the slot over the whole window (read-only preview of the admission check)."""
    slot = get_slot(db, slot_id)
    committed = 0 if slot.unlimited else committed_share(db, slot.id, window)
    return {
        "slot_id": slot.id,
        "starts_at": window.starts_at.isoformat(),
        "ends_at": window.ends_at.isoformat(),
        "max_sponsors": slot.max_sponsors,
        "allow_custom_share": slot.allow_custom_share,
        "active": slot.active,
        "committed_share": committed,
        "available_share": SHARE_BUDGET_PCT - committed,
        "default_share": effective_share(slot),
    }


# --- Serialization ---


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def slot_to_dict(slot: AdSlot) -> dict[str, Any]:
    return {
        "id": slot.id,
        "site_id": slot.site_id,
        "position": slot.position,
        "price_usd_cents_per_day_full_share": slot.price_usd_cents_per_day_full_share,
        "max_sponsors": slot.max_sponsors,
        "allow_custom_share": slot.allow_custom_share,
        "active": slot.active,
        "created_at": _iso(slot.created_at),
    }


def site_to_dict(site: Site) -> dict[str, Any]:
    return {
        "id": site.id,
        "owner_id": site.owner_id,
        "name": site.name,
        "url": site.url,
        "created_at": _iso(site.created_at),
        "ad_slots": [slot_to_dict(s) for s in site.slots],
    }


def reservation_to_dict(row: Reservation) -> dict[str, Any]:
    return {
        "id": row.id,
        "slot_id": row.slot_id,
        "sponsor_id": row.sponsor_id,
        "sponsor_name": row.sponsor_name,
        "status": row.status,
        "starts_at": _iso(row.starts_at),
        "ends_at": _iso(row.ends_at),
        "share_pct": row.share_pct,
        "creative": row.creative,
        "price_usd_cents": row.price_usd_cents,
        "total_price_usd": row.price_usd_cents / 100,
        "checkout_id": row.checkout_id,
    }
