"""
Slot terms for the sponsor purchase page, owner edits, and remaining share for a window.
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kindling.api.deps import owner_id
from kindling.config import settings
from kindling.db.session import get_db
from kindling.models.enums import SlotPosition
from kindling.services.slot_service import (
    current_sponsorships,
    get_availability,
    get_slot,
    slot_to_dict,
    update_slot,
)
from kindling.services.windows import Window, utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


class UpdateSlotBody(BaseModel):
    position: SlotPosition | None = None
    price_usd_cents_per_day_full_share: int | None = Field(None, gt=0)
    max_sponsors: int | None = Field(None, ge=0)
    allow_custom_share: bool | None = None
    active: bool | None = None


@router.get("/slots/{slot_id}")
def read_slot(slot_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Slot terms with its site and the ACTIVE sponsorships that have not ended yet."""
    slot = get_slot(db, slot_id)
    return {
        **slot_to_dict(slot),
        "site": {"id": slot.site.id, "name": slot.site.name, "url": slot.site.url},
        "sponsorships": [
            {
                "id": r.id,
                "sponsor_name": r.sponsor_name,
                "share_pct": r.share_pct,
                "starts_at": r.starts_at.isoformat(),
                "ends_at": r.ends_at.isoformat(),
            }
            for r in current_sponsorships(db, slot.id)
        ],
    }


@router.patch("/slots/{slot_id}")
def patch_slot(
    slot_id: int,
    body: UpdateSlotBody,
    db: Session = Depends(get_db),
    owner: str = Depends(owner_id),
) -> dict[str, Any]:
    fields = body.model_dump(exclude_none=True)
    if "position" in fields:
        fields["position"] = fields["position"].value
    return slot_to_dict(update_slot(db, slot_id, owner_id=owner, **fields))


@router.get("/slots/{slot_id}/availability")
def read_availability(
    slot_id: int,
    db: Session = Depends(get_db),
    starts_at: datetime | None = Query(None),
    ends_at: datetime | None = Query(None),
    days: int | None = Query(None, ge=1),
) -> dict[str, Any]:
    """
    Share still free for a window: explicit starts_at/ends_at, or `days` from starts_at (default now).
    With neither, the default booking length from now.
    """
    if ends_at is not None:
        window = Window.of(starts_at or utcnow(), ends_at)
    else:
        window = Window.from_days(days or settings.default_booking_days, starts_at)
    return get_availability(db, slot_id, window)
