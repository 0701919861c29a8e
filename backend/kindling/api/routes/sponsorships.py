"""
Sponsorship purchase flow and payment callbacks.

POST /sponsorships admits the booking (capacity check, price) and opens a checkout. The reservation is
PENDING until the payment processor calls /confirm (or /fail); in simulated payment mode it is ACTIVE at once.
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from kindling.api.deps import payment_signature, sponsor_id, sponsor_name
from kindling.config import settings
from kindling.db.session import get_db
from kindling.services.booking_service import (
    cancel_reservation,
    confirm_reservation,
    fail_reservation,
    reserve,
)
from kindling.services.slot_service import reservation_to_dict
from kindling.services.windows import Window

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateSponsorshipBody(BaseModel):
    ad_slot_id: int
    creative: str = Field(..., min_length=1, description="Image/landing URL or HTML markup")
    share_pct: int | None = Field(None, description="Only honoured on slots that allow custom share")
    days: int | None = Field(None, ge=1, description="Book this many days from starts_at (default now)")
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    @model_validator(mode="after")
    def window_fields(self) -> "CreateSponsorshipBody":
        if self.ends_at is not None and self.days is not None:
            raise ValueError("Give either ends_at or days, not both")
        if self.ends_at is not None and self.starts_at is None:
            raise ValueError("ends_at requires starts_at")
        return self

    def window(self) -> Window:
        if self.ends_at is not None:
            return Window.of(self.starts_at, self.ends_at)
        return Window.from_days(self.days or settings.default_booking_days, self.starts_at)


@router.post("/sponsorships", status_code=201)
def create_sponsorship(
    body: CreateSponsorshipBody,
    db: Session = Depends(get_db),
    sponsor: str = Depends(sponsor_id),
    display_name: str | None = Depends(sponsor_name),
) -> dict[str, Any]:
    row = reserve(
        db,
        body.ad_slot_id,
        body.window(),
        body.share_pct,
        creative=body.creative,
        sponsor_id=sponsor,
        sponsor_name=display_name,
    )
    return {"success": True, "sponsorship": reservation_to_dict(row)}


@router.post("/sponsorships/{reservation_id}/confirm", dependencies=[Depends(payment_signature)])
def confirm_sponsorship(reservation_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Payment processor webhook: charge captured."""
    return {"success": True, "sponsorship": reservation_to_dict(confirm_reservation(db, reservation_id))}


@router.post("/sponsorships/{reservation_id}/fail", dependencies=[Depends(payment_signature)])
def fail_sponsorship(reservation_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Payment processor webhook: charge refused."""
    return {"success": True, "sponsorship": reservation_to_dict(fail_reservation(db, reservation_id))}


@router.post("/sponsorships/{reservation_id}/cancel")
def cancel_sponsorship(
    reservation_id: int,
    db: Session = Depends(get_db),
    sponsor: str = Depends(sponsor_id),
) -> dict[str, Any]:
    return {
        "success": True,
        "sponsorship": reservation_to_dict(cancel_reservation(db, reservation_id, sponsor_id=sponsor)),
    }
