"""
Sites and slot setup for site owners.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from kindling.api.deps import owner_id
from kindling.db.session import get_db
from kindling.models.enums import SlotPosition
from kindling.services.slot_service import (
    create_site,
    create_slot,
    delete_site,
    list_sites,
    site_to_dict,
    slot_to_dict,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateSiteBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=512)


class CreateSlotBody(BaseModel):
    position: SlotPosition
    price_usd_cents_per_day_full_share: int = Field(..., gt=0, description="Price of 100% share for one day")
    max_sponsors: int = Field(1, ge=0, description="0 = unlimited")
    allow_custom_share: bool = False


@router.get("/sites")
def get_sites(db: Session = Depends(get_db), owner: str = Depends(owner_id)) -> list[dict[str, Any]]:
    """Owner's sites, most recent first, with their ad slots."""
    return [site_to_dict(s) for s in list_sites(db, owner)]


@router.post("/sites", status_code=201)
def post_site(body: CreateSiteBody, db: Session = Depends(get_db), owner: str = Depends(owner_id)) -> dict[str, Any]:
    site = create_site(db, owner, body.name, body.url)
    return site_to_dict(site)


@router.delete("/sites/{site_id}")
def remove_site(site_id: int, db: Session = Depends(get_db), owner: str = Depends(owner_id)) -> dict[str, Any]:
    """Delete the site; its slots and their sponsorships cascade."""
    delete_site(db, site_id, owner)
    return {"success": True}


@router.post("/sites/{site_id}/slots", status_code=201)
def post_slot(
    site_id: int,
    body: CreateSlotBody,
    db: Session = Depends(get_db),
    owner: str = Depends(owner_id),
) -> dict[str, Any]:
    slot = create_slot(
        db,
        site_id,
        position=body.position.value,
        price_usd_cents_per_day_full_share=body.price_usd_cents_per_day_full_share,
        max_sponsors=body.max_sponsors,
        allow_custom_share=body.allow_custom_share,
        owner_id=owner,
    )
    return slot_to_dict(slot)
