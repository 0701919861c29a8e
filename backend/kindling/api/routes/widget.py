"""
Public ad serving for the embeddable widget. Never cached; never serves a substitute ad.
"""
from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from kindling.db.session import get_db
from kindling.services.ad_selector import select_ad

router = APIRouter()


@router.get("/widget")
def serve_widget(
    response: Response,
    slot: int = Query(..., description="Ad slot id"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """One live sponsor for the slot, picked with probability proportional to its share."""
    response.headers["Cache-Control"] = "no-store"
    selected = select_ad(db, slot)
    if selected is None:
        return {"has_active_sponsors": False, "message": "No active sponsors for this slot"}
    return {"has_active_sponsors": True, "sponsorship": selected.to_dict()}
