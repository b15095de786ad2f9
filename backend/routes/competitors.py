"""
API routes for competitor analysis.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException

from clinic_intel import db
from clinic_intel.competitor import find_competitors, summarize_competitors

router = APIRouter(prefix="/competitors", tags=["competitors"])


@router.get("/{entity_id}")
def get_competitors(entity_id: str, radius_km: Optional[float] = None):
    """Same-district competitors within radius_km, nearest first, plus a summary."""
    if not db.get_entity(entity_id):
        raise HTTPException(404, "Entity not found")
    if radius_km is not None and radius_km <= 0:
        raise HTTPException(400, "radius_km must be positive")

    competitors = find_competitors(entity_id, radius_km=radius_km)
    return {
        "entity_id": entity_id,
        "competitors": [c.to_dict() for c in competitors],
        "summary": summarize_competitors(competitors),
    }
