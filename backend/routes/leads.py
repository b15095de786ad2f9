"""
API routes for leads.
"""

from fastapi import APIRouter, HTTPException

from backend.models.schemas import LeadFromMatchRequest, LeadGenerationResponse
from clinic_intel import db
from clinic_intel.leads import try_create_lead

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("/from-match", response_model=LeadGenerationResponse)
def lead_from_match(req: LeadFromMatchRequest):
    """Create a lead from a match score when it qualifies (S/A grade, contact email, no existing lead)."""
    return try_create_lead(req.model_dump()).to_dict()


@router.get("/{lead_id}")
def get_lead(lead_id: str):
    lead = db.get_lead(lead_id)
    if not lead:
        raise HTTPException(404, "Lead not found")
    lead["activities"] = db.list_lead_activities(lead_id)
    return lead
