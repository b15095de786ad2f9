"""
API routes for keyword normalization and compound decomposition.
"""

from fastapi import APIRouter

from backend.models.schemas import (
    NormalizeRequest,
    NormalizeResponse,
    DecomposeRequest,
    DecomposeResponse,
)
from clinic_intel.decompose import Decomposer
from clinic_intel.dictionary import keyword_provider
from clinic_intel.normalize import normalize_all

router = APIRouter(tags=["keywords"])


@router.post("/normalize", response_model=NormalizeResponse)
def normalize(req: NormalizeRequest):
    """Resolve raw equipment / treatment names against the stored dictionary (seed fallback)."""
    return normalize_all(req.items, provider=keyword_provider()).to_dict()


@router.post("/decompose", response_model=DecomposeResponse)
def decompose(req: DecomposeRequest):
    """Decompose compound terms; unresolved compound-like terms become candidates."""
    return Decomposer().decompose_all(req.items, origin_entity_id=req.origin_entity_id).to_dict()
