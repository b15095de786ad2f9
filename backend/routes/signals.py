"""
API routes for sales signal classification.
"""

from fastapi import APIRouter, HTTPException

from backend.models.schemas import ClassifyRequest, ClassifyResponse
from clinic_intel.changes import CHANGE_TYPES, ITEM_TYPES
from clinic_intel.signals import PRIORITIES, classify_signals

router = APIRouter(prefix="/signals", tags=["signals"])


@router.post("/classify", response_model=ClassifyResponse)
def classify(req: ClassifyRequest):
    """Match changes against the product's rules; signals are stored best-effort."""
    for change in req.changes:
        if change.item_type not in ITEM_TYPES or change.change_type not in CHANGE_TYPES:
            raise HTTPException(400, f"Invalid change: {change.item_type}/{change.change_type}")
    for rule in req.rules:
        if rule.priority not in PRIORITIES:
            raise HTTPException(400, f"priority must be one of: {', '.join(PRIORITIES)}")

    result = classify_signals(
        [c.model_dump() for c in req.changes],
        req.product_id,
        [r.model_dump() for r in req.rules],
    )
    return ClassifyResponse(
        signals=[s.to_dict() for s in result.signals],
        persisted=not result.degraded,
        error=getattr(result.persistence, "error", None),
    )
