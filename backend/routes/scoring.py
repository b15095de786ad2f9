"""
API routes for scoring runs, ad-hoc grading and weight configuration.
"""

import logging

from fastapi import APIRouter, Request, HTTPException

from backend.models.schemas import (
    ScoringRunRequest,
    GradeRequest,
    GradeResponse,
    WeightsResponse,
    UpdateWeightsRequest,
)
from clinic_intel.grading import (
    ScoreSet,
    WeightSet,
    WeightValidationError,
    calculate_total_score,
    assign_grade,
    validate_weights,
)
from clinic_intel.runner import run_single_scoring, run_batch_scoring
from clinic_intel.weights import get_active_weights, create_weight_version

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scoring", tags=["scoring"])


@router.post("/run")
def run_scoring(req: ScoringRunRequest):
    """Score one entity (entity_id) or a batch (entity_ids)."""
    if req.entity_ids:
        results = run_batch_scoring(req.entity_ids, product_id=req.product_id)
        return {
            "total": len(results),
            "succeeded": sum(1 for r in results if r.success),
            "results": [r.to_dict() for r in results],
        }

    if not req.entity_id:
        raise HTTPException(400, "entity_id or entity_ids is required")

    result = run_single_scoring(req.entity_id, product_id=req.product_id)
    if not result.success:
        raise HTTPException(404, result.error or "Scoring failed")
    return result.data


@router.post("/grade", response_model=GradeResponse)
def grade(req: GradeRequest):
    """Total and grade for supplied axis scores, without touching stored entities."""
    if req.weights is not None:
        weights = WeightSet.from_dict(req.weights.model_dump())
        try:
            validate_weights(weights)
        except WeightValidationError as e:
            raise HTTPException(400, str(e))
        version = "request"
    else:
        weights, version = get_active_weights()

    scores = ScoreSet.from_dict(req.scores.model_dump())
    total = calculate_total_score(scores, weights)
    return GradeResponse(
        total_score=total,
        grade=assign_grade(total, req.data_quality).value,
        weight_version=version,
    )


@router.get("/weights", response_model=WeightsResponse)
def get_weights():
    """Currently active weight set."""
    weights, version = get_active_weights()
    return {"version": version, "weights": weights.to_dict()}


@router.put("/weights", response_model=WeightsResponse)
def update_weights(req: UpdateWeightsRequest, request: Request):
    """Activate a new weight set. Rejected with 400 unless the axes sum to 100."""
    weights = WeightSet.from_dict(req.weights.model_dump())
    try:
        version = create_weight_version(weights, notes=req.notes)
    except WeightValidationError as e:
        raise HTTPException(400, str(e))

    actor = getattr(request.state, "actor", "system")
    logger.info("Weights %s activated by %s", version, actor)
    return {"version": version, "weights": weights.to_dict()}
