"""
Scoring runner: the full pipeline for one clinic.

entity -> equipment / treatments -> competitors -> five axis scores ->
total + grade -> stored match score -> lead (S/A only, when a product is given).

Batches run entities on a thread pool; every DB helper opens its own connection.
"""

import os
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from . import db
from .calculator import calculate_axis_scores
from .competitor import find_competitors, summarize_competitors
from .grading import AXES, ScoreSet, WeightSet, calculate_total_score, assign_grade, is_lead_grade
from .leads import try_create_lead
from .weights import get_active_weights

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
MAX_CONCURRENCY = 5
MAX_PITCH_POINTS = 2

AXIS_LABELS = {
    "equipment_synergy": "complements existing equipment",
    "equipment_age": "RF equipment due for replacement",
    "revenue_impact": "strong lifting revenue upside",
    "competitive_edge": "differentiation in the local market",
    "purchase_readiness": "ready to invest now",
}


@dataclass
class ScoringRunResult:
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {"success": self.success, "data": self.data, "error": self.error}


def get_concurrency() -> int:
    """SCORING_CONCURRENCY, clamped to 1..5."""
    try:
        n = int(os.getenv("SCORING_CONCURRENCY") or DEFAULT_CONCURRENCY)
    except ValueError:
        n = DEFAULT_CONCURRENCY
    return max(1, min(n, MAX_CONCURRENCY))


def top_pitch_points(scores: ScoreSet, weights: WeightSet, max_points: int = MAX_PITCH_POINTS) -> List[str]:
    """Labels of the axes contributing most to the weighted total."""
    contributions = [
        (getattr(scores, axis) * getattr(weights, axis), axis)
        for axis in AXES
        if getattr(scores, axis) > 0 and getattr(weights, axis) > 0
    ]
    # stable on ties: AXES order
    contributions.sort(key=lambda c: -c[0])
    return [AXIS_LABELS[axis] for _, axis in contributions[:max_points]]


def run_single_scoring(
    entity_id: str,
    product_id: Optional[str] = None,
    weights: Optional[WeightSet] = None,
    version: Optional[str] = None,
    current_year: Optional[int] = None,
) -> ScoringRunResult:
    """
    Score one clinic and persist the result.

    Args:
        entity_id: Clinic to score
        product_id: Product being sold; leads are only created when given
        weights: Weight set to use (default: the active set)
        version: Weight version recorded with the score
        current_year: Override for the year used by age-based rules

    Returns:
        ScoringRunResult; success=False when the entity is unknown or the score
        cannot be stored
    """
    entity = db.get_entity(entity_id)
    if not entity:
        return ScoringRunResult(success=False, error=f"Entity not found: {entity_id}")

    if weights is None:
        weights, active_version = get_active_weights()
        version = version or active_version

    equipments = db.get_entity_equipments(entity_id)
    treatments = db.get_entity_treatments(entity_id)
    competitors = find_competitors(entity, current_year=current_year)

    axis_scores = calculate_axis_scores(entity, equipments, treatments, competitors, current_year)
    scores = ScoreSet.from_dict(axis_scores)
    total = calculate_total_score(scores, weights)
    grade = assign_grade(total, entity.get("data_quality_score") or 0)
    pitch_points = top_pitch_points(scores, weights)

    row = {
        "entity_id": entity_id,
        "product_id": product_id,
        "weight_version": version,
        "scores": scores.to_dict(),
        "total_score": total,
        "grade": grade.value,
        "top_pitch_points": pitch_points,
        "competitors": [c.to_dict() for c in competitors],
    }
    try:
        row["id"] = db.insert_match_score(row)
    except Exception as e:
        logger.error("Saving match score failed for %s: %s", entity_id, e)
        return ScoringRunResult(success=False, error=f"Saving match score failed: {e}")

    lead = None
    if product_id and is_lead_grade(grade):
        lead = try_create_lead(row).to_dict()

    data = {
        "entity_id": entity_id,
        "match_score_id": row["id"],
        "scores": scores.to_dict(),
        "total_score": total,
        "grade": grade.value,
        "weight_version": version,
        "top_pitch_points": pitch_points,
        "competitors": summarize_competitors(competitors),
        "lead": lead,
    }
    logger.info("Scored %s: %s (%s)", entity_id, total, grade.value)
    return ScoringRunResult(success=True, data=data)


def run_batch_scoring(
    entity_ids: List[str],
    product_id: Optional[str] = None,
    weights: Optional[WeightSet] = None,
    concurrency: Optional[int] = None,
    current_year: Optional[int] = None,
) -> List[ScoringRunResult]:
    """
    Score many clinics concurrently; results come back in input order.

    One clinic failing never aborts the batch: unexpected errors become
    success=False results.
    """
    if not entity_ids:
        return []

    version = None
    if weights is None:
        weights, version = get_active_weights()

    workers = max(1, min(concurrency or get_concurrency(), MAX_CONCURRENCY))

    def _run_one(entity_id: str) -> ScoringRunResult:
        try:
            return run_single_scoring(entity_id, product_id, weights, version, current_year)
        except Exception as e:
            logger.warning("Scoring failed for %s: %s", entity_id, e)
            return ScoringRunResult(success=False, error=str(e))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(_run_one, entity_ids))

    ok = sum(1 for r in results if r.success)
    logger.info("Batch scoring done: %s/%s succeeded", ok, len(results))
    return results
