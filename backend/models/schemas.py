"""
Pydantic schemas for the clinic sales-intelligence API.
"""

from typing import Optional, List, Any, Dict
from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

class NormalizeRequest(BaseModel):
    """Request body for POST /normalize."""

    items: List[str]


class NormalizedItemOut(BaseModel):
    original: str
    standard_name: Optional[str] = None
    category: Optional[str] = None
    base_unit_type: Optional[str] = None
    matched_by: Optional[str] = None


class NormalizeResponse(BaseModel):
    normalized: List[NormalizedItemOut]
    unmatched: List[str]
    match_rate: float
    degraded: List[Dict[str, Any]] = []


class DecomposeRequest(BaseModel):
    """Request body for POST /decompose."""

    items: List[str]
    origin_entity_id: Optional[str] = None


class DecompositionOut(BaseModel):
    original: str
    decomposed: Optional[List[str]] = None
    source: Optional[str] = None
    confidence: float = 0
    scoring_note: Optional[str] = None


class DecomposeResponse(BaseModel):
    results: List[DecompositionOut]
    new_candidates: List[str]
    degraded: List[Dict[str, Any]] = []


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class Scores(BaseModel):
    equipment_synergy: int = 0
    equipment_age: int = 0
    revenue_impact: int = 0
    competitive_edge: int = 0
    purchase_readiness: int = 0


class Weights(BaseModel):
    equipment_synergy: int
    equipment_age: int
    revenue_impact: int
    competitive_edge: int
    purchase_readiness: int


class ScoringRunRequest(BaseModel):
    """Request body for POST /scoring/run. Either entity_id or entity_ids."""

    entity_id: Optional[str] = None
    entity_ids: Optional[List[str]] = None
    product_id: Optional[str] = None


class GradeRequest(BaseModel):
    """Request body for POST /scoring/grade."""

    scores: Scores
    data_quality: int
    weights: Optional[Weights] = None


class GradeResponse(BaseModel):
    total_score: int
    grade: str
    weight_version: str


class WeightsResponse(BaseModel):
    version: str
    weights: Weights


class UpdateWeightsRequest(BaseModel):
    """Request body for PUT /scoring/weights."""

    weights: Weights
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Signals / leads
# ---------------------------------------------------------------------------

class ChangeIn(BaseModel):
    entity_id: str
    item_type: str
    change_type: str
    item_name: str
    standard_name: Optional[str] = None
    id: Optional[str] = None


class RuleIn(BaseModel):
    trigger: str
    match_keywords: List[str]
    priority: str
    title_template: str
    description_template: str = ""
    related_angle: str = ""


class ClassifyRequest(BaseModel):
    """Request body for POST /signals/classify."""

    product_id: str
    changes: List[ChangeIn]
    rules: List[RuleIn]


class SignalOut(BaseModel):
    entity_id: str
    product_id: str
    signal_type: str
    priority: str
    title: str
    description: str
    related_angle: str
    source_change_id: Optional[str] = None
    status: str
    detected_at: str


class ClassifyResponse(BaseModel):
    signals: List[SignalOut]
    persisted: bool
    error: Optional[str] = None


class LeadFromMatchRequest(BaseModel):
    """Request body for POST /leads/from-match."""

    entity_id: str
    product_id: str
    grade: str
    id: Optional[str] = None
    total_score: Optional[int] = None
    top_pitch_points: List[str] = []


class LeadGenerationResponse(BaseModel):
    created: bool
    lead_id: Optional[str] = None
    reason: Optional[str] = None
