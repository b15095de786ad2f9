"""
Composite scoring and grading.

Five axis scores (0-100) are combined with a weight set that sums to 100 into a
single 0-100 total, then mapped onto a grade ladder. Entities with too little
underlying data are graded EXCLUDE whatever their score.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Union

AXES = (
    "equipment_synergy",
    "equipment_age",
    "revenue_impact",
    "competitive_edge",
    "purchase_readiness",
)

# Grade ladder (fixed)
DATA_QUALITY_MIN = 50
GRADE_S_MIN = 80
GRADE_A_MIN = 65
GRADE_B_MIN = 45

WEIGHT_TOTAL = 100


class Grade(str, Enum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    EXCLUDE = "EXCLUDE"


# Sales priority, highest first. EXCLUDE is not evaluable and sits outside the order.
GRADE_ORDER = {Grade.S: 4, Grade.A: 3, Grade.B: 2, Grade.C: 1}

LEAD_GRADES = (Grade.S, Grade.A)


class WeightValidationError(ValueError):
    """Weight set rejected at activation time."""


@dataclass
class ScoreSet:
    equipment_synergy: int = 0
    equipment_age: int = 0
    revenue_impact: int = 0
    competitive_edge: int = 0
    purchase_readiness: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> "ScoreSet":
        return cls(**{axis: int(data.get(axis, 0)) for axis in AXES})

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class WeightSet:
    equipment_synergy: int = 25
    equipment_age: int = 20
    revenue_impact: int = 30
    competitive_edge: int = 15
    purchase_readiness: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> "WeightSet":
        return cls(**{axis: int(data.get(axis, 0)) for axis in AXES})

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def total(self) -> int:
        return sum(getattr(self, axis) for axis in AXES)


DEFAULT_WEIGHTS = WeightSet()


def validate_weights(weights: WeightSet) -> WeightSet:
    """
    Reject weight sets that cannot be activated.

    Raises:
        WeightValidationError: an axis is negative or the axes do not sum to 100
    """
    for axis in AXES:
        value = getattr(weights, axis)
        if value < 0:
            raise WeightValidationError(f"Weight {axis} must be non-negative, got {value}")
    total = weights.total()
    if total != WEIGHT_TOTAL:
        raise WeightValidationError(f"Weights must sum to {WEIGHT_TOTAL}, got {total}")
    return weights


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_total_score(scores: ScoreSet, weights: WeightSet) -> int:
    """
    Weighted total: sum(score_i * weight_i) / 100, rounded half-up.

    Weights are assumed valid (checked when a weight set is activated).
    """
    total = sum(getattr(scores, axis) * getattr(weights, axis) for axis in AXES) / WEIGHT_TOTAL
    return _round_half_up(total)


def assign_grade(total_score: Union[int, float], data_quality: Union[int, float]) -> Grade:
    """
    Grade ladder:
        data_quality < 50 -> EXCLUDE (regardless of score)
        total >= 80       -> S
        total >= 65       -> A
        total >= 45       -> B
        else              -> C
    """
    if data_quality < DATA_QUALITY_MIN:
        return Grade.EXCLUDE
    if total_score >= GRADE_S_MIN:
        return Grade.S
    if total_score >= GRADE_A_MIN:
        return Grade.A
    if total_score >= GRADE_B_MIN:
        return Grade.B
    return Grade.C


def is_lead_grade(grade: Union[Grade, str, None]) -> bool:
    if grade is None:
        return False
    try:
        return Grade(grade) in LEAD_GRADES
    except ValueError:
        return False
