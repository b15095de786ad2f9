"""
Unit tests for the weighted total and the grade ladder.
"""

import pytest

from clinic_intel.grading import (
    AXES,
    Grade,
    GRADE_ORDER,
    ScoreSet,
    WeightSet,
    WeightValidationError,
    assign_grade,
    calculate_total_score,
    is_lead_grade,
    validate_weights,
)


def test_end_to_end_example_is_grade_a():
    scores = ScoreSet(70, 60, 90, 50, 40)
    weights = WeightSet(25, 20, 30, 15, 10)
    total = calculate_total_score(scores, weights)
    assert total == 67
    assert assign_grade(total, 80) == Grade.A


def test_single_axis_weight_returns_that_score():
    scores = ScoreSet(11, 22, 33, 44, 55)
    for i, axis in enumerate(AXES):
        weights = WeightSet.from_dict({axis: 100})
        assert calculate_total_score(scores, weights) == [11, 22, 33, 44, 55][i]


def test_total_stays_in_range():
    assert calculate_total_score(ScoreSet(0, 0, 0, 0, 0), WeightSet()) == 0
    assert calculate_total_score(ScoreSet(100, 100, 100, 100, 100), WeightSet()) == 100


def test_rounds_half_up():
    # 50*25 + 51*75 = 5075 -> 50.75 -> 51; 50*50 + 51*50 = 5050 -> 50.5 -> 51
    assert calculate_total_score(ScoreSet(50, 51, 0, 0, 0), WeightSet(25, 75, 0, 0, 0)) == 51
    assert calculate_total_score(ScoreSet(50, 51, 0, 0, 0), WeightSet(50, 50, 0, 0, 0)) == 51
    assert calculate_total_score(ScoreSet(1, 2, 0, 0, 0), WeightSet(50, 50, 0, 0, 0)) == 2


@pytest.mark.parametrize("total,expected", [
    (100, Grade.S),
    (80, Grade.S),
    (79, Grade.A),
    (65, Grade.A),
    (64, Grade.B),
    (45, Grade.B),
    (44, Grade.C),
    (0, Grade.C),
])
def test_grade_ladder_boundaries(total, expected):
    assert assign_grade(total, 50) == expected


def test_data_quality_gate_beats_score():
    assert assign_grade(100, 49) == Grade.EXCLUDE
    assert assign_grade(0, 0) == Grade.EXCLUDE
    assert assign_grade(100, 50) == Grade.S


def test_grade_monotonic_in_total():
    previous = 0
    for total in range(101):
        rank = GRADE_ORDER[assign_grade(total, 75)]
        assert rank >= previous
        previous = rank


def test_validate_weights():
    assert validate_weights(WeightSet()) == WeightSet()
    with pytest.raises(WeightValidationError, match="sum to 100"):
        validate_weights(WeightSet(25, 20, 30, 15, 11))
    with pytest.raises(WeightValidationError, match="non-negative"):
        validate_weights(WeightSet(-10, 40, 40, 20, 10))


def test_is_lead_grade():
    assert is_lead_grade("S")
    assert is_lead_grade(Grade.A)
    assert not is_lead_grade("B")
    assert not is_lead_grade("EXCLUDE")
    assert not is_lead_grade("Z")
    assert not is_lead_grade(None)
