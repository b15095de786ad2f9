"""
Unit tests for weight configuration.
"""

from datetime import datetime

import pytest

from clinic_intel import weights as weights_mod
from clinic_intel.grading import WeightSet, WeightValidationError
from clinic_intel.weights import get_active_weights, create_weight_version


def test_default_when_nothing_active(store):
    weights, version = get_active_weights()
    assert version == "default"
    assert weights.to_dict() == {
        "equipment_synergy": 25,
        "equipment_age": 20,
        "revenue_impact": 30,
        "competitive_edge": 15,
        "purchase_readiness": 10,
    }


def test_default_when_store_unreadable(monkeypatch):
    def _boom():
        raise RuntimeError("store down")

    monkeypatch.setattr(weights_mod.db, "get_active_weights_row", _boom)
    weights, version = get_active_weights()
    assert version == "default"
    assert weights == WeightSet()


def test_create_activates_new_version(store):
    first = create_weight_version(WeightSet(30, 20, 30, 10, 10), notes="more synergy")
    second = create_weight_version(WeightSet(20, 20, 40, 10, 10))

    assert first != second
    assert second.startswith(first)
    weights, version = get_active_weights()
    assert version == second
    assert weights == WeightSet(20, 20, 40, 10, 10)


def test_invalid_weights_rejected_and_previous_kept(store):
    version = create_weight_version(WeightSet(30, 20, 30, 10, 10))
    with pytest.raises(WeightValidationError):
        create_weight_version(WeightSet(30, 30, 30, 10, 10))
    assert get_active_weights()[1] == version


def test_version_format(store):
    assert weights_mod._next_version(datetime(2026, 3, 7)) == "v2026.03.07"
