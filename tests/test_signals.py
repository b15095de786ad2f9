"""
Unit tests for sales signal classification.

Rules mirror a typical RF product configuration:
  equipment_removed on competitor RF/HIFU devices -> HIGH (bridge care pitch)
  equipment_added on 써마지 -> MEDIUM
"""

import sqlite3

from clinic_intel.changes import EquipmentChange
from clinic_intel.signals import (
    SalesSignalRule,
    classify_signals,
    matches_keyword,
    match_signals,
    trigger_to_change_type,
)

RULES = [
    {
        "trigger": "equipment_removed",
        "match_keywords": ["써마지", "울쎄라", "인모드", "슈링크"],
        "priority": "HIGH",
        "title_template": "{{item_name}} removal detected",
        "description_template": "Clinic dropped {{item_name}}; pitch TORR RF as the replacement ({{item_name}} patients need a bridge).",
        "related_angle": "bridge_care",
    },
    {
        "trigger": "equipment_added",
        "match_keywords": ["써마지"],
        "priority": "MEDIUM",
        "title_template": "{{item_name}} newly installed",
        "description_template": "",
        "related_angle": "combo_package",
    },
]


def _change(change_type, item_name, standard_name=None, item_type="EQUIPMENT", change_id="chg-1"):
    return EquipmentChange(
        entity_id="clinic-001",
        item_type=item_type,
        change_type=change_type,
        item_name=item_name,
        standard_name=standard_name or item_name,
        id=change_id,
    )


def test_added_thermage_flx_produces_one_signal():
    rules = [{"trigger": "equipment_added", "match_keywords": ["써마지"], "priority": "MEDIUM",
              "title_template": "New: {{item_name}}"}]
    signals = match_signals([_change("ADDED", "써마지 FLX")], "torr-rf", rules)

    assert len(signals) == 1
    signal = signals[0]
    assert signal.title == "New: 써마지 FLX"
    assert signal.signal_type == "EQUIPMENT_ADDED"
    assert signal.status == "NEW"
    assert signal.product_id == "torr-rf"
    assert signal.source_change_id == "chg-1"


def test_every_placeholder_replaced():
    signals = match_signals([_change("REMOVED", "울쎄라", change_id="chg-9")], "torr-rf", RULES)
    assert len(signals) == 1
    assert "{{item_name}}" not in signals[0].description
    assert signals[0].description.count("울쎄라") == 2
    assert signals[0].priority == "HIGH"
    assert signals[0].related_angle == "bridge_care"


def test_keyword_match_ignores_whitespace_and_case():
    assert matches_keyword("써마지FLX", "써마지 FLX")
    assert matches_keyword("thermage", "Thermage CPT")
    assert not matches_keyword("", "anything")
    assert not matches_keyword("인모드", None)


def test_matches_on_standard_name_when_raw_name_differs():
    change = _change("REMOVED", "Thermage CPT", standard_name="써마지")
    signals = match_signals([change], "torr-rf", RULES)
    assert [s.title for s in signals] == ["Thermage CPT removal detected"]


def test_change_type_and_item_type_must_match_trigger():
    changes = [
        _change("ADDED", "인모드"),
        _change("REMOVED", "써마지", item_type="TREATMENT"),
    ]
    assert match_signals(changes, "torr-rf", RULES) == []


def test_one_change_many_rules():
    rules = RULES + [{"trigger": "equipment_added", "match_keywords": ["FLX"], "priority": "LOW",
                      "title_template": "FLX tip: {{item_name}}"}]
    signals = match_signals([_change("ADDED", "써마지 FLX")], "torr-rf", rules)
    assert [s.priority for s in signals] == ["MEDIUM", "LOW"]


def test_unknown_trigger_skipped():
    rules = [{"trigger": "price_changed", "match_keywords": ["써마지"], "priority": "LOW",
              "title_template": "x"}]
    assert match_signals([_change("ADDED", "써마지")], "torr-rf", rules) == []
    assert trigger_to_change_type("price_changed") is None
    assert trigger_to_change_type("treatment_added") == ("ADDED", "TREATMENT")


def test_rule_objects_and_dict_changes_accepted():
    rule = SalesSignalRule.from_dict(RULES[1])
    change = {"entity_id": "clinic-002", "item_type": "EQUIPMENT", "change_type": "ADDED",
              "item_name": "써마지", "standard_name": "써마지"}
    signals = match_signals([change], "torr-rf", [rule])
    assert signals[0].entity_id == "clinic-002"
    assert signals[0].source_change_id is None


def test_classify_persists_signals(store):
    result = classify_signals([_change("REMOVED", "슈링크 유니버스")], "torr-rf", RULES)
    assert not result.degraded
    assert result.persistence.value == 1

    rows = store.list_signals(entity_id="clinic-001")
    assert len(rows) == 1
    assert rows[0]["title"] == "슈링크 유니버스 removal detected"
    assert rows[0]["status"] == "NEW"


def test_persistence_failure_still_returns_signals():
    def _broken(rows):
        raise sqlite3.OperationalError("database is locked")

    result = classify_signals([_change("REMOVED", "인모드 FX")], "torr-rf", RULES, persist=_broken)
    assert len(result.signals) == 1
    assert result.degraded
    assert result.persistence.operation == "insert_signals"


def test_no_persistence_call_without_signals():
    calls = []
    result = classify_signals([], "torr-rf", RULES, persist=calls.append)
    assert result.signals == []
    assert calls == []


def test_persist_false_skips_storage():
    result = classify_signals([_change("ADDED", "써마지")], "torr-rf", RULES, persist=False)
    assert len(result.signals) == 1
    assert not result.degraded
