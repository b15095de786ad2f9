"""
Unit tests for crawl-to-crawl change detection.
"""

import sqlite3

from clinic_intel import db
from clinic_intel.changes import detect_equipment_changes


def _snapshot(equipments, treatments=None):
    return {"id": "snap-1", "equipments_found": equipments, "treatments_found": treatments or []}


def test_added_and_removed(store):
    changes = detect_equipment_changes(
        "clinic-001",
        _snapshot(["써마지 FLX", "울쎄라"], ["보톡스"]),
        ["써마지 flx", "인모드 FX"],
        ["보톡스", "리쥬란힐러"],
        curr_snapshot_id="snap-2",
    )
    summary = [(c.item_type, c.change_type, c.item_name, c.standard_name) for c in changes]
    assert summary == [
        ("EQUIPMENT", "ADDED", "인모드 FX", "인모드"),
        ("EQUIPMENT", "REMOVED", "울쎄라", "울쎄라"),
        ("TREATMENT", "ADDED", "리쥬란힐러", "리쥬란"),
    ]
    assert all(c.id for c in changes)
    assert changes[0].prev_snapshot_id == "snap-1"
    assert changes[0].curr_snapshot_id == "snap-2"


def test_first_crawl_has_only_additions():
    changes = detect_equipment_changes("clinic-001", None, ["써마지"], [], persist=False)
    assert [(c.change_type, c.item_name) for c in changes] == [("ADDED", "써마지")]
    assert changes[0].id is None


def test_unknown_name_keeps_raw_standard_name():
    changes = detect_equipment_changes("clinic-001", _snapshot([]), ["클라리티2"], [], persist=False)
    assert changes[0].standard_name == "클라리티2"

    changes = detect_equipment_changes("clinic-001", _snapshot([]), ["thermage"], [], normalize=False, persist=False)
    assert changes[0].standard_name == "thermage"


def test_persist_failure_leaves_ids_empty(monkeypatch):
    def _broken(rows):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db, "insert_equipment_changes", _broken)
    changes = detect_equipment_changes("clinic-001", _snapshot(["써마지"]), [], [])
    assert len(changes) == 1
    assert changes[0].id is None
