"""
Unit tests for haversine distance and competitor analysis.

Fixtures build clinics at exact distances north of the target so radius
boundaries can be asserted.
"""

import sqlite3

from clinic_intel.competitor import find_competitors, is_modern, summarize_competitors
from clinic_intel.geo import haversine_distance, haversine_meters, offset_north

TARGET = (37.5000, 127.0300)


def _add(store, make_entity, entity_id, meters, **overrides):
    lat, lng = offset_north(TARGET[0], TARGET[1], meters)
    return store.upsert_entity(make_entity(id=entity_id, name=entity_id, latitude=lat, longitude=lng, **overrides))


def test_haversine_symmetric_and_zero():
    a, b = (37.4979, 127.0276), (37.5172, 127.0473)
    assert haversine_distance(*a, *b) == haversine_distance(*b, *a)
    assert haversine_distance(*a, *a) == 0
    assert 2.5 < haversine_distance(*a, *b) < 3.0


def test_offset_north_is_exact():
    lat, lng = offset_north(*TARGET, 1000)
    assert abs(haversine_meters(*TARGET, lat, lng) - 1000) < 1e-6


def test_radius_boundary(store, make_entity):
    store.upsert_entity(make_entity(id="target"))
    _add(store, make_entity, "at-1000m", 1000)

    within_1km = find_competitors("target", radius_km=1)
    assert [c.entity_id for c in within_1km] == ["at-1000m"]
    assert within_1km[0].distance_meters == 1000

    assert find_competitors("target", radius_km=0.5) == []


def test_sorted_by_distance_and_same_district_only(store, make_entity):
    store.upsert_entity(make_entity(id="target"))
    _add(store, make_entity, "far", 800)
    _add(store, make_entity, "near", 120.4)
    _add(store, make_entity, "other-district", 50, district="서초구")
    _add(store, make_entity, "closed", 60, status="closed")

    competitors = find_competitors("target", radius_km=1)
    assert [c.entity_id for c in competitors] == ["near", "far"]
    assert competitors[0].distance_meters == 120


def test_modern_equipment_and_menu_counts(store, make_entity):
    store.upsert_entity(make_entity(id="target"))
    _add(store, make_entity, "modern", 300)
    _add(store, make_entity, "old", 400)
    _add(store, make_entity, "unknown-year", 500)

    store.insert_equipment("modern", "써마지", "rf", estimated_year=2024)
    store.insert_equipment("old", "써마지", "rf", estimated_year=2018)
    store.insert_equipment("unknown-year", "인모드", "rf", estimated_year=None)
    store.insert_equipment("old", "울쎄라", "hifu", estimated_year=2025)
    store.insert_treatment("modern", "써마지 FLX 600샷", "tightening")
    store.insert_treatment("modern", "울쎄라 300샷", "lifting")

    by_id = {c.entity_id: c for c in find_competitors("target", radius_km=1, current_year=2026)}
    assert by_id["modern"].has_modern_equipment
    assert by_id["modern"].modern_equipment_name == "써마지"
    assert by_id["modern"].menu_item_count == 2
    # a recent device of an untracked category does not count
    assert not by_id["old"].has_modern_equipment
    assert not by_id["unknown-year"].has_modern_equipment
    assert by_id["old"].menu_item_count == 0


def test_is_modern_window():
    assert is_modern(2023, 2026)
    assert not is_modern(2022, 2026)
    assert not is_modern(None, 2026)


def test_missing_location_returns_empty(store, make_entity):
    store.upsert_entity(make_entity(id="no-coords", latitude=None, longitude=None))
    store.upsert_entity(make_entity(id="no-district", district=None))
    assert find_competitors("no-coords") == []
    assert find_competitors("no-district") == []
    assert find_competitors("does-not-exist") == []


class _FlakyStore:
    """District query works; batched lookups fail."""

    def get_entity_location(self, entity_id):
        return {"district": "강남구", "lat": TARGET[0], "lon": TARGET[1]}

    def list_active_entities_in_district(self, district, exclude_id):
        lat, lng = offset_north(*TARGET, 250)
        return [{"id": "c1", "name": "C1", "latitude": lat, "longitude": lng, "district": district}]

    def get_tracked_equipment(self, entity_ids, category):
        raise sqlite3.OperationalError("database is locked")

    def get_menu_counts(self, entity_ids):
        raise sqlite3.OperationalError("database is locked")


def test_lookup_failures_degrade_to_defaults():
    competitors = find_competitors("target", radius_km=1, store=_FlakyStore())
    assert len(competitors) == 1
    assert competitors[0].distance_meters == 250
    assert not competitors[0].has_modern_equipment
    assert competitors[0].menu_item_count == 0


def test_entity_dict_skips_location_lookup():
    entity = {"id": "target", "latitude": TARGET[0], "longitude": TARGET[1], "district": "강남구"}
    competitors = find_competitors(entity, store=_FlakyStore(), radius_km=0.2)
    assert competitors == []


def test_summary():
    assert summarize_competitors([])["count"] == 0

    competitors = find_competitors("target", radius_km=1, store=_FlakyStore())
    summary = summarize_competitors(competitors)
    assert summary["count"] == 1
    assert summary["modern_penetration"] == 0.0
    assert summary["nearest"]["entity_id"] == "c1"
