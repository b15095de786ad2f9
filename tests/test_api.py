"""
HTTP tests for the FastAPI backend.
"""

import pytest
from fastapi.testclient import TestClient

from backend.main import app
from clinic_intel.geo import offset_north


@pytest.fixture
def client(store):
    with TestClient(app) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_normalize(client):
    resp = client.post("/normalize", json={"items": ["써마지 FLX", "thermage", "레이저토닝", " "]})
    assert resp.status_code == 200
    body = resp.json()
    assert [n["standard_name"] for n in body["normalized"]] == ["써마지", "써마지", None]
    assert body["unmatched"] == ["레이저토닝"]
    assert abs(body["match_rate"] - 2 / 3) < 1e-9


def test_decompose_registers_candidate(client, store):
    resp = client.post("/decompose", json={"items": ["울써마지", "쥬모"], "origin_entity_id": "clinic-001"})
    body = resp.json()
    assert [r["source"] for r in body["results"]] == ["dictionary", "regex_candidate"]
    assert body["new_candidates"] == ["쥬모"]
    assert body["degraded"] == []
    assert store.get_candidate("쥬모")["discovery_count"] == 1


def test_grade_endpoint(client):
    resp = client.post("/scoring/grade", json={
        "scores": {"equipment_synergy": 70, "equipment_age": 60, "revenue_impact": 90,
                   "competitive_edge": 50, "purchase_readiness": 40},
        "data_quality": 80,
    })
    assert resp.json() == {"total_score": 67, "grade": "A", "weight_version": "default"}


def test_grade_endpoint_rejects_bad_weights(client):
    resp = client.post("/scoring/grade", json={
        "scores": {"equipment_synergy": 70},
        "data_quality": 80,
        "weights": {"equipment_synergy": 50, "equipment_age": 50, "revenue_impact": 50,
                    "competitive_edge": 0, "purchase_readiness": 0},
    })
    assert resp.status_code == 400


def test_weights_get_and_put(client):
    assert client.get("/scoring/weights").json()["version"] == "default"

    bad = client.put("/scoring/weights", json={"weights": {
        "equipment_synergy": 30, "equipment_age": 20, "revenue_impact": 30,
        "competitive_edge": 15, "purchase_readiness": 10}})
    assert bad.status_code == 400

    good = client.put("/scoring/weights", json={"weights": {
        "equipment_synergy": 30, "equipment_age": 20, "revenue_impact": 25,
        "competitive_edge": 15, "purchase_readiness": 10}, "notes": "synergy up"},
        headers={"X-Actor": "analyst"})
    assert good.status_code == 200
    version = good.json()["version"]
    current = client.get("/scoring/weights").json()
    assert current["version"] == version
    assert current["weights"]["revenue_impact"] == 25


def test_scoring_run_and_lead(client, store, make_entity):
    store.upsert_entity(make_entity())
    store.insert_treatment("clinic-001", "울쎄라 300샷", "lifting", price_min=400000)

    resp = client.post("/scoring/run", json={"entity_id": "clinic-001", "product_id": "torr-rf"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["grade"] in ("S", "A", "B", "C")
    assert store.get_match_score(body["match_score_id"]) is not None

    assert client.post("/scoring/run", json={"entity_id": "missing"}).status_code == 404
    assert client.post("/scoring/run", json={}).status_code == 400


def test_scoring_run_batch(client, store, make_entity):
    store.upsert_entity(make_entity(id="a"))
    store.upsert_entity(make_entity(id="b", latitude=35.1, longitude=129.0))
    body = client.post("/scoring/run", json={"entity_ids": ["a", "b", "zzz"]}).json()
    assert body["total"] == 3
    assert body["succeeded"] == 2


def test_competitors(client, store, make_entity):
    store.upsert_entity(make_entity(id="target"))
    lat, lng = offset_north(37.5, 127.03, 400)
    store.upsert_entity(make_entity(id="nearby", name="Nearby Clinic", latitude=lat, longitude=lng))

    body = client.get("/competitors/target", params={"radius_km": 1}).json()
    assert [c["entity_id"] for c in body["competitors"]] == ["nearby"]
    assert body["competitors"][0]["distance_meters"] == 400
    assert body["summary"]["count"] == 1

    assert client.get("/competitors/missing").status_code == 404
    assert client.get("/competitors/target", params={"radius_km": 0}).status_code == 400


def test_classify_signals(client, store):
    resp = client.post("/signals/classify", json={
        "product_id": "torr-rf",
        "changes": [{"entity_id": "clinic-001", "item_type": "EQUIPMENT", "change_type": "ADDED",
                     "item_name": "써마지 FLX", "standard_name": "써마지"}],
        "rules": [{"trigger": "equipment_added", "match_keywords": ["써마지"], "priority": "HIGH",
                   "title_template": "{{item_name}} installed"}],
    })
    body = resp.json()
    assert resp.status_code == 200
    assert body["persisted"] is True
    assert [s["title"] for s in body["signals"]] == ["써마지 FLX installed"]
    assert len(store.list_signals(product_id="torr-rf")) == 1


def test_classify_rejects_bad_priority(client):
    resp = client.post("/signals/classify", json={
        "product_id": "torr-rf",
        "changes": [],
        "rules": [{"trigger": "equipment_added", "match_keywords": [], "priority": "URGENT",
                   "title_template": "x"}],
    })
    assert resp.status_code == 400


def test_lead_from_match(client, store, make_entity):
    store.upsert_entity(make_entity())
    payload = {"entity_id": "clinic-001", "product_id": "torr-rf", "grade": "S", "id": "m-1",
               "total_score": 85, "top_pitch_points": ["ready to invest now"]}

    first = client.post("/leads/from-match", json=payload).json()
    assert first["created"] is True
    second = client.post("/leads/from-match", json=payload).json()
    assert second["created"] is False
    assert second["lead_id"] == first["lead_id"]

    lead = client.get(f"/leads/{first['lead_id']}").json()
    assert lead["priority"] == 100
    assert lead["notes"] == "Top pitch points: ready to invest now"
    assert len(lead["activities"]) == 1

    rejected = client.post("/leads/from-match", json=dict(payload, grade="B")).json()
    assert rejected["created"] is False
    assert client.get("/leads/nope").status_code == 404
