"""
Unit tests for automatic lead creation.

Cases:
  a) gate order: grade, contact email, existing lead
  b) S -> priority 100, A -> 50, counters zeroed, pitch note, activity row
  c) insert failure is reported with the error message
  d) losing an insert race returns the winner's lead id
"""

import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor

from clinic_intel.leads import try_create_lead


class _RecordingStore:
    """In-memory store that records every call."""

    def __init__(self, email="info@clinic.kr", fail_insert=False):
        self.email = email
        self.fail_insert = fail_insert
        self.calls = []
        self.leads = {}
        self.activities = []

    def get_entity(self, entity_id):
        self.calls.append("get_entity")
        return {"id": entity_id, "email": self.email}

    def find_lead(self, entity_id, product_id):
        self.calls.append("find_lead")
        for lead in self.leads.values():
            if lead["entity_id"] == entity_id and lead["product_id"] == product_id:
                return lead
        return None

    def insert_lead(self, row):
        self.calls.append("insert_lead")
        if self.fail_insert:
            raise sqlite3.IntegrityError("UNIQUE constraint failed: leads.entity_id, leads.product_id")
        lead_id = f"lead-{len(self.leads) + 1}"
        self.leads[lead_id] = dict(row, id=lead_id)
        return lead_id

    def insert_activity(self, row):
        self.calls.append("insert_activity")
        self.activities.append(row)


def _match(**overrides):
    base = {
        "id": "match-1",
        "entity_id": "clinic-001",
        "product_id": "torr-rf",
        "grade": "S",
        "total_score": 84,
        "top_pitch_points": [],
    }
    base.update(overrides)
    return base


def test_grade_b_touches_nothing():
    store = _RecordingStore()
    result = try_create_lead(_match(grade="B"), store=store)
    assert not result.created
    assert result.lead_id is None
    assert "B" in result.reason
    assert store.calls == []


def test_exclude_and_c_rejected():
    for grade in ("C", "EXCLUDE"):
        store = _RecordingStore()
        assert not try_create_lead(_match(grade=grade), store=store).created
        assert store.calls == []


def test_missing_email_rejected():
    store = _RecordingStore(email=None)
    result = try_create_lead(_match(), store=store)
    assert not result.created
    assert result.reason == "No contact email"
    assert "insert_lead" not in store.calls


def test_grade_s_creates_priority_100():
    store = _RecordingStore()
    result = try_create_lead(_match(), store=store)
    assert result.created
    lead = store.leads[result.lead_id]
    assert lead["priority"] == 100
    assert lead["stage"] == "new"
    assert lead["interest_level"] == "cold"
    assert lead["contact_email"] == "info@clinic.kr"
    assert lead["match_score_id"] == "match-1"
    for counter in ("open_count", "click_count", "reply_count", "demo_page_visits",
                    "price_page_visits", "current_sequence_step"):
        assert lead[counter] == 0
    assert lead["kakao_connected"] is False
    assert lead["notes"] is None


def test_grade_a_priority_50_with_pitch_note():
    store = _RecordingStore()
    result = try_create_lead(
        _match(grade="A", top_pitch_points=["RF equipment due for replacement", "ready to invest now"]),
        store=store,
    )
    lead = store.leads[result.lead_id]
    assert lead["priority"] == 50
    assert lead["notes"] == "Top pitch points: RF equipment due for replacement, ready to invest now"

    assert len(store.activities) == 1
    activity = store.activities[0]
    assert activity["activity_type"] == "product_matched"
    assert activity["actor"] == "system"
    assert activity["lead_id"] == result.lead_id
    assert "Top pitch points" in activity["description"]


def test_second_call_returns_existing_lead():
    store = _RecordingStore()
    first = try_create_lead(_match(), store=store)
    second = try_create_lead(_match(id="match-2"), store=store)
    assert first.created
    assert not second.created
    assert second.lead_id == first.lead_id
    assert store.calls.count("insert_lead") == 1


def test_insert_failure_reported(caplog):
    store = _RecordingStore(fail_insert=True)
    with caplog.at_level("ERROR"):
        result = try_create_lead(_match(), store=store)
    assert not result.created
    assert "UNIQUE constraint failed" in result.reason
    assert store.activities == []
    assert any(r.levelname == "ERROR" for r in caplog.records)


def test_sqlite_store_round_trip(store, make_entity):
    store.upsert_entity(make_entity())
    first = try_create_lead(_match())
    second = try_create_lead(_match())

    assert first.created
    assert second.lead_id == first.lead_id
    lead = store.get_lead(first.lead_id)
    assert lead["priority"] == 100
    assert lead["kakao_connected"] == 0
    assert [a["activity_type"] for a in store.list_lead_activities(first.lead_id)] == ["product_matched"]


class _LateWinnerStore(_RecordingStore):
    """Another caller inserts the same lead between our lookup and our insert."""

    def __init__(self):
        super().__init__()
        self.lookups = 0

    def find_lead(self, entity_id, product_id):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super().find_lead(entity_id, product_id)

    def insert_lead(self, row):
        self.calls.append("insert_lead")
        self.leads["lead-winner"] = dict(row, id="lead-winner")
        raise sqlite3.IntegrityError("UNIQUE constraint failed: leads.entity_id, leads.product_id")


def test_lost_insert_race_returns_existing_lead():
    store = _LateWinnerStore()
    result = try_create_lead(_match(), store=store)
    assert not result.created
    assert result.lead_id == "lead-winner"
    assert result.reason == "Lead already exists"
    assert store.activities == []


class _SynchronizedLookupStore:
    """Real SQLite store whose first lookups wait for each other."""

    def __init__(self, db, parties):
        self._db = db
        self._barrier = threading.Barrier(parties, timeout=10)
        self._lock = threading.Lock()
        self._pending = parties

    def __getattr__(self, name):
        return getattr(self._db, name)

    def find_lead(self, entity_id, product_id):
        lead = self._db.find_lead(entity_id, product_id)
        with self._lock:
            wait = self._pending > 0
            self._pending -= 1
        if wait:
            self._barrier.wait()
        return lead


def test_concurrent_callers_share_one_lead(store, make_entity):
    store.upsert_entity(make_entity())
    racing = _SynchronizedLookupStore(store, parties=2)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda m: try_create_lead(m, store=racing), [_match(), _match(id="match-2")]))

    assert sorted(r.created for r in results) == [False, True]
    assert results[0].lead_id == results[1].lead_id
    loser = next(r for r in results if not r.created)
    assert loser.reason == "Lead already exists"
    assert len(store.list_lead_activities(loser.lead_id)) == 1
