"""
SQLite persistence for the clinic sales-intelligence core.

Stores entities (clinics) with their equipment and treatment menus, the curated
keyword / compound dictionaries, compound-word candidates, scoring weights,
match scores, crawl snapshots, equipment changes, sales signals, leads and lead
activities.

Every helper opens its own connection, so worker threads never share one.
"""

import os
import json
import uuid
import sqlite3
import logging
from typing import Dict, List, Optional, Any, Iterable
from datetime import datetime, timezone

from .dictionary import KeywordEntry, CompoundWordEntry

logger = logging.getLogger(__name__)

# Default path; override with CLINIC_INTEL_DB_PATH
DEFAULT_DB_DIR = "data"
DEFAULT_DB_NAME = "clinic_intel.db"


def get_db_path() -> str:
    """Return path to SQLite DB file."""
    path = os.getenv("CLINIC_INTEL_DB_PATH")
    if path:
        return path
    os.makedirs(DEFAULT_DB_DIR, exist_ok=True)
    return os.path.join(DEFAULT_DB_DIR, DEFAULT_DB_NAME)


def _get_conn() -> sqlite3.Connection:
    """Get connection with row factory for dict-like rows."""
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(values: List[Any]) -> str:
    return ",".join("?" for _ in values)


def init_db() -> None:
    """Create tables if they do not exist."""
    conn = _get_conn()
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS entities (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                district TEXT,
                address TEXT,
                latitude REAL,
                longitude REAL,
                email TEXT,
                opened_at TEXT,
                data_quality_score INTEGER DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS entity_equipments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_id TEXT NOT NULL,
                equipment_name TEXT NOT NULL,
                equipment_brand TEXT,
                equipment_category TEXT NOT NULL,
                estimated_year INTEGER,
                created_at TEXT NOT NULL,
                FOREIGN KEY (entity_id) REFERENCES entities(id)
            );

            CREATE TABLE IF NOT EXISTS entity_treatments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_id TEXT NOT NULL,
                treatment_name TEXT NOT NULL,
                treatment_category TEXT,
                price_min INTEGER,
                price_max INTEGER,
                is_promoted INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (entity_id) REFERENCES entities(id)
            );

            CREATE TABLE IF NOT EXISTS keyword_dictionary (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                standard_name TEXT NOT NULL UNIQUE,
                category TEXT NOT NULL,
                base_unit_type TEXT,
                aliases_json TEXT NOT NULL DEFAULT '[]',
                version TEXT,
                is_active INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS compound_words (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                compound_name TEXT NOT NULL UNIQUE,
                decomposed_names_json TEXT NOT NULL,
                scoring_note TEXT,
                is_active INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS compound_word_candidates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                raw_text TEXT NOT NULL UNIQUE,
                inferred_decomposition_json TEXT,
                confidence REAL NOT NULL DEFAULT 0,
                discovery_count INTEGER NOT NULL DEFAULT 1,
                first_entity_id TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS scoring_weights (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                version TEXT NOT NULL UNIQUE,
                weight_equipment_synergy INTEGER NOT NULL,
                weight_equipment_age INTEGER NOT NULL,
                weight_revenue_impact INTEGER NOT NULL,
                weight_competitive_edge INTEGER NOT NULL,
                weight_purchase_readiness INTEGER NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS match_scores (
                id TEXT PRIMARY KEY,
                entity_id TEXT NOT NULL,
                product_id TEXT,
                weight_version TEXT,
                score_equipment_synergy INTEGER NOT NULL,
                score_equipment_age INTEGER NOT NULL,
                score_revenue_impact INTEGER NOT NULL,
                score_competitive_edge INTEGER NOT NULL,
                score_purchase_readiness INTEGER NOT NULL,
                total_score INTEGER NOT NULL,
                grade TEXT NOT NULL,
                top_pitch_points_json TEXT,
                competitors_json TEXT,
                scored_at TEXT NOT NULL,
                FOREIGN KEY (entity_id) REFERENCES entities(id)
            );

            CREATE TABLE IF NOT EXISTS crawl_snapshots (
                id TEXT PRIMARY KEY,
                entity_id TEXT NOT NULL,
                equipments_found_json TEXT NOT NULL DEFAULT '[]',
                treatments_found_json TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                FOREIGN KEY (entity_id) REFERENCES entities(id)
            );

            CREATE TABLE IF NOT EXISTS equipment_changes (
                id TEXT PRIMARY KEY,
                entity_id TEXT NOT NULL,
                change_type TEXT NOT NULL,
                item_type TEXT NOT NULL,
                item_name TEXT NOT NULL,
                standard_name TEXT NOT NULL,
                detected_at TEXT NOT NULL,
                prev_snapshot_id TEXT,
                curr_snapshot_id TEXT
            );

            CREATE TABLE IF NOT EXISTS sales_signals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                signal_type TEXT NOT NULL,
                priority TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                related_angle TEXT,
                source_change_id TEXT,
                status TEXT NOT NULL DEFAULT 'NEW',
                detected_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS leads (
                id TEXT PRIMARY KEY,
                entity_id TEXT NOT NULL,
                product_id TEXT NOT NULL,
                match_score_id TEXT,
                stage TEXT NOT NULL DEFAULT 'new',
                grade TEXT NOT NULL,
                priority INTEGER NOT NULL,
                contact_email TEXT NOT NULL,
                interest_level TEXT NOT NULL DEFAULT 'cold',
                open_count INTEGER NOT NULL DEFAULT 0,
                click_count INTEGER NOT NULL DEFAULT 0,
                reply_count INTEGER NOT NULL DEFAULT 0,
                demo_page_visits INTEGER NOT NULL DEFAULT 0,
                price_page_visits INTEGER NOT NULL DEFAULT 0,
                kakao_connected INTEGER NOT NULL DEFAULT 0,
                current_sequence_step INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                created_at TEXT NOT NULL,
                UNIQUE(entity_id, product_id)
            );

            CREATE TABLE IF NOT EXISTS lead_activities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                lead_id TEXT NOT NULL,
                activity_type TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                actor TEXT NOT NULL DEFAULT 'system',
                created_at TEXT NOT NULL,
                FOREIGN KEY (lead_id) REFERENCES leads(id)
            );

            CREATE INDEX IF NOT EXISTS idx_entities_district ON entities(district, status);
            CREATE INDEX IF NOT EXISTS idx_equipments_entity ON entity_equipments(entity_id);
            CREATE INDEX IF NOT EXISTS idx_treatments_entity ON entity_treatments(entity_id);
            CREATE INDEX IF NOT EXISTS idx_snapshots_entity ON crawl_snapshots(entity_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_signals_entity ON sales_signals(entity_id, product_id);
            CREATE INDEX IF NOT EXISTS idx_activities_lead ON lead_activities(lead_id);
        """)
        conn.commit()
    finally:
        conn.close()


# =============================================================================
# ENTITIES, EQUIPMENT, MENUS
# =============================================================================

def upsert_entity(entity: Dict) -> str:
    """Insert or replace an entity record; return its id."""
    entity_id = str(entity.get("id") or uuid.uuid4())
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO entities (id, name, district, address, latitude, longitude, email,
                                     opened_at, data_quality_score, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name, district = excluded.district, address = excluded.address,
                   latitude = excluded.latitude, longitude = excluded.longitude, email = excluded.email,
                   opened_at = excluded.opened_at, data_quality_score = excluded.data_quality_score,
                   status = excluded.status""",
            (
                entity_id,
                entity.get("name") or "",
                entity.get("district"),
                entity.get("address"),
                entity.get("latitude"),
                entity.get("longitude"),
                entity.get("email"),
                entity.get("opened_at"),
                int(entity.get("data_quality_score") or 0),
                entity.get("status") or "active",
                _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return entity_id


def get_entity(entity_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM entities WHERE id = ?", (entity_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def get_entity_location(entity_id: str) -> Optional[Dict]:
    """Return {district, lat, lon} for an entity, or None if it does not exist."""
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT district, latitude, longitude FROM entities WHERE id = ?", (entity_id,)
        ).fetchone()
        if not row:
            return None
        return {"district": row["district"], "lat": row["latitude"], "lon": row["longitude"]}
    finally:
        conn.close()


def list_entity_ids(status: Optional[str] = "active") -> List[str]:
    conn = _get_conn()
    try:
        if status:
            rows = conn.execute("SELECT id FROM entities WHERE status = ? ORDER BY id", (status,)).fetchall()
        else:
            rows = conn.execute("SELECT id FROM entities ORDER BY id").fetchall()
        return [r["id"] for r in rows]
    finally:
        conn.close()


def list_active_entities_in_district(district: str, exclude_id: Optional[str] = None) -> List[Dict]:
    """Active entities in a district with known coordinates, excluding one id."""
    conn = _get_conn()
    try:
        rows = conn.execute(
            """SELECT id, name, latitude, longitude, district FROM entities
               WHERE status = 'active' AND district = ? AND id != ?
                 AND latitude IS NOT NULL AND longitude IS NOT NULL""",
            (district, exclude_id or ""),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def insert_equipment(
    entity_id: str,
    equipment_name: str,
    equipment_category: str,
    estimated_year: Optional[int] = None,
    equipment_brand: Optional[str] = None,
) -> int:
    conn = _get_conn()
    try:
        cur = conn.execute(
            """INSERT INTO entity_equipments (entity_id, equipment_name, equipment_brand,
                                              equipment_category, estimated_year, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (entity_id, equipment_name, equipment_brand, equipment_category, estimated_year, _now()),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def insert_treatment(
    entity_id: str,
    treatment_name: str,
    treatment_category: Optional[str] = None,
    price_min: Optional[int] = None,
    price_max: Optional[int] = None,
    is_promoted: bool = False,
) -> int:
    conn = _get_conn()
    try:
        cur = conn.execute(
            """INSERT INTO entity_treatments (entity_id, treatment_name, treatment_category,
                                              price_min, price_max, is_promoted, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (entity_id, treatment_name, treatment_category, price_min, price_max,
             1 if is_promoted else 0, _now()),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def get_entity_equipments(entity_id: str) -> List[Dict]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            """SELECT equipment_name, equipment_brand, equipment_category, estimated_year
               FROM entity_equipments WHERE entity_id = ? ORDER BY id""",
            (entity_id,),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def get_entity_treatments(entity_id: str) -> List[Dict]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            """SELECT treatment_name, treatment_category, price_min, price_max, is_promoted
               FROM entity_treatments WHERE entity_id = ? ORDER BY id""",
            (entity_id,),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["is_promoted"] = bool(d.get("is_promoted"))
            out.append(d)
        return out
    finally:
        conn.close()


def get_tracked_equipment(entity_ids: List[str], category: str) -> List[Dict]:
    """Equipment of one category for a set of entities, in a single query."""
    if not entity_ids:
        return []
    conn = _get_conn()
    try:
        rows = conn.execute(
            f"""SELECT entity_id, equipment_category, equipment_name, estimated_year
                FROM entity_equipments
                WHERE equipment_category = ? AND entity_id IN ({_placeholders(entity_ids)})
                ORDER BY id""",
            (category, *entity_ids),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def get_menu_counts(entity_ids: List[str]) -> Dict[str, int]:
    """Treatment-menu row counts per entity, in a single query."""
    if not entity_ids:
        return {}
    conn = _get_conn()
    try:
        rows = conn.execute(
            f"""SELECT entity_id, COUNT(*) AS n FROM entity_treatments
                WHERE entity_id IN ({_placeholders(entity_ids)})
                GROUP BY entity_id""",
            tuple(entity_ids),
        ).fetchall()
        return {r["entity_id"]: int(r["n"]) for r in rows}
    finally:
        conn.close()


# =============================================================================
# DICTIONARIES AND CANDIDATES
# =============================================================================

def upsert_dictionary_entry(entry: KeywordEntry, version: Optional[str] = None) -> None:
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO keyword_dictionary (standard_name, category, base_unit_type, aliases_json, version, is_active)
               VALUES (?, ?, ?, ?, ?, 1)
               ON CONFLICT(standard_name) DO UPDATE SET
                   category = excluded.category, base_unit_type = excluded.base_unit_type,
                   aliases_json = excluded.aliases_json, version = excluded.version, is_active = 1""",
            (entry.standard_name, entry.category, entry.base_unit_type,
             json.dumps(entry.aliases, ensure_ascii=False), version),
        )
        conn.commit()
    finally:
        conn.close()


def get_dictionary_entries() -> List[KeywordEntry]:
    """Active curated keyword entries, in insertion order."""
    conn = _get_conn()
    try:
        rows = conn.execute(
            "SELECT * FROM keyword_dictionary WHERE is_active = 1 ORDER BY id"
        ).fetchall()
        return [
            KeywordEntry(
                standard_name=r["standard_name"],
                category=r["category"],
                base_unit_type=r["base_unit_type"] or "",
                aliases=json.loads(r["aliases_json"] or "[]"),
            )
            for r in rows
        ]
    finally:
        conn.close()


def upsert_compound_word(entry: CompoundWordEntry, is_active: bool = True) -> None:
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO compound_words (compound_name, decomposed_names_json, scoring_note, is_active)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(compound_name) DO UPDATE SET
                   decomposed_names_json = excluded.decomposed_names_json,
                   scoring_note = excluded.scoring_note, is_active = excluded.is_active""",
            (entry.compound_name, json.dumps(entry.decomposed_names, ensure_ascii=False),
             entry.scoring_note, 1 if is_active else 0),
        )
        conn.commit()
    finally:
        conn.close()


def _compound_from_row(row: sqlite3.Row) -> CompoundWordEntry:
    return CompoundWordEntry(
        compound_name=row["compound_name"],
        decomposed_names=json.loads(row["decomposed_names_json"] or "[]"),
        scoring_note=row["scoring_note"] or "",
    )


def get_compound_entries() -> List[CompoundWordEntry]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            "SELECT * FROM compound_words WHERE is_active = 1 ORDER BY id"
        ).fetchall()
        return [_compound_from_row(r) for r in rows]
    finally:
        conn.close()


def find_compound_by_text(text: str) -> Optional[CompoundWordEntry]:
    """
    First active curated compound whose name contains the text, or that the
    text contains. Raises sqlite3.Error on storage faults; callers treat that
    as "no match".
    """
    conn = _get_conn()
    try:
        row = conn.execute(
            """SELECT * FROM compound_words
               WHERE is_active = 1
                 AND (instr(lower(compound_name), lower(?)) > 0
                      OR instr(lower(?), lower(compound_name)) > 0)
               ORDER BY id LIMIT 1""",
            (text, text),
        ).fetchone()
        return _compound_from_row(row) if row else None
    finally:
        conn.close()


def record_candidate(raw_text: str, origin_entity_id: Optional[str] = None) -> None:
    """
    Register a compound-word candidate sighting.

    Atomic upsert: first sighting inserts with discovery_count=1, repeats
    increment the existing row. first_entity_id is only set on insert.
    """
    now = _now()
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO compound_word_candidates
                   (raw_text, inferred_decomposition_json, confidence, discovery_count,
                    first_entity_id, status, created_at, updated_at)
               VALUES (?, NULL, 0, 1, ?, 'pending', ?, ?)
               ON CONFLICT(raw_text) DO UPDATE SET
                   discovery_count = discovery_count + 1,
                   updated_at = excluded.updated_at""",
            (raw_text, origin_entity_id, now, now),
        )
        conn.commit()
    finally:
        conn.close()


def _candidate_from_row(row: sqlite3.Row) -> Dict:
    d = dict(row)
    raw = d.pop("inferred_decomposition_json", None)
    d["inferred_decomposition"] = json.loads(raw) if raw else None
    return d


def get_candidate(raw_text: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT * FROM compound_word_candidates WHERE raw_text = ?", (raw_text,)
        ).fetchone()
        return _candidate_from_row(row) if row else None
    finally:
        conn.close()


def list_candidates(status: Optional[str] = "pending") -> List[Dict]:
    conn = _get_conn()
    try:
        if status:
            rows = conn.execute(
                """SELECT * FROM compound_word_candidates WHERE status = ?
                   ORDER BY discovery_count DESC, id""",
                (status,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM compound_word_candidates ORDER BY discovery_count DESC, id"
            ).fetchall()
        return [_candidate_from_row(r) for r in rows]
    finally:
        conn.close()


# =============================================================================
# SCORING WEIGHTS AND MATCH SCORES
# =============================================================================

def get_active_weights_row() -> Optional[Dict]:
    """Most recently created active weight row, or None."""
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT * FROM scoring_weights WHERE is_active = 1 ORDER BY created_at DESC, id DESC LIMIT 1"
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def weight_version_exists(version: str) -> bool:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT 1 FROM scoring_weights WHERE version = ?", (version,)).fetchone()
        return row is not None
    finally:
        conn.close()


def activate_weight_version(version: str, weights: Dict[str, int], notes: Optional[str] = None) -> None:
    """Deactivate all weight rows and insert a new active one, in one transaction."""
    conn = _get_conn()
    try:
        with conn:
            conn.execute("UPDATE scoring_weights SET is_active = 0 WHERE is_active = 1")
            conn.execute(
                """INSERT INTO scoring_weights
                       (version, weight_equipment_synergy, weight_equipment_age, weight_revenue_impact,
                        weight_competitive_edge, weight_purchase_readiness, is_active, notes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)""",
                (
                    version,
                    weights["equipment_synergy"],
                    weights["equipment_age"],
                    weights["revenue_impact"],
                    weights["competitive_edge"],
                    weights["purchase_readiness"],
                    notes,
                    _now(),
                ),
            )
    finally:
        conn.close()


def insert_match_score(row: Dict) -> str:
    """Store one scoring result; return its id."""
    match_id = str(row.get("id") or uuid.uuid4())
    scores = row.get("scores") or {}
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO match_scores
                   (id, entity_id, product_id, weight_version,
                    score_equipment_synergy, score_equipment_age, score_revenue_impact,
                    score_competitive_edge, score_purchase_readiness,
                    total_score, grade, top_pitch_points_json, competitors_json, scored_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                match_id,
                row["entity_id"],
                row.get("product_id"),
                row.get("weight_version"),
                scores.get("equipment_synergy", 0),
                scores.get("equipment_age", 0),
                scores.get("revenue_impact", 0),
                scores.get("competitive_edge", 0),
                scores.get("purchase_readiness", 0),
                row["total_score"],
                row["grade"],
                json.dumps(row.get("top_pitch_points") or [], ensure_ascii=False),
                json.dumps(row.get("competitors") or [], ensure_ascii=False, default=str),
                _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return match_id


def get_match_score(match_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM match_scores WHERE id = ?", (match_id,)).fetchone()
        if not row:
            return None
        d = dict(row)
        d["top_pitch_points"] = json.loads(d.pop("top_pitch_points_json") or "[]")
        d["competitors"] = json.loads(d.pop("competitors_json") or "[]")
        return d
    finally:
        conn.close()


# =============================================================================
# SNAPSHOTS, CHANGES, SIGNALS
# =============================================================================

def save_snapshot(entity_id: str, equipments: List[str], treatments: List[str]) -> str:
    snapshot_id = str(uuid.uuid4())
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO crawl_snapshots (id, entity_id, equipments_found_json, treatments_found_json, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (snapshot_id, entity_id, json.dumps(equipments, ensure_ascii=False),
             json.dumps(treatments, ensure_ascii=False), _now()),
        )
        conn.commit()
    finally:
        conn.close()
    return snapshot_id


def get_latest_snapshot(entity_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute(
            """SELECT * FROM crawl_snapshots WHERE entity_id = ?
               ORDER BY created_at DESC, rowid DESC LIMIT 1""",
            (entity_id,),
        ).fetchone()
        if not row:
            return None
        return {
            "id": row["id"],
            "entity_id": row["entity_id"],
            "equipments_found": json.loads(row["equipments_found_json"] or "[]"),
            "treatments_found": json.loads(row["treatments_found_json"] or "[]"),
            "created_at": row["created_at"],
        }
    finally:
        conn.close()


def insert_equipment_changes(rows: Iterable[Dict]) -> List[str]:
    """Store detected changes; return the generated ids in input order."""
    ids = []
    conn = _get_conn()
    try:
        with conn:
            for r in rows:
                change_id = str(r.get("id") or uuid.uuid4())
                conn.execute(
                    """INSERT INTO equipment_changes
                           (id, entity_id, change_type, item_type, item_name, standard_name,
                            detected_at, prev_snapshot_id, curr_snapshot_id)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (change_id, r["entity_id"], r["change_type"], r["item_type"], r["item_name"],
                     r["standard_name"], r["detected_at"], r.get("prev_snapshot_id"),
                     r.get("curr_snapshot_id")),
                )
                ids.append(change_id)
    finally:
        conn.close()
    return ids


def insert_signals(rows: Iterable[Dict]) -> int:
    """Store a batch of sales signals in one transaction; return rows written."""
    count = 0
    conn = _get_conn()
    try:
        with conn:
            for s in rows:
                conn.execute(
                    """INSERT INTO sales_signals
                           (entity_id, product_id, signal_type, priority, title, description,
                            related_angle, source_change_id, status, detected_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (s["entity_id"], s["product_id"], s["signal_type"], s["priority"], s["title"],
                     s.get("description"), s.get("related_angle"), s.get("source_change_id"),
                     s.get("status") or "NEW", s["detected_at"]),
                )
                count += 1
    finally:
        conn.close()
    return count


def list_signals(entity_id: Optional[str] = None, product_id: Optional[str] = None) -> List[Dict]:
    clauses, params = [], []
    if entity_id:
        clauses.append("entity_id = ?")
        params.append(entity_id)
    if product_id:
        clauses.append("product_id = ?")
        params.append(product_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    conn = _get_conn()
    try:
        rows = conn.execute(
            f"SELECT * FROM sales_signals {where} ORDER BY id", tuple(params)
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


# =============================================================================
# LEADS
# =============================================================================

def find_lead(entity_id: str, product_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT * FROM leads WHERE entity_id = ? AND product_id = ? LIMIT 1",
            (entity_id, product_id),
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def get_lead(lead_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM leads WHERE id = ?", (lead_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def insert_lead(row: Dict) -> str:
    """
    Insert a lead; return lead_id.

    Raises sqlite3.IntegrityError when a lead already exists for the
    (entity_id, product_id) pair.
    """
    lead_id = str(row.get("id") or uuid.uuid4())
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO leads
                   (id, entity_id, product_id, match_score_id, stage, grade, priority, contact_email,
                    interest_level, open_count, click_count, reply_count, demo_page_visits,
                    price_page_visits, kakao_connected, current_sequence_step, notes, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                lead_id,
                row["entity_id"],
                row["product_id"],
                row.get("match_score_id"),
                row.get("stage", "new"),
                row["grade"],
                row["priority"],
                row["contact_email"],
                row.get("interest_level", "cold"),
                row.get("open_count", 0),
                row.get("click_count", 0),
                row.get("reply_count", 0),
                row.get("demo_page_visits", 0),
                row.get("price_page_visits", 0),
                1 if row.get("kakao_connected") else 0,
                row.get("current_sequence_step", 0),
                row.get("notes"),
                _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return lead_id


def insert_activity(row: Dict) -> int:
    conn = _get_conn()
    try:
        cur = conn.execute(
            """INSERT INTO lead_activities (lead_id, activity_type, title, description, actor, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (row["lead_id"], row["activity_type"], row["title"], row.get("description"),
             row.get("actor") or "system", _now()),
        )
        conn.commit()
        return cur.lastrowid
    finally:
        conn.close()


def list_lead_activities(lead_id: str) -> List[Dict]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            "SELECT * FROM lead_activities WHERE lead_id = ? ORDER BY id", (lead_id,)
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()
