"""
Automatic lead creation from match scores.

An S or A grade for a clinic with a contact email becomes a sales lead, at most
one per (entity, product). Unlike the best-effort paths elsewhere, a failed lead
insert is reported back to the caller.
"""

import logging
import sqlite3
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional

from .grading import Grade, is_lead_grade

logger = logging.getLogger(__name__)

LEAD_STAGES = [
    "new",
    "contacted",
    "responded",
    "kakao_connected",
    "demo_scheduled",
    "demo_done",
    "proposal",
    "negotiation",
    "closed_won",
    "closed_lost",
    "nurturing",
]

INTEREST_LEVELS = ["cold", "warming", "warm", "hot"]

PRIORITY_S = 100
PRIORITY_A = 50

ACTIVITY_PRODUCT_MATCHED = "product_matched"
SYSTEM_ACTOR = "system"

COUNTERS = (
    "open_count",
    "click_count",
    "reply_count",
    "demo_page_visits",
    "price_page_visits",
    "current_sequence_step",
)


@dataclass
class LeadGenerationResult:
    created: bool
    lead_id: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


def pitch_note(top_pitch_points: Optional[List[str]]) -> Optional[str]:
    if not top_pitch_points:
        return None
    return f"Top pitch points: {', '.join(top_pitch_points)}"


def _grade_value(grade: Any) -> str:
    return grade.value if isinstance(grade, Grade) else str(grade)


def build_lead_row(match_score: Dict[str, Any], contact_email: str) -> Dict[str, Any]:
    """Lead row for a qualifying match score: counters zeroed, cold, stage new."""
    grade = _grade_value(match_score["grade"])
    row = {
        "entity_id": match_score["entity_id"],
        "product_id": match_score["product_id"],
        "match_score_id": match_score.get("id"),
        "stage": LEAD_STAGES[0],
        "grade": grade,
        "priority": PRIORITY_S if grade == Grade.S.value else PRIORITY_A,
        "contact_email": contact_email,
        "interest_level": INTEREST_LEVELS[0],
        "kakao_connected": False,
        "notes": pitch_note(match_score.get("top_pitch_points")),
    }
    for counter in COUNTERS:
        row[counter] = 0
    return row


def try_create_lead(match_score: Dict[str, Any], store=None) -> LeadGenerationResult:
    """
    Create a lead from a match score if it qualifies.

    Gates, in order: grade is S or A; the entity has a contact email; no lead
    exists yet for (entity_id, product_id). An existing lead is returned as
    created=False with its id, including one inserted by a concurrent caller
    between the lookup and the insert.

    Args:
        match_score: {"id", "entity_id", "product_id", "grade", "total_score",
            "top_pitch_points"?}
        store: Object exposing get_entity / find_lead / insert_lead / insert_activity
            (default: clinic_intel.db)

    Returns:
        LeadGenerationResult
    """
    grade = _grade_value(match_score.get("grade"))
    if not is_lead_grade(grade):
        return LeadGenerationResult(created=False, reason=f"Grade {grade} is not eligible for automatic leads")

    if store is None:
        from . import db as store

    entity_id = match_score["entity_id"]
    product_id = match_score["product_id"]

    entity = store.get_entity(entity_id)
    email = (entity or {}).get("email")
    if not email:
        return LeadGenerationResult(created=False, reason="No contact email")

    existing = store.find_lead(entity_id, product_id)
    if existing:
        return LeadGenerationResult(created=False, lead_id=existing["id"], reason="Lead already exists")

    row = build_lead_row(match_score, email)
    try:
        lead_id = store.insert_lead(row)
    except sqlite3.IntegrityError as e:
        # another caller inserted the same (entity, product) after our lookup
        existing = store.find_lead(entity_id, product_id)
        if existing:
            logger.info("Lead for %s / %s was created concurrently: %s", entity_id, product_id, existing["id"])
            return LeadGenerationResult(created=False, lead_id=existing["id"], reason="Lead already exists")
        logger.error("Lead insert failed for %s / %s: %s", entity_id, product_id, e)
        return LeadGenerationResult(created=False, reason=f"Lead creation failed: {e}")
    except Exception as e:
        logger.error("Lead insert failed for %s / %s: %s", entity_id, product_id, e)
        return LeadGenerationResult(created=False, reason=f"Lead creation failed: {e}")

    note = row["notes"]
    description = f"Match score {match_score.get('total_score')}, grade {grade}"
    if note:
        description += f" | {note}"
    try:
        store.insert_activity({
            "lead_id": lead_id,
            "activity_type": ACTIVITY_PRODUCT_MATCHED,
            "title": f"Lead created from product match (grade {grade})",
            "description": description,
            "actor": SYSTEM_ACTOR,
        })
    except Exception as e:
        logger.warning("Activity log failed for lead %s: %s", lead_id, e)

    logger.info("Created lead %s for %s / %s (grade %s, priority %s)",
                lead_id, entity_id, product_id, grade, row["priority"])
    return LeadGenerationResult(created=True, lead_id=lead_id)
