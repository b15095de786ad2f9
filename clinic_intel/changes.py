"""
Equipment / treatment change detection between two crawl snapshots.

Comparison is case-insensitive ("써마지 FLX" and "써마지 flx" are the same item).
Persisting the detected changes is best-effort; ids are attached only when the
write succeeds.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .dictionary import KeywordEntry
from .normalize import normalize_keyword
from .outcome import best_effort

logger = logging.getLogger(__name__)

ADDED = "ADDED"
REMOVED = "REMOVED"
EQUIPMENT = "EQUIPMENT"
TREATMENT = "TREATMENT"

CHANGE_TYPES = (ADDED, REMOVED)
ITEM_TYPES = (EQUIPMENT, TREATMENT)


@dataclass
class EquipmentChange:
    entity_id: str
    item_type: str
    change_type: str
    item_name: str
    standard_name: str
    id: Optional[str] = None
    detected_at: Optional[str] = None
    prev_snapshot_id: Optional[str] = None
    curr_snapshot_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


def _standard_name(item_name: str, normalize: bool, entries: Optional[List[KeywordEntry]]) -> str:
    if not normalize:
        return item_name
    return normalize_keyword(item_name, entries=entries).standard_name or item_name


def _diff(
    entity_id: str,
    item_type: str,
    previous: List[str],
    current: List[str],
    normalize: bool,
    entries: Optional[List[KeywordEntry]],
    detected_at: str,
    prev_snapshot_id: Optional[str],
    curr_snapshot_id: Optional[str],
) -> List[EquipmentChange]:
    prev_set = {p.lower() for p in previous}
    curr_set = {c.lower() for c in current}
    changes = []

    def change(change_type: str, name: str) -> EquipmentChange:
        return EquipmentChange(
            entity_id=entity_id,
            item_type=item_type,
            change_type=change_type,
            item_name=name,
            standard_name=_standard_name(name, normalize, entries),
            detected_at=detected_at,
            prev_snapshot_id=prev_snapshot_id,
            curr_snapshot_id=curr_snapshot_id,
        )

    for name in current:
        if name.lower() not in prev_set:
            changes.append(change(ADDED, name))
    for name in previous:
        if name.lower() not in curr_set:
            changes.append(change(REMOVED, name))
    return changes


def detect_equipment_changes(
    entity_id: str,
    prev_snapshot: Optional[Dict],
    curr_equipments: List[str],
    curr_treatments: List[str],
    curr_snapshot_id: Optional[str] = None,
    normalize: bool = True,
    persist: bool = True,
    entries: Optional[List[KeywordEntry]] = None,
) -> List[EquipmentChange]:
    """
    Diff the current crawl against the previous snapshot.

    Args:
        entity_id: Clinic being compared
        prev_snapshot: {"id", "equipments_found", "treatments_found"} or None (first crawl)
        curr_equipments / curr_treatments: Names found in the current crawl
        curr_snapshot_id: Id of the current snapshot, if stored
        normalize: Resolve standard_name through the keyword dictionary
        persist: Write changes to the store (best-effort)
        entries: Keyword entries used for standard_name (default: the seed dictionary)

    Returns:
        Changes in order: equipment added, equipment removed, treatment added,
        treatment removed
    """
    prev_snapshot = prev_snapshot or {}
    prev_id = prev_snapshot.get("id")
    now = datetime.now(timezone.utc).isoformat()

    changes = _diff(entity_id, EQUIPMENT, prev_snapshot.get("equipments_found") or [],
                    curr_equipments, normalize, entries, now, prev_id, curr_snapshot_id)
    changes += _diff(entity_id, TREATMENT, prev_snapshot.get("treatments_found") or [],
                     curr_treatments, normalize, entries, now, prev_id, curr_snapshot_id)

    if changes and persist:
        from . import db

        outcome = best_effort("insert_equipment_changes", db.insert_equipment_changes,
                              [c.to_dict() for c in changes])
        if not outcome.degraded:
            for c, change_id in zip(changes, outcome.value):
                c.id = change_id

    if changes:
        logger.info("Detected %s equipment/treatment changes for %s", len(changes), entity_id)
    return changes
