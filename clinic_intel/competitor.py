"""
Competitor density analysis.

Finds active clinics in the same district within a radius of a target clinic
(haversine, no PostGIS), then summarizes each competitor's tracked-category
equipment recency and treatment-menu size. Feeds the competitive-edge axis.

One district query plus two batched lookups keyed by the nearby id set; no
per-competitor round trips.
"""

import os
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, List, Optional, Union

from .geo import haversine_meters
from .outcome import best_effort, value_or

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 1.0
DEFAULT_TRACKED_CATEGORY = "rf"
MODERN_EQUIPMENT_YEARS = 3  # installed within this many years of the current year

# Absorbs float error for points built exactly on the radius.
DISTANCE_EPSILON_M = 1e-6


@dataclass
class CompetitorData:
    entity_id: str
    name: str
    distance_meters: int
    has_modern_equipment: bool
    modern_equipment_name: Optional[str]
    menu_item_count: int

    def to_dict(self) -> Dict:
        return asdict(self)


def _default_store():
    from . import db

    return db


def default_radius_km() -> float:
    try:
        return float(os.getenv("COMPETITOR_RADIUS_KM", DEFAULT_RADIUS_KM))
    except ValueError:
        return DEFAULT_RADIUS_KM


def default_tracked_category() -> str:
    return os.getenv("TRACKED_EQUIPMENT_CATEGORY", DEFAULT_TRACKED_CATEGORY) or DEFAULT_TRACKED_CATEGORY


def is_modern(estimated_year: Optional[int], current_year: int) -> bool:
    """Unknown installation year is never treated as recent."""
    if estimated_year is None:
        return False
    return current_year - int(estimated_year) <= MODERN_EQUIPMENT_YEARS


def _resolve_target(entity: Union[str, Dict[str, Any]], store) -> Optional[Dict[str, Any]]:
    """Return {id, district, lat, lon} for the target, filling gaps from the store."""
    if isinstance(entity, str):
        target = {"id": entity}
    else:
        target = {
            "id": entity.get("id"),
            "district": entity.get("district"),
            "lat": entity.get("latitude", entity.get("lat")),
            "lon": entity.get("longitude", entity.get("lon")),
        }

    if target.get("district") is None or target.get("lat") is None or target.get("lon") is None:
        if not target.get("id"):
            return None
        outcome = best_effort("get_entity_location", store.get_entity_location, target["id"])
        location = value_or(outcome)
        if not location:
            return None
        for key in ("district", "lat", "lon"):
            if target.get(key) is None:
                target[key] = location.get(key)

    if target.get("lat") is None or target.get("lon") is None or not target.get("district"):
        return None
    return target


def find_competitors(
    entity: Union[str, Dict[str, Any]],
    radius_km: Optional[float] = None,
    category: Optional[str] = None,
    store=None,
    current_year: Optional[int] = None,
) -> List[CompetitorData]:
    """
    Find competitors of an entity within radius_km.

    Args:
        entity: Entity id, or a dict with id / latitude / longitude / district
        radius_km: Search radius (default COMPETITOR_RADIUS_KM or 1 km)
        category: Equipment category whose recency is tracked (default "rf")
        store: Object exposing the store read contract (default clinic_intel.db)
        current_year: Reference year for the recency window (default: this year)

    Returns:
        CompetitorData list sorted by distance ascending; empty when the target
        has no coordinates or district
    """
    store = store or _default_store()
    radius_km = default_radius_km() if radius_km is None else radius_km
    category = category or default_tracked_category()
    current_year = current_year or datetime.now().year

    target = _resolve_target(entity, store)
    if target is None:
        return []

    candidates = value_or(
        best_effort(
            "list_active_entities_in_district",
            store.list_active_entities_in_district,
            target["district"],
            target["id"],
        ),
        [],
    )

    radius_m = radius_km * 1000.0
    nearby = []
    for candidate in candidates:
        if candidate.get("id") == target["id"]:
            continue
        lat, lon = candidate.get("latitude"), candidate.get("longitude")
        if lat is None or lon is None:
            continue
        distance = haversine_meters(float(target["lat"]), float(target["lon"]), float(lat), float(lon))
        if distance <= radius_m + DISTANCE_EPSILON_M:
            nearby.append((candidate, distance))

    if not nearby:
        return []

    nearby_ids = [c["id"] for c, _ in nearby]
    equipments = value_or(
        best_effort("get_tracked_equipment", store.get_tracked_equipment, nearby_ids, category), []
    )
    menu_counts = value_or(best_effort("get_menu_counts", store.get_menu_counts, nearby_ids), {})

    equipment_map: Dict[str, List[Dict]] = {}
    for eq in equipments:
        equipment_map.setdefault(eq["entity_id"], []).append(eq)

    competitors = []
    for candidate, distance in nearby:
        modern = next(
            (e for e in equipment_map.get(candidate["id"], []) if is_modern(e.get("estimated_year"), current_year)),
            None,
        )
        competitors.append(CompetitorData(
            entity_id=candidate["id"],
            name=candidate.get("name") or "",
            distance_meters=int(round(distance)),
            has_modern_equipment=modern is not None,
            modern_equipment_name=modern.get("equipment_name") if modern else None,
            menu_item_count=int(menu_counts.get(candidate["id"], 0)),
        ))

    competitors.sort(key=lambda c: c.distance_meters)
    logger.info(
        "Found %s competitors within %.1f km of %s", len(competitors), radius_km, target["id"]
    )
    return competitors


def summarize_competitors(competitors: List[CompetitorData]) -> Dict[str, Any]:
    """
    Summary block for reports and the HTTP layer.

    Returns:
        count, modern_equipment_count, modern_penetration (0-1), nearest
        competitor, average menu size
    """
    out: Dict[str, Any] = {
        "count": len(competitors),
        "modern_equipment_count": 0,
        "modern_penetration": 0.0,
        "nearest": None,
        "avg_menu_item_count": 0.0,
    }
    if not competitors:
        return out

    modern = sum(1 for c in competitors if c.has_modern_equipment)
    out["modern_equipment_count"] = modern
    out["modern_penetration"] = round(modern / len(competitors), 3)
    nearest = min(competitors, key=lambda c: c.distance_meters)
    out["nearest"] = {"entity_id": nearest.entity_id, "name": nearest.name, "distance_meters": nearest.distance_meters}
    out["avg_menu_item_count"] = round(sum(c.menu_item_count for c in competitors) / len(competitors), 1)
    return out
