"""
Five-axis score calculators.

Each scorer returns an integer in [0, 100]. Inputs are plain dicts as read from
the store (entity_equipments / entity_treatments rows) plus the competitor list.
The product being sold is an RF device, so "rf" is the tracked equipment
category throughout.
"""

from datetime import datetime
from typing import Dict, Any, List, Optional

from .competitor import CompetitorData

RF = "rf"

LIFTING_CATEGORIES = ("lifting", "tightening")
ANTI_AGING_CATEGORIES = ("lifting", "tightening", "toning", "filler", "botox")


def _clamp(value: int, min_val: int = 0, max_val: int = 100) -> int:
    return max(min_val, min(max_val, value))


def _year(current_year: Optional[int]) -> int:
    return current_year or datetime.now().year


def _rf(equipments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [e for e in equipments if e.get("equipment_category") == RF]


def score_equipment_synergy(equipments: List[Dict[str, Any]], current_year: Optional[int] = None) -> int:
    """
    Axis 1 (default weight 25): would the product complement existing equipment?

    RF ownership up to 40, complementary devices up to 35, equipment count as
    investment tendency up to 25.
    """
    year = _year(current_year)
    score = 0
    rf = _rf(equipments)

    if not rf:
        score += 40
    else:
        oldest = min(e.get("estimated_year") or year for e in rf)
        age = year - oldest
        if age >= 5:
            score += 30
        elif age >= 3:
            score += 15
        else:
            score += 5

    categories = {e.get("equipment_category") for e in equipments}
    if "ultrasound" in categories or "hifu" in categories:
        score += 20
    if "laser" in categories:
        score += 10
    if "ipl" in categories:
        score += 5

    total = len(equipments)
    if total >= 5:
        score += 25
    elif total >= 3:
        score += 15
    elif total >= 1:
        score += 10

    return _clamp(score)


def score_equipment_age(equipments: List[Dict[str, Any]], current_year: Optional[int] = None) -> int:
    """Axis 2 (default weight 20): is existing RF equipment due for replacement?"""
    year = _year(current_year)
    rf = _rf(equipments)
    if not rf:
        return 80

    years = [e["estimated_year"] for e in rf if e.get("estimated_year") is not None]
    if not years:
        return 50

    age = year - min(years)
    if age >= 7:
        return 100
    if age >= 5:
        return 85
    if age >= 4:
        return 65
    if age >= 3:
        return 45
    if age >= 2:
        return 25
    return 10


def score_revenue_impact(treatments: List[Dict[str, Any]], equipments: List[Dict[str, Any]]) -> int:
    """
    Axis 3 (default weight 30): how much would adoption move revenue?

    Lifting demand up to 35, demand-without-equipment gap up to 25, menu price
    level up to 20, anti-aging focus up to 20.
    """
    score = 0
    has_rf = bool(_rf(equipments))

    lifting = [t for t in treatments if t.get("treatment_category") in LIFTING_CATEGORIES]
    if len(lifting) >= 3:
        score += 35
    elif lifting:
        score += 25
    else:
        score += 10

    if not has_rf and lifting:
        score += 25
    elif not has_rf:
        score += 10

    prices = [t["price_min"] for t in treatments if t.get("price_min") and t["price_min"] > 0]
    if prices:
        avg_price = sum(prices) / len(prices)
        if avg_price >= 300000:
            score += 20
        elif avg_price >= 150000:
            score += 15
        elif avg_price >= 80000:
            score += 10
        else:
            score += 5

    anti_aging = sum(1 for t in treatments if t.get("treatment_category") in ANTI_AGING_CATEGORIES)
    ratio = anti_aging / max(len(treatments), 1)
    if ratio >= 0.5:
        score += 20
    elif ratio >= 0.3:
        score += 15
    elif ratio >= 0.1:
        score += 10
    else:
        score += 5

    return _clamp(score)


def score_competitive_edge(competitors: List[CompetitorData]) -> int:
    """
    Axis 4 (default weight 15): differentiation potential in the local market.

    No competitor data -> 50. Otherwise modern-equipment penetration up to 50,
    market density up to 30, plus a flat 10 for menu diversity.
    """
    total = len(competitors)
    if total == 0:
        return 50

    score = 0
    penetration = sum(1 for c in competitors if c.has_modern_equipment) / total
    if penetration == 0:
        score += 50
    elif penetration < 0.1:
        score += 40
    elif penetration < 0.2:
        score += 30
    elif penetration < 0.3:
        score += 20
    elif penetration < 0.5:
        score += 10
    else:
        score += 5

    if total >= 15:
        score += 30
    elif total >= 10:
        score += 25
    elif total >= 5:
        score += 15
    else:
        score += 10

    score += 10
    return _clamp(score)


def _opened_year(opened_at: Optional[str]) -> Optional[int]:
    if not opened_at:
        return None
    try:
        return datetime.fromisoformat(str(opened_at).replace("Z", "+00:00")).year
    except ValueError:
        try:
            return int(str(opened_at)[:4])
        except ValueError:
            return None


def score_purchase_readiness(
    entity: Dict[str, Any],
    equipments: List[Dict[str, Any]],
    current_year: Optional[int] = None,
) -> int:
    """
    Axis 5 (default weight 10): can the clinic realistically buy now?

    Years open up to 40, recent equipment investment up to 40, reachable by
    email 20.
    """
    year = _year(current_year)
    score = 0

    opened = _opened_year(entity.get("opened_at"))
    if opened is None:
        score += 20
    else:
        years_open = year - opened
        if 2 <= years_open <= 5:
            score += 40
        elif 6 <= years_open <= 10:
            score += 30
        elif years_open > 10:
            score += 25
        elif years_open >= 1:
            score += 20
        else:
            score += 10

    recent = [
        e for e in equipments
        if e.get("estimated_year") is not None and year - e["estimated_year"] <= 2
    ]
    if len(recent) >= 2:
        score += 40
    elif len(recent) == 1:
        score += 30
    elif not equipments:
        score += 15
    else:
        score += 10

    if entity.get("email"):
        score += 20

    return _clamp(score)


def calculate_axis_scores(
    entity: Dict[str, Any],
    equipments: List[Dict[str, Any]],
    treatments: List[Dict[str, Any]],
    competitors: List[CompetitorData],
    current_year: Optional[int] = None,
) -> Dict[str, int]:
    return {
        "equipment_synergy": score_equipment_synergy(equipments, current_year),
        "equipment_age": score_equipment_age(equipments, current_year),
        "revenue_impact": score_revenue_impact(treatments, equipments),
        "competitive_edge": score_competitive_edge(competitors),
        "purchase_readiness": score_purchase_readiness(entity, equipments, current_year),
    }
