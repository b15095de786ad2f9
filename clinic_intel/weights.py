"""
Scoring weight configuration.

Exactly one weight set is active at a time. New sets are validated before
activation; an invalid set is rejected, never corrected.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from . import db
from .grading import DEFAULT_WEIGHTS, WeightSet, validate_weights

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "default"


def get_active_weights() -> Tuple[WeightSet, str]:
    """
    Return (weights, version) for the active weight set.

    Falls back to the default {25, 20, 30, 15, 10} when nothing is active or the
    store cannot be read.
    """
    try:
        row = db.get_active_weights_row()
    except Exception as e:
        logger.warning("Could not read active weights, using defaults: %s", e)
        row = None

    if not row:
        return WeightSet(**DEFAULT_WEIGHTS.to_dict()), DEFAULT_VERSION

    weights = WeightSet(
        equipment_synergy=row["weight_equipment_synergy"],
        equipment_age=row["weight_equipment_age"],
        revenue_impact=row["weight_revenue_impact"],
        competitive_edge=row["weight_competitive_edge"],
        purchase_readiness=row["weight_purchase_readiness"],
    )
    return weights, row["version"]


def _next_version(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    base = f"v{now.year}.{now.month:02d}.{now.day:02d}"
    version = base
    n = 1
    while db.weight_version_exists(version):
        n += 1
        version = f"{base}-{n}"
    return version


def create_weight_version(weights: WeightSet, notes: Optional[str] = None) -> str:
    """
    Validate and activate a new weight set; return its version string.

    Raises:
        WeightValidationError: the set does not sum to 100 or has a negative axis
    """
    validate_weights(weights)
    version = _next_version()
    db.activate_weight_version(version, weights.to_dict(), notes)
    logger.info("Activated scoring weights %s: %s", version, weights.to_dict())
    return version
