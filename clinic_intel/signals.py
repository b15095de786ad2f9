"""
Sales signal classification.

Matches detected equipment / treatment changes against a product's sales-signal
rules and emits one prioritized signal per (rule, matching change). A single
change may satisfy several rules.

Example rule:
    {"trigger": "equipment_removed",
     "match_keywords": ["써마지", "울쎄라"],
     "priority": "HIGH",
     "title_template": "{{item_name}} removal detected",
     "description_template": "...",
     "related_angle": "bridge_care"}

Persisting the batch is best-effort: signals are returned even when the store
write fails.
"""

import re
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, Callable, List, Optional, Tuple, Union

from .changes import ADDED, REMOVED, EQUIPMENT, TREATMENT, EquipmentChange
from .outcome import Ok, Degraded, best_effort

logger = logging.getLogger(__name__)

TRIGGER_MAP: Dict[str, Tuple[str, str]] = {
    "equipment_removed": (REMOVED, EQUIPMENT),
    "equipment_added": (ADDED, EQUIPMENT),
    "treatment_added": (ADDED, TREATMENT),
    "treatment_removed": (REMOVED, TREATMENT),
}

PRIORITIES = ("HIGH", "MEDIUM", "LOW")
ITEM_NAME_PLACEHOLDER = "{{item_name}}"
STATUS_NEW = "NEW"

_WHITESPACE = re.compile(r"\s+")


@dataclass
class SalesSignalRule:
    trigger: str
    match_keywords: List[str]
    priority: str
    title_template: str
    description_template: str = ""
    related_angle: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SalesSignalRule":
        return cls(
            trigger=data.get("trigger", ""),
            match_keywords=list(data.get("match_keywords") or []),
            priority=data.get("priority", "LOW"),
            title_template=data.get("title_template", ""),
            description_template=data.get("description_template", ""),
            related_angle=data.get("related_angle", ""),
        )


@dataclass
class SalesSignal:
    entity_id: str
    product_id: str
    signal_type: str
    priority: str
    title: str
    description: str
    related_angle: str
    source_change_id: Optional[str]
    detected_at: str
    status: str = STATUS_NEW

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class ClassificationResult:
    signals: List[SalesSignal] = field(default_factory=list)
    persistence: Union[Ok, Degraded] = field(default_factory=Ok)

    @property
    def degraded(self) -> bool:
        return self.persistence.degraded


def trigger_to_change_type(trigger: str) -> Optional[Tuple[str, str]]:
    """(change_type, item_type) for a trigger name, None if unrecognized."""
    return TRIGGER_MAP.get(trigger)


def _squash(text: Optional[str]) -> str:
    return _WHITESPACE.sub("", text or "").lower()


def matches_keyword(keyword: str, text: Optional[str]) -> bool:
    """Whitespace-stripped, case-insensitive containment."""
    needle = _squash(keyword)
    if not needle:
        return False
    return needle in _squash(text)


def render_template(template: str, item_name: str) -> str:
    return (template or "").replace(ITEM_NAME_PLACEHOLDER, item_name)


def _as_rule(rule: Union[SalesSignalRule, Dict[str, Any]]) -> SalesSignalRule:
    return rule if isinstance(rule, SalesSignalRule) else SalesSignalRule.from_dict(rule)


def _as_change(change: Union[EquipmentChange, Dict[str, Any]]) -> EquipmentChange:
    if isinstance(change, EquipmentChange):
        return change
    return EquipmentChange(
        entity_id=change.get("entity_id") or change.get("hospital_id"),
        item_type=change["item_type"],
        change_type=change["change_type"],
        item_name=change.get("item_name") or "",
        standard_name=change.get("standard_name") or change.get("item_name") or "",
        id=change.get("id"),
    )


def match_signals(
    changes: List[Union[EquipmentChange, Dict[str, Any]]],
    product_id: str,
    rules: List[Union[SalesSignalRule, Dict[str, Any]]],
    detected_at: Optional[str] = None,
) -> List[SalesSignal]:
    """Pure matching step; no storage access."""
    if not rules or not changes:
        return []

    detected_at = detected_at or datetime.now(timezone.utc).isoformat()
    parsed_changes = [_as_change(c) for c in changes]
    signals: List[SalesSignal] = []

    for rule in (_as_rule(r) for r in rules):
        mapping = trigger_to_change_type(rule.trigger)
        if mapping is None:
            logger.debug("Skipping rule with unknown trigger %r", rule.trigger)
            continue
        change_type, item_type = mapping

        for change in parsed_changes:
            if change.change_type != change_type or change.item_type != item_type:
                continue
            if not any(
                matches_keyword(kw, change.standard_name) or matches_keyword(kw, change.item_name)
                for kw in rule.match_keywords
            ):
                continue

            signals.append(SalesSignal(
                entity_id=change.entity_id,
                product_id=product_id,
                signal_type=f"{change.item_type}_{change.change_type}",
                priority=rule.priority,
                title=render_template(rule.title_template, change.item_name),
                description=render_template(rule.description_template, change.item_name),
                related_angle=rule.related_angle,
                source_change_id=change.id,
                detected_at=detected_at,
            ))

    return signals


def _default_persist(rows: List[Dict]) -> int:
    from . import db

    return db.insert_signals(rows)


def classify_signals(
    changes: List[Union[EquipmentChange, Dict[str, Any]]],
    product_id: str,
    rules: List[Union[SalesSignalRule, Dict[str, Any]]],
    persist: Union[bool, Callable[[List[Dict]], Any]] = True,
) -> ClassificationResult:
    """
    Classify changes into sales signals and store them (best-effort).

    Args:
        changes: Detected changes (EquipmentChange or equivalent dicts)
        product_id: Product whose rules are applied
        rules: The product's sales-signal rules
        persist: True stores through clinic_intel.db.insert_signals, False skips
            storage, a callable receives the signal rows instead

    Returns:
        ClassificationResult with every computed signal and the persistence outcome
    """
    signals = match_signals(changes, product_id, rules)
    if not signals or persist is False:
        return ClassificationResult(signals=signals, persistence=Ok(0))

    writer = _default_persist if persist is True else persist
    outcome = best_effort("insert_signals", writer, [s.to_dict() for s in signals])
    logger.info(
        "Classified %s signals for product %s%s",
        len(signals), product_id, " (not persisted)" if outcome.degraded else "",
    )
    return ClassificationResult(signals=signals, persistence=outcome)
