"""
Keyword normalization.

Maps noisy extracted keyword strings (equipment / treatment names from OCR and
AI extraction) onto canonical dictionary entries:

    1. OCR correction (full-width digits, known single-word confusions)
    2. Standard-name containment, dictionary order, first hit wins
    3. Alias containment, longest alias first
    4. Otherwise unresolved (standard_name=None)

Unmatched items are returned separately so they can go to the Decomposer.
"""

import re
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

from .dictionary import KeywordEntry, KEYWORD_DICTIONARY, DictionaryProvider, ChainedDictionaryProvider
from .outcome import Degraded

logger = logging.getLogger(__name__)

# Word-level OCR confusions seen in price banners ("300숏" -> "300샷")
OCR_CORRECTIONS = {
    "숏": "샷",
    "숫": "샷",
    "쇼트": "샷",
}

_FULLWIDTH_DIGITS = re.compile(r"[０-９]")


@dataclass
class NormalizedItem:
    original: str
    standard_name: Optional[str] = None
    category: Optional[str] = None
    base_unit_type: Optional[str] = None
    matched_by: Optional[str] = None  # "standard" | "alias" | None

    @property
    def matched(self) -> bool:
        return self.standard_name is not None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class NormalizerResult:
    normalized: List[NormalizedItem] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    match_rate: float = 0.0
    degraded: List[Degraded] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "normalized": [n.to_dict() for n in self.normalized],
            "unmatched": list(self.unmatched),
            "match_rate": self.match_rate,
            "degraded": [{"operation": d.operation, "error": d.error} for d in self.degraded],
        }


def correct_ocr_errors(text: str) -> str:
    """Fix common scanner artifacts. Deterministic; safe to apply twice."""
    result = _FULLWIDTH_DIGITS.sub(lambda m: chr(ord(m.group(0)) - 0xFF10 + 0x30), text)
    for wrong, correct in OCR_CORRECTIONS.items():
        result = result.replace(wrong, correct)
    return result


def resolve_entries(
    entries: Optional[List[KeywordEntry]], provider: Optional[DictionaryProvider]
) -> Tuple[List[KeywordEntry], List[Degraded]]:
    """
    Pick the entries to match against: explicit entries, then the provider,
    then the seed dictionary. Returns (entries, Degraded outcomes seen).
    """
    if entries is not None:
        return entries, []
    if isinstance(provider, ChainedDictionaryProvider):
        return provider.keyword_entries_with_outcomes()
    if provider is not None:
        return provider.keyword_entries(), []
    return KEYWORD_DICTIONARY, []


def _alias_index(entries: List[KeywordEntry]) -> List[tuple]:
    """
    (alias_lower, entry) pairs, longest alias first.

    sorted() is stable, so equal-length aliases keep dictionary order and the
    earlier entry wins a collision.
    """
    pairs = [(alias.lower(), entry) for entry in entries for alias in entry.aliases if alias]
    return sorted(pairs, key=lambda p: -len(p[0]))


def _item(original: str, entry: KeywordEntry, matched_by: str) -> NormalizedItem:
    return NormalizedItem(
        original=original,
        standard_name=entry.standard_name,
        category=entry.category,
        base_unit_type=entry.base_unit_type,
        matched_by=matched_by,
    )


def _match(text: str, entries: List[KeywordEntry], alias_index: List[tuple]) -> NormalizedItem:
    stripped = text.strip()
    if not stripped:
        return NormalizedItem(original=text)

    lower = correct_ocr_errors(stripped).lower()

    for entry in entries:
        if entry.standard_name.lower() in lower:
            return _item(text, entry, "standard")

    for alias, entry in alias_index:
        if alias in lower:
            return _item(text, entry, "alias")

    return NormalizedItem(original=text)


def normalize_keyword(
    text: str,
    entries: Optional[List[KeywordEntry]] = None,
    provider: Optional[DictionaryProvider] = None,
) -> NormalizedItem:
    """
    Normalize a single keyword to its canonical entry.

    Args:
        text: Raw keyword string
        entries: Dictionary entries to match against (defaults to the seed dictionary)
        provider: Alternative source of entries when entries is not given

    Returns:
        NormalizedItem; standard_name is None when nothing matched
    """
    resolved, _ = resolve_entries(entries, provider)
    return _match(text, resolved, _alias_index(resolved))


def normalize_all(
    items: List[str],
    entries: Optional[List[KeywordEntry]] = None,
    provider: Optional[DictionaryProvider] = None,
) -> NormalizerResult:
    """
    Normalize a batch of keywords.

    Blank items are skipped. match_rate is matched / total over the non-blank
    items and 0.0 for an empty batch. When a chained provider is given, any
    source that could not be read is listed in degraded.
    """
    resolved, degraded = resolve_entries(entries, provider)
    alias_index = _alias_index(resolved)

    normalized: List[NormalizedItem] = []
    unmatched: List[str] = []
    for item in items:
        if not item or not item.strip():
            continue
        result = _match(item, resolved, alias_index)
        normalized.append(result)
        if not result.matched:
            unmatched.append(item)

    total = len(normalized)
    matched = total - len(unmatched)
    match_rate = matched / total if total > 0 else 0.0

    if unmatched:
        logger.info("Normalized %s/%s keywords (%s unmatched)", matched, total, len(unmatched))
    return NormalizerResult(normalized=normalized, unmatched=unmatched, match_rate=match_rate, degraded=degraded)


def extract_known_keywords(
    full_text: str,
    entries: Optional[List[KeywordEntry]] = None,
    provider: Optional[DictionaryProvider] = None,
) -> List[KeywordEntry]:
    """
    Find every known keyword occurring anywhere in a block of crawled text.

    Returns one entry per standard name, in dictionary order.
    """
    resolved, _ = resolve_entries(entries, provider)
    lower = correct_ocr_errors(full_text or "").lower()
    found: List[KeywordEntry] = []
    seen = set()

    for entry in resolved:
        if entry.standard_name in seen:
            continue
        if entry.standard_name.lower() in lower or any(
            alias and alias.lower() in lower for alias in entry.aliases
        ):
            found.append(entry)
            seen.add(entry.standard_name)

    return found
