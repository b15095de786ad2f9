"""
Compound-word decomposition.

Korean aesthetic-treatment menus often blend two treatment names into one token
(울(쎄라) + 써(마지) = 울써마지). Strings the Normalizer could not resolve are
run through:

    1. static compound table                    -> source "dictionary", confidence 1.0
    2. curated compound rows in the store       -> source "db", confidence 1.0
    3. prefix-pair heuristic, candidate upsert  -> source "regex_candidate", confidence 0
    4. unresolved                               -> source None, confidence 0

Steps 1 and 3 work offline. Store faults in step 2 and in candidate
registration degrade to "no match" and never abort a batch.
"""

import re
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict
from typing import Callable, Dict, List, Optional, Tuple

from .dictionary import ChainedDictionaryProvider, DictionaryProvider, default_provider
from .outcome import Degraded, best_effort

logger = logging.getLogger(__name__)

# First syllables of known treatment names; a compound is two of them back to back.
COMPOUND_PREFIX_PATTERN = re.compile(r"^(울|써|인|슈|텐|올|포|쥬|리|실|보)(써|쥬|리|슈|모|포|텐|올|인)")

SOURCE_DICTIONARY = "dictionary"
SOURCE_DB = "db"
SOURCE_REGEX_CANDIDATE = "regex_candidate"


@dataclass
class DecompositionResult:
    original: str
    decomposed: Optional[List[str]] = None
    source: Optional[str] = None
    confidence: float = 0.0
    scoring_note: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class DecomposerOutput:
    results: List[DecompositionResult] = field(default_factory=list)
    new_candidates: List[str] = field(default_factory=list)
    degraded: List[Degraded] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "new_candidates": list(self.new_candidates),
            "degraded": [{"operation": d.operation, "error": d.error} for d in self.degraded],
        }


def looks_like_compound(text: str) -> bool:
    return bool(COMPOUND_PREFIX_PATTERN.match(text.strip()))


def _default_recorder(raw_text: str, origin_entity_id: Optional[str]) -> None:
    from . import db

    db.record_candidate(raw_text, origin_entity_id)


class Decomposer:
    """
    Resolves compound terms through a dictionary provider chain.

    Args:
        provider: Chain of static + store providers (default: seed table, then store)
        record_candidate: Callable(raw_text, origin_entity_id) performing the
            atomic candidate upsert (default: clinic_intel.db.record_candidate)
    """

    def __init__(
        self,
        provider: Optional[DictionaryProvider] = None,
        record_candidate: Optional[Callable[[str, Optional[str]], None]] = None,
    ):
        if provider is None:
            provider = default_provider()
        if not isinstance(provider, ChainedDictionaryProvider):
            provider = ChainedDictionaryProvider([provider])
        self.provider = provider
        self.record_candidate = record_candidate or _default_recorder

    def _decompose(
        self, text: str, origin_entity_id: Optional[str]
    ) -> Tuple[DecompositionResult, List[Degraded]]:
        trimmed = (text or "").strip()
        if not trimmed:
            return DecompositionResult(original=trimmed), []

        entry, source, degraded = self.provider.resolve_compound(trimmed)
        if entry is not None:
            return DecompositionResult(
                original=trimmed,
                decomposed=list(entry.decomposed_names),
                source=source,
                confidence=1.0,
                scoring_note=entry.scoring_note,
            ), degraded

        if looks_like_compound(trimmed):
            outcome = best_effort("record_candidate", self.record_candidate, trimmed, origin_entity_id)
            if outcome.degraded:
                degraded.append(outcome)
            return DecompositionResult(original=trimmed, source=SOURCE_REGEX_CANDIDATE), degraded

        return DecompositionResult(original=trimmed), degraded

    def decompose(self, text: str, origin_entity_id: Optional[str] = None) -> DecompositionResult:
        """Decompose a single term. Never raises on storage faults."""
        result, _ = self._decompose(text, origin_entity_id)
        return result

    def decompose_all(
        self,
        items: List[str],
        origin_entity_id: Optional[str] = None,
        max_workers: int = 1,
    ) -> DecomposerOutput:
        """
        Decompose a batch. Blank items are skipped; every other item gets
        exactly one result, in input order.

        Args:
            items: Terms to decompose (typically NormalizerResult.unmatched)
            origin_entity_id: Entity the terms were crawled from (recorded on new candidates)
            max_workers: >1 runs items on a thread pool
        """
        work = [item for item in items if item and item.strip()]

        if max_workers > 1 and len(work) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                pairs = list(pool.map(lambda t: self._decompose(t, origin_entity_id), work))
        else:
            pairs = [self._decompose(t, origin_entity_id) for t in work]

        output = DecomposerOutput()
        for item, (result, degraded) in zip(work, pairs):
            output.results.append(result)
            output.degraded.extend(degraded)
            if result.source == SOURCE_REGEX_CANDIDATE:
                output.new_candidates.append(item)

        if output.new_candidates:
            logger.info("Registered %s compound candidates", len(output.new_candidates))
        if output.degraded:
            logger.warning("Decomposition ran degraded for %s store calls", len(output.degraded))
        return output
