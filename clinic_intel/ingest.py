"""
Crawl ingestion: keyword normalization followed by compound decomposition.

Every equipment and treatment name in a crawl goes through the Normalizer.
Names still unmatched go to the Decomposer with the crawled clinic as origin,
so unknown compound terms surface as candidates for review.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .decompose import Decomposer, DecomposerOutput
from .dictionary import DictionaryProvider, KeywordEntry, keyword_provider
from .normalize import NormalizerResult, normalize_all, resolve_entries
from .outcome import Degraded

logger = logging.getLogger(__name__)


@dataclass
class CrawlIngestResult:
    entity_id: str
    equipments: NormalizerResult
    treatments: NormalizerResult
    decomposition: DecomposerOutput
    entries: List[KeywordEntry] = field(default_factory=list)
    dictionary_degraded: List[Degraded] = field(default_factory=list)

    @property
    def unmatched(self) -> List[str]:
        """Unmatched names across both lists, first occurrence order, no repeats."""
        seen = set()
        out = []
        for name in self.equipments.unmatched + self.treatments.unmatched:
            if name not in seen:
                seen.add(name)
                out.append(name)
        return out

    @property
    def match_rate(self) -> float:
        total = len(self.equipments.normalized) + len(self.treatments.normalized)
        if total == 0:
            return 0.0
        unmatched = len(self.equipments.unmatched) + len(self.treatments.unmatched)
        return (total - unmatched) / total

    @property
    def new_candidates(self) -> List[str]:
        return self.decomposition.new_candidates

    @property
    def degraded(self) -> List[Degraded]:
        return self.dictionary_degraded + self.decomposition.degraded

    def to_dict(self) -> Dict:
        return {
            "entity_id": self.entity_id,
            "equipments": self.equipments.to_dict(),
            "treatments": self.treatments.to_dict(),
            "decomposition": self.decomposition.to_dict(),
            "match_rate": self.match_rate,
            "unmatched": self.unmatched,
            "new_candidates": list(self.new_candidates),
        }


def ingest_crawl(
    entity_id: str,
    equipments: List[str],
    treatments: List[str],
    provider: Optional[DictionaryProvider] = None,
    decomposer: Optional[Decomposer] = None,
) -> CrawlIngestResult:
    """
    Normalize a crawl's names and decompose whatever the dictionary missed.

    Args:
        entity_id: Crawled clinic; recorded as origin of new candidates
        equipments / treatments: Raw names found by the crawler
        provider: Keyword source (default: stored dictionary, seed fallback)
        decomposer: Decomposer to use (default: seed compounds, then store)

    Returns:
        CrawlIngestResult; the resolved entries are kept so the change diff can
        use the same dictionary
    """
    entries, dictionary_degraded = resolve_entries(None, provider or keyword_provider())
    eq_result = normalize_all(equipments, entries=entries)
    tr_result = normalize_all(treatments, entries=entries)

    result = CrawlIngestResult(
        entity_id=entity_id,
        equipments=eq_result,
        treatments=tr_result,
        decomposition=DecomposerOutput(),
        entries=entries,
        dictionary_degraded=dictionary_degraded,
    )
    if result.unmatched:
        result.decomposition = (decomposer or Decomposer()).decompose_all(
            result.unmatched, origin_entity_id=entity_id
        )

    logger.info(
        "Ingested crawl for %s: match rate %.0f%%, %s unmatched, %s new candidates",
        entity_id, result.match_rate * 100, len(result.unmatched), len(result.new_candidates),
    )
    if result.degraded:
        logger.warning("Ingestion for %s ran degraded: %s", entity_id,
                       ", ".join(d.operation for d in result.degraded))
    return result
