"""
Canonical keyword dictionary and compound-word table.

Two sources of truth feed the Normalizer and Decomposer:
    static: seed entries shipped with the package (or loaded from a JSON file)
    store:  curated rows in the SQLite store, added out-of-band

Both are exposed through DictionaryProvider so callers never branch on where an
entry lives. ChainedDictionaryProvider composes them in fallback order.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

from .outcome import Degraded, best_effort

logger = logging.getLogger(__name__)

DICTIONARY_VERSION = "v1.0"

UNIT_TYPES = ("SHOT", "JOULE", "CC", "UNIT", "LINE", "SESSION")

KEYWORD_CATEGORIES = (
    "hifu",
    "rf",
    "booster",
    "surgery",
    "lifting",
    "body",
    "toxin",
    "filler",
)


@dataclass
class KeywordEntry:
    standard_name: str
    category: str
    base_unit_type: str
    aliases: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class CompoundWordEntry:
    compound_name: str
    decomposed_names: List[str]
    scoring_note: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)


# =============================================================================
# SEED DATA
# =============================================================================

KEYWORD_DICTIONARY: List[KeywordEntry] = [
    # HIFU
    KeywordEntry("울쎄라", "hifu", "SHOT", ["울세라", "ulthera", "울쎄", "울", "울쎄라더블로"]),
    KeywordEntry("슈링크", "hifu", "SHOT", ["슈링크유니버스", "shurink", "슈", "슈링크U"]),
    KeywordEntry("온다리프팅", "hifu", "JOULE", ["온다", "onda", "온다리프팅"]),
    # RF
    KeywordEntry("써마지", "rf", "SHOT", ["써마지FLX", "써마지CPT", "thermage", "써마", "써"]),
    KeywordEntry("인모드", "rf", "SESSION", ["인모드FX", "인모드FORMA", "inmode", "인모드리프팅"]),
    KeywordEntry("올리지오", "rf", "SESSION", ["올리지오X", "올리", "oligio"]),
    KeywordEntry("포텐자", "rf", "SESSION", ["포텐", "potenza", "포텐자MRF"]),
    KeywordEntry("토르RF", "rf", "SESSION", ["토르", "TORR", "TORR RF", "토르리프팅"]),
    # Booster
    KeywordEntry("쥬베룩", "booster", "CC", ["쥬베룩볼륨", "쥬베", "juvelook", "쥬베룩비타"]),
    KeywordEntry("리쥬란", "booster", "CC", ["리쥬란힐러", "리쥬란HB", "리쥬", "rejuran"]),
    # Lifting
    KeywordEntry("실리프팅", "lifting", "LINE", ["민트실", "실루엣소프트", "캐번실", "잼버실", "녹는실", "코그실", "실톡스"]),
    # Surgery
    KeywordEntry("안면거상", "surgery", "SESSION", ["미니거상", "거상술", "페이스리프트", "풀페이스리프트"]),
    KeywordEntry("지방흡입", "surgery", "SESSION", ["지흡", "얼굴지흡", "이중턱지흡", "턱지흡", "바디지흡"]),
    # Toxin / Filler
    KeywordEntry("보톡스", "toxin", "UNIT", ["보톡", "botox", "보툴리눔", "제오민", "나보타", "보툴렉스"]),
    KeywordEntry("필러", "filler", "CC", ["주름필러", "볼필러", "턱필러", "이마필러", "코필러"]),
]

COMPOUND_WORDS: List[CompoundWordEntry] = [
    CompoundWordEntry("울써마지", ["울쎄라", "써마지"], "High-end bridge, premium package"),
    CompoundWordEntry("인슈링크", ["인모드", "슈링크"], "RF + HIFU combo"),
    CompoundWordEntry("울쥬베", ["울쎄라", "쥬베룩"], "Lifting + booster package"),
    CompoundWordEntry("써쥬베", ["써마지", "쥬베룩"], "RF + booster package"),
    CompoundWordEntry("텐텐", ["텐쎄라", "텐써마"], "Eye-area lifting"),
    CompoundWordEntry("올리쥬란", ["올리지오", "리쥬란"], "RF + booster combo"),
    CompoundWordEntry("슈쥬베", ["슈링크", "쥬베룩"], "HIFU + booster"),
    CompoundWordEntry("울포", ["울쎄라", "포텐자"], "HIFU + MRF"),
]


def find_compound_in(entries: List[CompoundWordEntry], text: str) -> Optional[CompoundWordEntry]:
    """Return the first entry whose compound name occurs in text (case-insensitive)."""
    lower = text.lower()
    for entry in entries:
        if entry.compound_name.lower() in lower:
            return entry
    return None


def _keyword_from_json(k: Dict) -> KeywordEntry:
    """Build a KeywordEntry, rejecting unknown categories and unit types."""
    entry = KeywordEntry(
        standard_name=k["standard_name"],
        category=k.get("category", ""),
        base_unit_type=k.get("base_unit_type", ""),
        aliases=list(k.get("aliases") or []),
    )
    if entry.category not in KEYWORD_CATEGORIES:
        raise ValueError(f"Unknown category for {entry.standard_name}: {entry.category!r}")
    if entry.base_unit_type not in UNIT_TYPES:
        raise ValueError(f"Unknown unit type for {entry.standard_name}: {entry.base_unit_type!r}")
    return entry


# =============================================================================
# PROVIDERS
# =============================================================================

class DictionaryProvider:
    """Read-only source of keyword entries and compound decompositions."""

    source: str = "base"

    def keyword_entries(self) -> List[KeywordEntry]:
        raise NotImplementedError

    def find_compound(self, text: str) -> Optional[CompoundWordEntry]:
        raise NotImplementedError


class StaticDictionaryProvider(DictionaryProvider):
    """In-memory dictionary; the seed tables above unless told otherwise."""

    source = "dictionary"

    def __init__(
        self,
        entries: Optional[List[KeywordEntry]] = None,
        compounds: Optional[List[CompoundWordEntry]] = None,
        version: str = DICTIONARY_VERSION,
    ):
        self.entries = list(entries) if entries is not None else list(KEYWORD_DICTIONARY)
        self.compounds = list(compounds) if compounds is not None else list(COMPOUND_WORDS)
        self.version = version

    @classmethod
    def from_json(cls, path: str) -> "StaticDictionaryProvider":
        """
        Load a versioned dictionary file.

        Expected shape:
            {"version": "v1.4",
             "keywords": [{"standard_name", "category", "base_unit_type", "aliases"}],
             "compounds": [{"compound_name", "decomposed_names", "scoring_note"}]}
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        entries = [_keyword_from_json(k) for k in data.get("keywords", [])]
        compounds = [
            CompoundWordEntry(
                compound_name=c["compound_name"],
                decomposed_names=list(c.get("decomposed_names") or []),
                scoring_note=c.get("scoring_note") or "",
            )
            for c in data.get("compounds", [])
        ]
        logger.info(
            "Loaded dictionary %s: %s keywords, %s compounds",
            data.get("version", "unversioned"), len(entries), len(compounds),
        )
        return cls(entries, compounds, version=data.get("version", DICTIONARY_VERSION))

    def keyword_entries(self) -> List[KeywordEntry]:
        return self.entries

    def find_compound(self, text: str) -> Optional[CompoundWordEntry]:
        return find_compound_in(self.compounds, text)


class StoreDictionaryProvider(DictionaryProvider):
    """Curated entries in the SQLite store. Lookups may raise on storage faults."""

    source = "db"

    def keyword_entries(self) -> List[KeywordEntry]:
        from . import db

        return db.get_dictionary_entries()

    def find_compound(self, text: str) -> Optional[CompoundWordEntry]:
        from . import db

        return db.find_compound_by_text(text)


class ChainedDictionaryProvider(DictionaryProvider):
    """
    Fallback chain over several providers.

    The first provider with a hit wins. A provider that raises is treated as
    "no match" and recorded as Degraded; the chain moves on.

    Keyword entries are merged across providers (earlier wins per standard
    name) unless merge_keywords is False, in which case the first provider
    returning any entries is used alone.
    """

    source = "chain"

    def __init__(self, providers: List[DictionaryProvider], merge_keywords: bool = True):
        self.providers = list(providers)
        self.merge_keywords = merge_keywords

    def keyword_entries(self) -> List[KeywordEntry]:
        entries, _ = self.keyword_entries_with_outcomes()
        return entries

    def keyword_entries_with_outcomes(self) -> Tuple[List[KeywordEntry], List[Degraded]]:
        seen = set()
        merged: List[KeywordEntry] = []
        degraded: List[Degraded] = []
        for provider in self.providers:
            outcome = best_effort(f"{provider.source}.keyword_entries", provider.keyword_entries)
            if outcome.degraded:
                degraded.append(outcome)
                continue
            for entry in outcome.value or []:
                if entry.standard_name in seen:
                    continue
                seen.add(entry.standard_name)
                merged.append(entry)
            if merged and not self.merge_keywords:
                break
        return merged, degraded

    def find_compound(self, text: str) -> Optional[CompoundWordEntry]:
        entry, _, _ = self.resolve_compound(text)
        return entry

    def resolve_compound(
        self, text: str
    ) -> Tuple[Optional[CompoundWordEntry], Optional[str], List[Degraded]]:
        """
        Returns:
            (entry, source of the provider that matched, degraded outcomes seen)
        """
        degraded: List[Degraded] = []
        for provider in self.providers:
            outcome = best_effort(f"{provider.source}.find_compound", provider.find_compound, text)
            if outcome.degraded:
                degraded.append(outcome)
                continue
            if outcome.value is not None:
                return outcome.value, provider.source, degraded
        return None, None, degraded


def default_provider(include_store: bool = True) -> ChainedDictionaryProvider:
    """Static seed first, curated store second."""
    providers: List[DictionaryProvider] = [StaticDictionaryProvider()]
    if include_store:
        providers.append(StoreDictionaryProvider())
    return ChainedDictionaryProvider(providers)


def keyword_provider() -> ChainedDictionaryProvider:
    """
    Keyword entries for the Normalizer.

    The versioned dictionary in the store wins outright; the shipped seed is
    used only when the store has no active entries or cannot be read.
    """
    return ChainedDictionaryProvider(
        [StoreDictionaryProvider(), StaticDictionaryProvider()], merge_keywords=False
    )
