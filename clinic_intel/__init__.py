"""
Clinic Sales Intelligence - Core Package

Turns crawled clinic data (equipment, treatment menus, locations) into graded
sales opportunities for an RF device, plus change-driven sales signals and
automatic lead creation.

Architecture:
    outcome: Ok / Degraded result type for best-effort storage calls
    dictionary: Keyword and compound-word dictionaries, dictionary providers
    normalize: Keyword normalization (OCR fixes, standard names, aliases)
    decompose: Compound-word decomposition and candidate discovery
    ingest: Crawl ingestion (normalize, then decompose what stays unmatched)
    geo: Haversine distance helpers
    competitor: Same-district competitor analysis within a radius
    calculator: Five axis scores
    grading: Weighted total score and S/A/B/C/EXCLUDE grade ladder
    weights: Active scoring weight configuration
    changes: Equipment / treatment change detection between crawls
    signals: Sales signal classification from detected changes
    leads: Automatic lead creation from S/A match scores
    runner: Single and batch scoring pipeline
    db: SQLite persistence
"""

from .outcome import Ok, Degraded, best_effort
from .dictionary import (
    KeywordEntry,
    CompoundWordEntry,
    DictionaryProvider,
    StaticDictionaryProvider,
    StoreDictionaryProvider,
    ChainedDictionaryProvider,
    default_provider,
    keyword_provider,
)
from .normalize import (
    NormalizedItem,
    NormalizerResult,
    normalize_keyword,
    normalize_all,
    extract_known_keywords,
)
from .decompose import Decomposer, DecompositionResult, DecomposerOutput
from .ingest import CrawlIngestResult, ingest_crawl
from .geo import haversine_distance, haversine_meters
from .competitor import CompetitorData, find_competitors, summarize_competitors
from .grading import (
    Grade,
    ScoreSet,
    WeightSet,
    WeightValidationError,
    calculate_total_score,
    assign_grade,
    validate_weights,
)
from .calculator import calculate_axis_scores
from .changes import EquipmentChange, detect_equipment_changes
from .signals import SalesSignalRule, SalesSignal, ClassificationResult, classify_signals
from .leads import LeadGenerationResult, try_create_lead
from .weights import get_active_weights, create_weight_version
from .runner import ScoringRunResult, run_single_scoring, run_batch_scoring

__all__ = [
    # outcome
    "Ok",
    "Degraded",
    "best_effort",
    # dictionary
    "KeywordEntry",
    "CompoundWordEntry",
    "DictionaryProvider",
    "StaticDictionaryProvider",
    "StoreDictionaryProvider",
    "ChainedDictionaryProvider",
    "default_provider",
    "keyword_provider",
    # normalize
    "NormalizedItem",
    "NormalizerResult",
    "normalize_keyword",
    "normalize_all",
    "extract_known_keywords",
    # decompose
    "Decomposer",
    "DecompositionResult",
    "DecomposerOutput",
    # ingest
    "CrawlIngestResult",
    "ingest_crawl",
    # geo
    "haversine_distance",
    "haversine_meters",
    # competitor
    "CompetitorData",
    "find_competitors",
    "summarize_competitors",
    # grading
    "Grade",
    "ScoreSet",
    "WeightSet",
    "WeightValidationError",
    "calculate_total_score",
    "assign_grade",
    "validate_weights",
    # calculator
    "calculate_axis_scores",
    # changes
    "EquipmentChange",
    "detect_equipment_changes",
    # signals
    "SalesSignalRule",
    "SalesSignal",
    "ClassificationResult",
    "classify_signals",
    # leads
    "LeadGenerationResult",
    "try_create_lead",
    # weights
    "get_active_weights",
    "create_weight_version",
    # runner
    "ScoringRunResult",
    "run_single_scoring",
    "run_batch_scoring",
]
