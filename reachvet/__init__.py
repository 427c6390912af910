"""ReachVet: reachability verdicts for vulnerable dependencies."""

__version__ = "0.2.0"

from reachvet.analyzer import Analyzer, analyze  # noqa: E402
from reachvet.cache import CacheStats, FactStore, compute_hash  # noqa: E402
from reachvet.classifier import ReachabilityClassifier  # noqa: E402
from reachvet.config import CacheOptions, ReachVetConfig, load_config  # noqa: E402
from reachvet.matcher import ComponentMatcher, MatchedFacts, MatchRule  # noqa: E402
from reachvet.models import (  # noqa: E402
    AnalysisOutput,
    AnalysisSummary,
    AnalysisWarning,
    CacheEntry,
    CodeLocation,
    Component,
    ComponentResult,
    Confidence,
    FileFacts,
    ImportFact,
    ImportStyle,
    ParseWarning,
    ReachabilityStatus,
    UsageFact,
    UsageInfo,
    Vulnerability,
)

__all__ = [
    "AnalysisOutput",
    "AnalysisSummary",
    "AnalysisWarning",
    "Analyzer",
    "CacheEntry",
    "CacheOptions",
    "CacheStats",
    "CodeLocation",
    "Component",
    "ComponentMatcher",
    "ComponentResult",
    "Confidence",
    "FactStore",
    "FileFacts",
    "ImportFact",
    "ImportStyle",
    "MatchRule",
    "MatchedFacts",
    "ParseWarning",
    "ReachVetConfig",
    "ReachabilityClassifier",
    "ReachabilityStatus",
    "UsageFact",
    "UsageInfo",
    "Vulnerability",
    "analyze",
    "compute_hash",
    "load_config",
]
