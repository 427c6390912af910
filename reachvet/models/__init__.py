"""Data models shared across the reachability engine."""

from reachvet.models.component import Component, PackageURL, Vulnerability, parse_purl
from reachvet.models.facts import (
    CacheEntry,
    CodeLocation,
    FileFacts,
    ImportFact,
    ImportStyle,
    ParseWarning,
    UsageFact,
)
from reachvet.models.result import (
    AnalysisOutput,
    AnalysisSummary,
    AnalysisWarning,
    ComponentResult,
    Confidence,
    ReachabilityStatus,
    UsageInfo,
)

__all__ = [
    "AnalysisOutput",
    "AnalysisSummary",
    "AnalysisWarning",
    "CacheEntry",
    "CodeLocation",
    "Component",
    "ComponentResult",
    "Confidence",
    "FileFacts",
    "ImportFact",
    "ImportStyle",
    "PackageURL",
    "ParseWarning",
    "ReachabilityStatus",
    "UsageFact",
    "UsageInfo",
    "Vulnerability",
    "parse_purl",
]
