"""Verdict types emitted to the reporting layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import TypeAdapter

from reachvet.models.component import Component
from reachvet.models.facts import CodeLocation, ImportStyle


class ReachabilityStatus(Enum):
    REACHABLE = "reachable"  # imported and a member is used
    IMPORTED = "imported"  # imported, usage unclear
    NOT_REACHABLE = "not_reachable"  # not imported anywhere
    UNKNOWN = "unknown"  # could not determine


class Confidence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    @classmethod
    def highest(cls, values: list[Confidence]) -> Confidence:
        if not values:
            return cls.LOW
        return max(values, key=lambda c: c.rank)

    def cap(self, ceiling: Confidence) -> Confidence:
        return self if self.rank <= ceiling.rank else ceiling


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


@dataclass(frozen=True)
class AnalysisWarning:
    """Structured note about an analysis limitation."""

    code: str  # wildcard_import | side_effect_import | conditional_import | parse_warning
    message: str
    severity: str = "warning"  # info | warning
    location: CodeLocation | None = None


@dataclass(frozen=True)
class UsageInfo:
    import_style: ImportStyle
    used_members: tuple[str, ...] = ()
    locations: tuple[CodeLocation, ...] = ()
    imported_as: str | None = None


@dataclass(frozen=True)
class ComponentResult:
    """Reachability verdict for one component in one analysis run."""

    component: Component
    status: ReachabilityStatus
    confidence: Confidence
    usage: UsageInfo | None = None
    notes: tuple[str, ...] = ()
    warnings: tuple[AnalysisWarning, ...] = ()

    @property
    def vulnerable_members(self) -> list[str]:
        """Used members that appear in the component's affected-function list."""
        if self.usage is None:
            return []
        affected = set(self.component.affected_functions)
        return [m for m in self.usage.used_members if m in affected]

    def to_dict(self) -> dict[str, Any]:
        return _RESULT_ADAPTER.dump_python(self, mode="json")


@dataclass
class AnalysisSummary:
    total: int = 0
    reachable: int = 0
    imported: int = 0
    not_reachable: int = 0
    unknown: int = 0
    vulnerable_reachable: int = 0  # vulnerable AND reachable
    warnings_count: int = 0

    @classmethod
    def from_results(cls, results: list[ComponentResult]) -> AnalysisSummary:
        summary = cls(total=len(results))
        for result in results:
            if result.status is ReachabilityStatus.REACHABLE:
                summary.reachable += 1
                if result.component.vulnerabilities:
                    summary.vulnerable_reachable += 1
            elif result.status is ReachabilityStatus.IMPORTED:
                summary.imported += 1
            elif result.status is ReachabilityStatus.NOT_REACHABLE:
                summary.not_reachable += 1
            else:
                summary.unknown += 1
            summary.warnings_count += len(result.warnings)
        return summary


@dataclass
class AnalysisOutput:
    version: str
    timestamp: str
    source_dir: str
    language: str | None
    summary: AnalysisSummary
    results: list[ComponentResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _OUTPUT_ADAPTER.dump_python(self, mode="json")


_RESULT_ADAPTER = TypeAdapter(ComponentResult)
_OUTPUT_ADAPTER = TypeAdapter(AnalysisOutput)
