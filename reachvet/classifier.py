"""Reachability classifier: turn matched facts into a verdict.

Each verdict is a pure function of the component metadata and the facts
attributed to it: no clock, no randomness, and every list in the output is
sorted so identical input yields an identical ``ComponentResult``.

Status, strongest evidence first:

    reachable      a member of the component is used (usage fact or named import)
    imported       imported, but no member usage attributable
    not_reachable  scan succeeded and nothing was imported
    unknown        no usable facts, or the component cannot be matched
"""

from __future__ import annotations

from collections import Counter

import structlog

from reachvet.exceptions import UnmatchableComponentError
from reachvet.matcher.matcher import ComponentMatcher, MatchedFacts
from reachvet.matcher.naming import MatchRule
from reachvet.models.component import Component
from reachvet.models.facts import CodeLocation, FileFacts, ImportStyle
from reachvet.models.result import (
    AnalysisWarning,
    ComponentResult,
    Confidence,
    ReachabilityStatus,
    UsageInfo,
)

log = structlog.get_logger("reachvet.classifier")

NO_SOURCE_FILES_NOTE = "No source files found for the configured language"

_RULE_CONFIDENCE = {
    MatchRule.EXACT: Confidence.HIGH,
    MatchRule.PURL: Confidence.HIGH,
    MatchRule.ALIAS: Confidence.MEDIUM,
    MatchRule.FUZZY: Confidence.LOW,
}

# Tie-break order when two import styles are equally common.
_STYLE_ORDER = [
    ImportStyle.SELECTIVE,
    ImportStyle.WHOLE_MODULE,
    ImportStyle.WILDCARD,
    ImportStyle.SIDE_EFFECT,
]


def _location_key(loc: CodeLocation) -> tuple[str, int, int, str]:
    return (loc.file, loc.line, loc.column or 0, loc.snippet or "")


def _confidence_for(rules: list[MatchRule]) -> Confidence:
    """Highest confidence among contributing matches."""
    return Confidence.highest([_RULE_CONFIDENCE[r] for r in rules])


class ReachabilityClassifier:
    """Produce a :class:`ComponentResult` per component."""

    # ── verdict constructors ─────────────────────────────────────────────

    @staticmethod
    def unknown(component: Component, note: str) -> ComponentResult:
        return ComponentResult(
            component=component,
            status=ReachabilityStatus.UNKNOWN,
            confidence=Confidence.LOW,
            notes=(note,),
        )

    @staticmethod
    def not_reachable(component: Component) -> ComponentResult:
        return ComponentResult(
            component=component,
            status=ReachabilityStatus.NOT_REACHABLE,
            confidence=Confidence.HIGH,
            notes=("Not imported in any source file",),
        )

    # ── classification ───────────────────────────────────────────────────

    def classify(
        self,
        component: Component,
        matched: MatchedFacts | None,
        *,
        scan_succeeded: bool = True,
    ) -> ComponentResult:
        if not scan_succeeded or matched is None:
            return self.unknown(component, NO_SOURCE_FILES_NOTE)
        # An empty fact set means there was nothing to scan.
        if matched.files_scanned == 0 and matched.is_empty:
            return self.unknown(component, NO_SOURCE_FILES_NOTE)

        if matched.is_empty:
            return self.not_reachable(component)

        affected = component.affected_functions
        warnings = self._warnings(matched)

        # Named imports are textual evidence of the member they name.
        evidence_rules: list[MatchRule] = []
        used: set[str] = set()
        for m in matched.usages:
            used.add(m.fact.member)
            evidence_rules.append(m.rule)
        for m in matched.imports:
            if m.fact.style is ImportStyle.SELECTIVE and m.fact.members:
                used.update(m.fact.members)
                evidence_rules.append(m.rule)
        used_members = tuple(sorted(used))

        usage = UsageInfo(
            import_style=self._primary_style(matched),
            used_members=used_members,
            locations=self._locations(matched),
            imported_as=self._imported_as(matched),
        )

        notes: list[str] = [self._summary_note(matched)]
        best = matched.best_rule
        if best is not None and not best.is_exact:
            notes.append(f"Matched by {best.value} name rule; attribution is heuristic")

        if not used_members:
            return self._imported(component, matched, usage, notes, warnings, affected)

        hits = [m for m in used_members if m in set(affected)]
        if hits:
            notes.append(f"Vulnerable function(s) used: {', '.join(hits)}")
        elif affected:
            notes.append(
                "Component is used, but the vulnerable code path was not observed in use "
                f"(affected: {', '.join(sorted(affected))})"
            )

        result = ComponentResult(
            component=component,
            status=ReachabilityStatus.REACHABLE,
            confidence=_confidence_for(evidence_rules),
            usage=usage,
            notes=tuple(notes),
            warnings=warnings,
        )
        log.debug(
            "classifier.verdict",
            component=component.name,
            status=result.status.value,
            confidence=result.confidence.value,
            vulnerable_members=hits,
        )
        return result

    def classify_all(
        self,
        components: list[Component],
        all_facts: list[FileFacts],
        matcher: ComponentMatcher,
        *,
        scan_succeeded: bool | None = None,
    ) -> list[ComponentResult]:
        """Classify every component against the complete fact set.

        When *scan_succeeded* is not given, an empty fact set counts as a
        failed scan (no source files were found).
        """
        if scan_succeeded is None:
            scan_succeeded = bool(all_facts)

        results: list[ComponentResult] = []
        for component in components:
            if not scan_succeeded:
                results.append(self.unknown(component, NO_SOURCE_FILES_NOTE))
                continue
            try:
                matched = matcher.match(component, all_facts)
            except UnmatchableComponentError as exc:
                log.info("classifier.unmatchable", component=exc.component_name, reason=exc.reason)
                results.append(self.unknown(component, f"Cannot determine what to look for: {exc.reason}"))
                continue
            results.append(self.classify(component, matched))
        return results

    # ── helpers ──────────────────────────────────────────────────────────

    def _imported(
        self,
        component: Component,
        matched: MatchedFacts,
        usage: UsageInfo,
        notes: list[str],
        warnings: tuple[AnalysisWarning, ...],
        affected: list[str],
    ) -> ComponentResult:
        has_wildcard = any(m.fact.style is ImportStyle.WILDCARD for m in matched.imports)
        if has_wildcard and affected:
            notes.append(
                f"Wildcard import - vulnerable function(s) ({', '.join(sorted(affected))}) "
                "may be accessible"
            )
        elif affected:
            notes.append(
                "Imported but no member usage detected - check for "
                f"{', '.join(sorted(affected))}"
            )
        else:
            notes.append("Imported but no member usage detected")

        rules = [m.rule for m in matched.imports]
        return ComponentResult(
            component=component,
            status=ReachabilityStatus.IMPORTED,
            confidence=_confidence_for(rules).cap(Confidence.MEDIUM),
            usage=usage,
            notes=tuple(notes),
            warnings=warnings,
        )

    @staticmethod
    def _summary_note(matched: MatchedFacts) -> str:
        n_files = len(matched.files)
        n_imports = len(matched.imports)
        return f"Imported in {n_imports} location(s) across {n_files} file(s)"

    @staticmethod
    def _primary_style(matched: MatchedFacts) -> ImportStyle:
        if not matched.imports:
            return ImportStyle.WHOLE_MODULE
        counts = Counter(m.fact.style for m in matched.imports)
        return max(_STYLE_ORDER, key=lambda s: (counts.get(s, 0), -_STYLE_ORDER.index(s)))

    @staticmethod
    def _imported_as(matched: MatchedFacts) -> str | None:
        aliases = sorted({m.fact.alias for m in matched.imports if m.fact.alias})
        return aliases[0] if aliases else None

    @staticmethod
    def _locations(matched: MatchedFacts) -> tuple[CodeLocation, ...]:
        locs = {m.fact.location for m in matched.imports}
        locs.update(m.fact.location for m in matched.usages)
        return tuple(sorted(locs, key=_location_key))

    @staticmethod
    def _warnings(matched: MatchedFacts) -> tuple[AnalysisWarning, ...]:
        warnings: list[AnalysisWarning] = []
        for m in sorted(matched.imports, key=lambda m: _location_key(m.fact.location)):
            imp = m.fact
            if imp.style is ImportStyle.WILDCARD:
                warnings.append(
                    AnalysisWarning(
                        code="wildcard_import",
                        message=(
                            f"Wildcard import from {imp.module} - every member is a candidate "
                            "usage, member-level attribution is unreliable"
                        ),
                        severity="warning",
                        location=imp.location,
                    )
                )
            elif imp.style is ImportStyle.SIDE_EFFECT:
                warnings.append(
                    AnalysisWarning(
                        code="side_effect_import",
                        message=f"Side-effect import of {imp.module} - effect is opaque to text matching",
                        severity="info",
                        location=imp.location,
                    )
                )
            if imp.conditional:
                warnings.append(
                    AnalysisWarning(
                        code="conditional_import",
                        message=f"Conditional import of {imp.module} - may not always execute",
                        severity="info",
                        location=imp.location,
                    )
                )
        for file, pw in sorted(matched.parse_warnings, key=lambda fw: (fw[0], fw[1].line or 0, fw[1].code)):
            warnings.append(
                AnalysisWarning(
                    code="parse_warning",
                    message=f"{pw.code}: {pw.message}",
                    severity="info",
                    location=CodeLocation(file=file, line=pw.line or 0),
                )
            )
        return tuple(warnings)
