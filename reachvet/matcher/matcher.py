"""ComponentMatcher: attribute import/usage facts to declared components."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from reachvet.exceptions import UnmatchableComponentError
from reachvet.matcher.naming import (
    LANGUAGE_ECOSYSTEMS,
    MatchRule,
    aliases_for,
    canonical_ecosystem,
    is_stdlib,
    normalize_name,
    squash,
    top_level,
)
from reachvet.models.component import Component
from reachvet.models.facts import FileFacts, ImportFact, ParseWarning, UsageFact

log = structlog.get_logger("reachvet.matcher")


@dataclass(frozen=True)
class MatchedImport:
    file: str
    fact: ImportFact
    rule: MatchRule


@dataclass(frozen=True)
class MatchedUsage:
    file: str
    fact: UsageFact
    rule: MatchRule


@dataclass
class MatchedFacts:
    """Facts attributable to one component, with the rule that fired for each."""

    component: Component
    imports: list[MatchedImport] = field(default_factory=list)
    usages: list[MatchedUsage] = field(default_factory=list)
    parse_warnings: list[tuple[str, ParseWarning]] = field(default_factory=list)
    files_scanned: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.imports and not self.usages

    @property
    def rules(self) -> list[MatchRule]:
        return [m.rule for m in self.imports] + [m.rule for m in self.usages]

    @property
    def best_rule(self) -> MatchRule | None:
        rules = self.rules
        if not rules:
            return None
        return max(rules, key=lambda r: r.strength)

    @property
    def files(self) -> list[str]:
        return sorted({m.file for m in self.imports} | {m.file for m in self.usages})


@dataclass(frozen=True)
class _Target:
    name: str  # normalized
    rule: MatchRule
    dotted: bool = False  # unnormalized name had a "." (zope.interface, google.protobuf)


class ComponentMatcher:
    """Decide which facts belong to a component.

    ``language`` selects the ecosystem conventions applied to components that
    declare neither an ecosystem nor a package-url.
    """

    def __init__(self, language: str | None = None) -> None:
        self._default_ecosystem = LANGUAGE_ECOSYSTEMS.get((language or "").lower())

    def ecosystem_for(self, component: Component) -> str | None:
        return canonical_ecosystem(component.resolved_ecosystem) or self._default_ecosystem

    def match(self, component: Component, all_facts: list[FileFacts]) -> MatchedFacts:
        """Return the subset of *all_facts* attributable to *component*.

        Raises :class:`UnmatchableComponentError` when the component carries
        no name to look for.
        """
        ecosystem = self.ecosystem_for(component)
        targets = self._targets(component, ecosystem)
        matched = MatchedFacts(component=component, files_scanned=len(all_facts))

        for file_facts in all_facts:
            local_names = _local_aliases(file_facts.import_facts)
            file_hit = False

            for imp in file_facts.import_facts:
                if is_stdlib(imp.module, ecosystem):
                    continue
                rule = self._match_module(imp.module, ecosystem, targets)
                if rule is not None:
                    matched.imports.append(MatchedImport(file_facts.file, imp, rule))
                    file_hit = True

            for use in file_facts.usage_facts:
                module = _resolve_alias(use.module, local_names)
                if is_stdlib(module, ecosystem):
                    continue
                rule = self._match_module(module, ecosystem, targets)
                if rule is None:
                    continue
                if module != use.module:
                    use = UsageFact(module=module, member=use.member, location=use.location)
                matched.usages.append(MatchedUsage(file_facts.file, use, rule))
                file_hit = True

            if file_hit:
                matched.parse_warnings.extend((file_facts.file, w) for w in file_facts.warnings)

        log.debug(
            "matcher.matched",
            component=component.name,
            ecosystem=ecosystem,
            imports=len(matched.imports),
            usages=len(matched.usages),
        )
        return matched

    # ── target construction ──────────────────────────────────────────────

    @staticmethod
    def _targets(component: Component, ecosystem: str | None) -> list[_Target]:
        targets: list[_Target] = []
        seen: set[str] = set()

        def add(name: str | None, rule: MatchRule) -> None:
            if not name or not name.strip():
                return
            norm = normalize_name(name, ecosystem)
            if norm not in seen:
                seen.add(norm)
                targets.append(_Target(norm, rule, "." in name))

        add(component.name, MatchRule.EXACT)
        purl = component.package_url
        if purl is not None:
            add(purl.full_name, MatchRule.PURL)
            if ecosystem == "maven" or purl.type == "maven":
                add(purl.name, MatchRule.FUZZY)
        for name in [t.name for t in list(targets)]:
            for alias in aliases_for(name, ecosystem):
                add(alias, MatchRule.ALIAS)

        if not targets:
            raise UnmatchableComponentError(
                component.name or component.purl or "<unnamed>",
                "component has neither a name nor a usable package-url",
            )
        return targets

    # ── module comparison ────────────────────────────────────────────────

    def _match_module(
        self, module: str, ecosystem: str | None, targets: list[_Target]
    ) -> MatchRule | None:
        best: MatchRule | None = None
        for target in targets:
            rule = _compare(module, ecosystem, target)
            if rule is not None and (best is None or rule.strength > best.strength):
                best = rule
        return best


def _compare(module: str, ecosystem: str | None, target: _Target) -> MatchRule | None:
    """Rule under which *module* refers to *target*, or None."""
    name = target.name

    if ecosystem == "go":
        if module == name or module.startswith(name + "/"):
            return target.rule
        return None

    if ecosystem == "maven":
        if module == name or module.startswith(name + "."):
            return target.rule
        group, _, artifact = name.partition(":")
        if artifact and module.startswith(group + "."):
            return MatchRule.FUZZY
        # artifact "jackson-databind" -> package segment "jackson.databind"
        dotted = (artifact or group).replace("-", ".")
        if dotted and (f".{dotted}." in f".{module}." or module.endswith("." + dotted)):
            return MatchRule.FUZZY
        return None

    if ecosystem == "pypi":
        # The top-level package names the distribution ("yaml.loader" -> yaml).
        # Longer prefixes only count for dotted names: "zope.interface.x" ->
        # zope.interface, "google.protobuf.x" -> the protobuf alias.
        parts = module.split(".")
        depth = len(parts) if target.dotted else 1
        for i in range(1, depth + 1):
            if normalize_name(".".join(parts[:i]), ecosystem) == name:
                return target.rule
    else:
        pkg = normalize_name(top_level(module, ecosystem), ecosystem)
        if pkg == name or normalize_name(module, ecosystem) == name:
            return target.rule

    if squash(top_level(module, ecosystem)) == squash(name) and squash(name):
        return MatchRule.FUZZY
    return None


def _local_aliases(imports: tuple[ImportFact, ...]) -> dict[str, str]:
    """Local binding -> canonical module, e.g. ``np`` -> ``numpy``."""
    out: dict[str, str] = {}
    for imp in imports:
        if imp.alias and imp.alias != imp.module:
            out[imp.alias] = imp.module
    return out


def _resolve_alias(module: str, local_names: dict[str, str]) -> str:
    if module in local_names:
        return local_names[module]
    head, sep, rest = module.partition(".")
    if sep and head in local_names:
        return f"{local_names[head]}.{rest}"
    return module
