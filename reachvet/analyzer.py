"""Analyzer: collect facts (memoized), then match and classify every component.

All facts for all files are gathered before any component is classified, so
each verdict reflects the complete fact set for the run.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import structlog

from reachvet import __version__
from reachvet.cache.store import FactStore
from reachvet.classifier import NO_SOURCE_FILES_NOTE, ReachabilityClassifier
from reachvet.config import ReachVetConfig
from reachvet.languages import Language, detect_language, get_adapter
from reachvet.languages.base import LanguageAdapter
from reachvet.matcher.matcher import ComponentMatcher
from reachvet.models.component import Component
from reachvet.models.facts import FileFacts
from reachvet.models.result import AnalysisOutput, AnalysisSummary, ComponentResult

log = structlog.get_logger("reachvet.analyzer")


class Analyzer:
    """Drive one language adapter over a source tree and produce verdicts.

    The fact store is passed in explicitly so a watch loop can keep one store
    alive across runs; when omitted, an in-memory store is built from the
    config's cache options.
    """

    def __init__(
        self,
        source_dir: str | Path,
        *,
        language: str | Language | None = None,
        config: ReachVetConfig | None = None,
        store: FactStore | None = None,
        classifier: ReachabilityClassifier | None = None,
    ) -> None:
        self.source_dir = Path(source_dir).resolve()
        self.config = config or ReachVetConfig()
        self.store = store if store is not None else FactStore(self.config.cache)
        self.classifier = classifier or ReachabilityClassifier()
        requested = language or self.config.language
        # Resolved eagerly so a misconfigured language fails before any I/O.
        self._adapter: LanguageAdapter | None = get_adapter(requested) if requested else None

    # ── fact collection ──────────────────────────────────────────────────

    def _resolve_adapter(self) -> LanguageAdapter | None:
        if self._adapter is not None:
            return self._adapter
        detected = detect_language(self.source_dir)
        if detected is None:
            return None
        return get_adapter(detected)

    async def collect_facts(self, adapter: LanguageAdapter) -> list[FileFacts]:
        """Parse every source file, reusing cached facts for unchanged content."""
        files = await asyncio.to_thread(
            adapter.find_source_files, self.source_dir, self.config.ignore_paths
        )
        semaphore = asyncio.Semaphore(self.config.concurrency)
        store_lock = asyncio.Lock()

        async def one(path: Path) -> FileFacts | None:
            async with semaphore:
                try:
                    content = await asyncio.to_thread(
                        path.read_text, encoding="utf-8", errors="replace"
                    )
                except OSError:
                    log.warning("analyzer.file_skipped", path=str(path), exc_info=True)
                    return None

            async with store_lock:
                cached = self.store.get(path, content)
            if cached is not None:
                return FileFacts(
                    file=str(path),
                    import_facts=cached.import_facts,
                    usage_facts=cached.usage_facts,
                    warnings=cached.warnings,
                )

            async with semaphore:
                facts = await asyncio.to_thread(adapter.parse_file, path, content)
            async with store_lock:
                self.store.set(path, content, facts)
            return facts

        gathered = await asyncio.gather(*(one(p) for p in files))
        return [f for f in gathered if f is not None]

    # ── analysis ─────────────────────────────────────────────────────────

    async def analyze(self, components: list[Component]) -> AnalysisOutput:
        ignored = {name.lower() for name in self.config.ignore_packages}
        if ignored:
            kept = [c for c in components if c.name.lower() not in ignored]
            if len(kept) != len(components):
                log.info("analyzer.components_ignored", count=len(components) - len(kept))
            components = kept

        adapter = self._resolve_adapter()
        language = adapter.language.value if adapter else None

        if adapter is None:
            log.info("analyzer.no_language_detected", source_dir=str(self.source_dir))
            results = [self.classifier.unknown(c, NO_SOURCE_FILES_NOTE) for c in components]
        else:
            facts = await self.collect_facts(adapter)
            stats = self.store.get_stats()
            log.info(
                "analyzer.facts_collected",
                language=language,
                files=len(facts),
                cache_hits=stats.hits,
                cache_misses=stats.misses,
            )
            matcher = ComponentMatcher(language=language)
            results = self.classifier.classify_all(components, facts, matcher)

        if self.store.persistence_enabled:
            await asyncio.to_thread(self.store.save_to_disk)

        return self._output(language, results)

    def _output(self, language: str | None, results: list[ComponentResult]) -> AnalysisOutput:
        return AnalysisOutput(
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
            source_dir=str(self.source_dir),
            language=language,
            summary=AnalysisSummary.from_results(results),
            results=results,
        )


async def analyze(
    source_dir: str | Path,
    components: list[Component],
    *,
    language: str | Language | None = None,
    config: ReachVetConfig | None = None,
    store: FactStore | None = None,
) -> AnalysisOutput:
    """One-shot helper around :class:`Analyzer`."""
    analyzer = Analyzer(source_dir, language=language, config=config, store=store)
    return await analyzer.analyze(components)
