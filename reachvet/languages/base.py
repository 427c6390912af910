"""Language adapter interface: source files in, facts out."""

from __future__ import annotations

import fnmatch
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

import structlog

from reachvet.models.facts import FileFacts

log = structlog.get_logger("reachvet.languages")


class Language(Enum):
    """Languages the engine knows about. Adapters exist for a subset."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    GO = "go"
    JAVA = "java"
    RUST = "rust"
    RUBY = "ruby"
    PHP = "php"
    CSHARP = "csharp"
    SWIFT = "swift"
    KOTLIN = "kotlin"


class LanguageAdapter(ABC):
    """Turns a source tree into per-file import/usage facts.

    Subclasses provide ``parse_file``; discovery and the whole-tree walk are
    shared. ``parse_file`` must be a pure function of ``(path, content)`` so
    its output can be memoized by content hash.
    """

    language: Language
    file_extensions: tuple[str, ...] = ()
    ignore_dirs: frozenset[str] = frozenset({".git", "node_modules"})

    @abstractmethod
    def can_handle(self, source_dir: Path) -> bool:
        """Return True if *source_dir* looks like a project in this language."""

    @abstractmethod
    def parse_file(self, path: Path, content: str) -> FileFacts:
        """Extract facts from one file's text."""

    def find_source_files(
        self, source_dir: Path, ignore_patterns: list[str] | None = None
    ) -> list[Path]:
        """Source files under *source_dir*, sorted, skipping ignored dirs and patterns."""
        patterns = ignore_patterns or []
        files: list[Path] = []
        for ext in self.file_extensions:
            for hit in source_dir.rglob(f"*{ext}"):
                if not hit.is_file():
                    continue
                rel = hit.relative_to(source_dir)
                if any(part in self.ignore_dirs for part in rel.parts[:-1]):
                    continue
                rel_posix = rel.as_posix()
                if any(fnmatch.fnmatch(rel_posix, p) for p in patterns):
                    continue
                files.append(hit)
        return sorted(set(files))

    def produce_facts(
        self, source_dir: Path, ignore_patterns: list[str] | None = None
    ) -> list[FileFacts]:
        """Read and parse every source file synchronously (no caching)."""
        results: list[FileFacts] = []
        for path in self.find_source_files(source_dir, ignore_patterns):
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                log.warning("adapter.read_failed", path=str(path), exc_info=True)
                continue
            results.append(self.parse_file(path, content))
        return results
