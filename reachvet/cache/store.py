"""FactStore: content-addressed memoization of per-file parse results.

Entries are keyed by canonical absolute path and are valid only while the
caller-supplied content hashes to the stored digest, the parser version is
unchanged and the entry is younger than the TTL. Expiry is checked lazily
on read; there is no background timer.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol

import structlog
from pydantic import TypeAdapter, ValidationError

from reachvet.cache.lru import LRUIndex
from reachvet.config import CacheOptions, build_cache_options
from reachvet.exceptions import PersistenceError
from reachvet.models.facts import CacheEntry, ImportFact, ParseWarning, UsageFact

log = structlog.get_logger("reachvet.cache")

CACHE_FILE_NAME = "analysis-cache.json"
CACHE_FORMAT_VERSION = 1

_ENTRY_ADAPTER = TypeAdapter(CacheEntry)


class ParsedFacts(Protocol):
    """Anything carrying one file's facts (``FileFacts`` in practice)."""

    import_facts: tuple[ImportFact, ...]
    usage_facts: tuple[UsageFact, ...]
    warnings: tuple[ParseWarning, ...]


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    hit_rate: float
    entries: int
    memory_usage: int  # rough estimate in bytes


def compute_hash(content: str | bytes) -> str:
    """SHA-256 hex digest of *content*.

    A str is encoded as UTF-8; lone surrogates are encoded as-is so any str
    hashes.
    """
    if isinstance(content, str):
        content = content.encode("utf-8", "surrogatepass")
    return hashlib.sha256(content).hexdigest()


def canonical_path(path: str | os.PathLike[str]) -> str:
    return os.path.normcase(os.path.abspath(os.fspath(path)))


class FactStore:
    """In-memory LRU cache of parse results with optional JSON persistence.

    Not safe to share across processes. Within a process a single lock guards
    the entry map, the access order and the reverse module index.
    """

    def __init__(
        self,
        options: CacheOptions | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.options = options or CacheOptions()
        self._clock = clock
        self._lock = threading.RLock()

        self._entries: dict[str, CacheEntry] = {}
        self._order = LRUIndex()
        # module identifier -> canonical paths whose facts reference it
        self._dependents: dict[str, set[str]] = {}

        self._hits = 0
        self._misses = 0
        self._dirty = False

        self._persist = self.options.persist_to_disk
        self._cache_file: Path | None = None
        self.persistence_error: str | None = None

        if self._persist:
            try:
                self._cache_file = self._prepare_cache_dir()
            except PersistenceError as exc:
                self._persist = False
                self.persistence_error = str(exc)
                log.warning(
                    "cache.persistence_disabled",
                    cache_dir=self.options.cache_dir,
                    reason=str(exc),
                )
            else:
                self._load_from_disk()

    @classmethod
    def for_tests(
        cls,
        *,
        clock: Callable[[], float] = time.time,
        **overrides: Any,
    ) -> FactStore:
        """Fresh, isolated store. Persistence is off unless explicitly requested."""
        overrides.setdefault("persist_to_disk", False)
        return cls(build_cache_options(**overrides), clock=clock)

    # ── hashing ──────────────────────────────────────────────────────────

    @staticmethod
    def compute_hash(content: str | bytes) -> str:
        return compute_hash(content)

    # ── lookup ───────────────────────────────────────────────────────────

    def get(self, path: str | os.PathLike[str], content: str | bytes) -> CacheEntry | None:
        """Return the cached entry for *path* if still valid for *content*."""
        key = canonical_path(path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            reason = self._invalid_reason(entry, compute_hash(content))
            if reason is not None:
                self._remove(key)
                self._dirty = True
                self._misses += 1
                log.debug("cache.stale", path=key, reason=reason)
                return None

            self._order.touch(key)
            self._hits += 1
            return entry

    def is_cached(self, path: str | os.PathLike[str], content: str | bytes) -> bool:
        return self.get(path, content) is not None

    def set(
        self,
        path: str | os.PathLike[str],
        content: str | bytes,
        parsed: ParsedFacts,
    ) -> CacheEntry:
        """Store *parsed* for *path*, replacing any previous entry."""
        key = canonical_path(path)
        entry = CacheEntry(
            file_path=key,
            content_hash=compute_hash(content),
            parser_version=self.options.parser_version,
            cached_at=self._clock(),
            import_facts=tuple(parsed.import_facts),
            usage_facts=tuple(parsed.usage_facts),
            warnings=tuple(parsed.warnings),
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.options.max_entries:
                self._evict_lru()
            self._store(key, entry)
            self._dirty = True
        return entry

    # ── invalidation ─────────────────────────────────────────────────────

    def invalidate(self, path: str | os.PathLike[str]) -> bool:
        key = canonical_path(path)
        with self._lock:
            removed = self._remove(key)
            if removed:
                self._dirty = True
            return removed

    def invalidate_many(self, paths: list[str] | list[os.PathLike[str]]) -> int:
        count = 0
        for path in paths:
            if self.invalidate(path):
                count += 1
        return count

    def invalidate_directory(self, dir_path: str | os.PathLike[str]) -> int:
        """Remove every entry at or below *dir_path*."""
        prefix = canonical_path(dir_path)
        nested = prefix.rstrip(os.sep) + os.sep
        with self._lock:
            doomed = [k for k in self._entries if k == prefix or k.startswith(nested)]
            for key in doomed:
                self._remove(key)
            if doomed:
                self._dirty = True
                log.debug("cache.invalidated_directory", dir=prefix, count=len(doomed))
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            had_entries = bool(self._entries)
            self._entries.clear()
            self._order.clear()
            self._dependents.clear()
            self._hits = 0
            self._misses = 0
            if had_entries:
                self._dirty = True

    # ── queries ──────────────────────────────────────────────────────────

    def get_entries_depending_on(self, module: str) -> list[str]:
        """Cached paths whose import or usage facts reference *module*.

        Expired entries are pruned rather than reported.
        """
        with self._lock:
            paths = sorted(self._dependents.get(module, ()))
            now = self._clock()
            live: list[str] = []
            for key in paths:
                if self._is_expired(self._entries[key], now):
                    self._remove(key)
                    continue
                live.append(key)
            return live

    def get_cached_paths(self) -> list[str]:
        """Cached paths from least to most recently used."""
        with self._lock:
            return list(self._order)

    def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total else 0.0,
                entries=len(self._entries),
                memory_usage=self._estimate_memory_usage(),
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return canonical_path(path) in self._entries

    # ── persistence ──────────────────────────────────────────────────────

    @property
    def persistence_enabled(self) -> bool:
        return self._persist

    @property
    def cache_file(self) -> Path | None:
        return self._cache_file

    def save_to_disk(self) -> bool:
        """Write the entry set to ``cache_dir``. Returns True if a file was written."""
        if not self._persist or self._cache_file is None:
            return False
        with self._lock:
            if not self._dirty:
                return False
            payload = {
                "version": CACHE_FORMAT_VERSION,
                "parser_version": self.options.parser_version,
                "entries": {
                    key: _ENTRY_ADAPTER.dump_python(self._entries[key], mode="json")
                    for key in self._order
                },
            }
            try:
                _atomic_write_json(self._cache_file, payload)
            except OSError:
                log.warning("cache.save_failed", path=str(self._cache_file), exc_info=True)
                return False
            self._dirty = False
        log.debug("cache.saved", path=str(self._cache_file), entries=len(payload["entries"]))
        return True

    def _prepare_cache_dir(self) -> Path:
        cache_dir = Path(self.options.cache_dir or "")
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"cannot create cache directory: {exc}") from exc
        if not os.access(cache_dir, os.W_OK):
            raise PersistenceError(f"cache directory is not writable: {cache_dir}")
        return cache_dir / CACHE_FILE_NAME

    def _load_from_disk(self) -> None:
        if self._cache_file is None or not self._cache_file.exists():
            return

        try:
            data = json.loads(self._cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.warning("cache.load_failed", path=str(self._cache_file), exc_info=True)
            return

        if not isinstance(data, dict) or data.get("version") != CACHE_FORMAT_VERSION:
            log.warning("cache.load_unsupported_format", path=str(self._cache_file))
            return
        raw_entries = data.get("entries")
        if not isinstance(raw_entries, dict):
            log.warning("cache.load_unsupported_format", path=str(self._cache_file))
            return

        now = self._clock()
        loaded: list[CacheEntry] = []
        skipped_malformed = 0
        skipped_stale = 0
        for key, raw in raw_entries.items():
            if not isinstance(raw, dict):
                skipped_malformed += 1
                continue
            try:
                entry = _ENTRY_ADAPTER.validate_python({**raw, "file_path": key})
            except ValidationError:
                skipped_malformed += 1
                continue
            if entry.parser_version != self.options.parser_version or self._is_expired(
                entry, now
            ):
                skipped_stale += 1
                continue
            loaded.append(entry)

        # Oldest first so the most recently cached end up most recently used.
        loaded.sort(key=lambda e: e.cached_at)
        overflow = max(0, len(loaded) - self.options.max_entries)
        with self._lock:
            for entry in loaded[overflow:]:
                self._store(canonical_path(entry.file_path), entry)

        log.info(
            "cache.loaded",
            path=str(self._cache_file),
            entries=len(loaded) - overflow,
            skipped_malformed=skipped_malformed,
            skipped_stale=skipped_stale,
        )

    # ── internals (lock held) ────────────────────────────────────────────

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.cached_at > self.options.ttl_seconds

    def _invalid_reason(self, entry: CacheEntry, content_hash: str) -> str | None:
        if entry.content_hash != content_hash:
            return "content_changed"
        if entry.parser_version != self.options.parser_version:
            return "parser_version"
        if self._is_expired(entry, self._clock()):
            return "expired"
        return None

    def _store(self, key: str, entry: CacheEntry) -> None:
        old = self._entries.get(key)
        if old is not None:
            self._unindex(key, old)
        if entry.file_path != key:
            entry = CacheEntry(
                file_path=key,
                content_hash=entry.content_hash,
                parser_version=entry.parser_version,
                cached_at=entry.cached_at,
                import_facts=entry.import_facts,
                usage_facts=entry.usage_facts,
                warnings=entry.warnings,
            )
        self._entries[key] = entry
        self._order.touch(key)
        for module in entry.to_file_facts().modules:
            self._dependents.setdefault(module, set()).add(key)

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._order.remove(key)
        self._unindex(key, entry)
        return True

    def _unindex(self, key: str, entry: CacheEntry) -> None:
        for module in entry.to_file_facts().modules:
            paths = self._dependents.get(module)
            if paths is None:
                continue
            paths.discard(key)
            if not paths:
                del self._dependents[module]

    def _evict_lru(self) -> None:
        key = self._order.oldest()
        if key is None:
            return
        self._remove(key)
        log.debug("cache.evicted", path=key)

    def _estimate_memory_usage(self) -> int:
        return sum(len(_ENTRY_ADAPTER.dump_json(e)) for e in self._entries.values())


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".analysis-cache.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
