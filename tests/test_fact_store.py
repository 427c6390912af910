"""Tests for the FactStore parse cache (in-memory behaviour)."""

from __future__ import annotations

import time

import pytest

from reachvet.cache.lru import LRUIndex
from reachvet.cache.store import FactStore, canonical_path, compute_hash
from reachvet.exceptions import ConfigError
from reachvet.models.facts import (
    CodeLocation,
    FileFacts,
    ImportFact,
    ImportStyle,
    ParseWarning,
    UsageFact,
)

# ── Helpers ──────────────────────────────────────────────────────────────────


def _facts(path: str, *modules: str, used: tuple[str, str] | None = None) -> FileFacts:
    imports = tuple(
        ImportFact(
            module=m,
            style=ImportStyle.WHOLE_MODULE,
            location=CodeLocation(file=path, line=i + 1),
        )
        for i, m in enumerate(modules)
    )
    usages = ()
    if used is not None:
        usages = (UsageFact(module=used[0], member=used[1], location=CodeLocation(path, 10)),)
    return FileFacts(file=path, import_facts=imports, usage_facts=usages)


# ═══════════════════════════════════════════════════════════════════════════
#  Hashing
# ═══════════════════════════════════════════════════════════════════════════


class TestHash:
    def test_known_digest(self):
        assert compute_hash("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_deterministic(self):
        content = "import lodash from 'lodash'\n"
        assert compute_hash(content) == compute_hash(content)
        assert FactStore.compute_hash(content) == compute_hash(content)

    def test_fixed_length_hex(self):
        digest = compute_hash("")
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_str_and_bytes_agree(self):
        assert compute_hash("héllo") == compute_hash("héllo".encode("utf-8"))

    def test_lone_surrogate_hashes(self, store):
        content = "abc\ud800"
        digest = compute_hash(content)
        assert len(digest) == 64
        assert digest != compute_hash("abc")
        assert compute_hash(content) == digest

        store.set("/p/a.py", content, _facts("/p/a.py", "yaml"))
        assert store.is_cached("/p/a.py", content) is True

    def test_sensitivity_across_fixtures(self):
        fixtures = [f"import mod_{i}\nx = {i}\n" for i in range(500)]
        fixtures += ["a", "a ", " a", "A", "a\n", "a\r\n"]
        digests = {compute_hash(f) for f in fixtures}
        assert len(digests) == len(fixtures)


# ═══════════════════════════════════════════════════════════════════════════
#  LRU index
# ═══════════════════════════════════════════════════════════════════════════


class TestLRUIndex:
    def test_order_and_touch(self):
        idx = LRUIndex()
        for key in ("a", "b", "c"):
            idx.touch(key)
        assert list(idx) == ["a", "b", "c"]
        idx.touch("a")
        assert list(idx) == ["b", "c", "a"]
        assert idx.oldest() == "b"

    def test_remove_and_pop(self):
        idx = LRUIndex()
        for key in ("a", "b", "c"):
            idx.touch(key)
        assert idx.remove("b") is True
        assert idx.remove("b") is False
        assert idx.pop_oldest() == "a"
        assert list(idx) == ["c"]
        assert len(idx) == 1
        assert "c" in idx

    def test_empty(self):
        idx = LRUIndex()
        assert idx.oldest() is None
        assert idx.pop_oldest() is None
        idx.touch("x")
        idx.clear()
        assert list(idx) == []
        assert len(idx) == 0


# ═══════════════════════════════════════════════════════════════════════════
#  get / set
# ═══════════════════════════════════════════════════════════════════════════


class TestGetSet:
    def test_set_then_get_returns_facts(self, store):
        facts = _facts("/project/src/a.py", "lodash")
        store.set("/project/src/a.py", "content-1", facts)

        entry = store.get("/project/src/a.py", "content-1")
        assert entry is not None
        assert entry.import_facts == facts.import_facts
        assert entry.content_hash == compute_hash("content-1")
        assert entry.parser_version == "1.0.0"
        assert entry.file_path == canonical_path("/project/src/a.py")

    def test_changed_content_misses(self, store):
        store.set("/project/src/a.py", "content-1", _facts("/project/src/a.py", "lodash"))
        assert store.get("/project/src/a.py", "content-2") is None
        # the stale entry is gone, so even the old content now misses
        assert store.get("/project/src/a.py", "content-1") is None

    def test_absent_path_misses(self, store):
        assert store.get("/nowhere.py", "x") is None

    def test_path_is_canonicalized(self, store):
        store.set("/project/src/../src/a.py", "c", _facts("a.py", "x"))
        assert store.get("/project/src/a.py", "c") is not None

    def test_set_overwrites(self, store):
        store.set("/p/a.py", "v1", _facts("/p/a.py", "old"))
        store.set("/p/a.py", "v2", _facts("/p/a.py", "new"))
        assert len(store) == 1
        entry = store.get("/p/a.py", "v2")
        assert entry is not None
        assert [i.module for i in entry.import_facts] == ["new"]

    def test_warnings_are_kept(self, store):
        facts = FileFacts(
            file="/p/a.py",
            warnings=(ParseWarning(code="syntax_error", message="bad", line=3),),
        )
        store.set("/p/a.py", "c", facts)
        entry = store.get("/p/a.py", "c")
        assert entry is not None
        assert entry.warnings[0].code == "syntax_error"

    def test_is_cached(self, store):
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        assert store.is_cached("/p/a.py", "c") is True
        assert store.is_cached("/p/b.py", "c") is False

    def test_contains_does_not_check_content(self, store):
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        assert "/p/a.py" in store
        assert "/p/b.py" not in store
        assert 42 not in store


# ═══════════════════════════════════════════════════════════════════════════
#  TTL and parser version
# ═══════════════════════════════════════════════════════════════════════════


class TestExpiry:
    def test_ttl_with_real_clock(self):
        store = FactStore.for_tests(ttl_ms=1)
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        time.sleep(0.01)
        assert store.get("/p/a.py", "c") is None
        assert len(store) == 0

    def test_ttl_boundary(self, make_store, clock):
        store = make_store(ttl_ms=1000)
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        clock.advance(1.0)
        assert store.get("/p/a.py", "c") is not None  # now - cached_at == ttl
        clock.advance(0.001)
        assert store.get("/p/a.py", "c") is None

    def test_expired_read_counts_as_miss(self, make_store, clock):
        store = make_store(ttl_ms=10)
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        clock.advance(1)
        store.get("/p/a.py", "c")
        stats = store.get_stats()
        assert stats.misses == 1
        assert stats.hits == 0

    def test_expiry_is_lazy(self, make_store, clock):
        store = make_store(ttl_ms=10)
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        clock.advance(1)
        # nothing removed until read
        assert len(store) == 1
        store.get("/p/a.py", "c")
        assert len(store) == 0

    def test_parser_version_change_makes_entries_unreadable(self, make_store):
        store = make_store(parser_version="1.0.0")
        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        store.options = store.options.model_copy(update={"parser_version": "2.0.0"})
        assert store.get("/p/a.py", "c") is None

        store.set("/p/a.py", "c", _facts("/p/a.py", "x"))
        entry = store.get("/p/a.py", "c")
        assert entry is not None
        assert entry.parser_version == "2.0.0"

    def test_integer_parser_version_is_accepted(self, make_store):
        store = make_store(parser_version=3)
        assert store.options.parser_version == "3"


# ═══════════════════════════════════════════════════════════════════════════
#  Eviction
# ═══════════════════════════════════════════════════════════════════════════


class TestEviction:
    def test_fourth_key_evicts_exactly_one(self, make_store):
        store = make_store(max_entries=3)
        for name in ("a", "b", "c"):
            store.set(f"/p/{name}.py", name, _facts(f"/p/{name}.py", name))
        store.set("/p/d.py", "d", _facts("/p/d.py", "d"))

        assert len(store) == 3
        assert len(store.get_cached_paths()) == 3
        assert store.get("/p/d.py", "d") is not None
        assert store.get("/p/a.py", "a") is None

    def test_read_promotes_entry(self, make_store):
        store = make_store(max_entries=3)
        for name in ("a", "b", "c"):
            store.set(f"/p/{name}.py", name, _facts(f"/p/{name}.py", name))
        assert store.get("/p/a.py", "a") is not None
        store.set("/p/d.py", "d", _facts("/p/d.py", "d"))

        assert "/p/a.py" in store
        assert "/p/b.py" not in store

    def test_write_promotes_entry(self, make_store):
        store = make_store(max_entries=2)
        store.set("/p/a.py", "a", _facts("/p/a.py", "a"))
        store.set("/p/b.py", "b", _facts("/p/b.py", "b"))
        store.set("/p/a.py", "a2", _facts("/p/a.py", "a"))
        store.set("/p/c.py", "c", _facts("/p/c.py", "c"))
        assert set(store.get_cached_paths()) == {
            canonical_path("/p/a.py"),
            canonical_path("/p/c.py"),
        }

    def test_overwriting_existing_key_at_capacity_does_not_evict(self, make_store):
        store = make_store(max_entries=2)
        store.set("/p/a.py", "a", _facts("/p/a.py", "a"))
        store.set("/p/b.py", "b", _facts("/p/b.py", "b"))
        store.set("/p/b.py", "b2", _facts("/p/b.py", "b"))
        assert len(store) == 2
        assert "/p/a.py" in store

    def test_just_inserted_key_always_present(self, make_store):
        store = make_store(max_entries=1)
        for i in range(20):
            path = f"/p/f{i}.py"
            store.set(path, str(i), _facts(path, "m"))
            assert path in store
            assert len(store) == 1

    def test_evicted_entries_leave_reverse_index(self, make_store):
        store = make_store(max_entries=1)
        store.set("/p/a.py", "a", _facts("/p/a.py", "lodash"))
        store.set("/p/b.py", "b", _facts("/p/b.py", "react"))
        assert store.get_entries_depending_on("lodash") == []

    def test_zero_capacity_is_rejected(self):
        with pytest.raises(ConfigError):
            FactStore.for_tests(max_entries=0)


# ═══════════════════════════════════════════════════════════════════════════
#  Invalidation
# ═══════════════════════════════════════════════════════════════════════════


class TestInvalidation:
    def test_invalidate_single(self, store):
        store.set("/p/a.py", "a", _facts("/p/a.py", "x"))
        assert store.invalidate("/p/a.py") is True
        assert store.invalidate("/p/a.py") is False
        assert len(store) == 0

    def test_invalidate_many(self, store):
        for name in ("a", "b", "c"):
            store.set(f"/p/{name}.py", name, _facts(f"/p/{name}.py", "x"))
        assert store.invalidate_many(["/p/a.py", "/p/b.py", "/p/missing.py"]) == 2
        assert store.get_cached_paths() == [canonical_path("/p/c.py")]

    def test_invalidate_directory_scoping(self, store):
        inside = ["/project/src/a.py", "/project/src/sub/b.py", "/project/src/sub/deep/c.py"]
        outside = ["/project/src2/d.py", "/project/other.py", "/elsewhere/src/e.py"]
        for path in inside + outside:
            store.set(path, path, _facts(path, "x"))

        assert store.invalidate_directory("/project/src") == len(inside)
        remaining = set(store.get_cached_paths())
        assert remaining == {canonical_path(p) for p in outside}

    def test_invalidate_directory_trailing_separator(self, store):
        store.set("/project/src/a.py", "a", _facts("/project/src/a.py", "x"))
        assert store.invalidate_directory("/project/src/") == 1

    def test_invalidate_directory_none_matching(self, store):
        store.set("/project/src/a.py", "a", _facts("/project/src/a.py", "x"))
        assert store.invalidate_directory("/project/lib") == 0
        assert len(store) == 1


# ═══════════════════════════════════════════════════════════════════════════
#  Reverse index
# ═══════════════════════════════════════════════════════════════════════════


class TestDependingOn:
    def test_imports_and_usages_are_indexed(self, store):
        store.set("/p/a.js", "a", _facts("/p/a.js", "lodash", "react"))
        store.set("/p/b.js", "b", _facts("/p/b.js", "axios", used=("lodash", "merge")))
        store.set("/p/c.js", "c", _facts("/p/c.js", "react"))

        assert store.get_entries_depending_on("lodash") == sorted(
            [canonical_path("/p/a.js"), canonical_path("/p/b.js")]
        )
        assert store.get_entries_depending_on("react") == sorted(
            [canonical_path("/p/a.js"), canonical_path("/p/c.js")]
        )
        assert store.get_entries_depending_on("express") == []

    def test_reflects_overwrite(self, store):
        store.set("/p/a.js", "v1", _facts("/p/a.js", "lodash"))
        store.set("/p/a.js", "v2", _facts("/p/a.js", "underscore"))
        assert store.get_entries_depending_on("lodash") == []
        assert store.get_entries_depending_on("underscore") == [canonical_path("/p/a.js")]

    def test_reflects_invalidation(self, store):
        store.set("/p/a.js", "a", _facts("/p/a.js", "lodash"))
        store.invalidate("/p/a.js")
        assert store.get_entries_depending_on("lodash") == []

    def test_excludes_expired(self, make_store, clock):
        store = make_store(ttl_ms=1000)
        store.set("/p/old.js", "a", _facts("/p/old.js", "lodash"))
        clock.advance(2)
        store.set("/p/new.js", "b", _facts("/p/new.js", "lodash"))
        assert store.get_entries_depending_on("lodash") == [canonical_path("/p/new.js")]
        assert "/p/old.js" not in store


# ═══════════════════════════════════════════════════════════════════════════
#  Stats / admin
# ═══════════════════════════════════════════════════════════════════════════


class TestStats:
    def test_counters_and_hit_rate(self, store):
        store.set("/p/a.py", "a", _facts("/p/a.py", "x"))
        store.get("/p/a.py", "a")
        store.get("/p/a.py", "a")
        store.get("/p/b.py", "b")

        stats = store.get_stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)
        assert stats.entries == 1
        assert stats.memory_usage > 0

    def test_empty_stats(self, store):
        stats = store.get_stats()
        assert stats.hit_rate == 0.0
        assert stats.entries == 0
        assert stats.memory_usage == 0

    def test_clear_resets_everything(self, store):
        store.set("/p/a.py", "a", _facts("/p/a.py", "lodash"))
        store.get("/p/a.py", "a")
        store.get("/p/z.py", "z")
        store.clear()

        stats = store.get_stats()
        assert (stats.hits, stats.misses, stats.entries) == (0, 0, 0)
        assert store.get_cached_paths() == []
        assert store.get_entries_depending_on("lodash") == []

    def test_cached_paths_in_recency_order(self, store):
        for name in ("a", "b", "c"):
            store.set(f"/p/{name}.py", name, _facts(f"/p/{name}.py", "x"))
        store.get("/p/a.py", "a")
        assert store.get_cached_paths() == [
            canonical_path("/p/b.py"),
            canonical_path("/p/c.py"),
            canonical_path("/p/a.py"),
        ]

    def test_for_tests_builds_isolated_stores(self):
        one = FactStore.for_tests()
        two = FactStore.for_tests()
        one.set("/p/a.py", "a", _facts("/p/a.py", "x"))
        assert len(two) == 0
        assert one.persistence_enabled is False
