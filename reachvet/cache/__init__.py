"""Incremental parse cache: memoizes per-file facts across runs."""

from reachvet.cache.lru import LRUIndex
from reachvet.cache.store import (
    CACHE_FILE_NAME,
    CacheStats,
    FactStore,
    canonical_path,
    compute_hash,
)

__all__ = [
    "CACHE_FILE_NAME",
    "CacheStats",
    "FactStore",
    "LRUIndex",
    "canonical_path",
    "compute_hash",
]
