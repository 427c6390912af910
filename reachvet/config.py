"""Configuration models and config-file discovery.

Config files are plain JSON. The first one found wins:

    .reachvetrc
    .reachvetrc.json
    reachvet.config.json
    package.json  ("reachvet" field)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from reachvet.exceptions import ConfigError

log = structlog.get_logger("reachvet.config")

DEFAULT_TTL_MS = 60 * 60 * 1000  # 1 hour
DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_PARSER_VERSION = "1.0.0"
DEFAULT_CACHE_DIR = ".reachvet-cache"
DEFAULT_CONCURRENCY = 10

CONFIG_FILES = [".reachvetrc", ".reachvetrc.json", "reachvet.config.json"]


class CacheOptions(BaseModel):
    """Fact store settings. Accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    ttl_ms: int = Field(DEFAULT_TTL_MS, alias="ttlMs", ge=0)
    max_entries: int = Field(DEFAULT_MAX_ENTRIES, alias="maxEntries", ge=1)
    parser_version: str = Field(DEFAULT_PARSER_VERSION, alias="parserVersion")
    persist_to_disk: bool = Field(False, alias="persistToDisk")
    cache_dir: str | None = Field(DEFAULT_CACHE_DIR, alias="cacheDir")

    @field_validator("parser_version", mode="before")
    @classmethod
    def _coerce_version(cls, v: Any) -> Any:
        # Integers are accepted as version keys.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _cache_dir_required(self) -> CacheOptions:
        if self.persist_to_disk and not self.cache_dir:
            raise ValueError("cache_dir is required when persist_to_disk is enabled")
        return self

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_ms / 1000.0


class ReachVetConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    language: str | None = None
    ignore_paths: list[str] = Field(default_factory=list, alias="ignorePaths")
    ignore_packages: list[str] = Field(default_factory=list, alias="ignorePackages")
    concurrency: int = Field(DEFAULT_CONCURRENCY, ge=1)
    cache: CacheOptions = Field(default_factory=CacheOptions)

    @field_validator("language", mode="before")
    @classmethod
    def _lower_language(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


def build_cache_options(**values: Any) -> CacheOptions:
    """Validate cache settings, converting pydantic errors to ConfigError."""
    try:
        return CacheOptions(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid cache options: {exc}") from exc


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc


def find_config_file(directory: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    pkg = directory / "package.json"
    if pkg.is_file():
        try:
            data = json.loads(pkg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if isinstance(data, dict) and "reachvet" in data:
            return pkg
    return None


def load_config(directory: str | Path) -> ReachVetConfig:
    """Load the project config from *directory*, or defaults if none exists."""
    directory = Path(directory)
    path = find_config_file(directory)
    if path is None:
        return ReachVetConfig()

    raw = _read_json(path)
    if path.name == "package.json":
        raw = raw.get("reachvet")
    if not isinstance(raw, dict):
        raise ConfigError(f"config in {path} must be a JSON object")

    try:
        config = ReachVetConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid config in {path}: {exc}") from exc

    log.debug("config.loaded", path=str(path))
    return config


def merge_config(base: ReachVetConfig, overrides: dict[str, Any]) -> ReachVetConfig:
    """Apply explicit overrides (e.g. from a caller) on top of a loaded config.

    ``None`` values are ignored. A ``cache`` dict is merged key by key.
    """
    data = base.model_dump()
    try:
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "cache" and isinstance(value, dict):
                # Normalize camelCase keys to field names before merging.
                explicit = CacheOptions.model_validate(value).model_dump(exclude_unset=True)
                data["cache"] = {**data["cache"], **explicit}
            else:
                data[key] = value
        return ReachVetConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid config override: {exc}") from exc
