"""Facts extracted from source files by language adapters.

These are pure data structures produced outside the core and consumed by the
fact store, the matcher and the classifier. They are immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ImportStyle(Enum):
    """How a file brings an external module into scope."""

    WHOLE_MODULE = "whole_module"  # import x / const x = require("x")
    SELECTIVE = "selective"  # from x import a, b / import { a } from "x"
    WILDCARD = "wildcard"  # from x import * / import * as x from "x"
    SIDE_EFFECT = "side_effect"  # import "x"


@dataclass(frozen=True)
class CodeLocation:
    file: str
    line: int
    column: int | None = None
    snippet: str | None = None


@dataclass(frozen=True)
class ImportFact:
    """One file's reference to an external module or package."""

    module: str
    style: ImportStyle
    location: CodeLocation
    alias: str | None = None
    members: tuple[str, ...] = ()
    conditional: bool = False  # inside try/except or an if-block


@dataclass(frozen=True)
class UsageFact:
    """One file's reference to a member of an imported module."""

    module: str
    member: str
    location: CodeLocation


@dataclass(frozen=True)
class ParseWarning:
    code: str
    message: str
    line: int | None = None


@dataclass(frozen=True)
class FileFacts:
    """Everything an adapter observed in a single file."""

    file: str
    import_facts: tuple[ImportFact, ...] = ()
    usage_facts: tuple[UsageFact, ...] = ()
    warnings: tuple[ParseWarning, ...] = field(default_factory=tuple)

    @property
    def modules(self) -> set[str]:
        """Every module identifier referenced by this file's facts."""
        mods = {imp.module for imp in self.import_facts}
        mods.update(use.module for use in self.usage_facts)
        return mods


@dataclass(frozen=True)
class CacheEntry:
    """A memoized parse result for one file.

    ``cached_at`` is wall-clock seconds since the epoch so persisted entries
    can be aged across process restarts.
    """

    file_path: str
    content_hash: str
    parser_version: str
    cached_at: float
    import_facts: tuple[ImportFact, ...] = ()
    usage_facts: tuple[UsageFact, ...] = ()
    warnings: tuple[ParseWarning, ...] = ()

    def to_file_facts(self) -> FileFacts:
        return FileFacts(
            file=self.file_path,
            import_facts=self.import_facts,
            usage_facts=self.usage_facts,
            warnings=self.warnings,
        )
