"""Ecosystem naming conventions: normalization, alias tables, stdlib lists."""

from __future__ import annotations

import re
import sys
from enum import Enum

_PEP503_RE = re.compile(r"[-_.]+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


class MatchRule(Enum):
    """Which rule attributed a fact to a component."""

    EXACT = "exact"  # normalized registry name equals the import identifier
    PURL = "purl"  # name taken from the component's package-url
    ALIAS = "alias"  # known registry-name -> import-name alias
    FUZZY = "fuzzy"  # prefix / separator-insensitive heuristics

    @property
    def is_exact(self) -> bool:
        return self in (MatchRule.EXACT, MatchRule.PURL)

    @property
    def strength(self) -> int:
        return _RULE_STRENGTH[self]


_RULE_STRENGTH = {
    MatchRule.EXACT: 3,
    MatchRule.PURL: 3,
    MatchRule.ALIAS: 2,
    MatchRule.FUZZY: 1,
}

# Registry name (normalized) -> import identifiers that differ from it.
PYPI_ALIASES: dict[str, tuple[str, ...]] = {
    "pillow": ("PIL",),
    "pyyaml": ("yaml",),
    "python_dateutil": ("dateutil",),
    "beautifulsoup4": ("bs4",),
    "scikit_learn": ("sklearn",),
    "scikit_image": ("skimage",),
    "opencv_python": ("cv2",),
    "opencv_python_headless": ("cv2",),
    "tensorflow_gpu": ("tensorflow",),
    "protobuf": ("google.protobuf",),
    "pyzmq": ("zmq",),
    "pyjwt": ("jwt",),
    "python_jose": ("jose",),
    "pycryptodome": ("Crypto",),
    "pymysql": ("pymysql",),
    "mysqlclient": ("MySQLdb",),
    "psycopg2_binary": ("psycopg2",),
    "attrs": ("attr", "attrs"),
    "msgpack_python": ("msgpack",),
    "python_magic": ("magic",),
    "pyopenssl": ("OpenSSL",),
    "dnspython": ("dns",),
    "setuptools": ("setuptools", "pkg_resources"),
}

NPM_ALIASES: dict[str, tuple[str, ...]] = {}

ALIAS_TABLES: dict[str, dict[str, tuple[str, ...]]] = {
    "pypi": PYPI_ALIASES,
    "npm": NPM_ALIASES,
}

NODE_BUILTINS = frozenset(
    {
        "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
        "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
        "events", "fs", "http", "http2", "https", "inspector", "module", "net",
        "os", "path", "perf_hooks", "process", "punycode", "querystring",
        "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
        "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
        "worker_threads", "zlib", "test",
    }
)  # fmt: skip

RUST_STD_CRATES = frozenset(
    {
        "std", "core", "alloc", "collections", "proc_macro", "test",
        "panic_abort", "panic_unwind", "profiler_builtins",
        "compiler_builtins", "unwind", "crate", "self", "super",
    }
)  # fmt: skip

JAVA_STD_PREFIXES = ("java.", "javax.crypto.", "jdk.", "sun.", "com.sun.")

PYTHON_STDLIB = frozenset(sys.stdlib_module_names) | {"__future__"}

# Default ecosystem for each language's facts.
LANGUAGE_ECOSYSTEMS: dict[str, str] = {
    "python": "pypi",
    "javascript": "npm",
    "typescript": "npm",
    "java": "maven",
    "kotlin": "maven",
    "scala": "maven",
    "go": "go",
    "rust": "cargo",
    "ruby": "gem",
    "php": "composer",
    "csharp": "nuget",
}

# purl types that spell an ecosystem differently
_PURL_TYPE_ECOSYSTEMS = {"golang": "go", "pip": "pypi", "gems": "gem", "crates": "cargo"}


def canonical_ecosystem(ecosystem: str | None) -> str | None:
    if not ecosystem:
        return None
    eco = ecosystem.strip().lower()
    return _PURL_TYPE_ECOSYSTEMS.get(eco, eco)


def squash(name: str) -> str:
    """Lowercase and drop every non-alphanumeric character."""
    return _NON_ALNUM_RE.sub("", name.lower())


def normalize_name(name: str, ecosystem: str | None) -> str:
    """Normalize a registry name for comparison within *ecosystem*."""
    name = name.strip()
    if ecosystem == "pypi":
        return _PEP503_RE.sub("_", name.lower())
    if ecosystem == "cargo":
        return name.lower().replace("-", "_")
    if ecosystem in ("go", "maven"):
        return name
    return name.lower()


def top_level(module: str, ecosystem: str | None) -> str:
    """The part of an import identifier that names the package."""
    if ecosystem == "npm":
        parts = module.split("/")
        if module.startswith("@") and len(parts) >= 2:
            return "/".join(parts[:2])
        return parts[0]
    if ecosystem == "cargo":
        return module.split("::")[0]
    if ecosystem == "composer":
        return module.lstrip("\\").split("\\")[0]
    if ecosystem in ("go", "maven"):
        return module
    return module.split(".")[0]


def is_stdlib(module: str, ecosystem: str | None) -> bool:
    """True when *module* belongs to the language's own standard library."""
    if not module:
        return False
    if ecosystem == "pypi":
        return module.split(".")[0] in PYTHON_STDLIB
    if ecosystem == "npm":
        if module.startswith("node:"):
            return True
        return module.split("/")[0] in NODE_BUILTINS
    if ecosystem == "go":
        # stdlib paths have no dot in their first segment ("net/http")
        return "." not in module.split("/")[0]
    if ecosystem == "cargo":
        return module.split("::")[0] in RUST_STD_CRATES
    if ecosystem == "maven":
        return module.startswith(JAVA_STD_PREFIXES)
    return module.startswith("node:")


def aliases_for(name: str, ecosystem: str | None) -> list[str]:
    """Import identifiers known to stand for registry package *name*.

    The table is also consulted in reverse, so a component declared under
    its import name (``yaml``) matches facts for the registry name.
    """
    table = ALIAS_TABLES.get(ecosystem or "", {})
    normalized = normalize_name(name, ecosystem)
    out: list[str] = list(table.get(normalized, ()))
    for registry_name, import_names in table.items():
        if any(normalize_name(i, ecosystem) == normalized for i in import_names):
            if registry_name not in out and registry_name != normalized:
                out.append(registry_name)
    return [a for a in out if normalize_name(a, ecosystem) != normalized]
