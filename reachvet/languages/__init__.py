"""Language adapters: closed dispatch table keyed by :class:`Language`.

Adding a language means adding an enum member in ``base`` and an entry in
``ADAPTERS`` here; there is no runtime plugin discovery.
"""

from __future__ import annotations

from pathlib import Path

from reachvet.exceptions import UnsupportedLanguageError
from reachvet.languages.base import Language, LanguageAdapter
from reachvet.languages.python import PythonAdapter

ADAPTERS: dict[Language, LanguageAdapter] = {
    Language.PYTHON: PythonAdapter(),
}


def parse_language(value: str | Language) -> Language:
    if isinstance(value, Language):
        return value
    try:
        return Language(value.strip().lower())
    except ValueError as exc:
        raise UnsupportedLanguageError(f"unknown language: {value}") from exc


def get_adapter(language: str | Language) -> LanguageAdapter:
    lang = parse_language(language)
    adapter = ADAPTERS.get(lang)
    if adapter is None:
        raise UnsupportedLanguageError(f"no adapter available for language: {lang.value}")
    return adapter


def detect_language(source_dir: Path) -> Language | None:
    """First language whose adapter claims *source_dir*."""
    for language, adapter in ADAPTERS.items():
        if adapter.can_handle(source_dir):
            return language
    return None


def supported_languages() -> list[Language]:
    return list(ADAPTERS)


__all__ = [
    "ADAPTERS",
    "Language",
    "LanguageAdapter",
    "PythonAdapter",
    "detect_language",
    "get_adapter",
    "parse_language",
    "supported_languages",
]
