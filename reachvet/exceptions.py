"""Custom exceptions for ReachVet."""


class ReachVetError(Exception):
    """Base exception for all ReachVet errors."""


class ConfigError(ReachVetError):
    """Raised when configuration values or files are invalid."""


class UnmatchableComponentError(ReachVetError):
    """Raised when a component carries no name the matcher can look for."""

    def __init__(self, component_name: str, reason: str):
        self.component_name = component_name
        self.reason = reason
        super().__init__(f"Cannot match component '{component_name}': {reason}")


class UnsupportedLanguageError(ReachVetError):
    """Raised when no adapter exists for a language."""


class PersistenceError(ReachVetError):
    """Raised internally when the cache directory cannot be used."""
