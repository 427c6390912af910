"""Component matcher: decide which facts belong to a declared component."""

from reachvet.matcher.matcher import ComponentMatcher, MatchedFacts, MatchedImport, MatchedUsage
from reachvet.matcher.naming import MatchRule, is_stdlib, normalize_name

__all__ = [
    "ComponentMatcher",
    "MatchRule",
    "MatchedFacts",
    "MatchedImport",
    "MatchedUsage",
    "is_stdlib",
    "normalize_name",
]
