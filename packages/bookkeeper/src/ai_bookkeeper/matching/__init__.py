"""Categorization and reconciliation matchers."""

from ai_bookkeeper.matching.categorize import CategorizationMatcher
from ai_bookkeeper.matching.models import (
    CategorizationRule,
    CategorizationSuggestion,
    MatchSuggestion,
)
from ai_bookkeeper.matching.reconcile import ReconciliationMatcher
from ai_bookkeeper.matching.rules import InMemoryRuleStore, RuleBook, RuleStore

__all__ = [
    "CategorizationMatcher",
    "ReconciliationMatcher",
    "RuleBook",
    "RuleStore",
    "InMemoryRuleStore",
    "CategorizationRule",
    "CategorizationSuggestion",
    "MatchSuggestion",
]
