"""Learned categorization rules."""

import asyncio
from datetime import UTC, datetime
from typing import Protocol

import structlog

from ai_bookkeeper.config import get_settings
from ai_bookkeeper.matching.models import CategorizationRule

logger = structlog.get_logger(__name__)

MIN_PATTERN_LENGTH = 3


def normalize_pattern(description: str) -> str:
    return description.strip().lower()


class RuleStore(Protocol):
    def all(self) -> list[CategorizationRule]: ...

    def get_by_pattern(self, pattern: str) -> CategorizationRule | None: ...

    def save(self, rule: CategorizationRule) -> None: ...


class InMemoryRuleStore:
    """Rules kept in process memory, keyed by pattern."""

    def __init__(self) -> None:
        self._rules: dict[str, CategorizationRule] = {}

    def all(self) -> list[CategorizationRule]:
        return [rule.copy() for rule in self._rules.values()]

    def get_by_pattern(self, pattern: str) -> CategorizationRule | None:
        rule = self._rules.get(pattern)
        return rule.copy() if rule else None

    def save(self, rule: CategorizationRule) -> None:
        self._rules[rule.pattern] = rule.copy()


class RuleBook:
    """Learns rules from accepted categorizations and applies them.

    Writes are serialized by a lock; each learned rule is keyed by the
    lower-cased, trimmed transaction description.
    """

    def __init__(
        self,
        store: RuleStore | None = None,
        initial_confidence: float | None = None,
        confidence_step: float | None = None,
        accept_threshold: float | None = None,
        confidence_decay: float | None = None,
    ):
        settings = get_settings()
        self.store = store or InMemoryRuleStore()
        self.initial_confidence = (
            settings.rule_initial_confidence if initial_confidence is None else initial_confidence
        )
        self.confidence_step = (
            settings.rule_confidence_step if confidence_step is None else confidence_step
        )
        self.accept_threshold = (
            settings.rule_accept_threshold if accept_threshold is None else accept_threshold
        )
        self.confidence_decay = (
            settings.rule_confidence_decay if confidence_decay is None else confidence_decay
        )
        self._lock = asyncio.Lock()

    def top(self, limit: int = 50) -> list[CategorizationRule]:
        """Most used rules first."""
        rules = sorted(self.store.all(), key=lambda r: r.usage_count, reverse=True)
        return rules[:limit]

    def match(
        self, text: str, rules: list[CategorizationRule] | None = None
    ) -> CategorizationRule | None:
        """First rule (by usage) whose pattern occurs in ``text``, if trusted enough."""
        haystack = text.lower()
        if not haystack:
            return None
        for rule in rules if rules is not None else self.top():
            if rule.pattern and rule.pattern in haystack:
                return rule if rule.confidence >= self.accept_threshold else None
        return None

    async def learn(
        self, description: str, account_id: str, account_name: str
    ) -> CategorizationRule | None:
        """Record an accepted categorization.

        A new pattern starts at the initial confidence; a known one gains one
        step, capped at 1.0. Returns None for patterns too short to learn.
        """
        pattern = normalize_pattern(description)
        if len(pattern) < MIN_PATTERN_LENGTH:
            return None

        async with self._lock:
            rule = self.store.get_by_pattern(pattern)
            if rule is None:
                rule = CategorizationRule(
                    pattern=pattern,
                    account_id=account_id,
                    account_name=account_name,
                    confidence=self.initial_confidence,
                )
            else:
                rule.account_id = account_id
                rule.account_name = account_name
                rule.usage_count += 1
                rule.confidence = round(min(1.0, rule.confidence + self.confidence_step), 4)
                rule.updated_at = datetime.now(UTC)
            self.store.save(rule)

        logger.info(
            "rule_learned",
            pattern=pattern,
            account_id=account_id,
            confidence=rule.confidence,
            usage_count=rule.usage_count,
        )
        return rule

    async def penalize(self, description: str) -> CategorizationRule | None:
        """Lower a rule's confidence after its suggestion was rejected."""
        pattern = normalize_pattern(description)
        async with self._lock:
            rule = self.store.get_by_pattern(pattern)
            if rule is None or self.confidence_decay <= 0:
                return rule
            rule.confidence = round(max(0.0, rule.confidence - self.confidence_decay), 4)
            rule.updated_at = datetime.now(UTC)
            self.store.save(rule)

        logger.info("rule_penalized", pattern=pattern, confidence=rule.confidence)
        return rule
