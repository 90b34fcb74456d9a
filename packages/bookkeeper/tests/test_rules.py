"""Tests for learned categorization rules."""

import pytest

from ai_bookkeeper.matching.rules import InMemoryRuleStore, RuleBook


@pytest.fixture
def rules():
    return RuleBook(
        store=InMemoryRuleStore(),
        initial_confidence=0.7,
        confidence_step=0.05,
        accept_threshold=0.8,
        confidence_decay=0.0,
    )


class TestLearning:
    @pytest.mark.asyncio
    async def test_new_rule_starts_at_initial_confidence(self, rules):
        rule = await rules.learn("  PETRO-CANADA #1234  ", "acc-fuel", "Fuel Expense")

        assert rule.pattern == "petro-canada #1234"
        assert rule.confidence == 0.7
        assert rule.usage_count == 1

    @pytest.mark.asyncio
    async def test_confidence_monotone_and_capped(self, rules):
        seen = []
        for _ in range(12):
            rule = await rules.learn("Esso Station", "acc-fuel", "Fuel Expense")
            seen.append(rule.confidence)

        assert seen == sorted(seen)
        assert seen[1] == 0.75
        assert seen[-1] == 1.0
        assert rule.usage_count == 12

    @pytest.mark.asyncio
    async def test_short_patterns_not_learned(self, rules):
        assert await rules.learn(" ab ", "acc", "Account") is None
        assert rules.top() == []

    @pytest.mark.asyncio
    async def test_relearn_updates_account(self, rules):
        await rules.learn("Bell Canada", "acc-admin", "Office & Admin")
        rule = await rules.learn("Bell Canada", "acc-phone", "Telephone")

        assert rule.account_id == "acc-phone"
        assert rule.account_name == "Telephone"


class TestMatching:
    @pytest.mark.asyncio
    async def test_match_requires_threshold(self, rules):
        await rules.learn("Esso", "acc-fuel", "Fuel Expense")

        assert rules.match("ESSO STATION 44 CALGARY") is None

        await rules.learn("Esso", "acc-fuel", "Fuel Expense")
        await rules.learn("Esso", "acc-fuel", "Fuel Expense")

        assert rules.match("ESSO STATION 44 CALGARY").account_id == "acc-fuel"

    @pytest.mark.asyncio
    async def test_most_used_rule_wins(self, rules):
        for _ in range(3):
            await rules.learn("fuel", "acc-generic", "General Fuel")
        for _ in range(5):
            await rules.learn("shell fuel", "acc-shell", "Shell Fuel")

        assert rules.match("SHELL FUEL 22").account_id == "acc-shell"

    def test_empty_text_never_matches(self, rules):
        assert rules.match("") is None


class TestDecay:
    @pytest.mark.asyncio
    async def test_no_decay_by_default(self, rules):
        await rules.learn("Esso", "acc-fuel", "Fuel Expense")

        rule = await rules.penalize("esso")

        assert rule.confidence == 0.7

    @pytest.mark.asyncio
    async def test_configured_decay_lowers_confidence(self):
        rules = RuleBook(store=InMemoryRuleStore(), confidence_decay=0.3)
        await rules.learn("Esso", "acc-fuel", "Fuel Expense")

        rule = await rules.penalize("Esso")
        rule = await rules.penalize("Esso")
        rule = await rules.penalize("Esso")

        assert rule.confidence == 0.0

    @pytest.mark.asyncio
    async def test_penalize_unknown_pattern(self, rules):
        assert await rules.penalize("never seen") is None
