"""Tests for the categorization and reconciliation matchers."""

import json

import pytest

from ai_bookkeeper.matching import (
    CategorizationMatcher,
    InMemoryRuleStore,
    ReconciliationMatcher,
    RuleBook,
)


def txn(transaction_id, amount, description="", kind="debit", **extra):
    return {
        "transaction_id": transaction_id,
        "amount": amount,
        "description": description,
        "date": "2025-06-01",
        "debit_or_credit": kind,
        **extra,
    }


@pytest.fixture
def rules():
    return RuleBook(store=InMemoryRuleStore(), confidence_decay=0.0)


class TestCategorizationMatcher:
    """Tests for CategorizationMatcher."""

    @pytest.mark.asyncio
    async def test_trusted_rule_skips_ai(self, mock_ledger, rules, scripted_chat):
        for _ in range(3):
            await rules.learn("Petro-Canada", "acc-fuel", "Fuel Expense")
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", 120.5, "PETRO-CANADA 0045 REGINA")
        ]
        chat = scripted_chat([RuntimeError("should not be called")])
        matcher = CategorizationMatcher(mock_ledger, rules, chat=chat)

        [suggestion] = await matcher.get_suggestions("bank-1")

        assert suggestion.source == "rule"
        assert suggestion.suggested_account_id == "acc-fuel"
        assert suggestion.confidence == 0.8
        assert chat.calls == []

    @pytest.mark.asyncio
    async def test_payee_is_matched_too(self, mock_ledger, rules):
        for _ in range(3):
            await rules.learn("407 ETR", "acc-tolls", "Tolls & Highway Fees")
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", 30.0, "", payee="407 ETR Express Toll Route")
        ]
        matcher = CategorizationMatcher(mock_ledger, rules)

        [suggestion] = await matcher.get_suggestions("bank-1")

        assert suggestion.suggested_account_name == "Tolls & Highway Fees"
        assert suggestion.description == "407 ETR Express Toll Route"

    @pytest.mark.asyncio
    async def test_remaining_go_to_one_ai_batch(
        self, mock_ledger, rules, scripted_chat, make_text_response
    ):
        transactions = [txn(f"t{i}", 10.0 + i, f"VENDOR {i}") for i in range(40)]
        mock_ledger.get_uncategorized_transactions.return_value = transactions
        mock_ledger.list_chart_of_accounts.return_value = [
            {"account_id": "acc-meals", "account_name": "Meals", "account_type": "expense"}
        ]
        reply = json.dumps(
            [
                {
                    "transactionId": "t0",
                    "suggestedAccountId": "acc-meals",
                    "suggestedAccountName": "Meals",
                    "confidence": 1.7,
                    "reasoning": "Restaurant",
                },
                {"transactionId": "ghost", "suggestedAccountId": "acc-meals"},
            ]
        )
        chat = scripted_chat([make_text_response(reply)])
        matcher = CategorizationMatcher(mock_ledger, rules, chat=chat)

        suggestions = await matcher.get_suggestions("bank-1")

        assert len(chat.calls) == 1
        prompt = chat.calls[0]["messages"][0].content
        assert "t29" in prompt
        assert '"t30"' not in prompt
        assert [s.transaction_id for s in suggestions] == ["t0"]
        assert suggestions[0].source == "ai"
        assert suggestions[0].confidence == 1.0
        assert suggestions[0].amount == 10.0
        mock_ledger.list_chart_of_accounts.assert_awaited_once_with(account_type="expense")

    @pytest.mark.asyncio
    async def test_unparseable_ai_reply_yields_nothing(
        self, mock_ledger, rules, scripted_chat, make_text_response
    ):
        mock_ledger.get_uncategorized_transactions.return_value = [txn("t1", 5.0, "Unknown")]
        chat = scripted_chat([make_text_response("I am not sure about these.")])
        matcher = CategorizationMatcher(mock_ledger, rules, chat=chat)

        assert await matcher.get_suggestions("bank-1") == []

    @pytest.mark.asyncio
    async def test_no_transactions(self, mock_ledger, rules):
        assert await CategorizationMatcher(mock_ledger, rules).get_suggestions("bank-1") == []

    @pytest.mark.asyncio
    async def test_apply_categorization_commits_then_learns(self, mock_ledger, rules):
        matcher = CategorizationMatcher(mock_ledger, rules)

        rule = await matcher.apply_categorization("t1", "acc-fuel", "Fuel Expense", "Husky 12")

        mock_ledger.categorize_transaction.assert_awaited_once_with("t1", "acc-fuel")
        assert rule.pattern == "husky 12"
        assert rule.confidence == 0.7

    @pytest.mark.asyncio
    async def test_failed_commit_learns_nothing(self, mock_ledger, rules):
        mock_ledger.categorize_transaction.side_effect = RuntimeError("ledger said no")
        matcher = CategorizationMatcher(mock_ledger, rules)

        with pytest.raises(RuntimeError):
            await matcher.apply_categorization("t1", "acc-fuel", "Fuel Expense", "Husky 12")

        assert rules.top() == []


class TestReconciliationMatcher:
    """Tests for ReconciliationMatcher."""

    @pytest.mark.asyncio
    async def test_single_exact_bill_match(self, mock_ledger):
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", -250.00, "KAL TIRE", kind="debit")
        ]
        mock_ledger.list_bills.return_value = [
            {"bill_id": "b1", "bill_number": "B-77", "vendor_name": "Kal Tire", "total": 250.00},
            {"bill_id": "b2", "bill_number": "B-78", "vendor_name": "Kal Tire", "total": 900.00},
        ]
        matcher = ReconciliationMatcher(mock_ledger)

        [suggestion] = await matcher.get_suggestions("bank-1")

        assert suggestion.match_type == "bill"
        assert suggestion.match_id == "b1"
        assert suggestion.confidence == 0.95
        assert suggestion.amount == 250.0
        mock_ledger.list_bills.assert_awaited_once_with(status="open")

    @pytest.mark.asyncio
    async def test_credit_matches_invoice_and_ambiguity(self, mock_ledger):
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", 1200.0, "DEPOSIT", kind="credit")
        ]
        mock_ledger.list_invoices.return_value = [
            {"invoice_id": "i1", "invoice_number": "INV-1", "customer_name": "A", "total": 1200.0},
            {"invoice_id": "i2", "invoice_number": "INV-2", "customer_name": "B", "total": 1200.004},
        ]
        matcher = ReconciliationMatcher(mock_ledger)

        [suggestion] = await matcher.get_suggestions("bank-1")

        assert suggestion.match_type == "invoice"
        assert suggestion.match_id == "i1"
        assert suggestion.confidence == 0.7
        assert "2 exact amount matches" in suggestion.reasoning

    @pytest.mark.asyncio
    async def test_ai_pass_filters_and_sorts(
        self, mock_ledger, scripted_chat, make_text_response
    ):
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", 250.0, "KAL TIRE", kind="debit"),
            txn("t2", 480.0, "E-TRANSFER", kind="credit"),
            txn("t3", 75.0, "MISC", kind="debit"),
        ]
        mock_ledger.list_bills.return_value = [
            {"bill_id": "b1", "bill_number": "B-1", "vendor_name": "Kal Tire", "total": 250.0},
            {"bill_id": "b9", "bill_number": "B-9", "vendor_name": "Shaw", "total": 80.0},
        ]
        mock_ledger.list_invoices.return_value = [
            {"invoice_id": "i1", "invoice_number": "INV-1", "customer_name": "A", "total": 500.0}
        ]
        reply = json.dumps(
            [
                {"transactionId": "t2", "matchType": "invoice", "matchId": "i1",
                 "confidence": 0.6, "reasoning": "Partial payment"},
                {"transactionId": "t3", "matchType": "bill", "matchId": "b9",
                 "confidence": 0.4, "reasoning": "Weak"},
                {"transactionId": "t3", "matchType": "bill", "matchId": "missing",
                 "confidence": 0.9, "reasoning": "Invented"},
                {"transactionId": "t3", "matchType": "expense", "matchId": "b9",
                 "confidence": 0.9, "reasoning": "Wrong type"},
            ]
        )
        chat = scripted_chat([make_text_response(reply)])
        matcher = ReconciliationMatcher(mock_ledger, chat=chat)

        suggestions = await matcher.get_suggestions("bank-1")

        assert [(s.transaction_id, s.confidence) for s in suggestions] == [
            ("t1", 0.95),
            ("t2", 0.6),
        ]
        prompt = chat.calls[0]["messages"][0].content
        assert '"t1"' not in prompt

    @pytest.mark.asyncio
    async def test_ai_failure_keeps_exact_matches(self, mock_ledger, scripted_chat):
        mock_ledger.get_uncategorized_transactions.return_value = [
            txn("t1", 250.0, kind="debit"),
            txn("t2", 10.0, kind="debit"),
        ]
        mock_ledger.list_bills.return_value = [{"bill_id": "b1", "total": 250.0}]
        chat = scripted_chat([RuntimeError("timeout")])

        suggestions = await ReconciliationMatcher(mock_ledger, chat=chat).get_suggestions("b")

        assert [s.match_id for s in suggestions] == ["b1"]

    @pytest.mark.asyncio
    async def test_apply_match(self, mock_ledger):
        matcher = ReconciliationMatcher(mock_ledger)

        await matcher.apply_match("t1", "bill", "b1")

        mock_ledger.match_bank_transaction.assert_awaited_once_with(
            "t1",
            {"transactions_to_be_matched": [{"transaction_id": "b1", "transaction_type": "bill"}]},
        )

    @pytest.mark.asyncio
    async def test_apply_match_rejects_unknown_type(self, mock_ledger):
        with pytest.raises(ValueError):
            await ReconciliationMatcher(mock_ledger).apply_match("t1", "expense", "e1")


class TestRejectSuggestion:
    @pytest.mark.asyncio
    async def test_reject_applies_configured_decay(self, mock_ledger):
        rules = RuleBook(store=InMemoryRuleStore(), confidence_decay=0.1)
        matcher = CategorizationMatcher(mock_ledger, rules)
        await rules.learn("Tim Hortons", "acc-meals", "Meals & Entertainment")

        rule = await matcher.reject_suggestion("Tim Hortons")

        assert rule.confidence == 0.6
