"""Categorization suggestions for uncategorized bank transactions."""

import json
from typing import Any

import structlog
from pydantic import Field, field_validator

from ai_bookkeeper.ai_json import LenientPayload, parse_items
from ai_bookkeeper.clients.base import ChatCapability, ConversationTurn
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.ledger.client import LedgerAPIClient
from ai_bookkeeper.matching.models import (
    CategorizationRule,
    CategorizationSuggestion,
    transaction_amount,
    transaction_text,
)
from ai_bookkeeper.matching.rules import RuleBook

logger = structlog.get_logger(__name__)

AI_BATCH_LIMIT = 30

CATEGORIZATION_SYSTEM_PROMPT = (
    "You categorize bank transactions for a small business. Return only valid JSON."
)

CATEGORIZATION_HINTS = """- Fuel/gas stations -> Fuel Expense
- Vehicle parts, repairs -> Vehicle Maintenance & Repairs
- Insurance payments -> Insurance Expense
- Permit/license fees -> Permits & Licenses
- Toll charges -> Tolls & Highway Fees
- Phone/internet -> Office & Admin
- Restaurant/food -> Meals & Entertainment
- Software/subscriptions -> Office & Admin or Software Subscriptions"""


class AICategorizationPayload(LenientPayload):
    transaction_id: str = Field(alias="transactionId")
    suggested_account_id: str = Field(alias="suggestedAccountId")
    suggested_account_name: str = Field(default="", alias="suggestedAccountName")
    confidence: float = 0.5
    reasoning: str = ""

    @field_validator("transaction_id", "suggested_account_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("confidence")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


def build_categorization_prompt(
    transactions: list[dict[str, Any]],
    accounts: list[dict[str, Any]],
    business: str | None = None,
) -> str:
    business = business or get_settings().business_context
    account_list = "\n".join(
        f"- {a.get('account_name')} (ID: {a.get('account_id')}, Type: {a.get('account_type')})"
        for a in accounts
    )
    txn_list = [
        {
            "id": t.get("transaction_id"),
            "description": transaction_text(t) or "Unknown",
            "amount": t.get("amount"),
            "date": t.get("date"),
            "debit_or_credit": t.get("debit_or_credit"),
        }
        for t in transactions
    ]

    return f"""You are categorizing bank transactions for {business}.

Here are the expense accounts available:
{account_list}

Here are uncategorized bank transactions to categorize:
{json.dumps(txn_list, indent=2, default=str)}

BUSINESS CONTEXT:
{CATEGORIZATION_HINTS}

For each transaction, provide:
- The best matching account ID and name
- A confidence score (0.0 to 1.0)
- Brief reasoning

Return as JSON array:
[{{
  "transactionId": "string",
  "suggestedAccountId": "string",
  "suggestedAccountName": "string",
  "confidence": 0.0-1.0,
  "reasoning": "string"
}}]

Return ONLY the JSON array."""


def _haystack(txn: dict[str, Any]) -> str:
    return " ".join(str(txn.get(k)) for k in ("description", "payee") if txn.get(k))


class CategorizationMatcher:
    """Suggests accounts for uncategorized transactions and learns from choices."""

    def __init__(
        self,
        client: LedgerAPIClient,
        rules: RuleBook | None = None,
        chat: ChatCapability | None = None,
    ):
        self.client = client
        self.rules = rules or RuleBook()
        self.chat = chat

    async def get_suggestions(self, bank_account_id: str) -> list[CategorizationSuggestion]:
        """Rule matches first; everything else goes to one AI batch."""
        transactions = await self.client.get_uncategorized_transactions(bank_account_id)
        if not transactions:
            return []

        rules = self.rules.top()
        suggestions: list[CategorizationSuggestion] = []
        needs_ai: list[dict[str, Any]] = []

        for txn in transactions:
            rule = self.rules.match(_haystack(txn), rules)
            if rule is None:
                needs_ai.append(txn)
            else:
                suggestions.append(self._from_rule(txn, rule))

        logger.info(
            "categorization_rules_applied",
            account_id=bank_account_id,
            transactions=len(transactions),
            rule_matches=len(suggestions),
        )

        if needs_ai and self.chat is not None:
            suggestions.extend(await self._ai_suggestions(needs_ai[:AI_BATCH_LIMIT]))
        return suggestions

    async def apply_categorization(
        self,
        transaction_id: str,
        account_id: str,
        account_name: str,
        description: str,
    ) -> CategorizationRule | None:
        """Categorize in the ledger, then learn from it.

        Ledger errors propagate and nothing is learned.
        """
        await self.client.categorize_transaction(transaction_id, account_id)
        logger.info(
            "transaction_categorized", transaction_id=transaction_id, account_id=account_id
        )
        return await self.rules.learn(description, account_id, account_name)

    async def reject_suggestion(self, description: str) -> CategorizationRule | None:
        return await self.rules.penalize(description)

    @staticmethod
    def _from_rule(txn: dict[str, Any], rule: CategorizationRule) -> CategorizationSuggestion:
        return CategorizationSuggestion(
            transaction_id=str(txn.get("transaction_id", "")),
            description=transaction_text(txn),
            amount=transaction_amount(txn),
            date=str(txn.get("date") or ""),
            suggested_account_id=rule.account_id,
            suggested_account_name=rule.account_name,
            confidence=rule.confidence,
            reasoning=(
                f'Matched rule: "{rule.pattern}" -> {rule.account_name} '
                f"(used {rule.usage_count} times)"
            ),
            source="rule",
        )

    async def _ai_suggestions(
        self, transactions: list[dict[str, Any]]
    ) -> list[CategorizationSuggestion]:
        accounts = await self.client.list_chart_of_accounts(account_type="expense")
        prompt = build_categorization_prompt(transactions, accounts)
        by_id = {str(t.get("transaction_id")): t for t in transactions}

        try:
            response = await self.chat.generate(
                CATEGORIZATION_SYSTEM_PROMPT,
                [ConversationTurn.user(prompt)],
                temperature=get_settings().analysis_temperature,
            )
            payloads = parse_items(response.text, AICategorizationPayload)
        except Exception as e:
            logger.warning("ai_categorization_failed", error=str(e))
            return []

        suggestions = []
        for p in payloads:
            txn = by_id.get(p.transaction_id)
            if txn is None:
                logger.info("ai_categorization_unknown_transaction", transaction_id=p.transaction_id)
                continue
            suggestions.append(
                CategorizationSuggestion(
                    transaction_id=p.transaction_id,
                    description=transaction_text(txn),
                    amount=transaction_amount(txn),
                    date=str(txn.get("date") or ""),
                    suggested_account_id=p.suggested_account_id,
                    suggested_account_name=p.suggested_account_name,
                    confidence=p.confidence,
                    reasoning=p.reasoning,
                    source="ai",
                )
            )
        logger.info("ai_categorization_complete", suggestions=len(suggestions))
        return suggestions
