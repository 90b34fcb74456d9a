"""Reconciliation suggestions: match bank transactions to invoices and bills."""

import json
from typing import Any, Literal

import structlog
from pydantic import Field, field_validator

from ai_bookkeeper.ai_json import LenientPayload, parse_items
from ai_bookkeeper.clients.base import ChatCapability, ConversationTurn
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.ledger.client import LedgerAPIClient
from ai_bookkeeper.matching.models import MatchSuggestion, transaction_amount, transaction_text

logger = structlog.get_logger(__name__)

EXACT_MATCH_LIMIT = 20
AI_MATCH_LIMIT = 10
AI_CANDIDATE_LIMIT = 30
AMOUNT_TOLERANCE = 0.01
EXACT_CONFIDENCE = 0.95
AMBIGUOUS_CONFIDENCE = 0.7
AI_MIN_CONFIDENCE = 0.5

RECONCILIATION_SYSTEM_PROMPT = (
    "You match bank transactions to invoices/bills. Return JSON only."
)


class AIMatchPayload(LenientPayload):
    transaction_id: str = Field(alias="transactionId")
    match_type: Literal["invoice", "bill"] = Field(alias="matchType")
    match_id: str = Field(alias="matchId")
    confidence: float = 0.0
    reasoning: str = ""

    @field_validator("transaction_id", "match_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("match_type", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


def _total(doc: dict[str, Any]) -> float:
    try:
        return float(doc.get("total") or 0)
    except (TypeError, ValueError):
        return 0.0


def _describe(doc: dict[str, Any], match_type: str) -> str:
    party = doc.get("customer_name") or doc.get("vendor_name") or ""
    return f"{doc.get(f'{match_type}_number', '')} - {party} (${_total(doc):,.2f})"


def build_reconciliation_prompt(
    transactions: list[dict[str, Any]],
    invoices: list[dict[str, Any]],
    bills: list[dict[str, Any]],
) -> str:
    txns = [
        {
            "id": t.get("transaction_id"),
            "desc": transaction_text(t),
            "amount": t.get("amount"),
            "date": t.get("date"),
            "type": t.get("debit_or_credit"),
        }
        for t in transactions
    ]
    open_invoices = [
        {
            "id": i.get("invoice_id"),
            "number": i.get("invoice_number"),
            "customer": i.get("customer_name"),
            "total": i.get("total"),
            "balance": i.get("balance"),
            "date": i.get("date"),
        }
        for i in invoices
    ]
    open_bills = [
        {
            "id": b.get("bill_id"),
            "number": b.get("bill_number"),
            "vendor": b.get("vendor_name"),
            "total": b.get("total"),
            "balance": b.get("balance"),
            "date": b.get("date"),
        }
        for b in bills
    ]

    return f"""Match these bank transactions to the open invoices/bills for {get_settings().business_context}:

Unmatched transactions:
{json.dumps(txns, indent=2, default=str)}

Open invoices:
{json.dumps(open_invoices, indent=2, default=str)}

Open bills:
{json.dumps(open_bills, indent=2, default=str)}

Return JSON array of matches:
[{{"transactionId":"","matchType":"invoice"|"bill","matchId":"","confidence":0.0-1.0,"reasoning":""}}]"""


class ReconciliationMatcher:
    """Suggests which invoice or bill a bank transaction settles."""

    def __init__(self, client: LedgerAPIClient, chat: ChatCapability | None = None):
        self.client = client
        self.chat = chat

    async def get_suggestions(self, bank_account_id: str) -> list[MatchSuggestion]:
        """Exact amount matches first, then one AI pass; highest confidence first.

        Credits are matched against open invoices, debits against open bills.
        """
        transactions = await self.client.get_uncategorized_transactions(bank_account_id)
        if not transactions:
            return []

        invoices = await self.client.list_invoices(status="unpaid")
        bills = await self.client.list_bills(status="open")

        suggestions: list[MatchSuggestion] = []
        for txn in transactions[:EXACT_MATCH_LIMIT]:
            suggestion = self._exact_match(txn, invoices, bills)
            if suggestion is not None:
                suggestions.append(suggestion)

        logger.info(
            "reconciliation_exact_matches",
            account_id=bank_account_id,
            transactions=len(transactions),
            matches=len(suggestions),
        )

        matched = {s.transaction_id for s in suggestions}
        unmatched = [
            t for t in transactions if str(t.get("transaction_id")) not in matched
        ][:AI_MATCH_LIMIT]
        if unmatched and self.chat is not None:
            suggestions.extend(await self._ai_matches(unmatched, invoices, bills))

        return sorted(suggestions, key=lambda s: s.confidence, reverse=True)

    async def apply_match(
        self, transaction_id: str, match_type: str, match_id: str
    ) -> dict[str, Any]:
        """Record a suggested match in the ledger."""
        if match_type not in ("invoice", "bill"):
            raise ValueError(f"match_type must be 'invoice' or 'bill', got {match_type!r}")

        result = await self.client.match_bank_transaction(
            transaction_id,
            {
                "transactions_to_be_matched": [
                    {"transaction_id": match_id, "transaction_type": match_type}
                ]
            },
        )
        logger.info(
            "transaction_matched",
            transaction_id=transaction_id,
            match_type=match_type,
            match_id=match_id,
        )
        return result

    @staticmethod
    def _exact_match(
        txn: dict[str, Any],
        invoices: list[dict[str, Any]],
        bills: list[dict[str, Any]],
    ) -> MatchSuggestion | None:
        amount = transaction_amount(txn)
        is_debit = txn.get("debit_or_credit") == "debit"
        match_type: Literal["invoice", "bill"] = "bill" if is_debit else "invoice"
        candidates = bills if is_debit else invoices

        exact = [c for c in candidates if abs(_total(c) - amount) < AMOUNT_TOLERANCE]
        if not exact:
            return None

        best = exact[0]
        if len(exact) == 1:
            confidence, reasoning = EXACT_CONFIDENCE, "Exact amount match"
        else:
            confidence = AMBIGUOUS_CONFIDENCE
            reasoning = (
                f"{len(exact)} exact amount matches found; the first was selected. "
                "Review before applying."
            )

        return MatchSuggestion(
            transaction_id=str(txn.get("transaction_id", "")),
            description=transaction_text(txn),
            amount=amount,
            date=str(txn.get("date") or ""),
            match_type=match_type,
            match_id=str(best.get(f"{match_type}_id", "")),
            match_description=_describe(best, match_type),
            confidence=confidence,
            reasoning=reasoning,
        )

    async def _ai_matches(
        self,
        transactions: list[dict[str, Any]],
        invoices: list[dict[str, Any]],
        bills: list[dict[str, Any]],
    ) -> list[MatchSuggestion]:
        invoices = invoices[:AI_CANDIDATE_LIMIT]
        bills = bills[:AI_CANDIDATE_LIMIT]
        prompt = build_reconciliation_prompt(transactions, invoices, bills)

        try:
            response = await self.chat.generate(
                RECONCILIATION_SYSTEM_PROMPT,
                [ConversationTurn.user(prompt)],
                temperature=get_settings().analysis_temperature,
            )
            payloads = parse_items(response.text, AIMatchPayload)
        except Exception as e:
            logger.warning("ai_reconciliation_failed", error=str(e))
            return []

        by_id = {str(t.get("transaction_id")): t for t in transactions}
        documents = {
            "invoice": {str(i.get("invoice_id")): i for i in invoices},
            "bill": {str(b.get("bill_id")): b for b in bills},
        }

        suggestions = []
        for p in payloads:
            txn = by_id.get(p.transaction_id)
            doc = documents[p.match_type].get(p.match_id)
            if p.confidence < AI_MIN_CONFIDENCE or txn is None or doc is None:
                logger.info(
                    "ai_match_dropped",
                    transaction_id=p.transaction_id,
                    match_id=p.match_id,
                    confidence=p.confidence,
                )
                continue
            suggestions.append(
                MatchSuggestion(
                    transaction_id=p.transaction_id,
                    description=transaction_text(txn),
                    amount=transaction_amount(txn),
                    date=str(txn.get("date") or ""),
                    match_type=p.match_type,
                    match_id=p.match_id,
                    match_description=_describe(doc, p.match_type),
                    confidence=min(1.0, p.confidence),
                    reasoning=p.reasoning,
                )
            )
        logger.info("ai_reconciliation_complete", suggestions=len(suggestions))
        return suggestions
