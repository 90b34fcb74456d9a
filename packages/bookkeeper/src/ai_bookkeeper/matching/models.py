"""Categorization rules and matcher suggestions."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class CategorizationRule:
    """A learned mapping from a description pattern to an account."""

    pattern: str
    account_id: str
    account_name: str
    confidence: float
    usage_count: int = 1
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def copy(self) -> "CategorizationRule":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "confidence": self.confidence,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class CategorizationSuggestion:
    transaction_id: str
    description: str
    amount: float
    date: str
    suggested_account_id: str
    suggested_account_name: str
    confidence: float
    reasoning: str
    source: Literal["rule", "ai"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "description": self.description,
            "amount": self.amount,
            "date": self.date,
            "suggested_account_id": self.suggested_account_id,
            "suggested_account_name": self.suggested_account_name,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "source": self.source,
        }


@dataclass
class MatchSuggestion:
    transaction_id: str
    description: str
    amount: float
    date: str
    match_type: Literal["invoice", "bill"]
    match_id: str
    match_description: str
    confidence: float
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "description": self.description,
            "amount": self.amount,
            "date": self.date,
            "match_type": self.match_type,
            "match_id": self.match_id,
            "match_description": self.match_description,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


def transaction_text(txn: dict[str, Any]) -> str:
    """Description of a bank transaction, falling back to the payee."""
    return str(txn.get("description") or txn.get("payee") or "")


def transaction_amount(txn: dict[str, Any]) -> float:
    try:
        return abs(float(txn.get("amount") or 0))
    except (TypeError, ValueError):
        return 0.0
