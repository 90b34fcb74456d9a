"""Pytest configuration and fixtures."""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test")
os.environ.setdefault("LEDGER_ORGANIZATION_ID", "900000001")
os.environ.setdefault("LEDGER_ACCESS_TOKEN", "ledger-token-123")
os.environ.setdefault("LEDGER_PAGE_DELAY", "0")

from ai_bookkeeper.clients.base import (  # noqa: E402
    ChatResponse,
    ConversationTurn,
    TextBlock,
    ToolRequestBlock,
)
from ai_bookkeeper.ledger.client import LedgerAPIClient  # noqa: E402


class ScriptedChat:
    """Chat capability that replays canned responses and records each call."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def generate(
        self, system_prompt, messages, tools=None, temperature=None, max_tokens=None
    ):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "messages": list(messages),
                "tools": tools,
                "temperature": temperature,
            }
        )
        if not self._responses:
            raise AssertionError("ScriptedChat ran out of responses")
        response = self._responses[0] if len(self._responses) == 1 else self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def text_response(text: str) -> ChatResponse:
    return ChatResponse(
        content=[TextBlock(text)],
        stop_reason="end_turn",
        usage={"input_tokens": 10, "output_tokens": 5},
    )


def tool_response(*requests: tuple[str, str, dict], text: str = "") -> ChatResponse:
    content = [TextBlock(text)] if text else []
    content += [ToolRequestBlock(id=i, name=n, input=a) for i, n, a in requests]
    return ChatResponse(
        content=content,
        stop_reason="tool_use",
        usage={"input_tokens": 10, "output_tokens": 5},
    )


@pytest.fixture
def scripted_chat():
    """Factory for a ScriptedChat replaying the given responses in order.

    The last response repeats once the others are used up.
    """
    return ScriptedChat


@pytest.fixture
def make_text_response():
    return text_response


@pytest.fixture
def make_tool_response():
    return tool_response


@pytest.fixture
def user_turn():
    return ConversationTurn.user


@pytest.fixture
def mock_ledger():
    """LedgerAPIClient double; async methods are AsyncMocks."""
    ledger = MagicMock(spec=LedgerAPIClient)
    ledger.is_connected = True
    ledger.organization_id = "900000001"
    for name in (
        "list_invoices",
        "list_bills",
        "list_expenses",
        "list_contacts",
        "list_customer_payments",
        "list_vendor_payments",
        "list_chart_of_accounts",
        "list_bank_accounts",
        "get_uncategorized_transactions",
    ):
        getattr(ledger, name).return_value = []
    ledger.categorize_transaction.return_value = {"code": 0, "message": "categorized"}
    ledger.match_bank_transaction.return_value = {"code": 0, "message": "matched"}
    return ledger

