"""Ledger access: REST client, tool catalog and tool executor."""

from ai_bookkeeper.ledger.client import (
    AuthenticationError,
    LedgerAPIClient,
    LedgerAPIError,
    RateLimitError,
)
from ai_bookkeeper.ledger.definitions import BOOKKEEPER_TOOLS, READ_ONLY_TOOLS
from ai_bookkeeper.ledger.executor import ToolExecutionError, ToolExecutor

__all__ = [
    # API Client
    "LedgerAPIClient",
    "LedgerAPIError",
    "AuthenticationError",
    "RateLimitError",
    # Tool Definitions
    "BOOKKEEPER_TOOLS",
    "READ_ONLY_TOOLS",
    # Tool Executor
    "ToolExecutor",
    "ToolExecutionError",
]
