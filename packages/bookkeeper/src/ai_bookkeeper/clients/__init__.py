"""LLM client implementations for the AI bookkeeper."""

from ai_bookkeeper.clients.base import (
    ChatCapability,
    ChatResponse,
    ContentBlock,
    ConversationTurn,
    TextBlock,
    ToolRequestBlock,
    ToolResultBlock,
)
from ai_bookkeeper.clients.claude import ClaudeClient

__all__ = [
    "ChatCapability",
    "ChatResponse",
    "ContentBlock",
    "ConversationTurn",
    "TextBlock",
    "ToolRequestBlock",
    "ToolResultBlock",
    "ClaudeClient",
]
