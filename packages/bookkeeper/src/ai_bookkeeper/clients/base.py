"""Conversation types shared by chat clients and the tool orchestrator."""

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol


@dataclass(frozen=True)
class TextBlock:
    """Plain text produced by the model or the user."""

    text: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolRequestBlock:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    kind: Literal["tool_request"] = "tool_request"


@dataclass(frozen=True)
class ToolResultBlock:
    """The answer to a tool request, keyed by the request id."""

    tool_use_id: str
    content: str
    is_error: bool = False
    kind: Literal["tool_result"] = "tool_result"


ContentBlock = TextBlock | ToolRequestBlock | ToolResultBlock


@dataclass
class ConversationTurn:
    """One message in a conversation.

    ``content`` is either a plain string or an ordered list of blocks.
    """

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    @classmethod
    def user(cls, text: str) -> "ConversationTurn":
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str) -> "ConversationTurn":
        return cls(role="assistant", content=text)

    @property
    def blocks(self) -> list[ContentBlock]:
        if isinstance(self.content, str):
            return [TextBlock(self.content)] if self.content else []
        return list(self.content)


@dataclass
class ChatResponse:
    """Structured response from a chat capability."""

    content: list[ContentBlock]
    stop_reason: str
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """All text blocks joined by newlines."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_requests(self) -> list[ToolRequestBlock]:
        return [b for b in self.content if isinstance(b, ToolRequestBlock)]


class ChatCapability(Protocol):
    """Anything that can answer a conversation, optionally with tools."""

    async def generate(
        self,
        system_prompt: str,
        messages: list[ConversationTurn],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResponse: ...
