"""Claude (Anthropic) LLM client with tool use support."""

from typing import Any

import anthropic
import structlog

from ai_bookkeeper.clients.base import (
    ChatResponse,
    ContentBlock,
    ConversationTurn,
    TextBlock,
    ToolRequestBlock,
    ToolResultBlock,
)
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.errors import MissingAPIKeyError

logger = structlog.get_logger(__name__)


class ClaudeClient:
    """Client for Anthropic's Claude API implementing the chat capability."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise MissingAPIKeyError()

        self._api_key = api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = (
            temperature if temperature is not None else settings.llm_temperature
        )

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self._logger = logger.bind(client="claude", model=self._model)

    @property
    def model(self) -> str:
        return self._model

    def _convert_tools_to_anthropic_format(
        self, tools: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Convert catalog entries to Anthropic's tool format."""
        return [
            {
                "name": tool["name"],
                "description": tool["description"],
                "input_schema": tool["input_schema"],
            }
            for tool in tools
        ]

    @staticmethod
    def _convert_block(block: ContentBlock) -> dict[str, Any]:
        if isinstance(block, TextBlock):
            return {"type": "text", "text": block.text}
        if isinstance(block, ToolRequestBlock):
            return {
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            }
        result: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
        }
        if block.is_error:
            result["is_error"] = True
        return result

    def _convert_messages_to_anthropic_format(
        self, messages: list[ConversationTurn]
    ) -> list[dict[str, Any]]:
        """Convert conversation history to Anthropic's message format."""
        anthropic_messages = []
        for msg in messages:
            if isinstance(msg.content, str):
                content: str | list[dict[str, Any]] = msg.content
            else:
                content = [self._convert_block(block) for block in msg.content]
            anthropic_messages.append({"role": msg.role, "content": content})
        return anthropic_messages

    def _parse_response(self, response: anthropic.types.Message) -> ChatResponse:
        """Parse Anthropic response into our block format."""
        content: list[ContentBlock] = []

        for block in response.content:
            if block.type == "text":
                content.append(TextBlock(block.text))
            elif block.type == "tool_use":
                content.append(
                    ToolRequestBlock(
                        id=block.id,
                        name=block.name,
                        input=dict(block.input or {}),
                    )
                )

        return ChatResponse(
            content=content,
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )

    async def generate(
        self,
        system_prompt: str,
        messages: list[ConversationTurn],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResponse:
        """Generate a response from Claude.

        Args:
            system_prompt: The system prompt defining assistant behavior.
            messages: Conversation history.
            tools: Optional tool catalog for function calling.
            temperature: Overrides the configured temperature.
            max_tokens: Overrides the configured output token limit.

        Returns:
            ChatResponse with content blocks, stop reason and usage.

        Raises:
            anthropic.APIError: Transport failures are not retried here.
        """
        self._logger.debug(
            "generating_response",
            message_count=len(messages),
            tool_count=len(tools) if tools else 0,
        )

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "system": system_prompt,
            "messages": self._convert_messages_to_anthropic_format(messages),
            "temperature": temperature if temperature is not None else self._temperature,
        }
        if tools:
            kwargs["tools"] = self._convert_tools_to_anthropic_format(tools)

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            tool_calls=len(parsed.tool_requests),
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed
