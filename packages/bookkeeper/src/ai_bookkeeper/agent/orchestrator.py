"""Bounded multi-turn tool-calling loop.

The loop is an explicit state machine::

    AWAITING_MODEL -> EXECUTING_TOOLS -> AWAITING_MODEL -> ... -> DONE

The turn counter lives in the loop state and is checked before every model
call, so a model that keeps requesting tools stops after ``max_turns`` calls.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import structlog

from ai_bookkeeper.clients.base import (
    ChatCapability,
    ChatResponse,
    ConversationTurn,
    ToolRequestBlock,
    ToolResultBlock,
)
from ai_bookkeeper.config import get_settings

logger = structlog.get_logger(__name__)

TRUNCATION_MARKER = "... [truncated]"
DEFAULT_INCOMPLETE_MESSAGE = (
    "I could not complete this request within the allowed number of steps."
)

# Stop reasons that end the loop even when tool requests are present
COMPLETION_STOP_REASONS = frozenset({"end_turn", "stop_sequence"})


class CapabilityProvider(Protocol):
    """Executes a named tool and returns ``{"success", "data" | "error"}``."""

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]: ...


class LoopState(str, Enum):
    """States of the tool loop."""

    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


@dataclass
class ToolInvocation:
    """One executed tool request, kept for attribution."""

    id: str
    name: str
    input: dict[str, Any]
    success: bool
    output: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "input": self.input,
            "success": self.success,
            "output_chars": len(self.output),
        }


@dataclass
class LoopResult:
    """Outcome of one orchestrator run."""

    text: str
    turns: int
    exhausted: bool
    messages: list[ConversationTurn]
    invocations: list[ToolInvocation] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def tools_used(self) -> list[str]:
        return [inv.name for inv in self.invocations]


def serialize_tool_output(
    outcome: dict[str, Any], max_chars: int, preview_records: int = 50
) -> str:
    """Serialize a successful tool outcome, keeping it within ``max_chars``.

    A list payload is cut to its first ``preview_records`` entries with a
    count and note; anything else (or a preview still too large) is
    hard-truncated with TRUNCATION_MARKER.
    """
    text = json.dumps(outcome, default=str)
    if len(text) <= max_chars:
        return text

    data = outcome.get("data")
    if isinstance(data, list):
        summary = {
            "success": True,
            "total_records": len(data),
            "data": data[:preview_records],
            "note": (
                f"[truncated] Showing first {min(preview_records, len(data))} of "
                f"{len(data)} records. Ask for specific filters to narrow down."
            ),
        }
        text = json.dumps(summary, default=str)
        if len(text) <= max_chars:
            return text

    return text[: max(max_chars - len(TRUNCATION_MARKER), 0)] + TRUNCATION_MARKER


class ToolOrchestrator:
    """Drives a chat capability through tool calls until it answers."""

    def __init__(
        self,
        chat: ChatCapability,
        provider: CapabilityProvider,
        max_result_chars: int | None = None,
        preview_records: int | None = None,
        parallel_tools: bool | None = None,
    ):
        settings = get_settings()
        self._chat = chat
        self._provider = provider
        self._max_result_chars = max_result_chars or settings.tool_result_max_chars
        self._preview_records = preview_records or settings.tool_result_preview_records
        self._parallel_tools = (
            settings.parallel_tools if parallel_tools is None else parallel_tools
        )

    async def run(
        self,
        system_prompt: str,
        messages: list[ConversationTurn],
        tools: list[dict[str, Any]],
        max_turns: int,
        temperature: float | None = None,
    ) -> str:
        """Run the loop and return only the final text."""
        result = await self.execute(
            system_prompt, messages, tools, max_turns, temperature=temperature
        )
        return result.text

    async def execute(
        self,
        system_prompt: str,
        messages: list[ConversationTurn],
        tools: list[dict[str, Any]],
        max_turns: int,
        temperature: float | None = None,
    ) -> LoopResult:
        """Run the loop and return the full result.

        Chat capability errors propagate unchanged; tool failures are handed
        back to the model as error results.
        """
        history = list(messages)
        state = LoopState.AWAITING_MODEL
        turns = 0
        exhausted = False
        final_text = ""
        last_text = ""
        pending: list[ToolRequestBlock] = []
        invocations: list[ToolInvocation] = []
        usage: dict[str, int] = {}

        while state is not LoopState.DONE:
            if state is LoopState.AWAITING_MODEL:
                if turns >= max_turns:
                    exhausted = True
                    state = LoopState.DONE
                    continue

                turns += 1
                response = await self._chat.generate(
                    system_prompt, history, tools or None, temperature=temperature
                )
                _add_usage(usage, response)

                if response.text:
                    last_text = response.text
                pending = response.tool_requests

                if not pending or response.stop_reason in COMPLETION_STOP_REASONS:
                    final_text = response.text
                    state = LoopState.DONE
                else:
                    history.append(
                        ConversationTurn(role="assistant", content=list(response.content))
                    )
                    state = LoopState.EXECUTING_TOOLS

            elif state is LoopState.EXECUTING_TOOLS:
                executed = await self._run_tools(pending)
                invocations.extend(executed)
                history.append(
                    ConversationTurn(
                        role="user",
                        content=[
                            ToolResultBlock(
                                tool_use_id=inv.id,
                                content=inv.output,
                                is_error=not inv.success,
                            )
                            for inv in executed
                        ],
                    )
                )
                pending = []
                state = LoopState.AWAITING_MODEL

        if exhausted:
            # Best available text: the latest the model produced on any turn
            final_text = last_text
            logger.warning("tool_loop_exhausted", turns=turns, tool_calls=len(invocations))

        logger.info(
            "tool_loop_finished",
            turns=turns,
            tool_calls=len(invocations),
            exhausted=exhausted,
        )
        return LoopResult(
            text=final_text or DEFAULT_INCOMPLETE_MESSAGE,
            turns=turns,
            exhausted=exhausted,
            messages=history,
            invocations=invocations,
            usage=usage,
        )

    async def _run_tools(self, requests: list[ToolRequestBlock]) -> list[ToolInvocation]:
        """Execute the requests of one model turn, results in request order."""
        if self._parallel_tools and len(requests) > 1:
            return list(await asyncio.gather(*(self._run_tool(r) for r in requests)))
        return [await self._run_tool(request) for request in requests]

    async def _run_tool(self, request: ToolRequestBlock) -> ToolInvocation:
        try:
            outcome = await self._provider.execute(request.name, request.input)
        except Exception as e:
            logger.exception("tool_provider_error", tool=request.name)
            outcome = {"success": False, "error": str(e) or "Tool execution failed"}

        if outcome.get("success"):
            output = serialize_tool_output(
                outcome, self._max_result_chars, self._preview_records
            )
            success = True
        else:
            error = outcome.get("error") or f"Tool {request.name} failed"
            output = json.dumps({"error": error}, default=str)
            success = False

        logger.info(
            "tool_invocation",
            tool=request.name,
            tool_use_id=request.id,
            input=request.input,
            success=success,
            output_chars=len(output),
        )
        return ToolInvocation(
            id=request.id,
            name=request.name,
            input=request.input,
            success=success,
            output=output,
        )


def _add_usage(usage: dict[str, int], response: ChatResponse) -> None:
    for key, value in response.usage.items():
        usage[key] = usage.get(key, 0) + value
