"""Tool-calling agent loop and prompts."""

from ai_bookkeeper.agent.orchestrator import (
    DEFAULT_INCOMPLETE_MESSAGE,
    TRUNCATION_MARKER,
    CapabilityProvider,
    LoopResult,
    LoopState,
    ToolInvocation,
    ToolOrchestrator,
    serialize_tool_output,
)
from ai_bookkeeper.agent.prompts import (
    NEEDS_INPUT_MARKER,
    autonomous_system_prompt,
    bookkeeper_system_prompt,
)

__all__ = [
    "ToolOrchestrator",
    "LoopState",
    "LoopResult",
    "ToolInvocation",
    "CapabilityProvider",
    "serialize_tool_output",
    "TRUNCATION_MARKER",
    "DEFAULT_INCOMPLETE_MESSAGE",
    "NEEDS_INPUT_MARKER",
    "bookkeeper_system_prompt",
    "autonomous_system_prompt",
]
