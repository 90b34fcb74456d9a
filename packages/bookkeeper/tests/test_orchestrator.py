"""Tests for the bounded tool-calling loop."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from ai_bookkeeper.agent.orchestrator import (
    DEFAULT_INCOMPLETE_MESSAGE,
    TRUNCATION_MARKER,
    ToolOrchestrator,
    serialize_tool_output,
)
from ai_bookkeeper.clients.base import ToolRequestBlock, ToolResultBlock

TOOLS = [{"name": "list_invoices", "description": "List invoices", "input_schema": {}}]


@pytest.fixture
def provider():
    provider = AsyncMock()
    provider.execute = AsyncMock(return_value={"success": True, "data": [{"id": "1"}]})
    return provider


class TestSerializeToolOutput:
    """Tests for tool payload truncation."""

    def test_small_payload_untouched(self):
        outcome = {"success": True, "data": {"invoice_id": "1"}}

        assert serialize_tool_output(outcome, 1000) == json.dumps(outcome)

    def test_large_list_keeps_preview(self):
        records = [{"invoice_id": str(i), "notes": "x" * 100} for i in range(2000)]

        text = serialize_tool_output({"success": True, "data": records}, 50_000)
        payload = json.loads(text)

        assert len(text) <= 50_000
        assert payload["total_records"] == 2000
        assert len(payload["data"]) == 50
        assert "[truncated]" in payload["note"]

    def test_large_object_hard_truncated(self):
        outcome = {"success": True, "data": {"blob": "y" * 60_000}}

        text = serialize_tool_output(outcome, 50_000)

        assert len(text) == 50_000
        assert text.endswith(TRUNCATION_MARKER)

    def test_preview_still_too_large_is_hard_truncated(self):
        records = [{"blob": "z" * 5_000} for _ in range(100)]

        text = serialize_tool_output({"success": True, "data": records}, 50_000)

        assert len(text) <= 50_000
        assert text.endswith(TRUNCATION_MARKER)


class TestToolOrchestrator:
    """Tests for ToolOrchestrator."""

    @pytest.mark.asyncio
    async def test_plain_answer_single_turn(
        self, provider, scripted_chat, make_text_response, user_turn
    ):
        chat = scripted_chat([make_text_response("All invoices are current.")])
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Status?")], TOOLS, 15)

        assert result.text == "All invoices are current."
        assert result.turns == 1
        assert result.exhausted is False
        provider.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_tool_results_answer_every_request_by_id(
        self, provider, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        chat = scripted_chat(
            [
                make_tool_response(
                    ("call_a", "list_invoices", {"status": "overdue"}),
                    ("call_b", "list_bills", {}),
                ),
                make_text_response("Done."),
            ]
        )
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Check")], TOOLS, 15)

        assert result.text == "Done."
        assert result.tools_used == ["list_invoices", "list_bills"]

        second_call = chat.calls[1]["messages"]
        assistant_turn, results_turn = second_call[-2], second_call[-1]
        assert assistant_turn.role == "assistant"
        assert [b.id for b in assistant_turn.content if isinstance(b, ToolRequestBlock)] == [
            "call_a",
            "call_b",
        ]
        assert results_turn.role == "user"
        assert all(isinstance(b, ToolResultBlock) for b in results_turn.content)
        assert [b.tool_use_id for b in results_turn.content] == ["call_a", "call_b"]

    @pytest.mark.asyncio
    async def test_turn_cap_stops_endless_tool_requests(
        self, provider, scripted_chat, make_tool_response, user_turn
    ):
        chat = scripted_chat([make_tool_response(("call", "list_invoices", {}))])
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Loop")], TOOLS, 3)

        assert len(chat.calls) == 3
        assert result.turns == 3
        assert result.exhausted is True
        assert result.text == DEFAULT_INCOMPLETE_MESSAGE

    @pytest.mark.asyncio
    async def test_turn_cap_returns_last_text_seen(
        self, provider, scripted_chat, make_tool_response, user_turn
    ):
        chat = scripted_chat(
            [make_tool_response(("call", "list_invoices", {}), text="Still checking...")]
        )
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Loop")], TOOLS, 2)

        assert result.text == "Still checking..."

    @pytest.mark.asyncio
    async def test_end_turn_with_tool_requests_finishes(
        self, provider, scripted_chat, make_tool_response, user_turn
    ):
        response = make_tool_response(("call", "list_invoices", {}), text="Final words")
        response.stop_reason = "end_turn"
        chat = scripted_chat([response])
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Hi")], TOOLS, 15)

        assert result.text == "Final words"
        provider.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_final_turn_does_not_reuse_earlier_text(
        self, provider, scripted_chat, make_tool_response, user_turn
    ):
        silent = make_tool_response()
        silent.stop_reason = "end_turn"
        chat = scripted_chat(
            [
                make_tool_response(("t1", "list_invoices", {}), text="Let me look up invoices."),
                silent,
            ]
        )
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Overdue?")], TOOLS, 15)

        assert result.exhausted is False
        assert result.turns == 2
        assert result.text == DEFAULT_INCOMPLETE_MESSAGE

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_error_result(
        self, provider, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        provider.execute = AsyncMock(
            return_value={"success": False, "error": "Unknown tool: fly_to_moon"}
        )
        chat = scripted_chat(
            [make_tool_response(("call", "fly_to_moon", {})), make_text_response("Sorry.")]
        )
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Go")], TOOLS, 15)

        block = chat.calls[1]["messages"][-1].content[0]
        assert block.is_error is True
        assert json.loads(block.content) == {"error": "Unknown tool: fly_to_moon"}
        assert result.invocations[0].success is False
        assert result.text == "Sorry."

    @pytest.mark.asyncio
    async def test_provider_exception_does_not_stop_loop(
        self, provider, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        provider.execute = AsyncMock(side_effect=RuntimeError("connection reset"))
        chat = scripted_chat(
            [make_tool_response(("call", "list_invoices", {})), make_text_response("Recovered")]
        )
        orchestrator = ToolOrchestrator(chat, provider)

        result = await orchestrator.execute("system", [user_turn("Go")], TOOLS, 15)

        block = chat.calls[1]["messages"][-1].content[0]
        assert block.is_error is True
        assert "connection reset" in block.content
        assert result.text == "Recovered"

    @pytest.mark.asyncio
    async def test_large_tool_result_is_truncated(
        self, provider, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        provider.execute = AsyncMock(
            return_value={"success": True, "data": [{"n": i, "pad": "p" * 200} for i in range(1000)]}
        )
        chat = scripted_chat(
            [make_tool_response(("call", "list_invoices", {})), make_text_response("ok")]
        )
        orchestrator = ToolOrchestrator(chat, provider, max_result_chars=50_000)

        await orchestrator.execute("system", [user_turn("Go")], TOOLS, 15)

        block = chat.calls[1]["messages"][-1].content[0]
        assert len(block.content) <= 50_000
        assert json.loads(block.content)["total_records"] == 1000

    @pytest.mark.asyncio
    async def test_chat_errors_propagate(self, provider, scripted_chat, user_turn):
        chat = scripted_chat([RuntimeError("model unavailable")])
        orchestrator = ToolOrchestrator(chat, provider)

        with pytest.raises(RuntimeError, match="model unavailable"):
            await orchestrator.execute("system", [user_turn("Hi")], TOOLS, 15)

    @pytest.mark.asyncio
    async def test_parallel_tools_keep_request_order(
        self, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        async def slow_first(name, arguments):
            await asyncio.sleep(0.05 if name == "first" else 0)
            return {"success": True, "data": name}

        provider = AsyncMock()
        provider.execute = AsyncMock(side_effect=slow_first)
        chat = scripted_chat(
            [
                make_tool_response(("id1", "first", {}), ("id2", "second", {})),
                make_text_response("ok"),
            ]
        )
        orchestrator = ToolOrchestrator(chat, provider, parallel_tools=True)

        await orchestrator.execute("system", [user_turn("Go")], TOOLS, 15)

        results = chat.calls[1]["messages"][-1].content
        assert [b.tool_use_id for b in results] == ["id1", "id2"]
        assert json.loads(results[0].content)["data"] == "first"

    @pytest.mark.asyncio
    async def test_input_messages_not_mutated(
        self, provider, scripted_chat, make_text_response, make_tool_response, user_turn
    ):
        chat = scripted_chat(
            [make_tool_response(("call", "list_invoices", {})), make_text_response("ok")]
        )
        messages = [user_turn("Go")]

        result = await ToolOrchestrator(chat, provider).execute("system", messages, TOOLS, 15)

        assert len(messages) == 1
        assert len(result.messages) == 3

    @pytest.mark.asyncio
    async def test_run_returns_text(self, provider, scripted_chat, make_text_response, user_turn):
        chat = scripted_chat([make_text_response("line one")])

        text = await ToolOrchestrator(chat, provider).run("system", [user_turn("Hi")], TOOLS, 5)

        assert text == "line one"
