"""Service facade wiring the ledger, the model and the bookkeeping engines.

Usage:
    async with Bookkeeper() as bk:
        reply = await bk.chat("What is overdue this month?")
        findings = await bk.run_audit()
        report = await bk.generate_report("aging")
"""

from typing import Any

import structlog

from ai_bookkeeper.agent.orchestrator import LoopResult, ToolOrchestrator
from ai_bookkeeper.agent.prompts import bookkeeper_system_prompt
from ai_bookkeeper.audit.engine import AuditEngine, ProgressCallback
from ai_bookkeeper.audit.models import Finding
from ai_bookkeeper.audit.store import FindingStore
from ai_bookkeeper.clients.base import ChatCapability, ChatResponse, ConversationTurn
from ai_bookkeeper.clients.claude import ClaudeClient
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.errors import LedgerNotConnectedError
from ai_bookkeeper.ledger.client import LedgerAPIClient
from ai_bookkeeper.ledger.definitions import BOOKKEEPER_TOOLS
from ai_bookkeeper.ledger.executor import ToolExecutor
from ai_bookkeeper.matching.categorize import CategorizationMatcher
from ai_bookkeeper.matching.models import (
    CategorizationRule,
    CategorizationSuggestion,
    MatchSuggestion,
)
from ai_bookkeeper.matching.reconcile import ReconciliationMatcher
from ai_bookkeeper.matching.rules import RuleBook, RuleStore
from ai_bookkeeper.reports.generator import ReportGenerator
from ai_bookkeeper.reports.models import Report, ReportType
from ai_bookkeeper.tasks.models import Task
from ai_bookkeeper.tasks.queue import TaskQueue
from ai_bookkeeper.tasks.scheduler import generate_daily_tasks
from ai_bookkeeper.tasks.store import InMemoryTaskStore, JsonFileTaskStore, TaskStore

logger = structlog.get_logger(__name__)

CHAT_HISTORY_LIMIT = 50


class _DeferredChat:
    """Chat capability resolved from the owning Bookkeeper on each call."""

    def __init__(self, owner: "Bookkeeper"):
        self._owner = owner

    async def generate(
        self,
        system_prompt: str,
        messages: list[ConversationTurn],
        tools: list[dict[str, Any]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatResponse:
        chat = self._owner.require_chat()
        return await chat.generate(
            system_prompt, messages, tools, temperature=temperature, max_tokens=max_tokens
        )


def _text_history(history: list[ConversationTurn | dict[str, Any]]) -> list[ConversationTurn]:
    """Keep plain-text turns only, most recent last."""
    turns = []
    for item in history:
        if isinstance(item, dict):
            role, content = item.get("role"), item.get("content")
        else:
            role, content = item.role, item.content
        if role in ("user", "assistant") and isinstance(content, str) and content:
            turns.append(ConversationTurn(role=role, content=content))
    return turns[-CHAT_HISTORY_LIMIT:]


class Bookkeeper:
    """Entry point for chat, tasks, audits, matching and reports.

    Precondition failures raise MissingAPIKeyError or LedgerNotConnectedError
    before any work starts.
    """

    def __init__(
        self,
        client: LedgerAPIClient | None = None,
        chat: ChatCapability | None = None,
        task_store: TaskStore | None = None,
        finding_store: FindingStore | None = None,
        rule_store: RuleStore | None = None,
    ):
        settings = get_settings()
        self.client = client or LedgerAPIClient()
        self._chat = chat
        deferred = _DeferredChat(self)

        self.executor = ToolExecutor(self.client)
        self.orchestrator = ToolOrchestrator(deferred, self.executor)

        if task_store is None:
            task_store = (
                JsonFileTaskStore(settings.task_store_path)
                if settings.task_store_path
                else InMemoryTaskStore()
            )
        self.tasks = TaskQueue(self.orchestrator, store=task_store)
        self.audit = AuditEngine(self.client, store=finding_store)
        self.rules = RuleBook(store=rule_store)
        self.categorizer = CategorizationMatcher(self.client, self.rules, chat=deferred)
        self.reconciler = ReconciliationMatcher(self.client, chat=deferred)
        self.reports = ReportGenerator(self.client, deferred)

    async def __aenter__(self) -> "Bookkeeper":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    # === Preconditions ===

    def require_chat(self) -> ChatCapability:
        """The chat capability, created from settings on first use."""
        if self._chat is None:
            self._chat = ClaudeClient()
        return self._chat

    def require_ledger(self) -> LedgerAPIClient:
        if not self.client.is_connected:
            raise LedgerNotConnectedError()
        return self.client

    def _require_all(self) -> None:
        self.require_chat()
        self.require_ledger()

    # === Chat ===

    async def chat(
        self,
        message: str,
        history: list[ConversationTurn | dict[str, Any]] | None = None,
    ) -> LoopResult:
        """Answer one user message with full tool access."""
        if not message or not message.strip():
            raise ValueError("Message is required")
        self._require_all()

        settings = get_settings()
        messages = _text_history(history or [])
        messages.append(ConversationTurn.user(message))
        result = await self.orchestrator.execute(
            bookkeeper_system_prompt(),
            messages,
            BOOKKEEPER_TOOLS,
            settings.chat_max_turns,
            temperature=settings.chat_temperature,
        )
        logger.info("chat_answered", turns=result.turns, tools_used=result.tools_used)
        return result

    async def run_instruction(self, instruction: str) -> str:
        """Run a one-off instruction the way a custom task would, without queueing it."""
        self._require_all()
        settings = get_settings()
        return await self.orchestrator.run(
            bookkeeper_system_prompt(),
            [ConversationTurn.user(instruction)],
            BOOKKEEPER_TOOLS,
            settings.task_max_turns,
            temperature=settings.task_temperature,
        )

    # === Tasks ===

    async def generate_daily_tasks(self) -> list[Task]:
        return await generate_daily_tasks(self.tasks)

    async def execute_task(self, task_id: str) -> Task:
        self._require_all()
        return await self.tasks.execute_one(task_id)

    async def execute_pending_tasks(self) -> list[Task]:
        self._require_all()
        return await self.tasks.execute_all()

    # === Audit ===

    async def run_audit(
        self, on_progress: ProgressCallback | None = None
    ) -> list[Finding]:
        self._require_all()
        return await self.audit.run_full_audit(chat=self._chat, on_progress=on_progress)

    # === Matching ===

    async def categorization_suggestions(
        self, bank_account_id: str
    ) -> list[CategorizationSuggestion]:
        self._require_all()
        return await self.categorizer.get_suggestions(bank_account_id)

    async def apply_categorization(
        self,
        transaction_id: str,
        account_id: str,
        account_name: str,
        description: str,
    ) -> CategorizationRule | None:
        self.require_ledger()
        return await self.categorizer.apply_categorization(
            transaction_id, account_id, account_name, description
        )

    async def reject_categorization(self, description: str) -> CategorizationRule | None:
        return await self.categorizer.reject_suggestion(description)

    async def reconciliation_suggestions(self, bank_account_id: str) -> list[MatchSuggestion]:
        self._require_all()
        return await self.reconciler.get_suggestions(bank_account_id)

    async def apply_match(
        self, transaction_id: str, match_type: str, match_id: str
    ) -> dict[str, Any]:
        self.require_ledger()
        return await self.reconciler.apply_match(transaction_id, match_type, match_id)

    # === Reports ===

    async def generate_report(
        self,
        report_type: ReportType | str,
        start: str | None = None,
        end: str | None = None,
        detail_level: str = "detailed",
        instructions: str | None = None,
    ) -> Report:
        """Narrative report; without a ledger connection the model writes a template."""
        self.require_chat()
        return await self.reports.generate(
            report_type, start, end, detail_level=detail_level, instructions=instructions
        )

    async def analyze(
        self, question: str | None = None, data: Any = None, analysis_type: str = "general"
    ) -> str:
        self.require_chat()
        return await self.reports.analyze(question, data, analysis_type)
