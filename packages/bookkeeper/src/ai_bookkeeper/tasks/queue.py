"""Queue of autonomous bookkeeping tasks.

Tasks move ``pending -> running -> completed | failed | needs_input`` and
``needs_input -> pending`` once a human answers. Each task runs one tool
loop; sweeps run pending tasks one at a time in priority order.
"""

import asyncio
from collections import Counter
from datetime import UTC, datetime
from typing import Any

import structlog

from ai_bookkeeper.agent.orchestrator import ToolOrchestrator
from ai_bookkeeper.agent.prompts import NEEDS_INPUT_MARKER, autonomous_system_prompt
from ai_bookkeeper.clients.base import ConversationTurn
from ai_bookkeeper.config import get_settings
from ai_bookkeeper.errors import (
    InvalidTaskStateError,
    SweepInProgressError,
    TaskNotFoundError,
)
from ai_bookkeeper.ledger.definitions import BOOKKEEPER_TOOLS
from ai_bookkeeper.tasks.instructions import build_instruction
from ai_bookkeeper.tasks.models import Task, TaskPriority, TaskStatus, TaskType
from ai_bookkeeper.tasks.store import InMemoryTaskStore, TaskStore

logger = structlog.get_logger(__name__)


def extract_question(text: str) -> str | None:
    """Return the question if the reply asks for human input."""
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(NEEDS_INPUT_MARKER):
            question = stripped[len(NEEDS_INPUT_MARKER):].strip()
            return question or text.strip()
    return None


class TaskQueue:
    """Owns the task list and drives tasks through the tool orchestrator."""

    def __init__(
        self,
        orchestrator: ToolOrchestrator,
        store: TaskStore | None = None,
        tools: list[dict[str, Any]] | None = None,
        max_turns: int | None = None,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ):
        settings = get_settings()
        self._orchestrator = orchestrator
        self._store = store or InMemoryTaskStore()
        self._tools = tools if tools is not None else BOOKKEEPER_TOOLS
        self._max_turns = max_turns or settings.task_max_turns
        self._temperature = (
            settings.task_temperature if temperature is None else temperature
        )
        self._system_prompt = system_prompt or autonomous_system_prompt()

        self._tasks: list[Task] = self._store.load()
        self._lock = asyncio.Lock()
        self._is_running = False

    @property
    def is_running(self) -> bool:
        """Whether a full sweep is in progress."""
        return self._is_running

    # === Queue bookkeeping ===

    async def enqueue(
        self,
        type: TaskType | str,
        title: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
    ) -> Task:
        """Add a new pending task and return a copy of it."""
        task = Task(
            type=TaskType(type),
            title=title,
            description=description,
            priority=TaskPriority(priority),
        )
        async with self._lock:
            self._tasks.append(task)
            await self._persist()
        logger.info("task_enqueued", task_id=task.id, type=task.type.value)
        return task.copy()

    async def list_tasks(self, status: TaskStatus | str | None = None) -> list[Task]:
        """Snapshot of the queue in insertion order."""
        async with self._lock:
            tasks = [task.copy() for task in self._tasks]
        if status is not None:
            wanted = TaskStatus(status)
            tasks = [task for task in tasks if task.status is wanted]
        return tasks

    async def get(self, task_id: str) -> Task:
        async with self._lock:
            return self._find(task_id).copy()

    async def summary(self) -> dict[str, int]:
        """Task counts per status, plus the total."""
        async with self._lock:
            counts = Counter(task.status.value for task in self._tasks)
            total = len(self._tasks)
        result = {status.value: counts.get(status.value, 0) for status in TaskStatus}
        result["total"] = total
        return result

    async def remove(self, task_id: str) -> None:
        async with self._lock:
            task = self._find(task_id)
            self._tasks.remove(task)
            await self._persist()
        logger.info("task_removed", task_id=task_id)

    async def clear_completed(self) -> int:
        """Drop every completed or failed task; returns how many were removed."""
        async with self._lock:
            before = len(self._tasks)
            self._tasks = [t for t in self._tasks if not t.status.is_terminal]
            removed = before - len(self._tasks)
            await self._persist()
        logger.info("tasks_cleared", removed=removed)
        return removed

    async def answer_question(self, task_id: str, answer: str) -> Task:
        """Store the answer to a waiting task and put it back in the queue."""
        async with self._lock:
            task = self._find(task_id)
            if task.status is not TaskStatus.NEEDS_INPUT:
                raise InvalidTaskStateError(task_id, task.status.value, "answer")
            task.answer = answer
            task.status = TaskStatus.PENDING
            await self._persist()
            snapshot = task.copy()
        logger.info("task_answered", task_id=task_id)
        return snapshot

    async def mark_needs_input(self, task_id: str, question: str) -> Task:
        """Park a pending or running task until a human answers ``question``."""
        async with self._lock:
            task = self._find(task_id)
            if task.status not in (TaskStatus.PENDING, TaskStatus.RUNNING):
                raise InvalidTaskStateError(task_id, task.status.value, "ask about")
            self._park(task, question)
            await self._persist()
            return task.copy()

    # === Execution ===

    async def execute_one(self, task_id: str) -> Task:
        """Run a single pending task to completion, failure or a question.

        Execution errors are recorded on the task, never raised.
        """
        async with self._lock:
            task = self._find(task_id)
            if task.status is not TaskStatus.PENDING:
                raise InvalidTaskStateError(task_id, task.status.value, "execute")
            task.status = TaskStatus.RUNNING
            task.error = None
            instruction = build_instruction(task)
            await self._persist()

        log = logger.bind(task_id=task_id, type=task.type.value)
        log.info("task_started")

        try:
            text = await self._orchestrator.run(
                self._system_prompt,
                [ConversationTurn.user(instruction)],
                self._tools,
                self._max_turns,
                temperature=self._temperature,
            )
        except Exception as e:
            log.exception("task_failed")
            async with self._lock:
                task.status = TaskStatus.FAILED
                task.error = str(e) or type(e).__name__
                task.completed_at = datetime.now(UTC)
                await self._persist()
                return task.copy()

        async with self._lock:
            question = extract_question(text)
            if question is not None:
                task.result = text
                self._park(task, question)
                log.info("task_needs_input", question=question)
            else:
                task.status = TaskStatus.COMPLETED
                task.result = text
                task.completed_at = datetime.now(UTC)
                log.info("task_completed", result_chars=len(text))
            await self._persist()
            return task.copy()

    async def execute_all(self) -> list[Task]:
        """Run every pending task, high priority first, one at a time.

        Raises SweepInProgressError if a sweep is already running.
        """
        if self._is_running:
            raise SweepInProgressError()
        self._is_running = True

        try:
            async with self._lock:
                pending = [t for t in self._tasks if t.status is TaskStatus.PENDING]
                # sorted() is stable, so equal priorities keep insertion order
                order = [t.id for t in sorted(pending, key=lambda t: t.priority.rank)]

            logger.info("sweep_started", pending=len(order))
            results: list[Task] = []
            for task_id in order:
                async with self._lock:
                    task = next((t for t in self._tasks if t.id == task_id), None)
                    runnable = task is not None and task.status is TaskStatus.PENDING
                if not runnable:
                    logger.info("sweep_task_skipped", task_id=task_id)
                    continue
                results.append(await self.execute_one(task_id))

            logger.info("sweep_finished", executed=len(results))
            return results
        finally:
            self._is_running = False

    # === Internals ===

    def _find(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    @staticmethod
    def _park(task: Task, question: str) -> None:
        task.status = TaskStatus.NEEDS_INPUT
        task.question = question
        task.answer = None

    async def _persist(self) -> None:
        """Save a snapshot off the event loop; callers hold the lock, so saves stay ordered."""
        snapshot = [task.copy() for task in self._tasks]
        await asyncio.to_thread(self._store.save, snapshot)
