"""Tests for the autonomous task queue."""

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from ai_bookkeeper.errors import (
    InvalidTaskStateError,
    SweepInProgressError,
    TaskNotFoundError,
)
from ai_bookkeeper.tasks import (
    DAILY_TASKS,
    InMemoryTaskStore,
    JsonFileTaskStore,
    TaskQueue,
    TaskStatus,
    TaskType,
    build_instruction,
    extract_question,
    generate_daily_tasks,
)
from ai_bookkeeper.tasks.models import Task


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value="Categorized 4 transactions.")
    return orchestrator


@pytest.fixture
def queue(orchestrator):
    return TaskQueue(orchestrator, system_prompt="system")


class TestQueueBookkeeping:
    """Tests for enqueue, list and removal."""

    @pytest.mark.asyncio
    async def test_enqueue_assigns_id_and_pending(self, queue):
        task = await queue.enqueue(TaskType.HEALTH_CHECK, "Health check", priority="low")

        assert task.id.startswith("task_")
        assert task.status is TaskStatus.PENDING
        assert (await queue.get(task.id)).title == "Health check"

    @pytest.mark.asyncio
    async def test_list_returns_copies(self, queue):
        task = await queue.enqueue(TaskType.CUSTOM, "Custom", "do it")

        listed = await queue.list_tasks()
        listed[0].status = TaskStatus.FAILED

        assert (await queue.get(task.id)).status is TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_get_unknown_task(self, queue):
        with pytest.raises(TaskNotFoundError):
            await queue.get("task_missing")

    @pytest.mark.asyncio
    async def test_summary_counts_by_status(self, queue):
        await queue.enqueue(TaskType.CUSTOM, "a", "a")
        await queue.enqueue(TaskType.CUSTOM, "b", "b")

        summary = await queue.summary()

        assert summary["pending"] == 2
        assert summary["completed"] == 0
        assert summary["total"] == 2

    @pytest.mark.asyncio
    async def test_clear_completed_removes_terminal_only(self, queue, orchestrator):
        done = await queue.enqueue(TaskType.CUSTOM, "done", "x")
        failing = await queue.enqueue(TaskType.CUSTOM, "failing", "y")
        waiting = await queue.enqueue(TaskType.CUSTOM, "waiting", "z")
        await queue.execute_one(done.id)
        orchestrator.run = AsyncMock(side_effect=RuntimeError("ledger down"))
        await queue.execute_one(failing.id)

        removed = await queue.clear_completed()

        assert removed == 2
        assert [t.id for t in await queue.list_tasks()] == [waiting.id]

    @pytest.mark.asyncio
    async def test_remove(self, queue):
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")

        await queue.remove(task.id)

        assert await queue.list_tasks() == []
        with pytest.raises(TaskNotFoundError):
            await queue.remove(task.id)


class TestExecution:
    """Tests for running tasks."""

    @pytest.mark.asyncio
    async def test_execute_one_completes(self, queue, orchestrator):
        task = await queue.enqueue(TaskType.CATEGORIZE_TRANSACTIONS, "Categorize")

        result = await queue.execute_one(task.id)

        assert result.status is TaskStatus.COMPLETED
        assert result.result == "Categorized 4 transactions."
        assert result.completed_at is not None
        instruction = orchestrator.run.call_args.args[1][0].content
        assert "categorize_transaction" in instruction

    @pytest.mark.asyncio
    async def test_custom_task_uses_description_verbatim(self, queue, orchestrator):
        task = await queue.enqueue(TaskType.CUSTOM, "Fuel bill", "Create a bill for fuel")

        await queue.execute_one(task.id)

        assert orchestrator.run.call_args.args[1][0].content == "Create a bill for fuel"

    @pytest.mark.asyncio
    async def test_failure_is_captured_on_task(self, queue, orchestrator):
        orchestrator.run = AsyncMock(side_effect=RuntimeError("rate limited"))
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")

        result = await queue.execute_one(task.id)

        assert result.status is TaskStatus.FAILED
        assert result.error == "rate limited"

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_sweep(self, queue, orchestrator):
        orchestrator.run = AsyncMock(side_effect=[RuntimeError("boom"), "ok"])
        first = await queue.enqueue(TaskType.CUSTOM, "a", "a")
        second = await queue.enqueue(TaskType.CUSTOM, "b", "b")

        results = await queue.execute_all()

        assert [(t.id, t.status) for t in results] == [
            (first.id, TaskStatus.FAILED),
            (second.id, TaskStatus.COMPLETED),
        ]
        assert results[0].error == "boom"
        assert results[1].result == "ok"
        assert queue.is_running is False

    @pytest.mark.asyncio
    async def test_execute_one_requires_pending(self, queue):
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")
        await queue.execute_one(task.id)

        with pytest.raises(InvalidTaskStateError):
            await queue.execute_one(task.id)

    @pytest.mark.asyncio
    async def test_execute_all_runs_by_priority_stably(self, queue, orchestrator):
        low = await queue.enqueue(TaskType.CUSTOM, "low", "low", "low")
        high_1 = await queue.enqueue(TaskType.CUSTOM, "high 1", "high 1", "high")
        medium = await queue.enqueue(TaskType.CUSTOM, "medium", "medium", "medium")
        high_2 = await queue.enqueue(TaskType.CUSTOM, "high 2", "high 2", "high")

        results = await queue.execute_all()

        assert [t.id for t in results] == [high_1.id, high_2.id, medium.id, low.id]
        ran = [call.args[1][0].content for call in orchestrator.run.call_args_list]
        assert ran == ["high 1", "high 2", "medium", "low"]
        assert queue.is_running is False

    @pytest.mark.asyncio
    async def test_concurrent_sweep_rejected(self, queue, orchestrator):
        release = asyncio.Event()

        async def blocked(*args, **kwargs):
            await release.wait()
            return "done"

        orchestrator.run = AsyncMock(side_effect=blocked)
        await queue.enqueue(TaskType.CUSTOM, "a", "a")

        sweep = asyncio.create_task(queue.execute_all())
        await asyncio.sleep(0)
        assert queue.is_running is True

        with pytest.raises(SweepInProgressError):
            await queue.execute_all()

        # Queue bookkeeping still works mid-sweep
        extra = await queue.enqueue(TaskType.CUSTOM, "b", "b")
        assert (await queue.get(extra.id)).status is TaskStatus.PENDING

        release.set()
        await sweep
        assert queue.is_running is False

    @pytest.mark.asyncio
    async def test_sweep_skips_task_removed_mid_sweep(self, queue, orchestrator):
        first = await queue.enqueue(TaskType.CUSTOM, "first", "first", "high")
        second = await queue.enqueue(TaskType.CUSTOM, "second", "second", "low")

        async def remove_second(*args, **kwargs):
            await queue.remove(second.id)
            return "ok"

        orchestrator.run = AsyncMock(side_effect=remove_second)

        results = await queue.execute_all()

        assert [t.id for t in results] == [first.id]


class TestNeedsInput:
    """Tests for the needs_input round trip."""

    def test_extract_question(self):
        text = "I checked the bank feed.\nNEEDS_INPUT: Is the $4,000 transfer a loan?"

        assert extract_question(text) == "Is the $4,000 transfer a loan?"
        assert extract_question("All done.") is None

    @pytest.mark.asyncio
    async def test_marker_reply_parks_task(self, queue, orchestrator):
        orchestrator.run = AsyncMock(return_value="NEEDS_INPUT: Which account for Costco?")
        task = await queue.enqueue(TaskType.CATEGORIZE_TRANSACTIONS, "Categorize")

        result = await queue.execute_one(task.id)

        assert result.status is TaskStatus.NEEDS_INPUT
        assert result.question == "Which account for Costco?"

    @pytest.mark.asyncio
    async def test_needs_input_task_is_not_swept(self, queue, orchestrator):
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")
        await queue.mark_needs_input(task.id, "Which vendor?")

        results = await queue.execute_all()

        assert results == []
        assert (await queue.get(task.id)).status is TaskStatus.NEEDS_INPUT
        orchestrator.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_answer_requeues_with_context(self, queue, orchestrator):
        orchestrator.run = AsyncMock(
            side_effect=["NEEDS_INPUT: Which account for Costco?", "Done, used Office Supplies."]
        )
        task = await queue.enqueue(TaskType.CUSTOM, "Costco", "Categorize the Costco charge")
        await queue.execute_one(task.id)

        answered = await queue.answer_question(task.id, "Office Supplies")
        assert answered.status is TaskStatus.PENDING

        result = await queue.execute_one(task.id)

        assert result.status is TaskStatus.COMPLETED
        second_instruction = orchestrator.run.call_args.args[1][0].content
        assert "Which account for Costco?" in second_instruction
        assert "Office Supplies" in second_instruction

    @pytest.mark.asyncio
    async def test_answer_only_from_needs_input(self, queue):
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")

        with pytest.raises(InvalidTaskStateError):
            await queue.answer_question(task.id, "yes")


class TestInstructionsAndScheduler:
    """Tests for instruction templates and the daily task set."""

    def test_every_non_custom_type_has_template(self):
        for task_type in TaskType:
            task = Task(type=task_type, title="t", description="custom text")
            instruction = build_instruction(task, business="Acme Haulage")
            if task_type is TaskType.CUSTOM:
                assert instruction == "custom text"
            else:
                assert instruction != "custom text"

    @pytest.mark.asyncio
    async def test_generate_daily_tasks(self, queue):
        tasks = await generate_daily_tasks(queue)

        assert len(tasks) == len(DAILY_TASKS) == 5
        assert [t.priority.value for t in tasks] == ["high", "high", "medium", "medium", "low"]
        assert {t.type for t in tasks} == set(TaskType) - {TaskType.CUSTOM}


class TestStores:
    """Tests for task persistence."""

    @pytest.mark.asyncio
    async def test_in_memory_store_survives_queue_rebuild(self, orchestrator):
        store = InMemoryTaskStore()
        first = TaskQueue(orchestrator, store=store, system_prompt="s")
        task = await first.enqueue(TaskType.CUSTOM, "a", "a")

        second = TaskQueue(orchestrator, store=store, system_prompt="s")

        assert [t.id for t in await second.list_tasks()] == [task.id]

    @pytest.mark.asyncio
    async def test_json_store_round_trip_resets_running(self, tmp_path, orchestrator):
        path = tmp_path / "tasks.json"
        store = JsonFileTaskStore(path)
        running = Task(type=TaskType.HEALTH_CHECK, title="Health", description="")
        running.status = TaskStatus.RUNNING
        store.save([running])

        queue = TaskQueue(orchestrator, store=JsonFileTaskStore(path), system_prompt="s")
        restored = await queue.get(running.id)

        assert restored.status is TaskStatus.PENDING
        assert restored.type is TaskType.HEALTH_CHECK
        assert restored.created_at == running.created_at

    def test_json_store_missing_file(self, tmp_path):
        assert JsonFileTaskStore(tmp_path / "none.json").load() == []

    @pytest.mark.asyncio
    async def test_saves_run_off_the_event_loop(self, orchestrator):
        loop_thread = threading.get_ident()
        saved_from = []

        class RecordingStore(InMemoryTaskStore):
            def save(self, tasks):
                saved_from.append(threading.get_ident())
                super().save(tasks)

        queue = TaskQueue(orchestrator, store=RecordingStore(), system_prompt="s")
        task = await queue.enqueue(TaskType.CUSTOM, "a", "a")
        await queue.execute_one(task.id)

        assert saved_from
        assert loop_thread not in saved_from
