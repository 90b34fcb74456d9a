"""Autonomous task queue."""

from ai_bookkeeper.tasks.instructions import TASK_INSTRUCTIONS, build_instruction
from ai_bookkeeper.tasks.models import Task, TaskPriority, TaskStatus, TaskType
from ai_bookkeeper.tasks.queue import TaskQueue, extract_question
from ai_bookkeeper.tasks.scheduler import DAILY_TASKS, generate_daily_tasks
from ai_bookkeeper.tasks.store import InMemoryTaskStore, JsonFileTaskStore, TaskStore

__all__ = [
    "Task",
    "TaskType",
    "TaskPriority",
    "TaskStatus",
    "TaskQueue",
    "extract_question",
    "TASK_INSTRUCTIONS",
    "build_instruction",
    "DAILY_TASKS",
    "generate_daily_tasks",
    "TaskStore",
    "InMemoryTaskStore",
    "JsonFileTaskStore",
]
