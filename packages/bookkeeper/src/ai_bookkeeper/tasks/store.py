"""Task persistence backends."""

import json
from pathlib import Path
from typing import Protocol

import structlog

from ai_bookkeeper.tasks.models import Task, TaskStatus

logger = structlog.get_logger(__name__)


class TaskStore(Protocol):
    """Where the queue keeps its tasks between operations."""

    def load(self) -> list[Task]: ...

    def save(self, tasks: list[Task]) -> None: ...


class InMemoryTaskStore:
    """Keeps tasks for the life of the process only."""

    def __init__(self) -> None:
        self._tasks: list[Task] = []

    def load(self) -> list[Task]:
        return [task.copy() for task in self._tasks]

    def save(self, tasks: list[Task]) -> None:
        self._tasks = [task.copy() for task in tasks]


class JsonFileTaskStore:
    """Persists tasks to a JSON file, rewritten on every save.

    Tasks found in ``running`` state on load were interrupted by a restart
    and are put back to ``pending``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[Task]:
        if not self.path.exists():
            return []

        raw = json.loads(self.path.read_text(encoding="utf-8"))
        tasks = [Task.from_dict(item) for item in raw]
        for task in tasks:
            if task.status is TaskStatus.RUNNING:
                logger.warning("task_reset_after_restart", task_id=task.id)
                task.status = TaskStatus.PENDING
        return tasks

    def save(self, tasks: list[Task]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            json.dumps([task.to_dict() for task in tasks], indent=2), encoding="utf-8"
        )
        tmp.replace(self.path)
