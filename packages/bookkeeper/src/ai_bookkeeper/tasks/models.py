"""Task records for the autonomous bookkeeper queue."""

import secrets
import time
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class TaskType(str, Enum):
    """Kinds of autonomous jobs."""

    CATEGORIZE_TRANSACTIONS = "categorize_transactions"
    OVERDUE_FOLLOWUP = "overdue_followup"
    RECONCILE_TRANSACTIONS = "reconcile_transactions"
    UPCOMING_BILLS = "upcoming_bills"
    HEALTH_CHECK = "health_check"
    CUSTOM = "custom"


class TaskPriority(str, Enum):
    """Execution priority; high runs first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_INPUT = "needs_input"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


def new_task_id() -> str:
    return f"task_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Task:
    """One unit of autonomous work."""

    type: TaskType
    title: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    id: str = field(default_factory=new_task_id)
    status: TaskStatus = TaskStatus.PENDING
    result: str | None = None
    error: str | None = None
    question: str | None = None
    answer: str | None = None
    created_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None

    def copy(self) -> "Task":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "question": self.question,
            "answer": self.answer,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        completed_at = data.get("completed_at")
        return cls(
            id=data["id"],
            type=TaskType(data["type"]),
            title=data["title"],
            description=data.get("description", ""),
            priority=TaskPriority(data.get("priority", "medium")),
            status=TaskStatus(data.get("status", "pending")),
            result=data.get("result"),
            error=data.get("error"),
            question=data.get("question"),
            answer=data.get("answer"),
            created_at=datetime.fromisoformat(data["created_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )
