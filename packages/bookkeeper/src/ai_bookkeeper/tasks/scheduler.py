"""Standard daily task set."""

import structlog

from ai_bookkeeper.tasks.models import Task, TaskPriority, TaskType
from ai_bookkeeper.tasks.queue import TaskQueue

logger = structlog.get_logger(__name__)

# (type, title, description, priority)
DAILY_TASKS: list[tuple[TaskType, str, str, TaskPriority]] = [
    (
        TaskType.CATEGORIZE_TRANSACTIONS,
        "Categorize uncategorized bank transactions",
        "Review and categorize any uncategorized bank transactions using "
        "AI-powered categorization.",
        TaskPriority.HIGH,
    ),
    (
        TaskType.OVERDUE_FOLLOWUP,
        "Review overdue invoices",
        "Check for overdue invoices and prepare follow-up actions.",
        TaskPriority.HIGH,
    ),
    (
        TaskType.RECONCILE_TRANSACTIONS,
        "Reconcile bank transactions",
        "Match unmatched bank transactions to invoices, bills, and expenses.",
        TaskPriority.MEDIUM,
    ),
    (
        TaskType.UPCOMING_BILLS,
        "Review upcoming bills",
        "Check for bills due in the next 7 days and ensure they are ready for payment.",
        TaskPriority.MEDIUM,
    ),
    (
        TaskType.HEALTH_CHECK,
        "Daily financial health check",
        "Run a quick check on cash position, outstanding receivables, and any anomalies.",
        TaskPriority.LOW,
    ),
]


async def generate_daily_tasks(queue: TaskQueue) -> list[Task]:
    """Enqueue the daily jobs and return them."""
    tasks = [
        await queue.enqueue(task_type, title, description, priority)
        for task_type, title, description, priority in DAILY_TASKS
    ]
    logger.info("daily_tasks_generated", count=len(tasks))
    return tasks
